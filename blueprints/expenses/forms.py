from decimal import Decimal

from flask_wtf import FlaskForm
from wtforms import DateField, DecimalField, IntegerField, StringField
from wtforms.validators import InputRequired, Length, NumberRange, Optional


class ExpenseForm(FlaskForm):
    description = StringField('Description', validators=[
        InputRequired(message='Description is required'),
        Length(max=255)
    ])
    amount = DecimalField('Amount', places=2, validators=[
        InputRequired(message='Amount is required'),
        NumberRange(min=Decimal('0.01'), message='Amount must be greater than zero')
    ])
    date = DateField('Date', format='%Y-%m-%d', validators=[Optional()])
    category_id = IntegerField('Category', validators=[Optional()])
    subcategory_id = IntegerField('Subcategory', validators=[Optional()])
    person_id = IntegerField('Person', validators=[Optional()])
