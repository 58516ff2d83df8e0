from decimal import Decimal

from flask_wtf import FlaskForm
from wtforms import DecimalField, IntegerField, SelectField, StringField
from wtforms.validators import InputRequired, DataRequired, Length, NumberRange, Optional

from models.categories import CATEGORY_TYPES


class CategoryForm(FlaskForm):
    name = StringField('Name', validators=[
        DataRequired(message='Name is required'),
        Length(max=100)
    ])
    color = StringField('Color', validators=[Optional(), Length(max=20)])
    icon = StringField('Icon', validators=[Optional(), Length(max=50)])
    category_type = SelectField('Type', choices=[(t, t.title()) for t in CATEGORY_TYPES],
                                default='variable')


class SubcategoryForm(FlaskForm):
    name = StringField('Name', validators=[
        DataRequired(message='Name is required'),
        Length(max=100)
    ])
    color = StringField('Color', validators=[Optional(), Length(max=20)])
    icon = StringField('Icon', validators=[Optional(), Length(max=50)])


class BudgetForm(FlaskForm):
    category_id = IntegerField('Category', validators=[InputRequired(message='Category is required')])
    year = IntegerField('Year', validators=[InputRequired(), NumberRange(min=1900, max=9999)])
    month = IntegerField('Month', validators=[InputRequired(), NumberRange(min=1, max=12)])
    amount = DecimalField('Limit', places=2, validators=[
        InputRequired(message='Limit is required'),
        NumberRange(min=Decimal('0'), message='Budget must be zero or more')
    ])
