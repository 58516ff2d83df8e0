from decimal import Decimal

from flask_wtf import FlaskForm
from wtforms import DecimalField, IntegerField, StringField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional


class PlannedExpenseForm(FlaskForm):
    name = StringField('Name', validators=[
        DataRequired(message='Name is required'),
        Length(max=255)
    ])
    amount = DecimalField('Amount', places=2, validators=[
        InputRequired(message='Amount is required'),
        NumberRange(min=Decimal('0.01'), message='Amount must be greater than zero')
    ])
    due_day = IntegerField('Due Day', validators=[
        InputRequired(message='Due day is required'),
        NumberRange(min=1, max=31, message='Due day must be between 1 and 31')
    ])
    category_id = IntegerField('Category', validators=[Optional()])
    description = StringField('Description', validators=[Optional(), Length(max=255)])


class PeriodForm(FlaskForm):
    year = IntegerField('Year', validators=[InputRequired(), NumberRange(min=1900, max=9999)])
    month = IntegerField('Month', validators=[InputRequired(), NumberRange(min=1, max=12)])


class ConfirmPaymentForm(PeriodForm):
    """Paid amount defaults to the planned amount on the client; the payer is mandatory"""
    paid_amount = DecimalField('Paid Amount', places=2, validators=[
        InputRequired(message='Paid amount is required'),
        NumberRange(min=Decimal('0.01'), message='Must be greater than zero')
    ])
    person_id = IntegerField('Paid By', validators=[InputRequired(message='Payer is required')])
