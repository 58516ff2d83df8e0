from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Length, Optional, URL


class PersonForm(FlaskForm):
    name = StringField('Name', validators=[
        DataRequired(message='Name is required'),
        Length(max=100)
    ])
    color = StringField('Color', validators=[Optional(), Length(max=20)])
    avatar_url = StringField('Avatar URL', validators=[Optional(), URL(), Length(max=500)])
