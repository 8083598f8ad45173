from flask_wtf import FlaskForm
from wtforms import StringField, BooleanField, SelectMultipleField, SubmitField
from wtforms.validators import DataRequired, Optional, Length

INTERESTS = [
    ("skiing", "Skiing"),
    ("hiking", "Hiking"),
    ("wellness", "Wellness"),
    ("food", "Food & wine"),
    ("culture", "Culture"),
    ("family", "Family activities"),
]


class OnboardingForm(FlaskForm):
    full_name = StringField("Full name", validators=[DataRequired(), Length(max=120)])
    phone = StringField("Phone", validators=[Optional(), Length(max=40)])
    interests = SelectMultipleField("Interests", choices=INTERESTS, validators=[Optional()])
    notify_email = BooleanField("Email me about my stay", default=True)
    notify_news = BooleanField("Send me news and offers", default=False)
    submit = SubmitField("Continue")
