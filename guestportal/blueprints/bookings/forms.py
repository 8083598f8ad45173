from datetime import date
from flask_wtf import FlaskForm
from wtforms import StringField, IntegerField, DateField, SelectField, SubmitField
from wtforms.validators import DataRequired, Email, Length, NumberRange, ValidationError

APARTMENTS = ["Christina", "Emma", "Hedwig", "Adele", "Anna", "Margret", "Elisabeth"]


class MockBookingForm(FlaskForm):
    name = StringField("Name", validators=[DataRequired(), Length(max=100)])
    email = StringField("Email", validators=[DataRequired(), Email()])
    check_in = DateField("Check-in", validators=[DataRequired()])
    check_out = DateField("Check-out", validators=[DataRequired()])
    guest_count = IntegerField("Guests", validators=[DataRequired(), NumberRange(min=1, message="At least 1 guest is required")])
    apartment = SelectField("Apartment", choices=[(a, a) for a in APARTMENTS], validators=[DataRequired()])
    submit = SubmitField("Book")

    def validate_check_in(self, field):
        if field.data and field.data < date.today():
            raise ValidationError("Check-in date must be today or in the future")

    def validate_check_out(self, field):
        if field.data and self.check_in.data and field.data <= self.check_in.data:
            raise ValidationError("Check-out date must be after check-in date")
