from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SubmitField, TextAreaField, HiddenField
from wtforms.validators import DataRequired, Length, Regexp, Email

from .models import (
    USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH, USERNAME_PATTERN,
    USERNAME_TOO_SHORT, USERNAME_TOO_LONG, USERNAME_BAD_CHARS,
    CONTENT_MIN_LENGTH, CONTENT_MAX_LENGTH, CONTENT_TOO_SHORT, CONTENT_TOO_LONG,
    VERIFY_CODE_LENGTH,
)


# --- Forms ---
class SignUpForm(FlaskForm):
    username = StringField('Username', validators=[
        DataRequired(),
        Length(min=USERNAME_MIN_LENGTH, message=USERNAME_TOO_SHORT),
        Length(max=USERNAME_MAX_LENGTH, message=USERNAME_TOO_LONG),
        Regexp(USERNAME_PATTERN, message=USERNAME_BAD_CHARS),
    ])
    email = StringField('Email', validators=[DataRequired(), Email(message='Invalid email address'), Length(max=120)])
    password = PasswordField('Password', validators=[
        DataRequired(), Length(min=6, message='Password must be at least 6 characters')])
    submit = SubmitField('Sign Up')

class VerifyForm(FlaskForm):
    code = StringField('Verification Code', validators=[
        DataRequired(),
        Length(min=VERIFY_CODE_LENGTH, max=VERIFY_CODE_LENGTH,
               message=f'Verification code must be {VERIFY_CODE_LENGTH} digits'),
    ])
    submit = SubmitField('Verify')

class SignInForm(FlaskForm):
    identifier = StringField('Email or Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])
    submit = SubmitField('Sign In')

class MessageForm(FlaskForm):
    content = TextAreaField('Send Anonymous Message', validators=[
        DataRequired(message=CONTENT_TOO_SHORT),
        Length(min=CONTENT_MIN_LENGTH, message=CONTENT_TOO_SHORT),
        Length(max=CONTENT_MAX_LENGTH, message=CONTENT_TOO_LONG),
    ])
    # Raw suggestion text carried between renders of the composer page.
    completion = HiddenField()
    send = SubmitField('Send It')
    suggest = SubmitField('Suggest Messages')

class AcceptMessagesForm(FlaskForm):
    accept_messages = BooleanField('Accept Messages')
    submit = SubmitField('Save')

class DeleteMessageForm(FlaskForm):

    submit = SubmitField('Delete')
