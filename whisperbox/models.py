from datetime import datetime
from marshmallow import Schema, fields, validate, EXCLUDE
from .extensions import db

# --- Validation rules shared by forms and schemas ---
USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 20
USERNAME_PATTERN = r'^[a-zA-Z0-9_]+$'
USERNAME_TOO_SHORT = f'Username must be at least {USERNAME_MIN_LENGTH} characters'
USERNAME_TOO_LONG = f'Username must be no more than {USERNAME_MAX_LENGTH} characters'
USERNAME_BAD_CHARS = 'Username must not contain special characters'

CONTENT_MIN_LENGTH = 10
CONTENT_MAX_LENGTH = 300
CONTENT_TOO_SHORT = f'Content must be at least {CONTENT_MIN_LENGTH} characters.'
CONTENT_TOO_LONG = f'Content must not be longer than {CONTENT_MAX_LENGTH} characters.'

VERIFY_CODE_LENGTH = 6


# --- Models ---
class User(db.Model):
    """Account that owns a public message board."""

    id = db.Column(db.Integer, primary_key=True)
    # Only verified accounts hold a handle, so no unique constraint here.
    username = db.Column(db.String(USERNAME_MAX_LENGTH), index=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)

    verify_code = db.Column(db.String(VERIFY_CODE_LENGTH), nullable=False)
    verify_code_expiry = db.Column(db.DateTime, nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False)
    is_accepting_messages = db.Column(db.Boolean, default=True, nullable=False)
    is_admin = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    messages = db.relationship('Message', backref='recipient', lazy=True,
                               cascade="all, delete-orphan",
                               order_by='Message.created_at.desc()')

    @classmethod
    def find_verified(cls, username):
        """Return the verified account holding ``username``, if any."""
        return cls.query.filter_by(username=username, is_verified=True).first()

    def __repr__(self):
        return f'<User {self.username}>'

class Message(db.Model):
    """Anonymous message left on a user's board."""

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'content': self.content,
            'createdAt': self.created_at.isoformat(),
        }


# --- Schemas ---
def username_field(**kwargs):
    return fields.Str(required=True, validate=[
        validate.Length(min=USERNAME_MIN_LENGTH, error=USERNAME_TOO_SHORT),
        validate.Length(max=USERNAME_MAX_LENGTH, error=USERNAME_TOO_LONG),
        validate.Regexp(USERNAME_PATTERN, error=USERNAME_BAD_CHARS),
    ], **kwargs)

class UsernameQuerySchema(Schema):
    """Marshmallow schema for the availability check query string."""

    class Meta:
        unknown = EXCLUDE

    username = username_field()

class SendMessageSchema(Schema):
    """Marshmallow schema for the send-message request body."""

    class Meta:
        unknown = EXCLUDE

    content = fields.Str(required=True, validate=[
        validate.Length(min=CONTENT_MIN_LENGTH, error=CONTENT_TOO_SHORT),
        validate.Length(max=CONTENT_MAX_LENGTH, error=CONTENT_TOO_LONG),
    ])
    username = fields.Str(required=True, validate=validate.Length(min=1))

class AcceptMessagesSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    acceptMessages = fields.Bool(required=True)
