from functools import wraps
from datetime import datetime
from flask import session, flash, redirect, url_for, current_app, jsonify, render_template
from werkzeug.security import generate_password_hash
from sqlalchemy.exc import SQLAlchemyError
import logging
import secrets
from threading import Thread
from flask_mail import Message as MailMessage

from .extensions import db, socketio, mail
from .models import User, Message, VERIFY_CODE_LENGTH

logger = logging.getLogger(__name__)

# Precompute a dummy hash to mitigate timing attacks
_DUMMY_PASSWORD_HASH = generate_password_hash("non-existent-user-password")

def requires_auth(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            flash("Please sign in to access this page.", 'error')
            return redirect(url_for('auth.sign_in'))
        return f(*args, **kwargs)
    return decorated_function

def api_auth_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return api_response(False, 'Not authenticated', 401)
        return f(*args, **kwargs)
    return decorated_function

def api_response(success, message, status=200, **payload):
    return jsonify({'success': success, 'message': message, **payload}), status

def join_errors(errors, field, fallback):
    """Comma-join the validation messages reported for ``field``."""
    messages = errors.get(field) or []
    return ', '.join(messages) if messages else fallback

def generate_verify_code():
    return ''.join(secrets.choice('0123456789') for _ in range(VERIFY_CODE_LENGTH))

def deliver_message(username, content):
    """
    Store an anonymous message for the verified account ``username``.
    Returns ``(success, message, status)``.
    """
    try:
        user = User.find_verified(username)
        if user is None:
            return False, 'User not found', 404
        if not user.is_accepting_messages:
            return False, 'User is not accepting messages', 403

        message = Message(user_id=user.id, content=content, created_at=datetime.utcnow())
        db.session.add(message)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Failed to store message for %s: %s", username, e)
        return False, 'Error adding message', 500

    notify_new_message(user.id, message)
    return True, 'Message sent successfully', 201

def notify_new_message(user_id, message):
    # emit after commit so dashboards can use message.id
    socketio.emit('new_message', message.to_dict(), room=f'user_{user_id}')

def send_async_email(app, msg):
    with app.app_context():
        try:
            mail.send(msg)
            logger.info(f"Email sent successfully to {msg.recipients}")
        except Exception as e:
            logger.warning(f"Failed to send email to {msg.recipients}: {e}")
            logger.warning("Email not sent. Configure MAIL_SERVER, MAIL_USERNAME, and MAIL_PASSWORD to enable emails.")

def send_email(to, subject, template):
    msg = MailMessage(
        subject,
        recipients=[to],
        html=template,
        sender=current_app.config.get('MAIL_DEFAULT_SENDER', 'noreply@whisperbox.app')
    )
    Thread(target=send_async_email, args=(current_app._get_current_object(), msg)).start()

def send_verification_email(user):
    html = render_template('email/verification.html', username=user.username, code=user.verify_code)
    send_email(user.email, "Whisperbox | Verification Code", html)
