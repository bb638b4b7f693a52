from flask import Blueprint, render_template, session, redirect, url_for, flash
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import User, Message
from ..forms import AcceptMessagesForm, DeleteMessageForm
from ..utils import requires_auth


bp = Blueprint('main', __name__)

@bp.route('/')
def home():
    """Render the landing page."""
    return render_template('home.html')

@bp.route('/dashboard')
@requires_auth
def dashboard():
    """Render the signed-in user's message board."""
    user = db.session.get(User, session['user_id'])

    if user is None:
        flash("Your session is invalid. Please sign in again.", 'error')
        session.clear()
        return redirect(url_for('auth.sign_in'))

    messages = (Message.query.filter_by(user_id=user.id)
                .order_by(Message.created_at.desc(), Message.id.desc()).all())
    accept_form = AcceptMessagesForm(accept_messages=user.is_accepting_messages)
    profile_url = url_for('profile.public_profile', username=user.username, _external=True)

    return render_template('dashboard.html',
                           user=user,
                           messages=messages,
                           profile_url=profile_url,
                           accept_form=accept_form,
                           delete_form=DeleteMessageForm())

@bp.route('/dashboard/accept-messages', methods=['POST'])
@requires_auth
def accept_messages():
    """Toggle whether the board accepts new messages."""
    form = AcceptMessagesForm()
    if form.validate_on_submit():
        user = db.session.get(User, session['user_id'])
        try:
            user.is_accepting_messages = form.accept_messages.data
            db.session.commit()
            flash("Message acceptance status updated.", 'success')
        except SQLAlchemyError:
            db.session.rollback()
            flash("Error updating message acceptance status.", 'error')
    return redirect(url_for('main.dashboard'))

@bp.route('/dashboard/messages/<int:message_id>/delete', methods=['POST'])
@requires_auth
def delete_message(message_id):
    """Delete one of the current user's messages."""
    form = DeleteMessageForm()
    if form.validate_on_submit():
        message = Message.query.filter_by(id=message_id, user_id=session['user_id']).first()
        if message is None:
            flash("Message not found or already deleted.", 'error')
            return redirect(url_for('main.dashboard'))
        try:
            db.session.delete(message)
            db.session.commit()
            flash("Message deleted.", 'info')
        except SQLAlchemyError:
            db.session.rollback()
            flash("Error deleting message.", 'error')
    return redirect(url_for('main.dashboard'))
