from flask import Blueprint, request, session, Response, stream_with_context
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
import logging

from ..extensions import db, limiter
from ..models import User, Message, UsernameQuerySchema, SendMessageSchema, AcceptMessagesSchema
from ..completion import CompletionError, SUGGESTION_PROMPT, get_completion_client
from ..utils import api_response, api_auth_required, join_errors, deliver_message

bp = Blueprint('api', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

@bp.route('/check-username-unique')
@limiter.limit("10 per minute")
def check_username_unique():
    """Check whether a handle is free among verified accounts."""
    try:
        try:
            data = UsernameQuerySchema().load(request.args.to_dict())
        except ValidationError as err:
            return api_response(False, join_errors(err.messages, 'username', 'Invalid query parameters'), 400)

        if User.find_verified(data['username']):
            return api_response(False, 'Username is already taken')
        return api_response(True, 'Username is unique')
    except Exception:
        logger.exception("Error checking username")
        return api_response(False, 'Error checking username', 500)

@bp.route('/send-message', methods=['POST'])
def send_message():
    """Store an anonymous message for a user."""
    try:
        data = SendMessageSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        message = ', '.join(m for field in ('content', 'username') for m in err.messages.get(field, []))
        return api_response(False, message or 'Invalid request body', 400)

    success, message, status = deliver_message(data['username'], data['content'])
    return api_response(success, message, status)

@bp.route('/suggest-messages', methods=['POST'])
@limiter.limit("20 per minute")
def suggest_messages():
    """Stream raw suggestion text; records are separated by '||'."""
    try:
        chunks = get_completion_client().stream(SUGGESTION_PROMPT)
    except CompletionError as e:
        logger.error("Suggestion request failed: %s", e)
        return api_response(False, 'Failed to generate suggestions', 500)

    def generate():
        try:
            yield from chunks
        except CompletionError as e:
            logger.error("Suggestion stream interrupted: %s", e)

    return Response(stream_with_context(generate()), mimetype='text/plain')

@bp.route('/accept-messages', methods=['GET'])
@api_auth_required
def get_accept_messages():
    user = db.session.get(User, session['user_id'])
    if user is None:
        return api_response(False, 'User not found', 404)
    return api_response(True, 'Status retrieved', isAcceptingMessages=user.is_accepting_messages)

@bp.route('/accept-messages', methods=['POST'])
@api_auth_required
def update_accept_messages():
    try:
        data = AcceptMessagesSchema().load(request.get_json(silent=True) or {})
    except ValidationError as err:
        return api_response(False, join_errors(err.messages, 'acceptMessages', 'Invalid request body'), 400)

    user = db.session.get(User, session['user_id'])
    if user is None:
        return api_response(False, 'User not found', 404)
    try:
        user.is_accepting_messages = data['acceptMessages']
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Failed to update message acceptance for user %s: %s", user.id, e)
        return api_response(False, 'Error updating message acceptance status', 500)
    return api_response(True, 'Message acceptance status updated successfully',
                        isAcceptingMessages=user.is_accepting_messages)

@bp.route('/get-messages')
@api_auth_required
def get_messages():
    messages = (Message.query.filter_by(user_id=session['user_id'])
                .order_by(Message.created_at.desc(), Message.id.desc()).all())
    return api_response(True, 'Messages retrieved', messages=[m.to_dict() for m in messages])

@bp.route('/delete-message/<int:message_id>', methods=['DELETE'])
@api_auth_required
def delete_message(message_id):
    message = Message.query.filter_by(id=message_id, user_id=session['user_id']).first()
    if message is None:
        return api_response(False, 'Message not found or already deleted', 404)
    try:
        db.session.delete(message)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Failed to delete message %s: %s", message_id, e)
        return api_response(False, 'Error deleting message', 500)
    return api_response(True, 'Message deleted')
