from flask import session
from flask_socketio import join_room, leave_room
from .extensions import socketio

# --- SocketIO Events ---
@socketio.on('join')
def handle_join(data=None):
    """Subscribe a signed-in dashboard to its own message feed."""

    if 'user_id' not in session:
        return  # Unauthorized

    join_room(f"user_{session['user_id']}")


@socketio.on('leave')
def handle_leave(data=None):
    """Stop receiving live messages."""

    if 'user_id' in session:
        leave_room(f"user_{session['user_id']}")
