from flask import redirect, url_for, session, flash
from flask_admin import Admin, AdminIndexView
from flask_admin.contrib.sqla import ModelView

from .extensions import db
from .models import User, Message


class AdminModelView(ModelView):
    """Custom admin view that restricts access to admin users."""

    def is_accessible(self):
        return session.get('is_admin', False)

    def inaccessible_callback(self, name, **kwargs):
        flash("You must be an admin to access this page.", 'error')
        return redirect(url_for('auth.sign_in'))


class UserAdminView(AdminModelView):
    column_list = ('username', 'email', 'is_verified', 'is_accepting_messages', 'is_admin', 'created_at')
    column_searchable_list = ('username', 'email')
    form_excluded_columns = ('password_hash', 'messages')


class MessageAdminView(AdminModelView):
    # Messages are immutable once stored.
    can_edit = False
    can_create = False
    column_list = ('user_id', 'content', 'created_at')
    column_labels = {'user_id': 'Recipient'}


class MyAdminIndexView(AdminIndexView):
    """Custom admin index view with access control."""

    def is_accessible(self):
        return session.get('is_admin', False)

    def inaccessible_callback(self, name, **kwargs):
        flash("You must be an admin to access this page.", 'error')
        return redirect(url_for('auth.sign_in'))


def init_admin(app):
    """Attach a fresh admin site to ``app``."""
    admin = Admin(app, name='Whisperbox Admin', index_view=MyAdminIndexView())
    admin.add_view(UserAdminView(User, db.session))
    admin.add_view(MessageAdminView(Message, db.session))
    return admin
