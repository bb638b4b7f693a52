import os
import logging
from flask import Flask
from .extensions import db, socketio, csrf, limiter, mail
from .routes import auth, main, profile, api

from .admin_views import init_admin
from .completion import init_completion
from . import events  # Register SocketIO events


def create_app(config=None):
    app = Flask(__name__)

    # --- Config ---
    instance_dir = os.path.join(os.getcwd(), 'instance')
    os.makedirs(instance_dir, exist_ok=True)

    # Database Config
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', f'sqlite:///{os.path.join(instance_dir, "whisperbox.db")}')
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith("postgres://"):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace("postgres://", "postgresql://", 1)

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Mail Configuration
    app.config['MAIL_SERVER'] = os.environ.get('MAIL_SERVER', 'smtp.googlemail.com')
    app.config['MAIL_PORT'] = int(os.environ.get('MAIL_PORT', 587))
    app.config['MAIL_USE_TLS'] = os.environ.get('MAIL_USE_TLS', 'true').lower() in ['true', 'on', '1']
    app.config['MAIL_USERNAME'] = os.environ.get('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.environ.get('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.environ.get('MAIL_DEFAULT_SENDER', 'noreply@whisperbox.app')

    # Suggestions & verification
    app.config['OPENAI_API_KEY'] = os.environ.get('OPENAI_API_KEY')
    app.config['OPENAI_MODEL'] = os.environ.get('OPENAI_MODEL', 'gpt-4o-mini')
    app.config['VERIFY_CODE_TTL_MINUTES'] = int(os.environ.get('VERIFY_CODE_TTL_MINUTES', 60))

    if config:
        app.config.update(config)

    # Secret Key Handling
    app.secret_key = app.config.get('SECRET_KEY') or os.environ.get('SECRET_KEY')

    if not app.secret_key:
        secret_key_file = os.path.join(instance_dir, 'secret.key')
        if os.path.exists(secret_key_file):
            with open(secret_key_file, 'r') as key_file:
                app.secret_key = key_file.read().strip()
        else:
            import secrets
            app.secret_key = secrets.token_hex(32)
            with open(secret_key_file, 'w') as key_file:
                key_file.write(app.secret_key)

        try:
            os.chmod(secret_key_file, 0o600)
        except OSError:
            pass

    # --- Initialize Extensions ---
    db.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)
    socketio.init_app(app)
    mail.init_app(app)
    init_completion(app)
    init_admin(app)

    # --- Register Blueprints ---

    app.register_blueprint(auth.bp)
    app.register_blueprint(main.bp)
    app.register_blueprint(profile.bp)
    app.register_blueprint(api.bp)
    csrf.exempt(api.bp)

    # --- Logging ---
    logging.basicConfig(level=logging.INFO)

    # Create tables
    with app.app_context():
        db.create_all()

    return app
