from datetime import datetime, timedelta
from flask import Blueprint, render_template, redirect, url_for, flash, session, current_app
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy.exc import SQLAlchemyError
import logging

from ..extensions import db, limiter
from ..models import User
from ..forms import SignUpForm, VerifyForm, SignInForm
from ..utils import _DUMMY_PASSWORD_HASH, generate_verify_code, send_verification_email


bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

def _code_expiry():
    return datetime.utcnow() + timedelta(minutes=current_app.config['VERIFY_CODE_TTL_MINUTES'])

@bp.route('/sign-up', methods=['GET', 'POST'])
def sign_up():
    """Register an account and email a verification code."""
    form = SignUpForm()

    if form.validate_on_submit():
        username = form.username.data
        email = form.email.data.strip().lower()
        password = form.password.data

        if User.find_verified(username):
            flash("Username is already taken", 'error')
            return render_template('sign_up.html', form=form), 400

        user = User.query.filter_by(email=email).first()
        if user is not None and user.is_verified:
            flash("User already exists with this email", 'error')
            return render_template('sign_up.html', form=form), 400

        if user is None:
            user = User(email=email)
            db.session.add(user)
        # An unverified registration is refreshed in place.
        user.username = username
        user.password_hash = generate_password_hash(password)
        user.verify_code = generate_verify_code()
        user.verify_code_expiry = _code_expiry()

        try:
            db.session.commit()
        except SQLAlchemyError as e:
            logger.error("Registration error: %s", e)
            db.session.rollback()
            flash("Error registering user", 'error')
            return render_template('sign_up.html', form=form), 500

        send_verification_email(user)
        flash("User registered successfully. Please verify your account.", 'success')
        return redirect(url_for('auth.verify', username=username))

    return render_template('sign_up.html', form=form)

@bp.route('/verify/<string:username>', methods=['GET', 'POST'])
def verify(username):
    """Check an emailed verification code."""
    form = VerifyForm()

    if form.validate_on_submit():
        user = (User.query.filter_by(username=username, is_verified=False)
                .order_by(User.created_at.desc()).first())
        if user is None:
            flash("User not found", 'error')
            return render_template('verify.html', form=form, username=username), 404

        if user.verify_code_expiry < datetime.utcnow():
            flash("Verification code has expired. Please sign up again to get a new code.", 'error')
            return render_template('verify.html', form=form, username=username), 400

        if user.verify_code != form.code.data.strip():
            flash("Incorrect verification code", 'error')
            return render_template('verify.html', form=form, username=username), 400

        # Someone else may have verified the same handle in the meantime.
        if User.find_verified(username):
            flash("Username is already taken", 'error')
            return render_template('verify.html', form=form, username=username), 400

        try:
            user.is_verified = True
            db.session.commit()
        except SQLAlchemyError as e:
            logger.error("Verification error: %s", e)
            db.session.rollback()
            flash("Error verifying user", 'error')
            return render_template('verify.html', form=form, username=username), 500

        flash("Account verified successfully", 'success')
        return redirect(url_for('auth.sign_in'))

    return render_template('verify.html', form=form, username=username)

@bp.route('/sign-in', methods=['GET', 'POST'])
@limiter.limit("100 per minute")
def sign_in():
    """Handle sign in by email or username."""
    form = SignInForm()

    if form.validate_on_submit():
        identifier = form.identifier.data.strip()
        password = form.password.data
        user = (User.query.filter(db.or_(User.email == identifier.lower(), User.username == identifier))
                .order_by(User.is_verified.desc()).first())

        if user is None:
            # Do a single password hash comparison to keep timing similar
            check_password_hash(_DUMMY_PASSWORD_HASH, password)
        elif check_password_hash(user.password_hash, password):
            if not user.is_verified:
                flash("Please verify your account before signing in.", 'error')
                return redirect(url_for('auth.verify', username=user.username))
            session['user_id'] = user.id
            session['username'] = user.username
            session['is_admin'] = user.is_admin
            flash(f"Welcome back, {user.username}!", 'success')
            return redirect(url_for('main.dashboard'))

        flash("Incorrect username or password.", 'error')
        return redirect(url_for('auth.sign_in'))

    return render_template('sign_in.html', form=form)

@bp.route('/sign-out')
def sign_out():
    session.clear()
    flash("You have been signed out.", 'info')
    return redirect(url_for('main.home'))
