"""
Authentication Routes
Registration, login, logout and password management with lockout and rate limiting
"""
from flask import current_app, jsonify
from flask_login import login_user, logout_user, current_user, login_required
from flask_wtf.csrf import generate_csrf
from datetime import datetime
from . import auth_bp
from .forms import LoginForm, RegisterForm, ChangePasswordForm
from models.family import Family
from models.users import User
from extensions import db, limiter
from services.errors import ValidationError
from utils.forms import validated_form


@auth_bp.route('/csrf-token')
def csrf_token():
    """Token for JSON clients to send back in the X-CSRFToken header"""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    """Create a household and its first user, then sign in"""
    form = validated_form(RegisterForm)
    email = form.email.data.strip().lower()

    if User.query.filter_by(email=email).first():
        raise ValidationError('Validation failed', fields={'email': ['Email is already registered']})

    family = Family(name=form.household_name.data.strip())
    db.session.add(family)
    db.session.flush()

    user = User(email=email, name=form.name.data.strip(), family_id=family.id)
    user.set_password(form.password.data)
    db.session.add(user)
    db.session.commit()

    login_user(user)
    current_app.logger.info(f'New household {family.id} "{family.name}" registered by {email}')
    return jsonify(user.to_dict()), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")  # Rate limit login attempts
def login():
    """User login with lockout after repeated failures"""
    if current_user.is_authenticated:
        return jsonify(current_user.to_dict())

    form = validated_form(LoginForm)
    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()

    if user is None:
        # Generic error to prevent user enumeration
        return jsonify({'error': 'Invalid email or password.'}), 401

    if user.is_locked():
        minutes_left = int((user.locked_until - datetime.utcnow()).total_seconds() / 60) + 1
        return jsonify({
            'error': f'Account temporarily locked due to multiple failed login attempts. '
                     f'Try again in {minutes_left} minutes.'
        }), 403

    if not user.is_active:
        return jsonify({'error': 'This account has been deactivated.'}), 403

    if not user.check_password(form.password.data):
        user.record_failed_login()
        max_attempts = current_app.config.get('MAX_LOGIN_ATTEMPTS', 5)
        remaining = max(0, max_attempts - user.failed_login_attempts)
        current_app.logger.warning(f'Failed login for {email} ({user.failed_login_attempts} attempts)')
        if remaining > 0:
            return jsonify({'error': f'Invalid email or password. {remaining} attempts remaining before lockout.'}), 401
        return jsonify({'error': 'Account locked due to too many failed attempts.'}), 403

    login_user(user, remember=form.remember.data)
    user.update_last_login()
    user.reset_failed_logins()
    return jsonify(user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout"""
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify(current_user.to_dict())


@auth_bp.route('/password', methods=['POST'])
@login_required
def change_password():
    form = validated_form(ChangePasswordForm)
    if not current_user.check_password(form.current_password.data):
        raise ValidationError('Validation failed', fields={'current_password': ['Current password is incorrect']})

    current_user.set_password(form.new_password.data)
    db.session.commit()
    current_app.logger.info(f'User {current_user.id} changed password')
    return jsonify({'success': True})
