import logging
import re

from flask import Blueprint, render_template, request, redirect, url_for, flash

from utils.api_client import get_api_client, ApiError
from utils.auth import current_session, safe_next_url

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def validate_registration(username, email, password, confirm_password):
    """Return the first problem with the registration form, or None"""
    if not username or not email or not password:
        return 'Please fill all required fields'
    if not EMAIL_PATTERN.match(email):
        return 'Please enter a valid email address'
    if len(password) < 6:
        return 'Password must be at least 6 characters long'
    if password != confirm_password:
        return 'Passwords do not match!'
    return None


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    store = current_session()
    next_url = safe_next_url(request.values.get('next'))

    if request.method == 'GET':
        if store.is_authenticated():
            return redirect(next_url or url_for('dashboard.dashboard'))
        return render_template('login.html', next_url=next_url)

    username = request.form.get('username', '').strip()
    password = request.form.get('password', '')
    if not username or not password:
        flash('❌ Please enter your username and password.', 'error')
        return render_template('login.html', next_url=next_url, username=username), 400

    try:
        auth = get_api_client().login(username, password)
    except ApiError as e:
        logger.info('Login failed for %s: %s', username, e)
        message = 'Invalid username or password.' if e.status_code in (400, 401, 403) else e.message
        flash(f'❌ {message}', 'error')
        return render_template('login.html', next_url=next_url, username=username), 401

    if not auth or not auth.get('token'):
        flash('❌ Login failed. The server did not return a token.', 'error')
        return render_template('login.html', next_url=next_url, username=username), 502

    store.login(auth)
    flash(f"🎉 Login successful! Welcome back, {auth.get('username', username)}!", 'success')
    return redirect(next_url or url_for('dashboard.dashboard'))


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    if request.method == 'GET':
        return render_template('register.html', form={})

    form = {
        'username': request.form.get('username', '').strip(),
        'email': request.form.get('email', '').strip(),
    }
    password = request.form.get('password', '')
    problem = validate_registration(form['username'], form['email'], password,
                                    request.form.get('confirm_password', ''))
    if problem:
        flash(f'⚠️ {problem}', 'warning')
        return render_template('register.html', form=form), 400

    try:
        get_api_client().register(form['username'], form['email'], password)
    except ApiError as e:
        flash(f'❌ Registration failed: {e.message}', 'error')
        return render_template('register.html', form=form), 400

    flash('✅ Registration successful! Please login.', 'success')
    return redirect(url_for('auth.login'))


@auth_bp.route('/logout')
def logout():
    store = current_session()
    user_name = store.get_user_info().get('username', 'User')
    store.clear()
    flash(f'👋 Goodbye {user_name}! You have been logged out successfully.', 'success')
    return redirect(url_for('auth.login'))
