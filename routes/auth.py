import os
import uuid
import mysql.connector
from flask import Blueprint, render_template, request, redirect, url_for, current_app, session, flash, g, jsonify
from werkzeug.utils import secure_filename
from auth_utils import login_required
from identity import SyncResult, ensure_profile, merge_user, sync_phone_identity, update_profile
from providers import AuthProviderError, PasswordAuthClient, PhoneAuthClient
from routes.settings import load_user_settings
from validators import (
    ValidationError, MIN_PASSWORD_LENGTH, required, parse_name,
    validate_email, validate_password, validate_phone, validate_otp,
)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

ALLOWED_AVATAR_EXT = {'png', 'jpg', 'jpeg'}

SYNC_MESSAGES = {
    SyncResult.LINKED: ("Account linked successfully!", "success"),
    SyncResult.UNLINKED: ("Phone authentication successful! Complete signup to access all features.", "info"),
}

def allowed_avatar(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_AVATAR_EXT

def password_client():
    return PasswordAuthClient.from_config(current_app.config)

def phone_client():
    return PhoneAuthClient.from_config(current_app.config)


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    if g.user and request.method == 'GET':
        return redirect(url_for('dashboard.index'))

    if request.method == 'POST':
        try:
            email = validate_email(request.form.get('email'))
            password = required(request.form.get('password'), 'Password')
        except ValidationError as e:
            flash(str(e), "error")
            return redirect(url_for('auth.login'))

        try:
            user, tokens = password_client().sign_in(email, password)
        except AuthProviderError as e:
            flash(e.message or "Failed to sign in", "error")
            return redirect(url_for('auth.login'))

        session['password_user'] = user
        session['password_tokens'] = tokens

        conn = current_app.db_pool.get_connection()
        try:
            with conn.cursor(dictionary=True) as cur:
                ensure_profile(cur, user)
                load_user_settings(cur, user['id'])
                conn.commit()
        except mysql.connector.Error:
            current_app.logger.exception("Could not ensure profile for %s", user['id'])
        finally:
            conn.close()

        flash("Welcome back!", "success")
        return redirect(url_for('dashboard.index'))

    return render_template('auth/login.html', tab='signin', min_password=MIN_PASSWORD_LENGTH)


@auth_bp.route('/signup', methods=['GET', 'POST'])
def signup():
    if request.method == 'POST':
        try:
            email = validate_email(request.form.get('email'))
            password = validate_password(request.form.get('password'))
            phone = validate_phone(request.form.get('phone'), optional=True)
        except ValidationError as e:
            flash(str(e), "error")
            return redirect(url_for('auth.signup'))

        try:
            user = password_client().sign_up(
                email, password, phone=phone,
                redirect_to=url_for('dashboard.index', _external=True)
            )
        except AuthProviderError as e:
            flash(e.message or "Failed to sign up", "error")
            return redirect(url_for('auth.signup'))

        conn = current_app.db_pool.get_connection()
        try:
            with conn.cursor(dictionary=True) as cur:
                ensure_profile(cur, user)
                conn.commit()
        except mysql.connector.Error:
            current_app.logger.exception("Could not create profile for %s", user['id'])
        finally:
            conn.close()

        flash("Account created! You can now log in.", "success")
        return redirect(url_for('auth.login'))

    return render_template('auth/login.html', tab='signup', min_password=MIN_PASSWORD_LENGTH)


@auth_bp.route('/reset', methods=['POST'])
def reset_password():
    email = (request.form.get('email') or '').strip().lower()
    if not email:
        flash("Please enter your email address", "error")
        return redirect(url_for('auth.login'))

    try:
        password_client().send_password_reset(email, redirect_to=url_for('auth.login', _external=True))
    except AuthProviderError as e:
        flash(e.message or "Failed to send reset email", "error")
        return redirect(url_for('auth.login'))

    flash("Password reset link sent! Check your email.", "success")
    return redirect(url_for('auth.login'))


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    tokens = session.get('password_tokens') or {}
    if tokens.get('access_token'):
        try:
            password_client().sign_out(tokens['access_token'])
        except AuthProviderError as e:
            current_app.logger.warning("Remote sign-out failed: %s", e.message)
    session.clear()
    flash("Signed out successfully", "success")
    return redirect(url_for('auth.login'))


@auth_bp.route('/phone')
def phone():
    pending = session.get('phone_pending')
    return render_template('auth/phone.html', pending=pending, phone_user=session.get('phone_user'))


@auth_bp.route('/phone/send', methods=['POST'])
def send_otp():
    try:
        phone_number = validate_phone(request.form.get('phone'))
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('auth.phone'))

    try:
        session_info = phone_client().send_code(phone_number, request.form.get('recaptcha_token'))
    except AuthProviderError as e:
        flash(e.message or "Failed to send OTP. Please try again.", "error")
        return redirect(url_for('auth.phone'))

    session['phone_pending'] = {'session_info': session_info, 'phone_number': phone_number}
    flash("OTP sent successfully! Check your phone.", "success")
    return redirect(url_for('auth.phone'))


@auth_bp.route('/phone/verify', methods=['POST'])
def verify_otp():
    try:
        code = validate_otp(request.form.get('otp'))
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('auth.phone'))

    pending = session.get('phone_pending')
    if not pending:
        flash("Please request OTP first", "error")
        return redirect(url_for('auth.phone'))

    client = phone_client()
    try:
        phone_user, tokens = client.verify_code(pending['session_info'], code)
    except AuthProviderError as e:
        flash(e.message or "Invalid OTP. Please try again.", "error")
        return redirect(url_for('auth.phone'))

    try:
        phone_user.update({k: v for k, v in client.lookup(tokens['id_token']).items() if v})
    except AuthProviderError as e:
        current_app.logger.warning("Phone account lookup failed: %s", e.message)

    session['phone_user'] = phone_user
    session.pop('phone_pending', None)

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            result = sync_phone_identity(cur, phone_user)
            conn.commit()
            load_user_settings(cur, merge_user(session.get('password_user'), phone_user).id)
    except mysql.connector.Error:
        current_app.logger.exception("Saving phone sign-in for %s failed", phone_user['uid'])
        result = SyncResult.ERROR
    finally:
        conn.close()

    flash("Phone number verified successfully!", "success")
    if result in SYNC_MESSAGES:
        flash(*SYNC_MESSAGES[result])
    return redirect(url_for('dashboard.index'))


@auth_bp.route('/profile', methods=['GET', 'POST'])
@login_required
def profile():
    user = g.user
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            if request.method == 'POST':
                try:
                    display_name = parse_name(request.form.get('display_name'), 'Display name')
                    phone = validate_phone(request.form.get('phone'), optional=True)
                except ValidationError as e:
                    flash(str(e), "error")
                    return redirect(url_for('auth.profile'))
                bio = (request.form.get('bio') or '').strip() or None

                if update_profile(cur, user, display_name=display_name, phone=phone, bio=bio):
                    conn.commit()
                    if user.has_full_account:
                        session['password_user']['user_metadata']['display_name'] = display_name
                    if user.phone_user:
                        session['phone_user']['display_name'] = display_name
                    session.modified = True
                    flash("Profile updated successfully", "success")
                else:
                    flash("To save profile changes, please complete signup with email.", "warning")
                return redirect(url_for('auth.profile'))

            if user.has_full_account:
                cur.execute("SELECT * FROM profiles WHERE id=%s", (user.password_user['id'],))
            else:
                cur.execute("SELECT * FROM profiles WHERE firebase_uid=%s", (user.phone_user['uid'],))
            profile_row = cur.fetchone()
    finally:
        conn.close()

    return render_template('profile.html', user=user, profile=profile_row)


@auth_bp.route('/profile/avatar', methods=['POST'])
@login_required
def upload_avatar():
    user = g.user
    if not user.has_full_account:
        flash("Profile picture upload requires a full account", "error")
        return redirect(url_for('auth.profile'))

    file = request.files.get('avatar')
    if not file or not file.filename:
        flash("Please choose an image", "error")
        return redirect(url_for('auth.profile'))
    if not allowed_avatar(file.filename):
        flash("Profile pictures must be PNG or JPEG images", "error")
        return redirect(url_for('auth.profile'))

    ext = file.filename.rsplit('.', 1)[1].lower()
    filename = secure_filename(f"{user.id}_{uuid.uuid4().hex}.{ext}")
    path = os.path.join(current_app.config['AVATAR_FOLDER'], filename)
    file.save(path)
    avatar_url = url_for('avatar_file', filename=filename)

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute("UPDATE profiles SET avatar_url=%s WHERE id=%s", (avatar_url, user.id))
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Saving avatar for %s failed", user.id)
        os.remove(path)
        flash("Failed to upload profile picture", "error")
        return redirect(url_for('auth.profile'))
    finally:
        conn.close()

    session['password_user']['user_metadata']['avatar_url'] = avatar_url
    session.modified = True
    flash("Profile picture updated!", "success")
    return redirect(url_for('auth.profile'))


@auth_bp.route('/debug')
def debug():
    phone_user = session.get('phone_user')
    password_user = session.get('password_user')
    return jsonify({
        'unified': {'user': g.user.to_dict() if g.user else None, 'loading': False},
        'phone': {
            'user': {
                'uid': phone_user['uid'],
                'phoneNumber': phone_user.get('phone_number'),
                'email': phone_user.get('email'),
            } if phone_user else None,
        },
        'password': {
            'user': {
                'id': password_user['id'],
                'email': password_user.get('email'),
            } if password_user else None,
        },
    })
