import mysql.connector
from flask import Blueprint, render_template, request, redirect, url_for, current_app, flash, g, session
from auth_utils import login_required
from validators import CURRENCIES, ValidationError, parse_choice

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')

USER_TABLES = ('contributions', 'goals', 'budgets', 'expenses', 'income')

def load_user_settings(cur, user_id):
    """Copy the stored preferences into the session, falling back to the defaults."""
    cur.execute(
        "SELECT currency, notifications_enabled FROM user_settings WHERE user_id=%s",
        (user_id,)
    )
    setting = cur.fetchone()
    session['currency'] = setting['currency'] if setting else 'KES'
    session['notifications_enabled'] = bool(setting['notifications_enabled']) if setting else True

@settings_bp.route('/')
@login_required
def index():
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            load_user_settings(cur, g.user.id)
    except mysql.connector.Error:
        current_app.logger.exception("Loading settings failed")
        flash("Failed to load settings", "error")
    finally:
        conn.close()

    currency = session.get('currency', 'KES')
    enabled = session.get('notifications_enabled', True)
    return render_template('settings.html', currency=currency, notifications_enabled=enabled,
                           currencies=CURRENCIES, user=g.user)

@settings_bp.route('/update', methods=['POST'])
@login_required
def update():
    try:
        currency = parse_choice(request.form.get('currency'), CURRENCIES, 'Currency')
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('settings.index'))
    enabled = request.form.get('notifications_enabled') in ('on', '1', 'true')

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO user_settings (user_id, currency, notifications_enabled) VALUES (%s, %s, %s) "
                "ON DUPLICATE KEY UPDATE currency=VALUES(currency), notifications_enabled=VALUES(notifications_enabled)",
                (g.user.id, currency, enabled)
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Saving settings failed")
        flash("Failed to save settings", "error")
        return redirect(url_for('settings.index'))
    finally:
        conn.close()

    session['currency'] = currency
    session['notifications_enabled'] = enabled
    flash("Settings saved", "success")
    return redirect(url_for('settings.index'))

@settings_bp.route('/clear-data', methods=['POST'])
@login_required
def clear_data():
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            for table in USER_TABLES:
                cur.execute(f"DELETE FROM {table} WHERE user_id=%s", (g.user.id,))
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Clearing data for %s failed", g.user.id)
        flash("Failed to clear your data", "error")
        return redirect(url_for('settings.index'))
    finally:
        conn.close()

    current_app.logger.info("Cleared all records for %s", g.user.id)
    flash("All your records were deleted", "success")
    return redirect(url_for('settings.index'))
