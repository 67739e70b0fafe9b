import os
import logging
from flask import Flask, redirect, send_from_directory, url_for, session
from flask_wtf.csrf import CSRFProtect
from config import Config
from auth_utils import load_current_user, login_required
import notifications
from routes.auth import auth_bp
from routes.dashboard import dashboard_bp
from routes.expenses import expenses_bp
from routes.income import income_bp
from routes.budgets import budgets_bp
from routes.goals import goals_bp
from routes.settings import settings_bp
from routes.notifications import notifications_bp

csrf = CSRFProtect()

def clamp_filter(value, min_val=0, max_val=100):
    try:
        return max(min(float(value), max_val), min_val)
    except (ValueError, TypeError):
        return 0

def money_filter(value):
    try:
        return f"{session.get('currency', 'KES')} {float(value):,.2f}"
    except (ValueError, TypeError):
        return value

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.config.get("SECRET_KEY"):
        import secrets
        app.config["SECRET_KEY"] = secrets.token_hex(32)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    config_class.init_db(app)
    csrf.init_app(app)

    os.makedirs(app.config['AVATAR_FOLDER'], exist_ok=True)

    app.before_request(load_current_user)

    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(income_bp)
    app.register_blueprint(budgets_bp)
    app.register_blueprint(goals_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(notifications_bp)

    app.jinja_env.filters['clamp'] = clamp_filter
    app.jinja_env.filters['money'] = money_filter
    app.jinja_env.filters['time_ago'] = notifications.time_ago

    @app.context_processor
    def inject_notifications():
        return {'notification_badge': notifications.badge()}

    @app.route('/')
    def index():
        return redirect(url_for('dashboard.index'))

    @app.after_request
    def set_security_headers(response):
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'SAMEORIGIN')
        response.headers.setdefault('X-XSS-Protection', '1; mode=block')
        response.headers.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
        return response

    @app.route('/uploads/avatars/<path:filename>')
    @login_required
    def avatar_file(filename):
        return send_from_directory(os.path.abspath(app.config['AVATAR_FOLDER']), filename)

    return app
