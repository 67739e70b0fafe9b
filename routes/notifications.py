from flask import Blueprint, render_template, redirect, url_for, request, jsonify
from auth_utils import login_required
import notifications

notifications_bp = Blueprint('notifications', __name__, url_prefix='/notifications')

@notifications_bp.route('/')
@login_required
def index():
    items = notifications.all_notifications()
    if request.args.get('format') == 'json':
        return jsonify(notifications=items, unread=notifications.unread_count())
    return render_template('notifications.html', notifications=items)

@notifications_bp.route('/read/<notification_id>', methods=['POST'])
@login_required
def mark_read(notification_id):
    if not notifications.mark_read(notification_id):
        return "Notification not found", 404
    return redirect(url_for('notifications.index'))

@notifications_bp.route('/read-all', methods=['POST'])
@login_required
def mark_all_read():
    notifications.mark_all_read()
    return redirect(url_for('notifications.index'))

@notifications_bp.route('/clear', methods=['POST'])
@login_required
def clear():
    notifications.clear_all()
    return redirect(url_for('notifications.index'))
