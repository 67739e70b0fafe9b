"""
Per-session notification feed.

Inserts made through the app push an entry here; the bell in the navbar
shows the unread count.
"""

import uuid
from datetime import datetime, timezone

from flask import session

MAX_NOTIFICATIONS = 50
TYPES = ('expense', 'income', 'goal', 'budget', 'report')


def _feed():
    return session.get('notifications', [])


def _save(feed):
    session['notifications'] = feed[:MAX_NOTIFICATIONS]


def notifications_enabled():
    return session.get('notifications_enabled', True)


def push(kind, title, message):
    if kind not in TYPES:
        raise ValueError(f"unknown notification type: {kind}")
    if not notifications_enabled():
        return None
    entry = {
        'id': uuid.uuid4().hex,
        'type': kind,
        'title': title,
        'message': message,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'read': False,
    }
    _save([entry] + _feed())
    return entry


def all_notifications():
    return list(_feed())


def amount_text(amount):
    return f"{session.get('currency', 'KES')} {amount}"


def unread_count():
    return sum(1 for n in _feed() if not n['read'])


def badge(count=None):
    count = unread_count() if count is None else count
    if count <= 0:
        return ''
    return '9+' if count > 9 else str(count)


def mark_read(notification_id):
    found = False
    feed = _feed()
    for n in feed:
        if n['id'] == notification_id:
            n['read'] = True
            found = True
    _save(feed)
    return found


def mark_all_read():
    _save([dict(n, read=True) for n in _feed()])


def clear_all():
    session.pop('notifications', None)


def time_ago(timestamp, now=None):
    now = now or datetime.now(timezone.utc)
    seconds = int((now - datetime.fromisoformat(timestamp)).total_seconds())
    if seconds < 60:
        return 'just now'
    for unit, size in (('day', 86400), ('hour', 3600), ('minute', 60)):
        if seconds >= size:
            n = seconds // size
            return f"{n} {unit}{'s' if n != 1 else ''} ago"
