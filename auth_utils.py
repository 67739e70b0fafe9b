from functools import wraps
from flask import session, redirect, url_for, g
from identity import merge_user

def load_current_user():
    g.user = merge_user(session.get('password_user'), session.get('phone_user'))
    if g.user:
        session['user_id'] = g.user.id
        session['user_name'] = g.user.label

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if g.get('user') is None:
            return redirect(url_for('auth.login'))
        return fn(*args, **kwargs)
    return wrapper
