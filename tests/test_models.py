"""
Tests for the schema declared in models.py.
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from sqlalchemy import inspect

from init_db import init_db
from models import db


def test_create_all_builds_every_table():
    app = init_db('sqlite://')
    with app.app_context():
        tables = set(inspect(db.engine).get_table_names())
    assert tables == {'profiles', 'expenses', 'income', 'budgets', 'goals',
                      'contributions', 'user_settings'}


def test_profiles_columns():
    app = init_db('sqlite://')
    with app.app_context():
        columns = {c['name'] for c in inspect(db.engine).get_columns('profiles')}
    assert {'id', 'display_name', 'phone', 'phone_verified', 'avatar_url',
            'bio', 'firebase_uid'} <= columns
