"""
Test suite for expense routes.
Tests cover expense CRUD operations and category filtering.
"""

import pytest
import os
import sys
import mysql.connector
from decimal import Decimal
from datetime import date, timedelta

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from tests.conftest import login_session, executed_sql

EXPENSES = [
    {'id': 1, 'amount': Decimal('100.00'), 'category': 'Food', 'notes': 'Lunch', 'date': date(2024, 1, 15)},
    {'id': 2, 'amount': Decimal('50.00'), 'category': 'Transport', 'notes': None, 'date': date(2024, 1, 14)},
]


class TestExpenseAccess:
    """Test expense page access control."""

    def test_expense_requires_auth(self, client):
        """Expense page should require authentication."""
        response = client.get('/expenses/')
        assert response.status_code in (302, 308)
        assert '/auth/login' in response.headers.get('Location', '')

    def test_expense_accessible_when_logged_in(self, logged_in_client, mock_db):
        """Expense page should be accessible for logged-in users."""
        conn, cursor = mock_db
        cursor.fetchall.return_value = []

        response = logged_in_client.get('/expenses/')
        assert response.status_code == 200
        assert b'No expenses found. Add your first expense to get started!' in response.data


class TestExpenseList:
    """Test expense listing and filtering."""

    def test_expense_list_shows_expenses(self, logged_in_client, mock_db):
        """Expense list should display expenses with their total."""
        conn, cursor = mock_db
        cursor.fetchall.return_value = [dict(e) for e in EXPENSES]

        response = logged_in_client.get('/expenses/')
        assert response.status_code == 200
        assert b'Lunch' in response.data
        assert b'Transport' in response.data
        assert b'KES 150.00' in response.data
        sql, params = cursor.execute.call_args.args
        assert 'ORDER BY date DESC' in sql
        assert params == ('user-1',)

    def test_filter_by_category(self, logged_in_client, mock_db):
        """Category filter should narrow the list and the total."""
        conn, cursor = mock_db
        cursor.fetchall.return_value = [dict(e) for e in EXPENSES]

        response = logged_in_client.get('/expenses/?category=Food')
        assert b'Lunch' in response.data
        assert b'Jan 14, 2024' not in response.data
        assert b'(KES 100.00)' in response.data

    def test_filter_with_no_matches(self, logged_in_client, mock_db):
        """An empty filter result should show the empty state."""
        conn, cursor = mock_db
        cursor.fetchall.return_value = [dict(e) for e in EXPENSES]

        response = logged_in_client.get('/expenses/?category=Healthcare')
        assert b'No expenses found.' in response.data

    def test_load_failure_flashes(self, logged_in_client, mock_db):
        """A database error should flash and render an empty list."""
        conn, cursor = mock_db
        cursor.execute.side_effect = mysql.connector.Error("down")

        response = logged_in_client.get('/expenses/')
        assert response.status_code == 200
        assert b'Failed to load expenses' in response.data


class TestExpenseAdd:
    """Test adding expenses."""

    def test_add_expense(self, logged_in_client, mock_db):
        """Valid expense should be inserted for the signed-in user."""
        conn, cursor = mock_db

        response = logged_in_client.post('/expenses/add', data={
            'amount': '150.5',
            'category': 'Food',
            'date': date.today().isoformat(),
            'notes': ' Groceries ',
        })

        assert response.status_code == 302
        sql, params = cursor.execute.call_args.args
        assert sql.startswith('INSERT INTO expenses')
        assert params == ('user-1', Decimal('150.50'), 'Food', date.today(), 'Groceries')
        conn.commit.assert_called_once()

    def test_add_expense_pushes_notification(self, logged_in_client, mock_db):
        """Adding an expense should add an unread notification."""
        logged_in_client.post('/expenses/add', data={
            'amount': '20', 'category': 'Bills', 'date': date.today().isoformat(),
        })

        with logged_in_client.session_transaction() as sess:
            feed = sess['notifications']
        assert feed[0]['title'] == 'New Expense Added'
        assert feed[0]['message'] == 'Expense of KES 20.00 for Bills'
        assert feed[0]['read'] is False

    @pytest.mark.parametrize('data', [
        {'amount': '', 'category': 'Food'},
        {'amount': '-5', 'category': 'Food'},
        {'amount': '0', 'category': 'Food'},
        {'amount': 'abc', 'category': 'Food'},
        {'amount': '10', 'category': 'Gambling'},
        {'amount': '10', 'category': ''},
    ])
    def test_add_expense_invalid(self, logged_in_client, mock_db, data):
        """Invalid amounts and categories should be rejected."""
        conn, cursor = mock_db
        data = dict(data, date=date.today().isoformat())

        response = logged_in_client.post('/expenses/add', data=data)
        assert response.status_code == 302
        cursor.execute.assert_not_called()

    def test_add_expense_future_date(self, logged_in_client, mock_db):
        """Expenses cannot be dated in the future."""
        conn, cursor = mock_db
        tomorrow = (date.today() + timedelta(days=1)).isoformat()

        logged_in_client.post('/expenses/add', data={'amount': '10', 'category': 'Food', 'date': tomorrow})
        cursor.execute.assert_not_called()

    def test_add_expense_db_error(self, logged_in_client, mock_db):
        """Database errors should flash and not notify."""
        conn, cursor = mock_db
        cursor.execute.side_effect = mysql.connector.Error("down")

        logged_in_client.post('/expenses/add', data={
            'amount': '10', 'category': 'Food', 'date': date.today().isoformat(),
        })
        with logged_in_client.session_transaction() as sess:
            assert 'notifications' not in sess
            assert ('error', 'Failed to add expense') in sess['_flashes']
        conn.close.assert_called_once()


class TestExpenseEditDelete:
    """Test editing and deleting expenses."""

    def test_edit_expense(self, logged_in_client, mock_db):
        """Owned expense should be updated."""
        conn, cursor = mock_db
        cursor.fetchone.return_value = {'id': 1}

        response = logged_in_client.post('/expenses/edit/1', data={
            'amount': '75', 'category': 'Shopping', 'date': '2024-01-10', 'notes': '',
        })

        assert response.status_code == 302
        sql, params = cursor.execute.call_args.args
        assert sql.startswith('UPDATE expenses SET')
        assert params == (Decimal('75.00'), 'Shopping', date(2024, 1, 10), None, 1, 'user-1')
        conn.commit.assert_called_once()

    def test_edit_missing_expense(self, logged_in_client, mock_db):
        """Editing an expense the user does not own should 404."""
        conn, cursor = mock_db
        cursor.fetchone.return_value = None

        response = logged_in_client.post('/expenses/edit/99', data={
            'amount': '75', 'category': 'Shopping', 'date': '2024-01-10',
        })

        assert response.status_code == 404
        assert len(executed_sql(cursor)) == 1
        conn.commit.assert_not_called()

    def test_delete_expense(self, logged_in_client, mock_db):
        """Delete should be scoped to the user."""
        conn, cursor = mock_db

        response = logged_in_client.post('/expenses/delete/1')

        assert response.status_code == 302
        sql, params = cursor.execute.call_args.args
        assert sql == "DELETE FROM expenses WHERE id=%s AND user_id=%s"
        assert params == (1, 'user-1')
        conn.commit.assert_called_once()

    def test_delete_requires_post(self, logged_in_client):
        """GET on delete should not be allowed."""
        response = logged_in_client.get('/expenses/delete/1')
        assert response.status_code == 405
