import mysql.connector
from flask import Blueprint, render_template, request, redirect, url_for, current_app, flash, g
from datetime import date
from auth_utils import login_required
import notifications
from validators import CATEGORIES, ValidationError, parse_amount, parse_choice, parse_date

expenses_bp = Blueprint('expenses', __name__, url_prefix='/expenses')

def _expense_form():
    return {
        'amount': parse_amount(request.form.get('amount')),
        'category': parse_choice(request.form.get('category'), CATEGORIES, 'Category'),
        'date': parse_date(request.form.get('date'), allow_future=False),
        'notes': (request.form.get('notes') or '').strip() or None,
    }

@expenses_bp.route('/')
@login_required
def index():
    selected = request.args.get('category', 'all')
    expenses = []
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                "SELECT id, amount, category, date, notes FROM expenses WHERE user_id=%s ORDER BY date DESC",
                (g.user.id,)
            )
            expenses = [
                {"id": row['id'], "amount": float(row['amount']), "category": row['category'],
                 "notes": row['notes'], "date": row['date']}
                for row in cur.fetchall()
            ]
    except mysql.connector.Error:
        current_app.logger.exception("Loading expenses failed")
        flash("Failed to load expenses", "error")
    finally:
        conn.close()

    if selected != 'all':
        expenses = [e for e in expenses if e['category'] == selected]

    return render_template(
        'expenses.html',
        expenses=expenses,
        total=round(sum(e['amount'] for e in expenses), 2),
        categories=CATEGORIES,
        selected_category=selected,
        current_date=date.today()
    )

@expenses_bp.route('/add', methods=['POST'])
@login_required
def add_expense():
    try:
        form = _expense_form()
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('expenses.index'))

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO expenses (user_id, amount, category, date, notes) VALUES (%s, %s, %s, %s, %s)",
                (g.user.id, form['amount'], form['category'], form['date'], form['notes'])
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Adding expense failed")
        flash("Failed to add expense", "error")
        return redirect(url_for('expenses.index'))
    finally:
        conn.close()

    flash("Expense added successfully", "success")
    notifications.push('expense', 'New Expense Added',
                       f"Expense of {notifications.amount_text(form['amount'])} for {form['category']}")
    return redirect(url_for('expenses.index'))

@expenses_bp.route('/edit/<int:id>', methods=['POST'])
@login_required
def edit_expense(id):
    try:
        form = _expense_form()
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('expenses.index'))

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT id FROM expenses WHERE id=%s AND user_id=%s", (id, g.user.id))
            if not cur.fetchone():
                return "Expense not found", 404
            cur.execute(
                "UPDATE expenses SET amount=%s, category=%s, date=%s, notes=%s WHERE id=%s AND user_id=%s",
                (form['amount'], form['category'], form['date'], form['notes'], id, g.user.id)
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Updating expense %s failed", id)
        flash("Failed to update expense", "error")
        return redirect(url_for('expenses.index'))
    finally:
        conn.close()

    flash("Expense updated", "success")
    return redirect(url_for('expenses.index'))

@expenses_bp.route('/delete/<int:id>', methods=['POST'])
@login_required
def delete_expense(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM expenses WHERE id=%s AND user_id=%s", (id, g.user.id))
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Deleting expense %s failed", id)
        flash("Failed to delete expense", "error")
        return redirect(url_for('expenses.index'))
    finally:
        conn.close()

    flash("Expense deleted", "success")
    return redirect(url_for('expenses.index'))
