import mysql.connector
from flask import Blueprint, render_template, request, redirect, url_for, current_app, flash, g
from datetime import date
from auth_utils import login_required
import notifications
from validators import ValidationError, parse_amount, parse_date, parse_name

income_bp = Blueprint('income', __name__, url_prefix='/income')

def _income_form():
    return {
        'amount': parse_amount(request.form.get('amount')),
        'source': parse_name(request.form.get('source'), 'Source'),
        'date': parse_date(request.form.get('date')),
    }

@income_bp.route('/')
@login_required
def index():
    incomes = []
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                "SELECT id, source, amount, date FROM income WHERE user_id=%s ORDER BY date DESC",
                (g.user.id,)
            )
            incomes = [
                {"id": row['id'], "source": row['source'], "amount": float(row['amount']), "date": row['date']}
                for row in cur.fetchall()
            ]
    except mysql.connector.Error:
        current_app.logger.exception("Loading income failed")
        flash("Failed to load income", "error")
    finally:
        conn.close()

    return render_template(
        'income.html',
        incomes=incomes,
        total=round(sum(i['amount'] for i in incomes), 2),
        current_date=date.today()
    )


@income_bp.route('/add', methods=['POST'])
@login_required
def add_income():
    try:
        form = _income_form()
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('income.index'))

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO income (user_id, amount, source, date) VALUES (%s, %s, %s, %s)",
                (g.user.id, form['amount'], form['source'], form['date'])
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Adding income failed")
        flash("Failed to add income", "error")
        return redirect(url_for('income.index'))
    finally:
        conn.close()

    flash("Income added successfully", "success")
    notifications.push('income', 'New Income Added',
                       f"Income of {notifications.amount_text(form['amount'])} from {form['source']}")
    return redirect(url_for('income.index'))


@income_bp.route('/edit/<int:id>', methods=['POST'])
@login_required
def edit_income(id):
    try:
        form = _income_form()
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('income.index'))

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute("SELECT id FROM income WHERE id=%s AND user_id=%s", (id, g.user.id))
            if not cur.fetchone():
                return "Income not found", 404
            cur.execute(
                "UPDATE income SET source=%s, amount=%s, date=%s WHERE id=%s AND user_id=%s",
                (form['source'], form['amount'], form['date'], id, g.user.id)
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Updating income %s failed", id)
        flash("Failed to update income", "error")
        return redirect(url_for('income.index'))
    finally:
        conn.close()

    flash("Income updated", "success")
    return redirect(url_for('income.index'))


@income_bp.route('/delete/<int:id>', methods=['POST'])
@login_required
def delete_income(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM income WHERE id=%s AND user_id=%s", (id, g.user.id))
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Deleting income %s failed", id)
        flash("Failed to delete income", "error")
        return redirect(url_for('income.index'))
    finally:
        conn.close()

    flash("Income deleted", "success")
    return redirect(url_for('income.index'))
