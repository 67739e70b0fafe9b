import mysql.connector
from flask import Blueprint, render_template, request, redirect, url_for, current_app, flash, g
from datetime import date
from auth_utils import login_required
import stats
from validators import (
    BUDGET_PERIODS, CATEGORIES, ValidationError, parse_amount, parse_choice, parse_month,
)

budgets_bp = Blueprint('budgets', __name__, url_prefix='/budgets')

def _budget_form():
    return {
        'category': parse_choice(request.form.get('category'), CATEGORIES, 'Category'),
        'limit_amount': parse_amount(request.form.get('limit_amount'), 'Limit'),
        'period': parse_choice(request.form.get('period') or 'monthly', BUDGET_PERIODS, 'Period'),
        'month': parse_month(request.form.get('month')),
    }

@budgets_bp.route('/')
@login_required
def index():
    budgets = []
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                "SELECT id, category, limit_amount, spent, period, month FROM budgets "
                "WHERE user_id=%s ORDER BY month DESC, category",
                (g.user.id,)
            )
            rows = cur.fetchall()
            cur.execute("SELECT amount, category, date FROM expenses WHERE user_id=%s", (g.user.id,))
            expenses = cur.fetchall()

            # spent is stored for other readers; refresh it where it has drifted
            drifted = False
            for row in rows:
                spent = stats.budget_spent(row, expenses)
                if float(row['spent'] or 0) != spent:
                    cur.execute("UPDATE budgets SET spent=%s WHERE id=%s AND user_id=%s",
                                (spent, row['id'], g.user.id))
                    drifted = True
                limit = float(row['limit_amount'])
                budgets.append({
                    "id": row['id'], "category": row['category'], "period": row['period'],
                    "month": row['month'], "limit_amount": limit, "spent": spent,
                    "remaining": round(limit - spent, 2),
                    "percent": round(spent / limit * 100, 1) if limit else 0,
                })
            if drifted:
                conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Loading budgets failed")
        flash("Failed to load budgets", "error")
    finally:
        conn.close()

    return render_template(
        'budgets.html',
        budgets=budgets,
        categories=CATEGORIES,
        periods=BUDGET_PERIODS,
        current_month=date.today().strftime('%Y-%m')
    )

@budgets_bp.route('/add', methods=['POST'])
@login_required
def add_budget():
    try:
        form = _budget_form()
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('budgets.index'))

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO budgets (user_id, category, limit_amount, spent, period, month) "
                "VALUES (%s, %s, %s, 0, %s, %s)",
                (g.user.id, form['category'], form['limit_amount'], form['period'], form['month'])
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Adding budget failed")
        flash("Failed to add budget", "error")
        return redirect(url_for('budgets.index'))
    finally:
        conn.close()

    flash("Budget created", "success")
    return redirect(url_for('budgets.index'))

@budgets_bp.route('/edit/<int:id>', methods=['POST'])
@login_required
def edit_budget(id):
    try:
        form = _budget_form()
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('budgets.index'))

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT id FROM budgets WHERE id=%s AND user_id=%s", (id, g.user.id))
            if not cur.fetchone():
                return "Budget not found", 404
            cur.execute(
                "UPDATE budgets SET category=%s, limit_amount=%s, period=%s, month=%s "
                "WHERE id=%s AND user_id=%s",
                (form['category'], form['limit_amount'], form['period'], form['month'], id, g.user.id)
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Updating budget %s failed", id)
        flash("Failed to update budget", "error")
        return redirect(url_for('budgets.index'))
    finally:
        conn.close()

    flash("Budget updated", "success")
    return redirect(url_for('budgets.index'))

@budgets_bp.route('/delete/<int:id>', methods=['POST'])
@login_required
def delete_budget(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM budgets WHERE id=%s AND user_id=%s", (id, g.user.id))
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Deleting budget %s failed", id)
        flash("Failed to delete budget", "error")
        return redirect(url_for('budgets.index'))
    finally:
        conn.close()

    flash("Budget deleted", "success")
    return redirect(url_for('budgets.index'))
