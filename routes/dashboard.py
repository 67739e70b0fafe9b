from datetime import date
import mysql.connector
from flask import Blueprint, render_template, current_app, flash, g
from auth_utils import login_required
import stats

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/dashboard')

@dashboard_bp.route('/')
@login_required
def index():
    expenses, income, budgets, goals = [], [], [], []
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute("SELECT id, amount, category, date FROM expenses WHERE user_id=%s", (g.user.id,))
            expenses = cur.fetchall()

            cur.execute("SELECT id, amount, source, date FROM income WHERE user_id=%s", (g.user.id,))
            income = cur.fetchall()

            cur.execute(
                "SELECT id, category, limit_amount, period, month FROM budgets WHERE user_id=%s",
                (g.user.id,)
            )
            budgets = cur.fetchall()

            cur.execute(
                "SELECT id, name, target_amount, saved_amount FROM goals WHERE user_id=%s",
                (g.user.id,)
            )
            goals = cur.fetchall()
    except mysql.connector.Error:
        current_app.logger.exception("Loading dashboard data failed")
        flash("Failed to load dashboard data", "error")
    finally:
        conn.close()

    summary = stats.dashboard_summary(expenses, income, budgets, goals, today=date.today())
    return render_template("dashboard.html", user=g.user, **summary)
