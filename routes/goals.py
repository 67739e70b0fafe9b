from collections import defaultdict
import mysql.connector
from flask import Blueprint, render_template, request, redirect, url_for, current_app, flash, g
from datetime import date
from auth_utils import login_required
import notifications
import stats
from validators import ValidationError, parse_amount, parse_date, parse_name

goals_bp = Blueprint('goals', __name__, url_prefix='/goals')

@goals_bp.route('/')
@login_required
def index():
    goals = []
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                "SELECT id, name, target_amount, saved_amount FROM goals WHERE user_id=%s ORDER BY created_at DESC",
                (g.user.id,)
            )
            rows = cur.fetchall()
            cur.execute(
                "SELECT id, goal_id, amount, date FROM contributions WHERE user_id=%s ORDER BY date DESC",
                (g.user.id,)
            )
            by_goal = defaultdict(list)
            for c in cur.fetchall():
                by_goal[c['goal_id']].append(
                    {"id": c['id'], "amount": float(c['amount']), "date": c['date']}
                )

            for row in rows:
                target = float(row['target_amount'])
                saved = float(row['saved_amount'])
                goals.append({
                    "id": row['id'], "name": row['name'],
                    "target_amount": target, "saved_amount": saved,
                    "remaining": round(max(target - saved, 0), 2),
                    "progress": stats.goal_progress(row),
                    "contributions": by_goal[row['id']],
                })
    except mysql.connector.Error:
        current_app.logger.exception("Loading goals failed")
        flash("Failed to load goals", "error")
    finally:
        conn.close()

    return render_template('goals.html', goals=goals, summary=stats.goal_summary(goals),
                           current_date=date.today())


@goals_bp.route('/add', methods=['POST'])
@login_required
def add_goal():
    try:
        name = parse_name(request.form.get('name'), 'Goal name')
        target = parse_amount(request.form.get('target_amount'), 'Target amount')
        saved = parse_amount(request.form.get('saved_amount') or '0', 'Saved amount', allow_zero=True)
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('goals.index'))

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(
                "INSERT INTO goals (user_id, name, target_amount, saved_amount) VALUES (%s, %s, %s, %s)",
                (g.user.id, name, target, saved)
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Adding goal failed")
        flash("Failed to add goal", "error")
        return redirect(url_for('goals.index'))
    finally:
        conn.close()

    flash("Goal created", "success")
    notifications.push('goal', 'New Goal Created', f'Goal "{name}" with target {notifications.amount_text(target)}')
    return redirect(url_for('goals.index'))


@goals_bp.route('/delete/<int:id>', methods=['POST'])
@login_required
def delete_goal(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM contributions WHERE goal_id=%s AND user_id=%s", (id, g.user.id))
            cur.execute("DELETE FROM goals WHERE id=%s AND user_id=%s", (id, g.user.id))
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Deleting goal %s failed", id)
        flash("Failed to delete goal", "error")
        return redirect(url_for('goals.index'))
    finally:
        conn.close()

    flash("Goal deleted", "success")
    return redirect(url_for('goals.index'))


@goals_bp.route('/<int:id>/contribute', methods=['POST'])
@login_required
def contribute(id):
    try:
        amount = parse_amount(request.form.get('amount'))
        day = parse_date(request.form.get('date'), allow_future=False)
    except ValidationError as e:
        flash(str(e), "error")
        return redirect(url_for('goals.index'))

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute("SELECT id FROM goals WHERE id=%s AND user_id=%s", (id, g.user.id))
            if not cur.fetchone():
                return "Goal not found", 404
            cur.execute(
                "INSERT INTO contributions (user_id, goal_id, amount, date) VALUES (%s, %s, %s, %s)",
                (g.user.id, id, amount, day)
            )
            cur.execute(
                "UPDATE goals SET saved_amount = saved_amount + %s WHERE id=%s AND user_id=%s",
                (amount, id, g.user.id)
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Contribution to goal %s failed", id)
        flash("Failed to add contribution", "error")
        return redirect(url_for('goals.index'))
    finally:
        conn.close()

    flash("Contribution added", "success")
    return redirect(url_for('goals.index'))


@goals_bp.route('/contributions/delete/<int:id>', methods=['POST'])
@login_required
def delete_contribution(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                "SELECT goal_id, amount FROM contributions WHERE id=%s AND user_id=%s",
                (id, g.user.id)
            )
            row = cur.fetchone()
            if not row:
                return "Contribution not found", 404
            cur.execute("DELETE FROM contributions WHERE id=%s AND user_id=%s", (id, g.user.id))
            cur.execute(
                "UPDATE goals SET saved_amount = GREATEST(saved_amount - %s, 0) WHERE id=%s AND user_id=%s",
                (row['amount'], row['goal_id'], g.user.id)
            )
            conn.commit()
    except mysql.connector.Error:
        current_app.logger.exception("Deleting contribution %s failed", id)
        flash("Failed to delete contribution", "error")
        return redirect(url_for('goals.index'))
    finally:
        conn.close()

    flash("Contribution removed", "success")
    return redirect(url_for('goals.index'))
