"""
Dashboard aggregation.

All functions take rows as fetched from the database (dicts with Decimal
amounts and date values) and return plain floats and lists ready for the
template and the chart scripts.
"""

from collections import defaultdict
from datetime import date


def _amount(row, key='amount'):
    return float(row.get(key) or 0)


def _month_key(value):
    return value.strftime('%Y-%m')


def total(rows, key='amount'):
    return round(sum(_amount(r, key) for r in rows), 2)


def savings_rate(income_total, expense_total):
    if income_total <= 0:
        return 0.0
    return round((income_total - expense_total) / income_total * 100, 1)


def in_month(rows, month):
    return [r for r in rows if r.get('date') and _month_key(r['date']) == month]


def category_breakdown(expenses):
    totals = defaultdict(float)
    for row in expenses:
        totals[row['category']] += _amount(row)
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return {
        'labels': [name for name, _ in ordered],
        'values': [round(value, 2) for _, value in ordered],
    }


def last_months(today, count=6):
    """YYYY-MM keys for the `count` months ending with today's month, oldest first."""
    year, month = today.year, today.month
    keys = []
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def monthly_series(expenses, income, today, count=6):
    months = last_months(today, count)
    spent = defaultdict(float)
    earned = defaultdict(float)
    for row in expenses:
        spent[_month_key(row['date'])] += _amount(row)
    for row in income:
        earned[_month_key(row['date'])] += _amount(row)
    labels = [date(int(m[:4]), int(m[5:]), 1).strftime('%b %Y') for m in months]
    return {
        'labels': labels,
        'income': [round(earned[m], 2) for m in months],
        'expenses': [round(spent[m], 2) for m in months],
        'net': [round(earned[m] - spent[m], 2) for m in months],
    }


def budget_spent(budget, expenses):
    """Sum of expenses in the budget's category and period."""
    month = budget['month']
    if budget.get('period') == 'yearly':
        matches = lambda d: d.strftime('%Y') == month[:4]
    else:
        matches = lambda d: _month_key(d) == month
    return round(sum(
        _amount(e) for e in expenses
        if e['category'] == budget['category'] and e.get('date') and matches(e['date'])
    ), 2)


def budget_summary(budgets, expenses):
    limit_total = 0.0
    spent_total = 0.0
    over = 0
    for budget in budgets:
        limit = _amount(budget, 'limit_amount')
        spent = budget_spent(budget, expenses)
        limit_total += limit
        spent_total += spent
        if spent > limit:
            over += 1
    return {
        'limit': round(limit_total, 2),
        'spent': round(spent_total, 2),
        'remaining': round(limit_total - spent_total, 2),
        'over_budget': over,
        'count': len(budgets),
    }


def goal_progress(goal):
    target = _amount(goal, 'target_amount')
    if target <= 0:
        return 0.0
    return round(min(_amount(goal, 'saved_amount') / target * 100, 100.0), 1)


def goal_summary(goals):
    target = total(goals, 'target_amount')
    saved = total(goals, 'saved_amount')
    completed = sum(1 for g in goals if _amount(g, 'saved_amount') >= _amount(g, 'target_amount') > 0)
    return {
        'target': target,
        'saved': saved,
        'progress': round(min(saved / target * 100, 100.0), 1) if target > 0 else 0.0,
        'completed': completed,
        'count': len(goals),
    }


def recent_transactions(expenses, income, limit=5):
    merged = [
        {'kind': 'expense', 'date': e['date'], 'label': e['category'], 'amount': _amount(e)}
        for e in expenses
    ] + [
        {'kind': 'income', 'date': i['date'], 'label': i['source'], 'amount': _amount(i)}
        for i in income
    ]
    merged.sort(key=lambda t: t['date'], reverse=True)
    return merged[:limit]


def dashboard_summary(expenses, income, budgets, goals, today=None):
    today = today or date.today()
    this_month = _month_key(today)
    income_total = total(income)
    expense_total = total(expenses)
    return {
        'total_income': income_total,
        'total_expenses': expense_total,
        'net_balance': round(income_total - expense_total, 2),
        'savings_rate': savings_rate(income_total, expense_total),
        'month_income': total(in_month(income, this_month)),
        'month_expenses': total(in_month(expenses, this_month)),
        'categories': category_breakdown(expenses),
        'monthly': monthly_series(expenses, income, today),
        'budgets': budget_summary(budgets, expenses),
        'goals': goal_summary(goals),
        'recent': recent_transactions(expenses, income),
    }
