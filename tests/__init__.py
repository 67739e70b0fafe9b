"""
Personal Finance Tracker Test Suite

- test_auth.py: Email/password sign in, sign up, reset, logout, profile
- test_phone_auth.py: Phone OTP flow and identity linking
- test_identity.py: Merging the two identities into one user view
- test_providers.py: Hosted identity provider clients
- test_dashboard.py / test_stats.py: Dashboard aggregation
- test_expenses.py / test_income.py: Record CRUD and filtering
- test_budgets.py / test_goals.py: Budgets, goals and contributions
- test_settings.py: Currency, notifications toggle, clearing data
- test_notifications.py: Session notification feed
- test_validators.py: Form validation
- test_models.py: Schema creation
- test_security.py: CSRF, access control, ownership scoping

Run all tests:
    pytest tests/

Run with coverage:
    pytest tests/ --cov=. --cov-report=html
"""
