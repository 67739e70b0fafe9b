from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

class Profile(db.Model):
    __tablename__ = 'profiles'
    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255))
    display_name = db.Column(db.String(100))
    phone = db.Column(db.String(20), index=True)
    phone_verified = db.Column(db.Boolean, nullable=False, default=False)
    avatar_url = db.Column(db.String(255))
    bio = db.Column(db.Text)
    firebase_uid = db.Column(db.String(128), unique=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

class Expense(db.Model):
    __tablename__ = 'expenses'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    category = db.Column(db.String(50), nullable=False)
    date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

class Income(db.Model):
    __tablename__ = 'income'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    source = db.Column(db.String(100), nullable=False)
    date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

class Budget(db.Model):
    __tablename__ = 'budgets'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    category = db.Column(db.String(50), nullable=False)
    limit_amount = db.Column(db.Numeric(12, 2), nullable=False)
    spent = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    period = db.Column(db.String(10), nullable=False, default='monthly')
    month = db.Column(db.String(7), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

class Goal(db.Model):
    __tablename__ = 'goals'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    target_amount = db.Column(db.Numeric(12, 2), nullable=False)
    saved_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

class Contribution(db.Model):
    __tablename__ = 'contributions'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, index=True)
    goal_id = db.Column(db.Integer, db.ForeignKey('goals.id', ondelete='CASCADE'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

class UserSetting(db.Model):
    __tablename__ = 'user_settings'
    user_id = db.Column(db.String(128), primary_key=True)
    currency = db.Column(db.String(3), nullable=False, default='KES')
    notifications_enabled = db.Column(db.Boolean, nullable=False, default=True)
