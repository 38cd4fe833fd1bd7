import uuid
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _new_id():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Habit(db.Model):
    __tablename__ = "habits"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    start_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    current_streak = db.Column(db.Integer, nullable=False, default=0)
    longest_streak = db.Column(db.Integer, nullable=False, default=0)
    last_reset_date = db.Column(db.DateTime)
    last_tracked_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    logs = db.relationship(
        "HabitLog",
        backref="habit",
        lazy=True,
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.CheckConstraint("current_streak >= 0", name="ck_habits_current_streak"),
        db.CheckConstraint("longest_streak >= current_streak", name="ck_habits_longest_streak"),
    )


class HabitLog(db.Model):
    __tablename__ = "habit_logs"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    habit_id = db.Column(
        db.String(36), db.ForeignKey("habits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    log_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(16), nullable=False)  # success, reset or note
    notes = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        db.CheckConstraint("status IN ('success', 'reset', 'note')", name="ck_habit_logs_status"),
    )


class RevokedToken(db.Model):
    __tablename__ = "revoked_tokens"

    jti = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.DateTime)
    revoked_at = db.Column(db.DateTime, nullable=False, default=utcnow)
