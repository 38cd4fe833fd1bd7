"""Data access for habits and their logs.

Reads are served from a small per-process cache of detached snapshots.
Every mutation commits the habit update and its log row together and then
drops the cache entries it made stale.
"""
import logging
import threading
import time
from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

import Streak
from errors import HabitNotFound, PersistenceFailure
from models import db, Habit, HabitLog, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HabitSnapshot:
    id: str
    user_id: str
    title: str
    start_date: object
    current_streak: int
    longest_streak: int
    last_reset_date: object
    last_tracked_at: object
    created_at: object
    updated_at: object

    @classmethod
    def from_model(cls, habit):
        return cls(
            id=habit.id,
            user_id=habit.user_id,
            title=habit.title,
            start_date=habit.start_date,
            current_streak=habit.current_streak,
            longest_streak=habit.longest_streak,
            last_reset_date=habit.last_reset_date,
            last_tracked_at=habit.last_tracked_at,
            created_at=habit.created_at,
            updated_at=habit.updated_at,
        )


@dataclass(frozen=True)
class LogSnapshot:
    id: str
    habit_id: str
    log_date: object
    status: str
    notes: str
    created_at: object

    @classmethod
    def from_model(cls, log):
        return cls(
            id=log.id,
            habit_id=log.habit_id,
            log_date=log.log_date,
            status=log.status,
            notes=log.notes or "",
            created_at=log.created_at,
        )


class HabitStore:
    def __init__(self, ttl=30, log_limit=5):
        self.ttl = ttl
        self.log_limit = log_limit
        self._cache = {}
        self._versions = {}
        self._lock = threading.Lock()
        self.metrics = {"cache_hits": 0, "cache_misses": 0, "invalidations": 0}

    # Cache

    def _cache_get(self, key):
        with self._lock:
            item = self._cache.get(key)
            if item is not None and time.monotonic() - item["timestamp"] < self.ttl:
                self.metrics["cache_hits"] += 1
                return item["data"]
            if item is not None:
                del self._cache[key]
            self.metrics["cache_misses"] += 1
            return None

    def _version(self, key):
        with self._lock:
            return self._versions.get(key, 0)

    def _cache_set(self, key, data, version):
        # A read that raced with an invalidation must not repopulate the entry
        with self._lock:
            if self._versions.get(key, 0) != version:
                return False
            self._cache[key] = {"data": data, "timestamp": time.monotonic()}
            return True

    def _drop(self, key):
        self._cache.pop(key, None)
        self._versions[key] = self._versions.get(key, 0) + 1

    def invalidate(self, user_id, habit_id=None):
        with self._lock:
            self._drop(("habits", user_id))
            if habit_id is not None:
                self._drop(("logs", habit_id))
            self.metrics["invalidations"] += 1

    def clear(self):
        with self._lock:
            for key in list(self._cache) + list(self._versions):
                self._drop(key)

    # Reads

    def list_habits(self, user_id):
        key = ("habits", user_id)
        cached = self._cache_get(key)
        if cached is not None:
            return list(cached)
        version = self._version(key)
        try:
            habits = (
                Habit.query.filter_by(user_id=user_id)
                .order_by(Habit.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching habits for user {user_id}: {str(e)}")
            db.session.rollback()
            return []
        snapshots = [HabitSnapshot.from_model(habit) for habit in habits]
        self._cache_set(key, snapshots, version)
        logger.debug(f"Fetched {len(snapshots)} habits for user {user_id}")
        return list(snapshots)

    def get_habit(self, user_id, habit_id):
        habit = db.session.get(Habit, habit_id)
        if habit is None or habit.user_id != user_id:
            if habit is not None:
                logger.error(f"Unauthorized access to habit {habit_id} by user {user_id}")
            raise HabitNotFound()
        return habit

    def recent_logs(self, user_id, habit_id, limit=None):
        limit = self.log_limit if limit is None else max(1, min(limit, self.log_limit))
        self.get_habit(user_id, habit_id)
        key = ("logs", habit_id)
        cached = self._cache_get(key)
        if cached is None:
            version = self._version(key)
            try:
                logs = (
                    HabitLog.query.filter_by(habit_id=habit_id)
                    .order_by(HabitLog.log_date.desc(), HabitLog.created_at.desc())
                    .limit(self.log_limit)
                    .all()
                )
            except SQLAlchemyError as e:
                logger.error(f"Database error fetching logs for habit {habit_id}: {str(e)}")
                db.session.rollback()
                return []
            cached = [LogSnapshot.from_model(log) for log in logs]
            self._cache_set(key, cached, version)
            logger.debug(f"Fetched {len(cached)} logs for habit {habit_id}")
        return cached[:limit]

    # Writes

    def _commit(self, action, user_id, habit_id=None):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Database error during {action} for habit {habit_id}: {str(e)}")
            db.session.rollback()
            raise PersistenceFailure(f"Failed to {action}")
        finally:
            self.invalidate(user_id, habit_id)

    def create_habit(self, user_id, title, now=None):
        title = Streak.validate_title(title)
        now = now or utcnow()
        habit = Habit(
            user_id=user_id,
            title=title,
            start_date=now,
            current_streak=0,
            longest_streak=0,
            created_at=now,
            updated_at=now,
        )
        db.session.add(habit)
        self._commit("create habit", user_id)
        logger.info(f"Habit created: {title} for user {user_id}")
        return habit

    def _mutate(self, action, user_id, habit_id, apply):
        habit = self.get_habit(user_id, habit_id)
        log = apply(habit)
        db.session.add(log)
        self._commit(action, user_id, habit_id)
        logger.info(f"{action.capitalize()} on habit {habit_id} for user {user_id}")
        return habit, log

    def record_progress(self, user_id, habit_id, notes="", now=None):
        return self._mutate(
            "add day", user_id, habit_id, lambda habit: Streak.record_progress(habit, notes, now)
        )

    def start_tracking(self, user_id, habit_id, now=None):
        return self._mutate(
            "start tracking", user_id, habit_id, lambda habit: Streak.start_tracking(habit, now)
        )

    def add_note(self, user_id, habit_id, notes, now=None):
        return self._mutate(
            "add note", user_id, habit_id, lambda habit: Streak.add_note(habit, notes, now)
        )

    def reset(self, user_id, habit_id, reason, now=None):
        return self._mutate(
            "reset streak", user_id, habit_id, lambda habit: Streak.reset(habit, reason, now)
        )

    def delete_habit(self, user_id, habit_id):
        habit = self.get_habit(user_id, habit_id)
        logger.info(f"Deleting habit {habit_id} for user {user_id}")
        db.session.delete(habit)
        self._commit("delete habit", user_id, habit_id)
        logger.info(f"Habit {habit_id} deleted successfully by user {user_id}")


def init_store(app):
    store = HabitStore(
        ttl=app.config.get("HABIT_CACHE_TTL", 30),
        log_limit=app.config.get("RECENT_LOG_LIMIT", 5),
    )
    app.extensions["habit_store"] = store
    return store


def get_store():
    return current_app.extensions["habit_store"]
