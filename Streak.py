"""Streak engine.

Mutating functions change the habit in place and hand back the unsaved
HabitLog that records the action. Persisting both is the store's job.
"""
import logging
import math
import time
from datetime import timedelta

from errors import ValidationFailure
from models import Habit, HabitLog, utcnow

logger = logging.getLogger(__name__)

SUCCESS = "success"
RESET = "reset"
NOTE = "note"

ONE_DAY = timedelta(days=1)
TITLE_MAX_LENGTH = Habit.title.type.length


def _text(value, field):
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationFailure(f"{field} must be text")
    return value.strip()


def _required_text(value, field):
    text = _text(value, field)
    if not text:
        raise ValidationFailure(f"{field} is required")
    return text


def validate_title(title):
    title = _required_text(title, "Title")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationFailure(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


def _log(habit, status, notes, now):
    return HabitLog(habit_id=habit.id, status=status, log_date=now.date(), notes=notes, created_at=now)


def record_progress(habit, notes="", now=None):
    notes = _text(notes, "Notes")
    now = now or utcnow()
    habit.current_streak += 1
    habit.longest_streak = max(habit.longest_streak, habit.current_streak)
    habit.updated_at = now
    logger.debug(f"Habit {habit.id} streak now {habit.current_streak} (best {habit.longest_streak})")
    return _log(habit, SUCCESS, notes, now)


def start_tracking(habit, now=None):
    # Counters stay as they are; only the tracking clock restarts
    now = now or utcnow()
    habit.last_tracked_at = now
    habit.updated_at = now
    return _log(habit, SUCCESS, "", now)


def add_note(habit, notes, now=None):
    text = _required_text(notes, "Note")
    now = now or utcnow()
    habit.updated_at = now
    return _log(habit, NOTE, text, now)


def reset(habit, reason, now=None):
    text = _required_text(reason, "Reset reason")
    now = now or utcnow()
    habit.current_streak = 0
    habit.last_reset_date = now
    habit.last_tracked_at = None
    habit.updated_at = now
    logger.debug(f"Habit {habit.id} reset, best streak kept at {habit.longest_streak}")
    return _log(habit, RESET, text, now)


def days_since_start(habit, now=None):
    now = now or utcnow()
    diff = abs(now - habit.start_date)
    return math.ceil(diff / ONE_DAY)


def elapsed_between(since, now):
    if since is None:
        return {"days": 0, "hours": 0, "minutes": 0}
    seconds = max(int((now - since).total_seconds()), 0)
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    return {"days": days, "hours": hours, "minutes": seconds // 60}


def elapsed_since_last_tracked(habit, now=None):
    return elapsed_between(habit.last_tracked_at, now or utcnow())


def success_rate(habit, now=None):
    days = days_since_start(habit, now)
    if days <= 0:
        return 0
    # Halves round up
    return math.floor(habit.current_streak * 100 / days + 0.5)


def habit_stats(habit, now=None):
    now = now or utcnow()
    return {
        "current_streak": habit.current_streak,
        "longest_streak": habit.longest_streak,
        "days_since_start": days_since_start(habit, now),
        "success_rate": success_rate(habit, now),
        "elapsed": elapsed_since_last_tracked(habit, now),
    }


class ElapsedTicker:
    """Yields the elapsed time since `last_tracked_at` once per interval.

    One ticker belongs to one consumer. Iteration stops after `max_ticks`
    ticks (when given) or as soon as `close()` is called.
    """

    def __init__(self, last_tracked_at, interval=1, max_ticks=None, clock=utcnow, sleep=time.sleep):
        self.last_tracked_at = last_tracked_at
        self.interval = interval
        self.max_ticks = max_ticks
        self.clock = clock
        self.sleep = sleep
        self.ticks = 0
        self.closed = False

    def __iter__(self):
        while not self.closed:
            if self.max_ticks is not None and self.ticks >= self.max_ticks:
                break
            if self.ticks and self.interval:
                self.sleep(self.interval)
            self.ticks += 1
            yield elapsed_between(self.last_tracked_at, self.clock())

    def close(self):
        if not self.closed:
            self.closed = True
            logger.debug(f"Elapsed ticker closed after {self.ticks} ticks")
