import logging

from flask import Blueprint, jsonify, request

import Streak
from Authentication import token_required
from errors import ValidationFailure
from store import get_store

logger = logging.getLogger(__name__)

habits_bp = Blueprint("habits", __name__)


def _iso(value):
    return value.isoformat() if value is not None else None


def habit_payload(habit, now=None):
    return {
        "id": habit.id,
        "title": habit.title,
        "start_date": _iso(habit.start_date),
        "current_streak": habit.current_streak,
        "longest_streak": habit.longest_streak,
        "last_reset_date": _iso(habit.last_reset_date),
        "last_tracked_at": _iso(habit.last_tracked_at),
        "created_at": _iso(habit.created_at),
        "updated_at": _iso(habit.updated_at),
        "stats": Streak.habit_stats(habit, now),
    }


def log_payload(log):
    return {
        "id": log.id,
        "habit_id": log.habit_id,
        "log_date": _iso(log.log_date),
        "status": log.status,
        "notes": log.notes or "",
    }


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationFailure("Request body must be a JSON object")
    return data


@habits_bp.route("/api/habits", methods=["GET", "POST"])
@token_required
def habits(user):
    store = get_store()
    if request.method == "GET":
        return jsonify([habit_payload(habit) for habit in store.list_habits(user.id)]), 200
    data = _json_body()
    logger.debug(f"Create habit payload: {data}")
    habit = store.create_habit(user.id, data.get("title"))
    return jsonify({"message": "Habit created", "habit": habit_payload(habit)}), 201


@habits_bp.route("/api/habits/<habit_id>", methods=["DELETE"])
@token_required
def habit(user, habit_id):
    get_store().delete_habit(user.id, habit_id)
    return jsonify({"message": "Habit deleted"}), 200


@habits_bp.route("/api/habits/<habit_id>/logs", methods=["GET"])
@token_required
def recent_logs(user, habit_id):
    limit = request.args.get("limit", type=int)
    logs = get_store().recent_logs(user.id, habit_id, limit=limit)
    return jsonify([log_payload(log) for log in logs]), 200


def _mutation_response(message, habit, log):
    return jsonify({"message": message, "habit": habit_payload(habit), "log": log_payload(log)}), 200


@habits_bp.route("/api/habits/<habit_id>/progress", methods=["POST"])
@token_required
def record_progress(user, habit_id):
    data = _json_body()
    habit, log = get_store().record_progress(user.id, habit_id, notes=data.get("notes", ""))
    return _mutation_response("Day added", habit, log)


@habits_bp.route("/api/habits/<habit_id>/track", methods=["POST"])
@token_required
def start_tracking(user, habit_id):
    habit, log = get_store().start_tracking(user.id, habit_id)
    return _mutation_response("Tracking started", habit, log)


@habits_bp.route("/api/habits/<habit_id>/notes", methods=["POST"])
@token_required
def add_note(user, habit_id):
    data = _json_body()
    habit, log = get_store().add_note(user.id, habit_id, data.get("notes"))
    return _mutation_response("Note added", habit, log)


@habits_bp.route("/api/habits/<habit_id>/reset", methods=["POST"])
@token_required
def reset(user, habit_id):
    data = _json_body()
    habit, log = get_store().reset(user.id, habit_id, data.get("reason"))
    return _mutation_response("Streak reset", habit, log)
