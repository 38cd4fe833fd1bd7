import json
import logging

from flask import Blueprint, Response, current_app, jsonify, request

import Streak
from Authentication import token_required
from Habit import habit_payload, log_payload
from models import utcnow
from store import get_store

logger = logging.getLogger(__name__)

analysis_bp = Blueprint("analysis", __name__)


@analysis_bp.route("/api/dashboard", methods=["GET"])
@token_required
def dashboard(user):
    store = get_store()
    now = utcnow()
    habits = store.list_habits(user.id)
    payload = []
    for habit in habits:
        item = habit_payload(habit, now)
        item["recent_logs"] = [log_payload(log) for log in store.recent_logs(user.id, habit.id)]
        payload.append(item)
    logger.debug(f"Dashboard fetched for user {user.id}: {len(payload)} habits")
    return jsonify({"habits": payload, "generated_at": now.isoformat()}), 200


@analysis_bp.route("/api/habits/<habit_id>/stats", methods=["GET"])
@token_required
def habit_stats(user, habit_id):
    habit = get_store().get_habit(user.id, habit_id)
    return jsonify({"id": habit.id, "stats": Streak.habit_stats(habit)}), 200


@analysis_bp.route("/api/habits/<habit_id>/elapsed/stream", methods=["GET"])
@token_required
def elapsed_stream(user, habit_id):
    habit = get_store().get_habit(user.id, habit_id)
    ticker = Streak.ElapsedTicker(
        habit.last_tracked_at,
        interval=current_app.config.get("ELAPSED_TICK_SECONDS", 1),
        max_ticks=request.args.get("ticks", type=int),
    )
    logger.debug(f"Elapsed stream opened for habit {habit_id} by user {user.id}")

    def events():
        try:
            for elapsed in ticker:
                yield f"data: {json.dumps(elapsed)}\n\n"
        finally:
            ticker.close()

    return Response(events(), mimetype="text/event-stream", headers={"Cache-Control": "no-cache"})
