import logging
from functools import wraps

from flask import jsonify, request
from flask_login import current_user, login_required

from matchday.errors import InvalidArgumentError
from matchday.routes.admin import bp
from matchday.services.leaderboard_service import LeaderboardService
from matchday.services.result_service import ResultService

logger = logging.getLogger(__name__)


def admin_required(f):
    """Reject callers without the admin role"""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            logger.warning(
                f"Non-admin {current_user.email} tried {request.method} {request.path}"
            )
            return (
                jsonify(
                    {
                        "success": False,
                        "error": "forbidden",
                        "message": "Admin access required",
                    }
                ),
                403,
            )
        return f(*args, **kwargs)

    return decorated_function


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgumentError("Request body must be a JSON object")
    return data


@bp.route("/matches/<int:match_id>/result", methods=["POST"])
@admin_required
def enter_match_result(match_id):
    """Enter the final score and score the match"""
    data = _json_body()
    home_score = data.get("homeScore", data.get("home_score"))
    away_score = data.get("awayScore", data.get("away_score"))

    logger.info(
        f"Admin {current_user.email} entering result {home_score}-{away_score} "
        f"for match {match_id}"
    )
    result = ResultService().enter_match_result(match_id, home_score, away_score)
    return jsonify(result)


@bp.route("/leaderboard/recalculate", methods=["POST"])
@admin_required
def recalculate_leaderboard():
    """Rebuild stats and ranks, globally or for one tournament"""
    data = _json_body()
    tournament_id = data.get("tournamentId", data.get("tournament_id"))

    logger.info(
        f"Admin {current_user.email} recalculating leaderboard "
        f"({'global' if tournament_id is None else f'tournament {tournament_id}'})"
    )
    result = LeaderboardService().recalculate(tournament_id)
    return jsonify(result)


@bp.route("/tournaments/<int:tournament_id>/champion/lock", methods=["POST"])
@admin_required
def lock_champion_predictions(tournament_id):
    logger.info(
        f"Admin {current_user.email} locking champion predictions for "
        f"tournament {tournament_id}"
    )
    result = LeaderboardService().lock_champion_predictions(tournament_id)
    return jsonify(result)
