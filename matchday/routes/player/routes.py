import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from matchday import limiter
from matchday.errors import InvalidArgumentError
from matchday.routes.player import bp
from matchday.services import query_service
from matchday.services.identity import find_player_id
from matchday.services.leaderboard_service import LeaderboardService
from matchday.services.submission_service import SubmissionService
from matchday.utils.cache_utils import cached_route

logger = logging.getLogger(__name__)

SUBMISSION_LIMIT = "30 per minute"


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgumentError("Request body must be a JSON object")
    return data


def _field(data, name, alias):
    """Read a camelCase field, accepting its snake_case alias"""
    value = data.get(name)
    return data.get(alias) if value is None else value


def _identity():
    return current_user._get_current_object()


@bp.route("/predictions", methods=["POST"])
@login_required
@limiter.limit(SUBMISSION_LIMIT)
def submit_predictions():
    """Submit win/draw/lose picks for one or more matches"""
    data = _json_body()
    items = data.get("predictions")
    if items is not None and not isinstance(items, list):
        raise InvalidArgumentError("predictions must be a list")

    predictions = []
    for item in items or []:
        item = item if isinstance(item, dict) else {}
        predictions.append(
            {"match_id": _field(item, "matchId", "match_id"), "pick": item.get("pick")}
        )

    result = SubmissionService().submit_predictions(_identity(), predictions)
    return jsonify(result), (200 if result["success"] else 400)


@bp.route("/score-bets", methods=["POST"])
@login_required
@limiter.limit(SUBMISSION_LIMIT)
def submit_score_bet():
    """Place an exact-score bet"""
    data = _json_body()
    result = SubmissionService().submit_score_bet(
        _identity(),
        _field(data, "matchId", "match_id"),
        _field(data, "homeScore", "home_score"),
        _field(data, "awayScore", "away_score"),
    )
    return jsonify(result), 201


@bp.route("/match-prediction", methods=["POST"])
@login_required
@limiter.limit(SUBMISSION_LIMIT)
def submit_match_prediction():
    """Save a pick and replace the score bets for one match"""
    data = _json_body()

    scores = data.get("scores") or []
    if not isinstance(scores, list):
        raise InvalidArgumentError("scores must be a list")

    result = SubmissionService().submit_match_prediction(
        _identity(),
        _field(data, "matchId", "match_id"),
        pick=data.get("pick"),
        scores=[
            {
                "home_score": _field(entry, "homeScore", "home_score"),
                "away_score": _field(entry, "awayScore", "away_score"),
            }
            for entry in scores
            if isinstance(entry, dict)
        ],
    )
    return jsonify(result)


@bp.route("/match-prediction/<int:match_id>", methods=["DELETE"])
@login_required
@limiter.limit(SUBMISSION_LIMIT)
def cancel_match_prediction(match_id):
    result = SubmissionService().cancel_match_prediction(_identity(), match_id)
    return jsonify(result)


@bp.route("/champion", methods=["POST"])
@login_required
@limiter.limit(SUBMISSION_LIMIT)
def pick_champion():
    """Pick (or change) the tournament winner"""
    data = _json_body()
    result = SubmissionService().pick_champion(
        _identity(),
        _field(data, "teamId", "team_id"),
        tournament_id=_field(data, "tournamentId", "tournament_id"),
    )
    return jsonify(result)


@bp.route("/tournaments/<int:tournament_id>/leaderboard")
@login_required
@cached_route(timeout=300, key_prefix="leaderboard_tournament")
def tournament_leaderboard(tournament_id):
    limit = request.args.get("limit", type=int)
    return {
        "success": True,
        "tournament_id": tournament_id,
        "leaderboard": LeaderboardService().tournament_leaderboard(
            tournament_id, limit
        ),
    }


@bp.route("/tournaments/<int:tournament_id>/results")
@login_required
@cached_route(timeout=300, key_prefix="results")
def latest_results(tournament_id):
    return {
        "success": True,
        "matches": query_service.latest_results(tournament_id),
    }


@bp.route("/tournaments/<int:tournament_id>/upcoming")
@login_required
@cached_route(timeout=60, key_prefix="upcoming")
def upcoming_matches(tournament_id):
    return {
        "success": True,
        "matches": query_service.upcoming_matches(tournament_id),
    }


@bp.route("/tournaments/<int:tournament_id>/standings")
@login_required
@cached_route(timeout=300, key_prefix="standings")
def standings(tournament_id):
    return {
        "success": True,
        "standings": query_service.standings(tournament_id),
    }


@bp.route("/predictions/recent")
@login_required
def recent_predictions():
    """The caller's latest predictions (not cached, per player)"""
    limit = request.args.get("limit", type=int)
    player_id = find_player_id(_identity())
    return jsonify(
        {
            "success": True,
            "predictions": query_service.recent_predictions(player_id, limit),
        }
    )


@bp.route("/leaderboard")
@login_required
@cached_route(timeout=300, key_prefix="leaderboard_global")
def global_leaderboard():
    limit = request.args.get("limit", type=int)
    return {
        "success": True,
        "leaderboard": LeaderboardService().global_leaderboard(limit),
    }
