"""Result entry: write-once transition, scoring, bet settlement and locking."""
import pytest
from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value

from matchday import db
from matchday.errors import ConflictError, InvalidArgumentError, NotFoundError
from matchday.models import Match, MatchOutcomeConfig, Player, PlayerTournamentStats, Prediction, ScoreBet
from matchday.models.match import FINISHED
from matchday.models.prediction import LOCKED, SCORED
from matchday.models.score_bet import LOST, WON
from matchday.services.result_service import ResultService
from matchday.services.submission_service import SubmissionService


def predict(identity, match, pick):
    SubmissionService().submit_predictions(identity, [{"match_id": match.id, "pick": pick}])


def player_for(identity):
    return Player.query.filter_by(email=identity.email).one()


class TestEnterMatchResult:
    def test_finishes_match(self, app, make_match):
        match = make_match()
        result = ResultService().enter_match_result(match.id, 3, 1)

        match = db.session.get(Match, match.id)
        assert match.status == FINISHED
        assert (match.home_score, match.away_score, match.outcome) == (3, 1, "home")
        assert result["success"] is True
        assert result["outcome"] == "home"

    def test_scores_predictions_with_flat_policy(self, app, alice, bob, make_match):
        match = make_match(outcome_points=2.0, weight=5)
        predict(alice, match, "home")
        predict(bob, match, "draw")

        result = ResultService().enter_match_result(match.id, 2, 0)
        assert result["predictions_scored"] == 2

        alice_prediction = Prediction.query.filter_by(player_id=player_for(alice).id).one()
        bob_prediction = Prediction.query.filter_by(player_id=player_for(bob).id).one()
        assert alice_prediction.status == SCORED
        assert alice_prediction.is_correct is True
        assert alice_prediction.points_earned == 2.0
        assert alice_prediction.scored_at is not None
        assert bob_prediction.is_correct is False
        assert bob_prediction.points_earned == 0

    def test_weighted_policy(self, app, make_match):
        from matchday.services.identity import Identity

        db.session.add(MatchOutcomeConfig(points_for_win=3, points_for_draw=1, points_for_lose=0))
        db.session.commit()
        match = make_match(weight=2)
        players = [Identity(f"p{i}@example.com") for i in range(3)]
        for identity, pick in zip(players, ["home", "draw", "away"]):
            predict(identity, match, pick)

        ResultService(policy="weighted").enter_match_result(match.id, 1, 0)

        points = [
            Prediction.query.filter_by(player_id=player_for(identity).id).one().points_earned
            for identity in players
        ]
        assert points == [6, 2, 0]

    def test_policy_from_config(self, app, alice, make_match):
        app.config["OUTCOME_SCORING_POLICY"] = "weighted"
        match = make_match(weight=2)
        predict(alice, match, "home")
        ResultService().enter_match_result(match.id, 1, 0)
        assert Prediction.query.one().points_earned == 6

    def test_updates_player_and_tournament_stats(self, app, alice, make_match, make_tournament):
        tournament = make_tournament()
        match = make_match(tournament=tournament)
        predict(alice, match, "away")

        ResultService().enter_match_result(match.id, 0, 1)

        player = player_for(alice)
        assert player.stats_dict() == {
            "total_points": 1.0,
            "total_correct": 1,
            "total_predictions": 1,
            "current_streak": 1,
            "best_streak": 1,
        }
        stats = PlayerTournamentStats.query.filter_by(
            player_id=player.id, tournament_id=tournament.id
        ).one()
        assert stats.total_points == 1.0
        assert stats.total_predictions == 1
        assert stats.current_streak == 1

    def test_streak_resets_on_miss(self, app, alice, make_match):
        first, second = make_match(), make_match()
        predict(alice, first, "home")
        predict(alice, second, "home")

        ResultService().enter_match_result(first.id, 1, 0)
        ResultService().enter_match_result(second.id, 0, 0)

        player = player_for(alice)
        assert player.total_predictions == 2
        assert player.total_correct == 1
        assert player.current_streak == 0
        assert player.best_streak == 1

    def test_unknown_match(self, app):
        with pytest.raises(NotFoundError):
            ResultService().enter_match_result(12345, 1, 0)

    def test_invalid_score(self, app, make_match):
        match = make_match()
        with pytest.raises(InvalidArgumentError):
            ResultService().enter_match_result(match.id, -1, 0)
        assert db.session.get(Match, match.id).status != FINISHED

    def test_second_entry_rejected_without_changes(self, app, alice, make_match):
        match = make_match()
        predict(alice, match, "home")
        ResultService().enter_match_result(match.id, 2, 1)

        with pytest.raises(ConflictError):
            ResultService().enter_match_result(match.id, 0, 3)

        match = db.session.get(Match, match.id)
        assert (match.home_score, match.away_score) == (2, 1)
        prediction = Prediction.query.one()
        assert prediction.points_earned == 1.0
        assert player_for(alice).total_predictions == 1

    def test_concurrent_finish_detected_by_conditional_update(self, app, alice, make_match):
        match = make_match()
        predict(alice, match, "home")
        match_id = match.id

        # Another writer finishes the match behind this session's back
        db.session.execute(
            update(Match).where(Match.id == match_id).values(
                status=FINISHED, home_score=0, away_score=0, outcome="draw"
            )
        )
        db.session.commit()
        match = db.session.get(Match, match_id)
        set_committed_value(match, "status", "upcoming")

        with pytest.raises(ConflictError):
            ResultService().enter_match_result(match_id, 2, 1)

        match = db.session.get(Match, match_id)
        assert (match.home_score, match.away_score, match.outcome) == (0, 0, "draw")
        prediction = Prediction.query.one()
        assert prediction.status != SCORED
        assert prediction.points_earned == 0
        alice_player = player_for(alice)
        assert alice_player.total_predictions == 0
        assert alice_player.total_points == 0

    def test_failed_item_is_isolated_and_locked(self, app, alice, make_match):
        match = make_match()
        predict(alice, match, "home")
        orphan = Prediction(player_id=9999, match_id=match.id, pick="home")
        db.session.add(orphan)
        db.session.commit()
        orphan_id = orphan.id

        result = ResultService().enter_match_result(match.id, 1, 0)

        assert result["predictions_scored"] == 1
        assert result["failures"] == [
            {"prediction_id": orphan_id, "error": "Player 9999 not found"}
        ]
        assert result["predictions_locked"] == 1
        orphan = db.session.get(Prediction, orphan_id)
        assert orphan.status == LOCKED
        assert orphan.locked_at is not None
        assert player_for(alice).total_points == 1.0


class TestScoreBetSettlement:
    def test_exact_hit_with_match_config_pays_out(self, app, alice, make_match, enable_score_bets):
        match = make_match()
        enable_score_bets(match)
        service = SubmissionService()
        service.submit_score_bet(alice, match.id, 2, 1)
        service.submit_score_bet(alice, match.id, 0, 0)

        result = ResultService().enter_match_result(match.id, 2, 1)
        assert result["score_bets_scored"] == 2

        hit = ScoreBet.query.filter_by(predicted_home_score=2).one()
        miss = ScoreBet.query.filter_by(predicted_home_score=0).one()
        assert (hit.status, hit.is_correct, hit.payout) == (WON, True, 285000)
        assert (miss.status, miss.is_correct, miss.payout) == (LOST, False, 0)

    def test_duplicate_hits_use_multiplier(self, app, alice, make_match, enable_score_bets):
        match = make_match()
        enable_score_bets(match)
        service = SubmissionService()
        service.submit_score_bet(alice, match.id, 1, 1)
        service.submit_score_bet(alice, match.id, 1, 1)

        ResultService().enter_match_result(match.id, 1, 1)
        assert [bet.payout for bet in ScoreBet.query.all()] == [570000, 570000]

    def test_match_prize_replaces_base_reward(self, app, alice, make_match, enable_score_bets):
        match = make_match()
        enable_score_bets(match, prize=100000)
        SubmissionService().submit_score_bet(alice, match.id, 3, 2)

        ResultService().enter_match_result(match.id, 3, 2)
        assert ScoreBet.query.one().payout == 142500

    def test_no_payout_without_match_config(self, app, alice, make_match):
        match = make_match()
        SubmissionService().submit_score_bet(alice, match.id, 1, 0)

        ResultService().enter_match_result(match.id, 1, 0)
        bet = ScoreBet.query.one()
        assert bet.status == WON
        assert bet.is_correct is True
        assert bet.payout == 0
