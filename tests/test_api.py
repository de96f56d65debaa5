"""HTTP surface: identity, error mapping and admin access."""
from datetime import timedelta

import pytest
from click.testing import CliRunner

from conftest import ADMIN_HEADERS, PLAYER_HEADERS
from matchday.models import Match, Prediction


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"

    def test_unknown_route_is_json(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.get_json()["error"] == "not_found"


class TestPlayerEndpoints:
    def test_requires_identity(self, client):
        response = client.post("/api/player/predictions", json={"predictions": []})
        assert response.status_code == 401
        assert response.get_json() == {
            "success": False,
            "error": "unauthenticated",
            "message": "User not authenticated",
        }

    def test_submit_predictions(self, client, make_match):
        match = make_match()
        response = client.post(
            "/api/player/predictions",
            json={"predictions": [{"matchId": match.id, "pick": "home"}]},
            headers=PLAYER_HEADERS,
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body["count"] == 1
        assert body["errors"] == []
        assert Prediction.query.one().player.email == "alice@example.com"

    def test_batch_with_no_saves_is_400(self, client, make_match, now):
        match = make_match(kickoff=now - timedelta(minutes=1))
        response = client.post(
            "/api/player/predictions",
            json={"predictions": [{"matchId": match.id, "pick": "home"}]},
            headers=PLAYER_HEADERS,
        )
        assert response.status_code == 400
        assert "already kicked off" in response.get_json()["errors"][0]

    def test_empty_batch_is_invalid_argument(self, client):
        response = client.post(
            "/api/player/predictions", json={"predictions": []}, headers=PLAYER_HEADERS
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "invalid_argument"

    def test_non_object_body_rejected(self, client):
        response = client.post("/api/player/score-bets", json=[1, 2], headers=PLAYER_HEADERS)
        assert response.status_code == 400
        assert response.get_json()["error"] == "invalid_argument"

    def test_score_bet_not_found(self, client):
        response = client.post(
            "/api/player/score-bets",
            json={"matchId": 77, "homeScore": 1, "awayScore": 0},
            headers=PLAYER_HEADERS,
        )
        assert response.status_code == 404
        assert response.get_json()["success"] is False
        assert response.get_json()["error"] == "not_found"

    def test_score_bet_cap_is_conflict(self, client, make_match):
        match = make_match()
        for home in range(3):
            response = client.post(
                "/api/player/score-bets",
                json={"matchId": match.id, "homeScore": home, "awayScore": 0},
                headers=PLAYER_HEADERS,
            )
            assert response.status_code == 201

        response = client.post(
            "/api/player/score-bets",
            json={"matchId": match.id, "homeScore": 5, "awayScore": 0},
            headers=PLAYER_HEADERS,
        )
        assert response.status_code == 409
        assert "Maximum 3" in response.get_json()["message"]

    def test_disabled_is_403(self, client, make_match, enable_score_bets):
        match = make_match()
        enable_score_bets(match, enabled=False)
        response = client.post(
            "/api/player/score-bets",
            json={"matchId": match.id, "homeScore": 1, "awayScore": 0},
            headers=PLAYER_HEADERS,
        )
        assert response.status_code == 403
        assert response.get_json()["error"] == "disabled"

    def test_champion_pick(self, client, make_team, make_tournament, champion_config):
        team = make_team("Argentina")
        tournament = make_tournament(teams=[team])
        champion_config(tournament)

        response = client.post(
            "/api/player/champion",
            json={"teamId": team.id, "tournamentId": tournament.id},
            headers=PLAYER_HEADERS,
        )
        assert response.status_code == 200
        assert "Argentina" in response.get_json()["message"]

    def test_match_prediction_round_trip(self, client, make_match):
        match = make_match()
        response = client.post(
            "/api/player/match-prediction",
            json={"matchId": match.id, "pick": "draw"},
            headers=PLAYER_HEADERS,
        )
        assert response.status_code == 200

        response = client.delete(f"/api/player/match-prediction/{match.id}", headers=PLAYER_HEADERS)
        assert response.status_code == 200
        assert Prediction.query.count() == 0

    def test_recent_predictions(self, client, make_match):
        match = make_match()
        client.post(
            "/api/player/predictions",
            json={"predictions": [{"matchId": match.id, "pick": "away"}]},
            headers=PLAYER_HEADERS,
        )
        response = client.get("/api/player/predictions/recent?limit=5", headers=PLAYER_HEADERS)
        predictions = response.get_json()["predictions"]
        assert [p["pick"] for p in predictions] == ["away"]

    def test_standings_for_knockout_is_conflict(self, client, make_tournament):
        tournament = make_tournament(format="knockout")
        response = client.get(
            f"/api/player/tournaments/{tournament.id}/standings", headers=PLAYER_HEADERS
        )
        assert response.status_code == 409

    def test_upcoming_matches(self, client, make_match, make_tournament):
        tournament = make_tournament()
        match = make_match(tournament=tournament)
        response = client.get(
            f"/api/player/tournaments/{tournament.id}/upcoming", headers=PLAYER_HEADERS
        )
        assert [m["id"] for m in response.get_json()["matches"]] == [match.id]


class TestAdminEndpoints:
    def test_players_cannot_enter_results(self, client, make_match):
        match = make_match()
        response = client.post(
            f"/api/admin/matches/{match.id}/result",
            json={"homeScore": 1, "awayScore": 0},
            headers=PLAYER_HEADERS,
        )
        assert response.status_code == 403
        assert Match.query.one().status == "upcoming"

    def test_enter_result_and_rebuild(self, client, make_match):
        match = make_match()
        client.post(
            "/api/player/predictions",
            json={"predictions": [{"matchId": match.id, "pick": "home"}]},
            headers=PLAYER_HEADERS,
        )

        response = client.post(
            f"/api/admin/matches/{match.id}/result",
            json={"homeScore": 2, "awayScore": 1},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 200
        assert response.get_json()["predictions_scored"] == 1

        response = client.post(
            f"/api/admin/matches/{match.id}/result",
            json={"homeScore": 2, "awayScore": 1},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 409

        response = client.post("/api/admin/leaderboard/recalculate", headers=ADMIN_HEADERS)
        assert response.status_code == 200

        board = client.get("/api/player/leaderboard", headers=PLAYER_HEADERS).get_json()
        alice = next(e for e in board["leaderboard"] if e["display_name"] == "Alice")
        assert alice["rank"] == 1
        assert alice["total_points"] == 1.0

    def test_each_request_uses_its_own_identity(self, client, make_tournament, champion_config):
        tournament = make_tournament()
        champion_config(tournament)
        url = f"/api/admin/tournaments/{tournament.id}/champion/lock"

        assert client.post(url, headers=PLAYER_HEADERS).status_code == 403
        assert client.post(url, headers=ADMIN_HEADERS).status_code == 200
        assert client.post(url, headers=PLAYER_HEADERS).status_code == 403
        assert client.post(url).status_code == 401

    def test_admin_by_email(self, client, make_tournament, champion_config):
        tournament = make_tournament()
        champion_config(tournament)
        response = client.post(
            f"/api/admin/tournaments/{tournament.id}/champion/lock",
            headers={"X-User-Email": "admin@example.com"},
        )
        assert response.status_code == 200

    def test_lock_missing_config(self, client, make_tournament):
        tournament = make_tournament()
        response = client.post(
            f"/api/admin/tournaments/{tournament.id}/champion/lock", headers=ADMIN_HEADERS
        )
        assert response.status_code == 404


class TestCli:
    @pytest.fixture
    def runner(self):
        return CliRunner()

    def test_enter_result(self, app, runner, make_match):
        from manage import cli

        match = make_match()
        result = runner.invoke(cli, ["results", "enter", str(match.id), "2", "2"])

        assert result.exit_code == 0
        assert "✅ Result saved" in result.output
        assert Match.query.one().outcome == "draw"

    def test_enter_result_twice(self, app, runner, make_match):
        from manage import cli

        match = make_match()
        runner.invoke(cli, ["results", "enter", str(match.id), "1", "0"])
        result = runner.invoke(cli, ["results", "enter", str(match.id), "1", "0"])
        assert "❌ Match result has already been entered" in result.output

    def test_recalculate_unknown_tournament(self, app, runner):
        from manage import cli

        result = runner.invoke(cli, ["leaderboard", "recalculate", "--tournament", "9"])
        assert "❌ Tournament not found" in result.output
