"""Results, fixtures, league table and recent predictions."""
from datetime import datetime, timedelta, timezone

import pytest

from matchday.errors import ConflictError, NotFoundError
from matchday.models.match import FINISHED
from matchday.services import query_service
from matchday.services.identity import find_player_id
from matchday.services.result_service import ResultService
from matchday.services.submission_service import SubmissionService


@pytest.fixture
def league(make_team, make_tournament):
    teams = [make_team(name) for name in ("Arsenal", "Chelsea", "Everton", "Fulham")]
    tournament = make_tournament(name="League", format="league", teams=teams)
    return tournament, teams


class TestMatchLists:
    def test_latest_results_most_recent_first(self, app, make_match, make_tournament, now):
        tournament = make_tournament()
        older = make_match(tournament=tournament, kickoff=now - timedelta(days=3), status=FINISHED)
        newer = make_match(tournament=tournament, kickoff=now - timedelta(days=1), status=FINISHED)
        make_match(tournament=tournament)

        results = query_service.latest_results(tournament.id)
        assert [m["id"] for m in results] == [newer.id, older.id]
        assert results[0]["home_team"]["name"].startswith("Home")

    def test_upcoming_soonest_first(self, app, make_match, make_tournament, now):
        tournament = make_tournament()
        later = make_match(tournament=tournament, kickoff=now + timedelta(days=5))
        sooner = make_match(tournament=tournament, kickoff=now + timedelta(days=1))

        upcoming = query_service.upcoming_matches(tournament.id)
        assert [m["id"] for m in upcoming] == [sooner.id, later.id]

    @pytest.mark.parametrize(
        "zone, local, display",
        [
            ("Europe/Berlin", "2030-06-03T20:00:00+02:00", "Mon 03/06 at 20:00"),
            ("Not/AZone", "2030-06-03T18:00:00+00:00", "Mon 03/06 at 18:00"),
        ],
    )
    def test_kickoff_shown_in_app_timezone(self, app, make_match, make_tournament, zone, local, display):
        app.config["TIMEZONE"] = zone
        tournament = make_tournament()
        make_match(tournament=tournament, kickoff=datetime(2030, 6, 3, 18, 0, tzinfo=timezone.utc))

        match = query_service.upcoming_matches(tournament.id)[0]
        assert match["kickoff"] == "2030-06-03T18:00:00+00:00"
        assert match["kickoff_local"] == local
        assert match["kickoff_display"] == display

    def test_unknown_tournament(self, app):
        with pytest.raises(NotFoundError):
            query_service.upcoming_matches(42)


class TestStandings:
    def test_table_from_finished_matches(self, app, league, make_match):
        tournament, (arsenal, chelsea, everton, fulham) = league
        results = ResultService()
        for home, away, score in [
            (arsenal, chelsea, (2, 0)),
            (everton, fulham, (1, 1)),
            (chelsea, everton, (3, 1)),
        ]:
            match = make_match(home=home, away=away, tournament=tournament)
            results.enter_match_result(match.id, *score)
        make_match(home=arsenal, away=fulham, tournament=tournament)

        table = query_service.standings(tournament.id)
        rows = {row["team_name"]: row for row in table}

        assert [row["team_name"] for row in table] == ["Arsenal", "Chelsea", "Fulham", "Everton"]
        assert rows["Arsenal"]["points"] == 3
        assert rows["Chelsea"]["played"] == 2
        assert rows["Chelsea"]["goal_diff"] == 0
        assert rows["Everton"]["drawn"] == 1
        assert rows["Everton"]["lost"] == 1
        assert rows["Fulham"]["points"] == 1
        assert table[0]["position"] == 1

    def test_teams_without_matches_listed(self, app, league):
        tournament, _ = league
        table = query_service.standings(tournament.id)
        assert len(table) == 4
        assert all(row["played"] == 0 for row in table)

    def test_only_for_leagues(self, app, make_tournament):
        tournament = make_tournament(format="knockout")
        with pytest.raises(ConflictError):
            query_service.standings(tournament.id)


class TestRecentPredictions:
    def test_latest_first_with_match(self, app, alice, make_match):
        service = SubmissionService()
        first, second = make_match(), make_match()
        service.submit_predictions(alice, [{"match_id": first.id, "pick": "home"}])
        service.submit_predictions(alice, [{"match_id": second.id, "pick": "away"}])

        recent = query_service.recent_predictions(find_player_id(alice))
        assert [p["match_id"] for p in recent] == [second.id, first.id]
        assert recent[0]["match"]["id"] == second.id

    def test_unknown_player_has_none(self, app):
        assert query_service.recent_predictions(None) == []

    @pytest.mark.parametrize("limit,expected", [(None, 20), (5, 5), (500, 50), (0, 1)])
    def test_limit_clamped(self, limit, expected):
        assert query_service.clamp_recent_limit(limit) == expected
