"""
Tests for provider record mapping, filtering and ranking.
"""
import random
from datetime import timedelta

import pytest

from conftest import NOW, make_fixture
from guidesync.services.fixture_ranking import (
    FALLBACK_LIMIT,
    fixture_score,
    is_allowed,
    is_visible,
    map_match,
    normalize_status,
    prepare_fixtures,
    rank_fixtures,
)


def raw_match(**overrides):
    record = {
        "id": 537785,
        "utcDate": "2025-10-18T18:45:00Z",
        "status": "TIMED",
        "competition": {"id": 2019, "name": "Serie A"},
        "homeTeam": {"name": "FC Internazionale Milano", "crest": "https://crests/108.png"},
        "awayTeam": {"name": "Como 1907", "crest": "https://crests/7397.png"},
        "score": {"fullTime": {"home": None, "away": None}},
    }
    record.update(overrides)
    return record


class TestMapMatch:
    def test_maps_fields(self):
        fixture = map_match(raw_match(), NOW, "UTC")

        assert fixture.id == "537785"
        assert fixture.league == "Serie A"
        assert fixture.league_id == 2019
        assert fixture.match == "FC Internazionale Milano vs Como 1907"
        assert fixture.home_logo == "https://crests/108.png"
        assert fixture.status == "TIMED"
        assert fixture.home_score is None
        assert fixture.time == "18:45"

    def test_tomorrow_label(self):
        fixture = map_match(raw_match(utcDate="2025-10-19T12:30:00Z"), NOW, "UTC")

        assert fixture.time == "Tom 12:30"

    def test_defaults_for_missing_fields(self):
        fixture = map_match({"id": 1, "status": "FINISHED", "score": {"fullTime": {"home": 2, "away": 1}}}, NOW, "UTC")

        assert (fixture.home_team, fixture.away_team, fixture.league) == ("Home", "Away", "Unknown")
        assert (fixture.home_score, fixture.away_score) == (2, 1)
        assert fixture.raw_date is None
        assert fixture.time == ""

    def test_record_without_id(self):
        assert map_match({"status": "TIMED"}, NOW, "UTC") is None

    @pytest.mark.parametrize(
        "code, expected",
        [("IN_PLAY", "IN_PLAY"), ("LIVE", "IN_PLAY"), ("PAUSED", "PAUSED"), ("FINISHED", "FINISHED"),
         ("AWARDED", "FINISHED"), ("POSTPONED", "POSTPONED"), ("FT", "SCHEDULED"), ("mystery", "SCHEDULED"), (None, "SCHEDULED")],
    )
    def test_status_table(self, code, expected):
        assert normalize_status(code) == expected


class TestFiltering:
    def test_visible_window(self):
        assert is_visible(make_fixture(kickoff=NOW - timedelta(hours=11)), NOW)
        assert not is_visible(make_fixture(kickoff=NOW - timedelta(hours=13)), NOW)
        assert is_visible(make_fixture(status="IN_PLAY", kickoff=NOW - timedelta(hours=13)), NOW)

    def test_allowed_by_league_name(self):
        assert is_allowed(make_fixture(home="Everton", away="Fulham", league="Premier League"))
        assert not is_allowed(make_fixture(home="Vaduz", away="Thun", league="Challenge League"))

    def test_allowed_by_team(self):
        assert is_allowed(make_fixture(home="Ajax", away="Heerenveen", league="Eredivisie"))

    def test_allowed_by_league_id(self):
        fixture = make_fixture(home="Vaduz", away="Thun", league="Challenge League", league_id=99)
        assert is_allowed(fixture, [99])

    def test_fallback_to_first_unfiltered(self):
        fixtures = [make_fixture(str(i), home=f"Team{i}", away="Other", league="Obscure") for i in range(20)]

        result = prepare_fixtures(fixtures, NOW)

        assert [f.id for f in result] == [str(i) for i in range(FALLBACK_LIMIT)]

    def test_stale_fixtures_dropped(self):
        fixtures = [make_fixture("old", kickoff=NOW - timedelta(hours=20)), make_fixture("new")]

        assert [f.id for f in prepare_fixtures(fixtures, NOW)] == ["new"]


class TestRanking:
    def test_top_team_order(self):
        inter = make_fixture("inter", home="Inter Milan", away="Como")
        milan = make_fixture("milan", home="AC Milan", away="Lecce")
        big = make_fixture("big", home="Juventus", away="Napoli")

        assert fixture_score(inter) > fixture_score(milan) > fixture_score(big)

    def test_league_base_scores(self):
        cl = make_fixture(home="Club Brugge", away="Celtic", league="UEFA Champions League")
        pl = make_fixture(home="Everton", away="Fulham", league="Premier League")
        other = make_fixture(home="Vaduz", away="Thun", league="Challenge League")

        assert fixture_score(cl) == 60_000
        assert fixture_score(pl) == 40_000
        assert fixture_score(other) == 10_000

    def test_team_bonuses_and_live_boost(self):
        fixture = make_fixture(home="Arsenal", away="Chelsea", league="Premier League")
        live = make_fixture(home="Arsenal", away="Chelsea", league="Premier League", status="IN_PLAY")

        assert fixture_score(fixture) == 40_000 + 2 * 200_000
        assert fixture_score(live) == fixture_score(fixture) + 5_000

    def test_ties_keep_input_order(self):
        fixtures = [make_fixture(str(i), home="Everton", away="Fulham", league="Premier League") for i in range(5)]

        assert [f.id for f in rank_fixtures(fixtures)] == ["0", "1", "2", "3", "4"]

    def test_deterministic(self):
        fixtures = [
            make_fixture("a", home="Everton", away="Fulham", league="Premier League"),
            make_fixture("b", home="Inter", away="Como"),
            make_fixture("c", home="Getafe", away="Alaves", league="Primera Division"),
            make_fixture("d", home="Roma", away="Lazio", status="IN_PLAY"),
            make_fixture("e", home="Brighton", away="Wolves", league="Premier League"),
        ]
        random.Random(7).shuffle(fixtures)

        assert rank_fixtures(fixtures) == rank_fixtures(fixtures)
        assert prepare_fixtures(fixtures, NOW) == prepare_fixtures(fixtures, NOW)
        assert rank_fixtures(fixtures)[0].id == "b"
