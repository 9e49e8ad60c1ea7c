"""
Tests for locating channels that air a given match.
"""
from datetime import timedelta

import pytest

from conftest import NOW, make_program
from guidesync.services.fetch_types import Channel
from guidesync.services.match_locator_service import (
    MAX_RESULTS,
    find_local_matches,
    fuzzy_match,
    split_match_title,
)


class TestSplitMatchTitle:
    @pytest.mark.parametrize(
        "title, expected",
        [
            ("Inter Milan vs Como", ["inter milan", "como"]),
            ("Arsenal V Chelsea", ["arsenal", "chelsea"]),
            ("Roma VS Lazio", ["roma", "lazio"]),
            ("Juventus", ["juventus"]),
        ],
    )
    def test_split(self, title, expected):
        assert split_match_title(title) == expected


class TestFuzzyRules:
    def test_substring(self):
        assert fuzzy_match("inter - como highlights", "como")

    def test_significant_word(self):
        assert fuzzy_match("serie a: inter - como", "inter milan")

    def test_stop_words_ignored(self):
        assert not fuzzy_match("city derby tonight", "leicester city")

    def test_short_words_ignored(self):
        assert not fuzzy_match("ac special", "ac xyz")

    def test_manchester_alias(self):
        assert fuzzy_match("man utd v spurs", "manchester united")
        assert fuzzy_match("man. city highlights", "manchester city")

    def test_psg_alias(self):
        assert fuzzy_match("psg - marseille", "paris saint-germain")


class TestFindLocalMatches:
    def test_inter_como_live(self):
        channels = [Channel(name="Sky Calcio", tvg_id="sky")]
        index = {"sky": [make_program("sky", "Inter - Como highlights", start=NOW - timedelta(minutes=30))]}

        results = find_local_matches("Inter vs Como", channels, index, NOW)

        assert len(results) == 1
        assert results[0].channel.name == "Sky Calcio"
        assert results[0].program_title == "Inter - Como highlights"
        assert results[0].is_live is True

    def test_inter_como_upcoming_not_live(self):
        channels = [Channel(name="Sky Calcio", tvg_id="sky")]
        start = NOW + timedelta(hours=3)
        index = {"sky": [make_program("sky", "Inter - Como highlights", start=start)]}

        results = find_local_matches("Inter vs Como", channels, index, NOW)

        assert results[0].is_live is False
        assert results[0].start == start

    def test_description_is_searched(self):
        channels = [Channel(name="DAZN", tvg_id="dazn")]
        index = {"dazn": [make_program("dazn", "Serie A", start=NOW, description="Inter v Como")]}

        assert len(find_local_matches("Inter vs Como", channels, index, NOW)) == 1

    def test_requires_both_teams(self):
        channels = [Channel(name="Sky", tvg_id="sky")]
        index = {"sky": [make_program("sky", "Inter - Napoli", start=NOW)]}

        assert find_local_matches("Inter vs Como", channels, index, NOW) == []

    def test_outside_lookahead_and_ended(self):
        channels = [Channel(name="Sky", tvg_id="sky")]
        index = {"sky": [
            make_program("sky", "Inter - Como", start=NOW - timedelta(hours=3), minutes=60),
            make_program("sky", "Inter - Como", start=NOW + timedelta(hours=13)),
        ]}

        assert find_local_matches("Inter vs Como", channels, index, NOW) == []

    def test_single_term_title(self):
        channels = [Channel(name="Sky", tvg_id="sky")]
        index = {"sky": [make_program("sky", "Inter", start=NOW)]}

        assert find_local_matches("Inter", channels, index, NOW) == []

    def test_channels_without_guide_skipped(self):
        channels = [Channel(name="No id"), Channel(name="Unknown", tvg_id="zzz")]
        index = {"sky": [make_program("sky", "Inter - Como", start=NOW)]}

        assert find_local_matches("Inter vs Como", channels, index, NOW) == []

    def test_live_sorted_first_and_stable(self):
        channels = [Channel(name=f"C{i}", tvg_id=f"c{i}") for i in range(4)]
        index = {
            "c0": [make_program("c0", "Inter - Como", start=NOW + timedelta(hours=1))],
            "c1": [make_program("c1", "Inter - Como", start=NOW - timedelta(minutes=5))],
            "c2": [make_program("c2", "Inter - Como", start=NOW + timedelta(hours=2))],
            "c3": [make_program("c3", "Inter - Como", start=NOW - timedelta(minutes=10))],
        }

        results = find_local_matches("Inter vs Como", channels, index, NOW)

        assert [r.channel.name for r in results] == ["C1", "C3", "C0", "C2"]

    def test_result_cap(self):
        channels = [Channel(name=f"C{i}", tvg_id=f"c{i}") for i in range(30)]
        index = {f"c{i}": [make_program(f"c{i}", "Inter - Como", start=NOW)] for i in range(30)}

        results = find_local_matches("Inter vs Como", channels, index, NOW)

        assert len(results) == MAX_RESULTS
        assert results[-1].channel.name == "C19"
