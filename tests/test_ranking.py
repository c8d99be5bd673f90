"""
Result Ranking Tests
"""

import pytest

from arch_search.context.models import ContextSearchResult
from arch_search.search.models import SearchResult
from arch_search.search.ranking import (
    FALLBACK_TITLE,
    FALLBACK_URL,
    MAX_RESULTS,
    calculate_relevance_score,
    determine_relevance,
    filter_and_rank,
    parse_context_data,
    rank,
    wiki_url_for,
)
from arch_search.wiki.catalog import WIKI_BASE_URL


def _hit(context_id="arch-wiki/Pacman", content="", **metadata):
    return ContextSearchResult(context_id=context_id, context_data=content, metadata=metadata)


def _result(content, score, title="Pacman"):
    return SearchResult(
        context_id="x",
        title=title,
        content=content,
        url=WIKI_BASE_URL + title,
        score=score,
        relevance=determine_relevance(score),
    )


# ---------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------

class TestScoring:

    def test_base_score(self):
        assert calculate_relevance_score("Nothing matches here") == 0.5

    def test_one_error_and_one_solution_term(self):
        score = calculate_relevance_score("Error: restart the daemon")
        assert score == 0.7
        assert determine_relevance(score) == "medium"

    def test_command_indicator_boost(self):
        assert calculate_relevance_score("Run sudo then") == 0.7

    def test_score_is_clamped(self):
        content = "sudo pacman error failed problem fix install configure enable update remove"
        assert calculate_relevance_score(content) == 1.0

    @pytest.mark.parametrize(
        "score, label",
        [(1.0, "high"), (0.8, "high"), (0.79, "medium"), (0.6, "medium"), (0.59, "low"), (0.0, "low")],
    )
    def test_relevance_bands(self, score, label):
        assert determine_relevance(score) == label


# ---------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------

class TestParseContextData:

    def test_title_and_url_from_source_key(self):
        title, _, url = parse_context_data(_hit("arch-wiki/General_troubleshooting", "text"))
        assert title == "General troubleshooting"
        assert url == WIKI_BASE_URL + "General_troubleshooting"

    def test_section_key_and_recorded_url(self):
        hit = _hit(
            "ctx-123",
            "text",
            source="arch-wiki/Pacman/Troubleshooting",
            wiki_url=WIKI_BASE_URL + "Pacman#Troubleshooting",
        )
        title, _, url = parse_context_data(hit)
        assert title == "Pacman/Troubleshooting"
        assert url == WIKI_BASE_URL + "Pacman#Troubleshooting"

    def test_subpage_key_keeps_path_and_anchor_separate(self):
        _, _, url = parse_context_data(_hit("arch-wiki/Pacman/Troubleshooting#Invalid signature", "text"))
        assert url == WIKI_BASE_URL + "Pacman/Troubleshooting#Invalid_signature"

    @pytest.mark.parametrize(
        "page, expected",
        [
            ("Arch User Repository", "Arch_User_Repository"),
            ("NVIDIA/Troubleshooting", "NVIDIA/Troubleshooting"),
            ("Systemd#Writing unit files", "Systemd#Writing_unit_files"),
            ("Pacman#a/b?c", "Pacman#a%2Fb%3Fc"),
        ],
    )
    def test_wiki_url_for(self, page, expected):
        assert wiki_url_for(page) == WIKI_BASE_URL + expected

    def test_fallback_without_key(self):
        title, _, url = parse_context_data(_hit("ctx-1", "text"))
        assert title == FALLBACK_TITLE
        assert url == FALLBACK_URL

    def test_excerpt_is_capped(self):
        _, excerpt, _ = parse_context_data(_hit(content="x" * 600))
        assert excerpt == "x" * 500 + "..."

        _, excerpt, _ = parse_context_data(_hit(content="  short  "))
        assert excerpt == "short"


# ---------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------

class TestFilterAndRank:

    LONG_PACMAN = "Pacman keeps a database of installed packages; resolve the conflicting file first."

    def test_drops_short_low_and_off_topic(self):
        results = [
            _result("pacman too short", 0.9),
            _result(self.LONG_PACMAN, 0.2),
            _result("GRUB boot loader configuration lives in /etc/default/grub and friends.", 0.9, title="GRUB"),
            _result(self.LONG_PACMAN, 0.6),
        ]
        kept = filter_and_rank(results, "pacman conflicting files")
        assert [r.score for r in kept] == [0.6]

    def test_sorted_by_score_stable(self):
        first = _result(self.LONG_PACMAN + " one", 0.7)
        second = _result(self.LONG_PACMAN + " two", 0.7)
        best = _result(self.LONG_PACMAN + " three", 0.9)
        kept = filter_and_rank([first, second, best], "pacman")
        assert kept == [best, first, second]

    def test_no_keywords_keeps_everything_on_topic(self):
        results = [_result(self.LONG_PACMAN, 0.5)]
        assert filter_and_rank(results, "my screen is dark") == results


def test_rank_caps_results():
    hits = [_hit(f"arch-wiki/Page_{i}", "pacman error: " + "detail " * 20) for i in range(15)]
    assert len(rank(hits, "pacman", apply_filter=True)) == MAX_RESULTS
    assert len(rank(hits, "pacman", apply_filter=False)) == MAX_RESULTS
