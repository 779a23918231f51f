"""
Unit tests for free-text school resolution.
"""

from types import SimpleNamespace

import pytest

from coachtrack.schools.matching import (
    ConfidenceTier,
    SchoolMatcher,
    SearchQuery,
    score_exact,
    significant_words,
)


def _school(school_id, name):
    return SimpleNamespace(id=school_id, school=name)


@pytest.fixture
def registry():
    return [
        _school(1, "Ohio State University"),
        _school(2, "Kenyon College"),
        _school(3, "University at Buffalo"),
        _school(4, "State University of New York at Buffalo"),
        _school(5, "University of Missouri"),
    ]


@pytest.fixture
def matcher(registry):
    return SchoolMatcher(registry)


class TestSignificantWords:

    def test_drops_generic_and_short_words(self):
        assert significant_words("stat univ of ny buffalo") == ["stat", "univ", "buffalo"]

    def test_generic_words_only_removed_whole(self):
        # "theology" must not lose its "the"
        assert significant_words("the theology college") == ["theology"]

    def test_hyphens_split_words(self):
        assert significant_words("wisconsin-madison") == ["wisconsin", "madison"]


class TestResolve:

    def test_alias_gives_exact(self, matcher):
        match = matcher.resolve("OSU")
        assert match.school.id == 1
        assert match.confidence == ConfidenceTier.EXACT

    def test_full_name_any_case(self, matcher):
        match = matcher.resolve("  kenyon   COLLEGE ")
        assert match.school.id == 2
        assert match.confidence == ConfidenceTier.EXACT

    def test_containment_is_high(self, matcher):
        match = matcher.resolve("Kenyon")
        assert match.school.id == 2
        assert match.confidence == ConfidenceTier.HIGH

    def test_word_overlap_is_medium_and_prefers_most_words(self, matcher):
        match = matcher.resolve("Stat Univ of NY Buffalo")
        assert match.school.id == 4
        assert match.confidence == ConfidenceTier.MEDIUM

    def test_single_long_word_is_low(self, matcher):
        match = matcher.resolve("Buffalo Bulls Athletics")
        assert match.school.id == 3
        assert match.confidence == ConfidenceTier.LOW

    def test_alias_then_lookup(self, matcher):
        match = matcher.resolve("Mizzou")
        assert match.school.id == 5
        assert match.confidence == ConfidenceTier.EXACT

    def test_no_match(self, matcher):
        assert matcher.resolve("Xavier") is None

    @pytest.mark.parametrize("text", ["", "   ", None, 42])
    def test_blank_or_non_string(self, matcher, text):
        assert matcher.resolve(text) is None

    def test_empty_registry(self):
        assert SchoolMatcher([]).resolve("Kenyon College") is None

    def test_custom_tiers(self, registry):
        exact_only = SchoolMatcher(registry, tiers=[(ConfidenceTier.EXACT, score_exact)])
        assert exact_only.resolve("Kenyon") is None
        assert exact_only.resolve("Kenyon College").confidence == ConfidenceTier.EXACT

    def test_custom_aliases(self, registry):
        matcher = SchoolMatcher(registry, aliases={"the lords": "kenyon college"})
        assert matcher.resolve("The Lords").school.id == 2
        assert matcher.resolve("OSU") is None


class TestSuggest:

    def test_typo_suggests_school(self, matcher):
        suggestions = matcher.suggest("Kenyn Colege")
        assert suggestions
        assert suggestions[0].school.id == 2
        assert suggestions[0].score >= 70

    def test_limit(self, matcher):
        assert len(matcher.suggest("University", limit=2)) <= 2

    def test_blank(self, matcher):
        assert matcher.suggest("") == []


def test_search_query_applies_alias():
    query = SearchQuery.build("  Ole Miss ", {"ole miss": "university of mississippi"})
    assert query.text == "university of mississippi"
    assert query.words == ("mississippi",)
