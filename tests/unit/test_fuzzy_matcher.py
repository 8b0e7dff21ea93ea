"""Unit tests for operator fuzzy matching."""

from __future__ import annotations

from uuid import uuid4

import pytest

from fleetref.config import reset_config
from fleetref.matching.fuzzy_matcher import (
    FuzzyMatcher,
    comparison_key,
    match,
    normalize_name,
    similarity,
)
from fleetref.models import Customer


class TestNormalizeName:
    """Test organization name normalization."""

    def test_case_and_whitespace(self):
        assert normalize_name("  ATLAS   Air ") == "atlas air"

    def test_corporate_suffixes_removed(self):
        assert normalize_name("Atlas Air, Inc.") == "atlas air"
        assert normalize_name("Cargolux Airlines International S.A.") == (
            "cargolux airlines international"
        )

    def test_ampersand_and_separators(self):
        assert normalize_name("Air Transport & Leasing") == "air transport and leasing"
        assert normalize_name("Sky-Lease/Cargo") == "sky lease cargo"

    def test_empty(self):
        assert normalize_name(None) == ""
        assert normalize_name("") == ""

    def test_comparison_key_folds_airline_noise(self):
        assert comparison_key("atlas airways") == "atlas air"
        assert comparison_key("kalitta aviation intl") == "kalitta air international"


class TestSimilarity:
    def test_identical_keys_capped_below_exact(self):
        assert similarity("atlas air", "atlas air") == 99

    def test_unrelated_names_score_low(self):
        assert similarity("zzyzx freight", "atlas air") < 50


class TestFuzzyMatcher:
    """Test candidate selection and thresholds."""

    def test_exact_normalized_match_is_100(self, customers, atlas):
        result = match("ATLAS AIR INC.", customers, min_score=70)

        assert result.matched is True
        assert result.entity_id == atlas.id
        assert result.entity_name == "Atlas Air"
        assert result.confidence == 100

    def test_abbreviation_noise_scores_below_100(self, customers, atlas):
        result = match("Atlas Airways", customers, min_score=70)

        assert result.matched is True
        assert result.entity_id == atlas.id
        assert 70 <= result.confidence <= 99

    def test_below_threshold_keeps_raw_text(self, customers):
        result = match("Zzyzx Freight", customers, min_score=70)

        assert result.matched is False
        assert result.entity_id is None
        assert result.entity_name == "Zzyzx Freight"
        assert 0 <= result.confidence < 70

    def test_inactive_customers_are_not_candidates(self, customers):
        inactive = [c for c in customers if not c.is_active]

        result = match("Kalitta Air", inactive, min_score=70)

        assert result.matched is False
        assert result.confidence == 0

    def test_ties_go_to_first_candidate(self):
        first = Customer(id=uuid4(), name="Polar Air", display_name="Polar Air")
        second = Customer(id=uuid4(), name="Polar Air", display_name="Polar Air 2")

        result = match("Polar Airways", [first, second], min_score=70)

        assert result.entity_id == first.id

    @pytest.mark.parametrize("raw", [None, "", "   ", "Inc."])
    def test_empty_input_is_unmatched(self, customers, raw):
        result = match(raw, customers, min_score=70)

        assert result.matched is False
        assert result.confidence == 0

    def test_no_candidates(self):
        result = FuzzyMatcher(min_score=70).match("Atlas Air", [])

        assert result.matched is False
        assert result.entity_name == "Atlas Air"

    def test_threshold_defaults_to_config(self, monkeypatch):
        monkeypatch.setenv("FUZZY_MIN_SCORE", "95")
        reset_config()

        assert FuzzyMatcher().min_score == 95
