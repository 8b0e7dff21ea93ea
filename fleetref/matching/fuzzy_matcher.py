"""Fuzzy operator matching using RapidFuzz for FleetRef.

Resolves a free-text operator name from an aircraft import ("Atlas Air, Inc.",
"ATLAS AIRWAYS") to a customer row with a 0-100 confidence.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from rapidfuzz import fuzz

from fleetref.config import get_config
from fleetref.models import Customer, FuzzyMatchResult

logger = logging.getLogger(__name__)

EXACT_SCORE = 100
MAX_FUZZY_SCORE = 99  # 100 is reserved for exact normalized matches
TOKEN_SET_WEIGHT = 0.95

_SEPARATORS = re.compile(r"[-/]")
_PUNCTUATION = re.compile(r"[^\w\s]")
_SUFFIXES = re.compile(
    r"\b(inc|ltd|llc|corp|corporation|limited|co|plc|sa|ag|gmbh)\b"
)
_WHITESPACE = re.compile(r"\s+")

# Airline naming noise folded only for scoring, never for exact matches
_ABBREVIATIONS = {
    "airways": "air",
    "airlines": "air",
    "airline": "air",
    "aviation": "air",
    "intl": "international",
}


def normalize_name(name: str | None) -> str:
    """Normalize an organization name for comparison.

    Lowercase, ``&`` to "and", punctuation removed, corporate suffixes removed,
    whitespace collapsed.
    """
    if not name:
        return ""

    text = name.lower().replace("&", " and ")
    text = _SEPARATORS.sub(" ", text)
    text = _PUNCTUATION.sub("", text)
    text = _SUFFIXES.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def comparison_key(normalized: str) -> str:
    """Fold airline abbreviation noise out of a normalized name."""
    return " ".join(_ABBREVIATIONS.get(token, token) for token in normalized.split())


def similarity(left: str, right: str) -> int:
    """Score two comparison keys (0-99)."""
    score = max(
        fuzz.token_sort_ratio(left, right),
        TOKEN_SET_WEIGHT * fuzz.token_set_ratio(left, right),
    )
    return min(int(round(score)), MAX_FUZZY_SCORE)


class FuzzyMatcher:
    """RapidFuzz operator-to-customer matcher."""

    def __init__(self, min_score: int | None = None):
        """Initialize matcher.

        Args:
            min_score: Acceptance threshold (defaults to matching.fuzzy_min_score)
        """
        if min_score is None:
            min_score = get_config().matching.fuzzy_min_score
        self.min_score = min_score

    def match(self, raw_text: str | None, candidates: Sequence[Customer]) -> FuzzyMatchResult:
        """Find the best customer for a free-text operator name.

        Matching logic:
        1. Exact match on normalized names -> confidence 100
        2. Otherwise score every candidate on comparison keys, keep the best
           (first candidate wins ties)
        3. Accept when the best score >= min_score

        Only active customers are considered.

        Args:
            raw_text: Operator name as imported
            candidates: Customers to match against

        Returns:
            FuzzyMatchResult; ``entity_name`` is the customer name when matched,
            otherwise the raw text
        """
        raw = (raw_text or "").strip()
        unmatched = FuzzyMatchResult(matched=False, entity_name=raw, confidence=0)

        active = [customer for customer in candidates if customer.is_active]
        normalized = normalize_name(raw)
        if not normalized or not active:
            return unmatched

        for customer in active:
            if normalize_name(customer.name) == normalized:
                return FuzzyMatchResult(
                    matched=True,
                    entity_id=customer.id,
                    entity_name=customer.name,
                    confidence=EXACT_SCORE,
                )

        key = comparison_key(normalized)
        best: Customer | None = None
        best_score = -1

        for customer in active:
            score = similarity(key, comparison_key(normalize_name(customer.name)))
            if score > best_score:
                best, best_score = customer, score

        if best is not None and best_score >= self.min_score:
            return FuzzyMatchResult(
                matched=True,
                entity_id=best.id,
                entity_name=best.name,
                confidence=best_score,
            )

        logger.debug("No operator match for %r (best score %s)", raw, best_score)
        return FuzzyMatchResult(matched=False, entity_name=raw, confidence=max(best_score, 0))


def match(
    raw_text: str | None,
    candidates: Sequence[Customer],
    min_score: int | None = None,
) -> FuzzyMatchResult:
    """Convenience function: match one operator name.

    Args:
        raw_text: Operator name as imported
        candidates: Customers to match against
        min_score: Acceptance threshold (defaults to configuration)

    Returns:
        FuzzyMatchResult
    """
    return FuzzyMatcher(min_score).match(raw_text, candidates)
