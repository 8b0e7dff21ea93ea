"""Operator name matching."""

from fleetref.matching.fuzzy_matcher import FuzzyMatcher, match, normalize_name

__all__ = ["FuzzyMatcher", "match", "normalize_name"]
