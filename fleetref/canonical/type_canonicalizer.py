"""Aircraft type canonicalization for FleetRef.

Resolves a raw, irregular aircraft type string ("777-F28", "B767-300ER(F)") or a
registration ("C-FGAX") to one of the canonical families using an ordered rule
table. Rules are evaluated by (priority desc, insertion order asc) and the first
matching rule wins.

Pattern syntax:
    *       zero or more characters
    ?       exactly one character
    ^ / $   anchor to start / end of the tested field
    other   literal, matched as a case-insensitive substring

Everything here is pure: no database access, no caching of rule tables, so the
same code serves bulk backfills and the single-string "test" endpoint.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from functools import lru_cache

from fleetref.models import (
    CanonicalizedType,
    CanonicalType,
    MappingRule,
    MatchConfidence,
    RuleTarget,
)

DEFAULT_EXACT_PRIORITY_THRESHOLD = 100

_WILDCARD_CHARS = set("*?^$")

# Nationality prefix, a dash, then a letter or wildcard: "C-F*", "N-*", "9V-S*".
# A digit after the dash reads as a type designator ("MD-11", "DC-10*"), so
# numeric registration series ("B-2*") need an explicit target.
_REGISTRATION_SHAPE = re.compile(
    r"^\^?(?:[A-Z]{1,2}|[0-9][A-Z]|[A-Z][0-9])-(?:[A-Z*?]|\$?$)", re.IGNORECASE
)


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a rule pattern into a case-insensitive regular expression.

    Args:
        pattern: Rule pattern using the glob/anchor syntax described above

    Returns:
        Compiled regex, to be applied with ``search`` (substring semantics
        unless the pattern is anchored)
    """
    body = pattern.strip()
    anchor_start = body.startswith("^")
    if anchor_start:
        body = body[1:]
    anchor_end = body.endswith("$")
    if anchor_end:
        body = body[:-1]

    parts = []
    for char in body:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))

    regex = "".join(parts)
    if anchor_start:
        regex = "^" + regex
    if anchor_end:
        regex = regex + "$"

    return re.compile(regex, re.IGNORECASE)


def infer_target(rule: MappingRule) -> RuleTarget:
    """Field a rule is tested against: explicit target, else pattern shape."""
    if rule.target is not None:
        return rule.target
    if _REGISTRATION_SHAPE.match(rule.pattern.strip()):
        return RuleTarget.REGISTRATION
    return RuleTarget.TYPE


def sort_rules(rules: Iterable[MappingRule]) -> list[MappingRule]:
    """Return active rules in evaluation order.

    Ordered by priority descending, then by id ascending (the autoincrement id
    is the insertion order). Rules without an id keep their relative order and
    sort after persisted rules of the same priority.
    """
    active = [rule for rule in rules if rule.is_active]
    return sorted(
        active,
        key=lambda rule: (-rule.priority, rule.id is None, rule.id or 0),
    )


def resolve_first_match(
    rules: Sequence[MappingRule],
    raw_type: str,
    registration: str | None = None,
) -> MappingRule | None:
    """Return the first rule in ``rules`` whose pattern matches its target field.

    ``rules`` must already be in evaluation order (see ``sort_rules``); this
    function does not reorder or filter them.

    A registration rule is tested against ``registration`` when one is given,
    otherwise against ``raw_type`` (callers sometimes pass a registration as the
    raw string).
    """
    for rule in rules:
        if infer_target(rule) == RuleTarget.REGISTRATION and registration:
            subject = registration
        else:
            subject = raw_type

        if subject and compile_pattern(rule.pattern).search(subject):
            return rule

    return None


def is_exact_match(rule: MappingRule, subject: str, exact_priority_threshold: int) -> bool:
    """Literal high-priority rule that equals the whole input."""
    pattern = rule.pattern.strip()
    return (
        not (_WILDCARD_CHARS & set(pattern))
        and rule.priority >= exact_priority_threshold
        and pattern.lower() == subject.lower()
    )


class TypeCanonicalizer:
    """Canonicalizes raw type strings against a fixed rule table."""

    def __init__(
        self,
        rules: Iterable[MappingRule],
        exact_priority_threshold: int = DEFAULT_EXACT_PRIORITY_THRESHOLD,
    ):
        self.rules = sort_rules(rules)
        self.exact_priority_threshold = exact_priority_threshold

    def canonicalize(self, raw_type: str | None, registration: str | None = None) -> CanonicalizedType:
        """Resolve a raw type string (and optional registration) to a family.

        Args:
            raw_type: Type string as imported, or a registration
            registration: Aircraft registration, tested by registration rules

        Returns:
            CanonicalizedType with confidence "exact", "pattern" or "fallback"
        """
        raw = (raw_type or "").strip()
        reg = (registration or "").strip() or None

        if not raw and not reg:
            return CanonicalizedType(
                raw=raw,
                canonical=CanonicalType.UNKNOWN,
                confidence=MatchConfidence.FALLBACK,
            )

        rule = resolve_first_match(self.rules, raw, reg)
        if rule is None:
            return CanonicalizedType(
                raw=raw,
                canonical=CanonicalType.UNKNOWN,
                confidence=MatchConfidence.FALLBACK,
            )

        subject = reg if infer_target(rule) == RuleTarget.REGISTRATION and reg else raw
        confidence = (
            MatchConfidence.EXACT
            if is_exact_match(rule, subject, self.exact_priority_threshold)
            else MatchConfidence.PATTERN
        )

        return CanonicalizedType(
            raw=raw,
            canonical=rule.canonical_type,
            confidence=confidence,
            rule_id=rule.id,
        )


def canonicalize(
    raw_type: str | None,
    registration: str | None = None,
    rules: Iterable[MappingRule] = (),
    exact_priority_threshold: int = DEFAULT_EXACT_PRIORITY_THRESHOLD,
) -> CanonicalizedType:
    """Convenience function: canonicalize one raw type string.

    Args:
        raw_type: Raw type string or registration
        registration: Optional aircraft registration
        rules: Mapping rules (any order; inactive rules are ignored)
        exact_priority_threshold: Minimum priority reported as "exact"

    Returns:
        CanonicalizedType
    """
    canonicalizer = TypeCanonicalizer(rules, exact_priority_threshold)
    return canonicalizer.canonicalize(raw_type, registration)
