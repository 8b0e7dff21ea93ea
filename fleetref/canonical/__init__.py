"""Aircraft type canonicalization rules."""

from fleetref.canonical.type_canonicalizer import TypeCanonicalizer, canonicalize

__all__ = ["TypeCanonicalizer", "canonicalize"]
