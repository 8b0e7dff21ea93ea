"""Format parsers for FleetRef master data imports.

Handles CSV, legacy SharePoint/OData JSON and simplified JSON payloads.
"""

from fleetref.parsing.dialects import Dialect, detect_dialect
from fleetref.parsing.envelope import EnvelopeError, unwrap_envelope
from fleetref.parsing.parsers import parse, parse_aircraft, parse_customers

__all__ = [
    "Dialect",
    "EnvelopeError",
    "detect_dialect",
    "parse",
    "parse_aircraft",
    "parse_customers",
    "unwrap_envelope",
]
