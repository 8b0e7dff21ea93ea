"""Format parsers for master data imports.

Turn a raw CSV or JSON payload into normalized ``CustomerRecord`` /
``AircraftRecord`` instances. Parsers never raise on bad input: a malformed row
becomes a ``"Row N: ..."`` error and parsing continues; a payload that cannot
be read at all (bad JSON, unknown envelope, missing CSV headers) yields one
fatal error.

Row numbering is 1-based. For CSV a row is numbered by the file line it starts
on (the header is normally line 1, so the first data row is row 2); for JSON
the first record is row 1.
"""

from __future__ import annotations

import csv
import logging
from io import StringIO
from typing import Any

import pandas as pd
from pydantic import ValidationError

from fleetref.models import (
    AircraftRecord,
    CustomerRecord,
    DataType,
    ImportRecord,
    InputFormat,
    ParseResult,
    SourceTier,
)
from fleetref.parsing.dialects import (
    NATURAL_KEYS,
    Dialect,
    alias_fields,
    canonical_key,
    detect_dialect,
)
from fleetref.parsing.envelope import EnvelopeError, load_json, unwrap_envelope

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = {
    DataType.CUSTOMER: ["name"],
    DataType.AIRCRAFT: ["registration", "model", "operator"],
}

# Aircraft fields defaulted (with a warning) when a JSON record omits them
JSON_DEFAULTED_FIELDS = ("model", "operator")
UNKNOWN_VALUE = "Unknown"

_IMPORT_SOURCES = (SourceTier.IMPORTED.value, SourceTier.CONFIRMED.value)


class RowError(ValueError):
    """A single record could not be converted."""


class CSVFormatError(ValueError):
    """CSV payload cannot be read at all."""


def _clean(value: Any) -> str | None:
    """Trim a raw cell/JSON value; blanks become None."""
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _format_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )


def _build_record(
    data_type: DataType,
    fields: dict[str, Any],
    default_missing: bool,
) -> tuple[ImportRecord, list[str]]:
    """Validate aliased fields into an import record.

    Args:
        data_type: Entity kind
        fields: Field name -> raw value (already aliased to record names)
        default_missing: Default missing aircraft model/operator to "Unknown"
            instead of rejecting the row (JSON behaviour)

    Returns:
        (record, warnings)

    Raises:
        RowError: If the row cannot be converted
    """
    values = {key: _clean(value) for key, value in fields.items()}
    warnings: list[str] = []

    natural_key = NATURAL_KEYS[data_type]
    if not values.get(natural_key):
        raise RowError(f"{natural_key} is required")

    if data_type == DataType.AIRCRAFT:
        for name in JSON_DEFAULTED_FIELDS:
            if values.get(name):
                continue
            if not default_missing:
                raise RowError(f"{name} is required")
            values[name] = UNKNOWN_VALUE
            warnings.append(f"{name} missing, defaulted to '{UNKNOWN_VALUE}'")

    source = values.pop("source", None)
    if source is not None:
        source = source.lower()
        if source not in _IMPORT_SOURCES:
            raise RowError(f"invalid source '{source}' (expected imported or confirmed)")
        values["source"] = source

    sp_id = values.pop("sp_id", None)
    if sp_id is not None:
        try:
            values["sp_id"] = int(float(sp_id))
        except (ValueError, OverflowError) as e:
            raise RowError(f"sp_id must be an integer, got '{sp_id}'") from e

    model_cls = CustomerRecord if data_type == DataType.CUSTOMER else AircraftRecord
    try:
        record = model_cls.model_validate({k: v for k, v in values.items() if v is not None})
    except ValidationError as e:
        raise RowError(_format_validation_error(e)) from e

    return record, warnings


def read_csv_rows(raw: str) -> tuple[list[str], list[tuple[int, list[str]]]]:
    """Read a CSV payload into canonical headers and numbered data records.

    Each record is keyed by the file line it starts on, so a record after a
    blank line or a quoted multi-line cell still reports the line a user sees
    in an editor. Whitespace-only records are skipped.

    Returns:
        (headers, [(row_number, fields), ...])

    Raises:
        CSVFormatError: If the payload is empty or cannot be tokenized
    """
    reader = csv.reader(StringIO(raw))
    records: list[tuple[int, list[str]]] = []
    last_line = 0
    try:
        for fields in reader:
            start_line = last_line + 1
            last_line = reader.line_num
            if any(field.strip() for field in fields):
                records.append((start_line, fields))
    except csv.Error as e:
        raise CSVFormatError(f"Malformed CSV (line {reader.line_num}): {e}") from e

    if not records:
        raise CSVFormatError("CSV is empty")

    _, header_fields = records[0]
    return [canonical_key(field) for field in header_fields], records[1:]


def _row_fields(headers: list[str], fields: list[str]) -> dict[str, str]:
    """Pair a record with the header; short records are padded with blanks."""
    if len(fields) > len(headers):
        raise RowError(f"expected {len(headers)} fields, saw {len(fields)}")
    padded = fields + [""] * (len(headers) - len(fields))
    return dict(zip(headers, padded))


def _parse_csv(raw: str, data_type: DataType) -> ParseResult:
    try:
        headers, rows = read_csv_rows(raw)
    except CSVFormatError as e:
        return ParseResult(valid=False, errors=[str(e)], fatal=True)

    missing = [h for h in REQUIRED_HEADERS[data_type] if h not in headers]
    if missing:
        return ParseResult(
            valid=False,
            errors=[
                f"Missing required headers: {', '.join(missing)}. Found: {', '.join(headers)}"
            ],
            fatal=True,
        )

    data: list[ImportRecord] = []
    errors: list[str] = []
    warnings: list[str] = []

    for row_number, fields in rows:
        try:
            row = _row_fields(headers, fields)
            record, row_warnings = _build_record(data_type, row, default_missing=False)
        except RowError as e:
            errors.append(f"Row {row_number}: {e}")
            continue
        data.append(record)
        warnings.extend(f"Row {row_number}: {w}" for w in row_warnings)

    return ParseResult(valid=not errors, data=data, errors=errors, warnings=warnings)


def _parse_json(raw: str, data_type: DataType) -> ParseResult:
    try:
        items = unwrap_envelope(load_json(raw))
    except EnvelopeError as e:
        return ParseResult(valid=False, errors=[str(e)], fatal=True)

    data: list[ImportRecord] = []
    errors: list[str] = []
    warnings: list[str] = []
    payload_dialect: Dialect | None = None
    natural_key = NATURAL_KEYS[data_type]

    for row_number, item in enumerate(items, start=1):
        dialect = detect_dialect(item, data_type)
        if dialect == Dialect.UNKNOWN:
            errors.append(f"Row {row_number}: Missing '{natural_key}' or 'Title' field")
            continue

        if payload_dialect is None:
            payload_dialect = dialect
        elif dialect != payload_dialect:
            errors.append(
                f"Row {row_number}: mixes dialects "
                f"({dialect.value} record in a {payload_dialect.value} payload)"
            )
            continue

        fields = alias_fields(item, dialect, data_type)
        try:
            record, row_warnings = _build_record(data_type, fields, default_missing=True)
        except RowError as e:
            errors.append(f"Row {row_number}: {e}")
            continue
        data.append(record)
        warnings.extend(f"Row {row_number}: {w}" for w in row_warnings)

    return ParseResult(valid=not errors, data=data, errors=errors, warnings=warnings)


def parse(raw: str, fmt: InputFormat | str, data_type: DataType | str) -> ParseResult:
    """Parse a raw payload into import records.

    Args:
        raw: Payload text
        fmt: "csv" or "json"
        data_type: "customer" or "aircraft"

    Returns:
        ParseResult with records, row errors and warnings

    Raises:
        ValueError: If ``fmt`` or ``data_type`` is not a known value
    """
    fmt = InputFormat(fmt)
    data_type = DataType(data_type)

    if fmt == InputFormat.CSV:
        result = _parse_csv(raw, data_type)
    else:
        result = _parse_json(raw, data_type)

    logger.info(
        "Parsed %s %s payload: %d records, %d errors",
        fmt.value,
        data_type.value,
        len(result.data),
        len(result.errors),
    )
    return result


def parse_customers(raw: str, fmt: InputFormat | str) -> ParseResult:
    """Parse a customer payload."""
    return parse(raw, fmt, DataType.CUSTOMER)


def parse_aircraft(raw: str, fmt: InputFormat | str) -> ParseResult:
    """Parse an aircraft payload."""
    return parse(raw, fmt, DataType.AIRCRAFT)
