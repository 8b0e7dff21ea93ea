"""Unit tests for the import validator.

The validator is pure: every test builds a StoreSnapshot in memory.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from fleetref.config import reset_config
from fleetref.db.snapshots import StoreSnapshot
from fleetref.models import (
    AircraftRecord,
    CanonicalType,
    ConflictMode,
    CustomerRecord,
    DataType,
    SourceTier,
)
from fleetref.reconciliation.palette import PALETTE
from fleetref.reconciliation.validator import (
    assign_colors,
    revalidate,
    validate,
    validate_content,
)


@pytest.fixture
def customer_snapshot(customers) -> StoreSnapshot:
    return StoreSnapshot(data_type=DataType.CUSTOMER, customers=customers)


@pytest.fixture
def confirmed_snapshot(customers) -> StoreSnapshot:
    confirmed = [customers[0].model_copy(update={"source": SourceTier.CONFIRMED})] + customers[1:]
    return StoreSnapshot(data_type=DataType.CUSTOMER, customers=confirmed)


@pytest.fixture
def aircraft_snapshot(customers, existing_aircraft, default_rules) -> StoreSnapshot:
    return StoreSnapshot(
        data_type=DataType.AIRCRAFT,
        customers=customers,
        aircraft=[existing_aircraft],
        aircraft_models={"777-200F": uuid4()},
        manufacturers={"Boeing": uuid4()},
        rules=default_rules,
    )


class TestValidateCustomers:
    """Test customer classification, duplicates and colors."""

    def test_adds_and_updates(self, customer_snapshot):
        records = [
            CustomerRecord(name="Atlas Air", country="US"),
            CustomerRecord(name="Polar Air"),
            CustomerRecord(name="Amerijet"),
        ]

        result = validate(records, customer_snapshot)

        assert result.valid
        assert result.summary.total == 3
        assert result.summary.to_add == 2
        assert result.summary.to_update == 1
        assert result.summary.invalid_operators is None
        assert all(entity.id is None for entity in result.details.add)

        update = result.details.update[0]
        assert update.existing.id == update.new.id
        assert update.new.country == "US"

    def test_new_customers_get_unused_palette_colors(self, customer_snapshot):
        records = [CustomerRecord(name="Polar Air"), CustomerRecord(name="Amerijet")]

        result = validate(records, customer_snapshot)

        # Atlas and Cargojet hold the first two colors; Kalitta is inactive
        assert [c.color for c in result.details.add] == [PALETTE[2], PALETTE[3]]
        assert [c.sort_order for c in result.details.add] == [4, 5]

    def test_duplicate_add_merged_onto_first(self, customer_snapshot):
        records = [
            CustomerRecord(name="Polar Air"),
            CustomerRecord(name="Polar Air", country="US"),
        ]

        result = validate(records, customer_snapshot)

        assert result.summary.to_add == 1
        assert result.details.add[0].country == "US"
        assert result.details.warnings == [
            'Customer "Polar Air" appears more than once in this import; '
            "later values merged onto the first occurrence"
        ]

    def test_duplicate_update_merged_onto_first(self, customer_snapshot):
        records = [
            CustomerRecord(name="Atlas Air", country="US"),
            CustomerRecord(name="Atlas Air", website="atlasair.com"),
        ]

        result = validate(records, customer_snapshot)

        assert result.summary.to_update == 1
        new = result.details.update[0].new
        assert new.country == "US"
        assert new.website == "atlasair.com"

    def test_guid_rename(self, customers):
        store = [customers[0].model_copy(update={"guid": "g-atlas"})] + customers[1:]
        snapshot = StoreSnapshot(data_type=DataType.CUSTOMER, customers=store)

        result = validate([CustomerRecord(name="Atlas Air Cargo", guid="g-atlas")], snapshot)

        assert result.summary.to_add == 0
        assert result.details.update[0].new.name == "Atlas Air Cargo"
        assert "name changed" in result.details.warnings[0]

    def test_rename_onto_name_added_earlier_in_batch_is_suppressed(self, customers):
        store = [customers[0].model_copy(update={"guid": "g-atlas"})] + customers[1:]
        snapshot = StoreSnapshot(data_type=DataType.CUSTOMER, customers=store)
        records = [
            CustomerRecord(name="Polar Air"),
            CustomerRecord(name="Polar Air", guid="g-atlas"),
        ]

        result = validate(records, snapshot)

        assert result.details.update[0].new.name == "Atlas Air"
        assert result.summary.to_add == 1
        assert "already used earlier in this import" in result.details.warnings[0]


class TestConflictModes:
    """Test confirmed entities overwritten by imported records."""

    def test_reject_is_blocking_error(self, confirmed_snapshot):
        result = validate([CustomerRecord(name="Atlas Air")], confirmed_snapshot, "reject")

        assert not result.valid
        assert result.summary.conflicts == 1
        assert result.details.update[0].blocking
        assert result.details.errors == [
            'Customer "Atlas Air" has confirmed source and cannot be overwritten (mode: reject)'
        ]

    def test_warn_downgrades_with_warning(self, confirmed_snapshot):
        result = validate([CustomerRecord(name="Atlas Air")], confirmed_snapshot, "warn")

        assert result.valid
        assert result.details.update[0].new.source == SourceTier.IMPORTED
        assert not result.details.update[0].blocking
        assert result.details.warnings == [
            'Customer "Atlas Air" has confirmed source and will be downgraded to imported'
        ]

    def test_allow_is_silent(self, confirmed_snapshot):
        result = validate([CustomerRecord(name="Atlas Air")], confirmed_snapshot, "allow")

        assert result.valid
        assert result.summary.conflicts == 1
        assert result.details.warnings == []

    def test_confirmed_record_is_not_a_conflict(self, confirmed_snapshot):
        record = CustomerRecord(name="Atlas Air", source="confirmed")

        result = validate([record], confirmed_snapshot, ConflictMode.REJECT)

        assert result.valid
        assert result.summary.conflicts == 0

    def test_mode_defaults_to_config(self, confirmed_snapshot, monkeypatch):
        monkeypatch.setenv("IMPORT_CONFLICT_MODE", "reject")
        reset_config()

        result = validate([CustomerRecord(name="Atlas Air")], confirmed_snapshot)

        assert not result.valid


class TestValidateAircraft:
    """Test operator matching, lookups and canonicalization."""

    def test_operator_matching_and_canonical_type(self, aircraft_snapshot, atlas):
        records = [
            AircraftRecord(registration="N772CK", model="777-200F", operator="Atlas Airways"),
            AircraftRecord(registration="C-GUAJ", model="A320", operator="Zzyzx Freight"),
        ]

        result = validate(records, aircraft_snapshot)

        assert result.summary.to_add == 2
        assert result.summary.invalid_operators == 1

        matched, unmatched = result.details.add
        assert matched.operator_id == atlas.id
        assert matched.canonical_type == CanonicalType.B777
        assert matched.aircraft_model_id == aircraft_snapshot.aircraft_models["777-200F"]

        assert unmatched.operator_id is None
        assert unmatched.operator_raw == "Zzyzx Freight"
        assert unmatched.canonical_type == CanonicalType.UNKNOWN

        assert result.details.fuzzy_matches[0].registration == "N772CK"
        assert result.details.fuzzy_matches[0].matched_customer == "Atlas Air"
        assert result.details.fuzzy_matches[0].confidence < 100
        assert result.details.warnings[0].startswith(
            'Aircraft "C-GUAJ": Operator "Zzyzx Freight" not found (confidence: '
        )

    def test_exact_operator_not_listed_as_fuzzy(self, aircraft_snapshot):
        records = [AircraftRecord(registration="N401KZ", model="777-200F", operator="Atlas Air")]

        result = validate(records, aircraft_snapshot)

        assert result.summary.to_update == 1
        assert result.details.fuzzy_matches == []
        assert result.details.update[0].new.canonical_type == CanonicalType.B777

    def test_guid_identity_for_aircraft(self, aircraft_snapshot):
        record = AircraftRecord(
            registration="N402KZ", guid="ac-guid-1", model="Unknown", operator="Atlas Air"
        )

        result = validate([record], aircraft_snapshot)

        update = result.details.update[0]
        assert update.existing.registration == "N401KZ"
        assert update.new.registration == "N402KZ"
        assert update.new.aircraft_type == "747-400F"

    def test_record_kind_must_match_snapshot(self, customer_snapshot):
        with pytest.raises(ValueError):
            validate([AircraftRecord(registration="N1")], customer_snapshot)


class TestValidateContent:
    """Test parse + validate in one call."""

    def test_parse_errors_folded_in(self, customer_snapshot):
        content = "name,country\nPolar Air,US\n,CA\n"

        result = validate_content(content, "csv", "customer", customer_snapshot)

        assert not result.valid
        assert result.rows_rejected == 1
        assert result.details.errors == ["Row 3: name is required"]
        assert result.summary.to_add == 1

    def test_fatal_parse(self, customer_snapshot):
        result = validate_content("", "csv", "customer", customer_snapshot)

        assert result.fatal
        assert not result.valid
        assert result.records == []
        assert result.details.errors == ["CSV is empty"]

    def test_validate_is_side_effect_free(self, customer_snapshot):
        content = "name\nPolar Air\n"

        first = validate_content(content, "csv", "customer", customer_snapshot)
        second = validate_content(content, "csv", "customer", customer_snapshot)

        assert first == second
        assert len(customer_snapshot.customers) == 3

    def test_revalidate_keeps_parse_messages(self, customer_snapshot, confirmed_snapshot):
        content = "name,source\nAtlas Air,imported\nPolar Air,bogus\n"
        preview = validate_content(content, "csv", "customer", customer_snapshot)

        result = revalidate(preview, confirmed_snapshot, "reject")
        assert result.rows_rejected == 1
        assert result.details.errors[0].startswith("Row 3: invalid source 'bogus'")
        assert "cannot be overwritten" in result.details.errors[1]


def test_assign_colors_respects_given_colors(customer_snapshot):
    records = [CustomerRecord(name="Polar Air", color=PALETTE[2]), CustomerRecord(name="Amerijet")]
    result = validate(records, customer_snapshot)

    recolored = assign_colors(result.details.add, customer_snapshot.active_colors)

    assert [c.color for c in recolored] == [PALETTE[2], PALETTE[3]]
