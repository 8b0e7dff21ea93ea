"""Unit tests for merge precedence (incoming > existing > default)."""

from __future__ import annotations

from uuid import uuid4

from fleetref.models import (
    AircraftRecord,
    Customer,
    CustomerRecord,
    FuzzyMatchResult,
    SourceTier,
)
from fleetref.reconciliation.merge import (
    AircraftLookups,
    merge_aircraft,
    merge_customer,
    new_aircraft,
    new_customer,
)


class TestCustomerMerge:
    def test_new_customer_defaults(self):
        customer = new_customer(CustomerRecord(name="Atlas Air"), sort_order=4)

        assert customer.id is None
        assert customer.display_name == "Atlas Air"
        assert customer.color is None
        assert customer.color_text == "#ffffff"
        assert customer.sort_order == 4
        assert customer.source == SourceTier.IMPORTED

    def test_incoming_values_win_blanks_keep_existing(self):
        existing = Customer(
            id=uuid4(),
            name="Atlas Air",
            display_name="Atlas",
            color="#EF4444",
            country="US",
            iata_code="5Y",
            source=SourceTier.CONFIRMED,
        )
        record = CustomerRecord(name="Atlas Air", country="USA", iata_code="")

        merged = merge_customer(existing, record, "Atlas Air")

        assert merged.id == existing.id
        assert merged.country == "USA"
        assert merged.iata_code == "5Y"
        assert merged.display_name == "Atlas"
        assert merged.color == "#EF4444"
        assert merged.source == SourceTier.IMPORTED

    def test_rename_comes_from_plan_not_record(self):
        existing = Customer(id=uuid4(), name="Atlas Air", display_name="Atlas")

        merged = merge_customer(existing, CustomerRecord(name="Atlas Cargo"), "Atlas Air")

        assert merged.name == "Atlas Air"


class TestAircraftMerge:
    def test_new_aircraft_with_matched_operator(self, atlas):
        lookups = AircraftLookups(
            operator=FuzzyMatchResult(
                matched=True, entity_id=atlas.id, entity_name=atlas.name, confidence=100
            )
        )
        record = AircraftRecord(registration="N401KZ", model="747-400F", operator="ATLAS AIR")

        aircraft = new_aircraft(record, lookups)

        assert aircraft.operator_id == atlas.id
        assert aircraft.operator_raw == "ATLAS AIR"
        assert aircraft.operator_match_confidence == 100
        assert aircraft.aircraft_type == "747-400F"

    def test_unknown_model_is_not_a_type(self):
        lookups = AircraftLookups(
            operator=FuzzyMatchResult(matched=False, entity_name="Unknown", confidence=0)
        )

        aircraft = new_aircraft(AircraftRecord(registration="N1"), lookups)

        assert aircraft.aircraft_type is None
        assert aircraft.operator_id is None

    def test_unmatched_operator_clears_fk_but_keeps_provenance(self, existing_aircraft):
        lookups = AircraftLookups(
            operator=FuzzyMatchResult(matched=False, entity_name="Zzyzx Freight", confidence=21)
        )
        record = AircraftRecord(registration="N401KZ", model="Unknown", operator="Zzyzx Freight")

        merged = merge_aircraft(existing_aircraft, record, lookups, "N401KZ")

        assert merged.operator_id is None
        assert merged.operator_raw == "Zzyzx Freight"
        assert merged.operator_match_confidence == 21
        assert merged.aircraft_type == "747-400F"

    def test_lookup_ids_fall_back_to_existing(self, existing_aircraft, atlas):
        model_id = uuid4()
        existing = existing_aircraft.model_copy(update={"aircraft_model_id": model_id})
        lookups = AircraftLookups(
            operator=FuzzyMatchResult(
                matched=True, entity_id=atlas.id, entity_name=atlas.name, confidence=100
            )
        )
        record = AircraftRecord(
            registration="N401KZ", model="747-400F", operator="Atlas Air", lessor="GECAS"
        )

        merged = merge_aircraft(existing, record, lookups, "N401KZ")

        assert merged.aircraft_model_id == model_id
        assert merged.lessor == "GECAS"
        assert merged.id == existing.id
