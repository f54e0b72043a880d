"""
Unit tests for table combinations and table assignment.
"""
import json

import pytest

from venue_booking.domain.combinations.config import (
    TableCombinationConfig,
    load_combinations,
    parse_combinations,
)
from venue_booking.domain.combinations.repository import CombinationRepository
from venue_booking.domain.combinations.service import (
    TABLE_ALREADY_BOOKED,
    TABLE_PART_OF_COMBINATION,
    CombinationService,
    calculate_base_price,
)
from venue_booking.exceptions import CombinationUnavailableError, ConflictError, ValidationError
from venue_booking.models import VenueTable

from .conftest import TODAY

BAR_SIDE = {
    "id": "combo-tables-15-16",
    "name": "Bar-Side Combination",
    "tables": [15, 16],
    "min_capacity": 7,
    "max_capacity": 14,
    "combination_fee": 25.0,
    "setup_time_minutes": 15,
}


@pytest.fixture
def service(db, venue_tables):
    return CombinationService(db)


def reserve(db, booking, tables, combination_id=None):
    CombinationRepository.assign_tables(db, booking.id, tables, TODAY, combination_id)
    db.commit()


class TestConfig:
    """Tests for loading the combination table."""

    def test_default_file_has_bar_side_combination(self):
        combinations = load_combinations()

        assert [c.id for c in combinations] == ["combo-tables-15-16"]
        assert combinations[0].tables == [15, 16]

    def test_load_from_custom_path(self, tmp_path):
        path = tmp_path / "combinations.json"
        path.write_text(json.dumps({"combinations": [BAR_SIDE]}))

        assert load_combinations(str(path))[0].max_capacity == 14

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            parse_combinations({"combinations": [BAR_SIDE, BAR_SIDE]})

    def test_repeated_table_rejected(self):
        with pytest.raises(ValueError):
            TableCombinationConfig(**{**BAR_SIDE, "tables": [15, 15]})

    def test_inverted_capacity_rejected(self):
        with pytest.raises(ValueError):
            TableCombinationConfig(**{**BAR_SIDE, "min_capacity": 15})


class TestEligibility:
    """Tests for check_combination_eligibility."""

    def test_party_of_six_does_not_combine(self, service):
        result = service.check_combination_eligibility(6)

        assert result["is_eligible"] is False
        assert result["combined_tables"] == []

    def test_party_of_eight_gets_bar_side(self, service):
        result = service.check_combination_eligibility(8)

        assert result["is_eligible"] is True
        assert result["combined_tables"] == [15, 16]
        assert result["combination_id"] == "combo-tables-15-16"

    def test_party_above_every_combination(self, service):
        assert service.check_combination_eligibility(15)["is_eligible"] is False


class TestAvailability:
    """Tests for combined and partial availability."""

    def test_free_combination(self, service):
        result = service.check_combined_tables_availability(TODAY, 8)

        assert result["available"] is True
        assert result["total_capacity"] == 14
        assert result["tables"] == [15, 16]

    def test_accepts_date_string(self, service):
        assert service.check_combined_tables_availability(TODAY.isoformat(), 8)["available"]

    def test_bad_date_is_a_validation_error(self, service):
        with pytest.raises(ValidationError):
            service.check_combined_tables_availability("01/06/2026", 8)

    def test_one_member_booked(self, db, service, make_customer, make_booking):
        booking = make_booking(make_customer(), tables=(16,))
        reserve(db, booking, [16])

        result = service.check_combined_tables_availability(TODAY, 8)
        assert result == {"available": False, "total_capacity": 0}

        partial = service.check_partial_combination_availability(TODAY)
        assert partial == {"partially_available": True, "available_tables": [15]}

    def test_active_combination_is_not_partial(self, db, service, make_customer, make_booking):
        booking = make_booking(make_customer(), tables=(15, 16), party_size=8)
        reserve(db, booking, [15, 16], "combo-tables-15-16")

        partial = service.check_partial_combination_availability(TODAY)

        assert partial == {"partially_available": False, "available_tables": []}

    def test_layout_states(self, db, service, make_customer, make_booking):
        assert service.get_table_layout_state(TODAY)[0]["combination_status"] == "available"

        booking = make_booking(make_customer(), tables=(15,))
        reserve(db, booking, [15])
        assert service.get_table_layout_state(TODAY)[0]["combination_status"] == "partial"

        CombinationRepository.release_booking(db, booking.id)
        db.commit()
        combo = make_booking(make_customer(), tables=(15, 16), party_size=8)
        reserve(db, combo, [15, 16], "combo-tables-15-16")
        assert service.get_table_layout_state(TODAY)[0]["combination_status"] == "reserved"


class TestCosts:
    """Tests for calculate_combination_costs."""

    def test_bar_side_costs(self, service):
        costs = service.calculate_combination_costs(8)

        assert costs["base_combination_fee"] == 25.0
        assert costs["setup_time"] == 15
        assert costs["base_price"] == 120.0
        assert costs["total_cost"] == 145.0

    def test_small_party_has_no_combination_costs(self, service):
        with pytest.raises(CombinationUnavailableError):
            service.calculate_combination_costs(4)

    def test_base_price_without_premium_tables(self):
        assert calculate_base_price([1, 2], premium_tables={13, 14}) == 100.0

    def test_premium_flag_comes_from_table_rows(self, db, service):
        for table in db.query(VenueTable).filter(VenueTable.table_number.in_([15, 16])):
            table.is_premium = False
        db.commit()

        costs = service.calculate_combination_costs(8)

        assert costs["base_price"] == 100.0
        assert costs["total_cost"] == 125.0


class TestIndividualTables:
    """Tests for validate_individual_table_booking."""

    def test_free_table(self, service):
        assert service.validate_individual_table_booking(15, TODAY) == {"allowed": True}

    def test_table_locked_by_active_combination(self, db, service, make_customer, make_booking):
        booking = make_booking(make_customer(), tables=(15, 16), party_size=8)
        reserve(db, booking, [15, 16], "combo-tables-15-16")

        result = service.validate_individual_table_booking(15, TODAY)

        assert result == {"allowed": False, "reason": TABLE_PART_OF_COMBINATION}

    def test_table_booked_singly(self, db, service, make_customer, make_booking):
        booking = make_booking(make_customer(), tables=(3,))
        reserve(db, booking, [3])

        result = service.validate_individual_table_booking(3, TODAY)

        assert result == {"allowed": False, "reason": TABLE_ALREADY_BOOKED}


class TestResolveAssignment:
    """Tests for deciding which tables a booking gets."""

    def test_large_party_gets_combination(self, service):
        assert service.resolve_assignment(TODAY, 9) == ([15, 16], "combo-tables-15-16")

    def test_large_party_without_free_combination(self, db, service, make_customer, make_booking):
        booking = make_booking(make_customer(), tables=(15, 16), party_size=8)
        reserve(db, booking, [15, 16], "combo-tables-15-16")

        with pytest.raises(CombinationUnavailableError):
            service.resolve_assignment(TODAY, 8)

    def test_requested_tables(self, service):
        assert service.resolve_assignment(TODAY, 4, [5, 6]) == ([5, 6], None)

    def test_requested_table_does_not_exist(self, service):
        with pytest.raises(ValidationError):
            service.resolve_assignment(TODAY, 4, [999])

    def test_requested_table_out_of_service(self, db, service):
        db.query(VenueTable).filter_by(table_number=5).one().is_active = False
        db.commit()

        with pytest.raises(ValidationError):
            service.resolve_assignment(TODAY, 4, [5])

    def test_requested_table_too_small(self, service):
        with pytest.raises(CombinationUnavailableError):
            service.resolve_assignment(TODAY, 6, [1])

    def test_requested_tables_seat_the_party_together(self, service):
        assert service.resolve_assignment(TODAY, 6, [1, 2]) == ([1, 2], None)

    def test_requested_table_taken(self, db, service, make_customer, make_booking):
        booking = make_booking(make_customer(), tables=(5,))
        reserve(db, booking, [5])

        with pytest.raises(CombinationUnavailableError):
            service.resolve_assignment(TODAY, 4, [5])

    def test_auto_assigns_smallest_free_table(self, db, service, make_customer, make_booking):
        booking = make_booking(make_customer(), tables=(1,))
        reserve(db, booking, [1])

        assert service.resolve_assignment(TODAY, 2) == ([2], None)

    def test_auto_assignment_skips_small_tables(self, service):
        tables, _ = service.resolve_assignment(TODAY, 6)

        assert tables == [5]

    def test_auto_assignment_skips_combination_members(self, db, service, make_customer, make_booking):
        customer = make_customer()
        for number in range(1, 15):
            booking = make_booking(customer, tables=(number,))
            reserve(db, booking, [number])

        with pytest.raises(CombinationUnavailableError):
            service.resolve_assignment(TODAY, 2)


class TestAssignTables:
    """Tests for the unique (table, night) claim."""

    def test_double_booking_conflicts(self, db, make_customer, make_booking):
        customer = make_customer()
        first = make_booking(customer, tables=(7,))
        second = make_booking(customer, tables=(7,))
        reserve(db, first, [7])

        with pytest.raises(ConflictError):
            CombinationRepository.assign_tables(db, second.id, [7], TODAY)

    def test_release_frees_tables(self, db, make_customer, make_booking):
        booking = make_booking(make_customer(), tables=(7, 8))
        reserve(db, booking, [7, 8])

        CombinationRepository.release_booking(db, booking.id)
        db.commit()

        assert CombinationRepository.get_table_status(db, [7, 8], TODAY) == {7: "free", 8: "free"}
