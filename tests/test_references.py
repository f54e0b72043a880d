"""
Unit tests for booking references and check-in codes.
"""
import random
from datetime import datetime, timezone

import pytest

from venue_booking.domain.references.generator import (
    CHECKIN_CODE_PATTERN,
    REFERENCE_PATTERN,
    ReferenceGenerator,
    is_valid_check_in_code,
    sign_check_in_payload,
    verify_check_in_signature,
)
from venue_booking.domain.references.repository import ReferenceRepository
from venue_booking.exceptions import GenerationExhausted


def fixed_clock(year=2026):
    return lambda: datetime(year, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestBookingReferences:
    """Tests for drawing unique references."""

    def test_ten_thousand_references_are_distinct(self):
        issued = set()
        generator = ReferenceGenerator(
            rng=random.Random(1),
            reference_exists=issued.__contains__,
            clock=fixed_clock(),
            max_attempts=500,
        )

        for _ in range(10_000):
            issued.add(generator.generate_booking_reference())

        assert len(issued) == 10_000

    def test_reference_format_and_standard_range(self):
        generator = ReferenceGenerator(rng=random.Random(5), clock=fixed_clock())

        for _ in range(200):
            reference = generator.generate_booking_reference()
            match = REFERENCE_PATTERN.match(reference)
            assert match is not None
            assert match.group(1) == "2026"
            assert 10000 <= int(match.group(2)) <= 79999

    def test_vip_references_use_upper_range(self):
        generator = ReferenceGenerator(rng=random.Random(9), clock=fixed_clock())

        for _ in range(200):
            reference = generator.generate_vip_booking_reference()
            assert 80000 <= int(reference.split("-")[2]) <= 99999

    def test_exhausted_when_every_candidate_exists(self):
        generator = ReferenceGenerator(
            rng=random.Random(3),
            reference_exists=lambda ref: True,
            clock=fixed_clock(),
            max_attempts=10,
        )

        with pytest.raises(GenerationExhausted):
            generator.generate_booking_reference()

    def test_exhausted_when_range_is_saturated(self):
        checks = []
        generator = ReferenceGenerator(
            rng=random.Random(3),
            reference_exists=lambda ref: checks.append(ref) or False,
            issued_count=lambda year, low, high: high - low + 1,
            clock=fixed_clock(),
        )

        with pytest.raises(GenerationExhausted):
            generator.generate_vip_booking_reference()
        assert checks == []


class TestReferenceValidation:
    """Tests for the format-only reference check."""

    @pytest.fixture
    def generator(self):
        return ReferenceGenerator(clock=fixed_clock())

    def test_valid_standard_reference(self, generator):
        assert generator.validate_booking_reference("BRL-2026-12345") == {
            "valid": True,
            "is_vip": False,
        }

    def test_valid_vip_reference_is_case_insensitive(self, generator):
        result = generator.validate_booking_reference(" brl-2026-85000 ")
        assert result == {"valid": True, "is_vip": True}

    def test_next_year_is_accepted(self, generator):
        assert generator.validate_booking_reference("BRL-2027-12345")["valid"] is True

    @pytest.mark.parametrize(
        "reference",
        [
            "",
            None,
            "BRL-2026-1234",
            "ABC-2026-12345",
            "BRL-26-12345",
            "BRL-2024-12345",
            "BRL-2028-12345",
            "BRL-2026-09999",
        ],
    )
    def test_rejected_references(self, generator, reference):
        result = generator.validate_booking_reference(reference)
        assert result["valid"] is False
        assert result["reason"]


class TestCheckInCodes:
    """Tests for door check-in codes and QR signatures."""

    def test_codes_use_unambiguous_alphabet(self):
        generator = ReferenceGenerator(rng=random.Random(11))

        for _ in range(500):
            code = generator.generate_check_in_code()
            assert CHECKIN_CODE_PATTERN.match(code)
            assert "O" not in code and "0" not in code

    def test_existing_code_is_skipped(self):
        first = ReferenceGenerator(rng=random.Random(4)).generate_check_in_code()
        generator = ReferenceGenerator(
            rng=random.Random(4), code_exists=lambda code: code == first
        )

        assert generator.generate_check_in_code() != first

    def test_code_exhaustion(self):
        generator = ReferenceGenerator(code_exists=lambda code: True, max_attempts=5)

        with pytest.raises(GenerationExhausted):
            generator.generate_check_in_code()

    def test_code_format_check(self):
        assert is_valid_check_in_code("AB12CD")
        assert is_valid_check_in_code("ab12cd")
        assert not is_valid_check_in_code("AB12C")
        assert not is_valid_check_in_code("AB0CDE")
        assert not is_valid_check_in_code(None)

    def test_signature_round_trip(self):
        payload = {"bookingRef": "BRL-2026-12345", "checkInCode": "AB12CD", "partySize": 4}
        signature = sign_check_in_payload(payload, "secret")

        assert len(signature) == 16
        assert verify_check_in_signature(payload, signature, "secret")
        assert not verify_check_in_signature({**payload, "partySize": 5}, signature, "secret")
        assert not verify_check_in_signature(payload, signature, "other-secret")


class TestReferenceRepository:
    """Tests for uniqueness lookups against stored bookings."""

    def test_count_issued_by_range(self, db, make_customer, make_booking):
        customer = make_customer()
        make_booking(customer, reference="BRL-2026-12345")
        make_booking(customer, tables=(2,), reference="BRL-2026-85000")
        make_booking(customer, tables=(3,), reference="BRL-2025-12346")

        assert ReferenceRepository.count_issued(db, 2026, 10000, 79999) == 1
        assert ReferenceRepository.count_issued(db, 2026, 80000, 99999) == 1
        assert ReferenceRepository.count_issued(db, 2025, 10000, 79999) == 1
        assert ReferenceRepository.reference_exists(db, "BRL-2026-12345")
        assert not ReferenceRepository.reference_exists(db, "BRL-2026-12347")

    def test_wired_generator_avoids_stored_reference(self, db, make_customer, make_booking):
        customer = make_customer()
        taken = ReferenceGenerator(
            rng=random.Random(2026), clock=fixed_clock()
        ).generate_booking_reference()
        make_booking(customer, reference=taken)

        repo = ReferenceRepository()
        generator = ReferenceGenerator(
            rng=random.Random(2026),
            reference_exists=lambda ref: repo.reference_exists(db, ref),
            clock=fixed_clock(),
        )

        assert generator.generate_booking_reference() != taken
