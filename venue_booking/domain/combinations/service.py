"""Combination service - table combinations for large parties"""

import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from sqlalchemy.orm import Session

from ...config import BASE_TABLE_PRICE, COMBINATION_THRESHOLD, PREMIUM_MULTIPLIER
from ...exceptions import CombinationUnavailableError, ValidationError
from ...shared.validators import parse_booking_date
from .config import TableCombinationConfig, load_combinations
from .repository import CombinationRepository

logger = logging.getLogger(__name__)

TABLE_PART_OF_COMBINATION = "Table part of combination"
TABLE_ALREADY_BOOKED = "Table already booked"


def calculate_base_price(tables: Sequence[int], premium_tables: Iterable[int] = ()) -> float:
    premium = set(premium_tables)
    multiplier = PREMIUM_MULTIPLIER if any(t in premium for t in tables) else 1.0
    return round(len(tables) * BASE_TABLE_PRICE * multiplier, 2)


class CombinationService:
    """
    Eligibility and availability of table combinations.

    Everything here is a function of party size, the night's reservations and
    the loaded combination table; there is no search over arbitrary table sets.
    """

    def __init__(self, db: Session, combinations: Optional[Sequence[TableCombinationConfig]] = None):
        self.db = db
        self.repo = CombinationRepository()
        self.combinations = tuple(combinations) if combinations is not None else load_combinations()

    def _candidates(self, party_size: int) -> list[TableCombinationConfig]:
        if party_size < COMBINATION_THRESHOLD:
            return []
        return [c for c in self.combinations if c.fits(party_size)]

    def _night(self, when) -> date:
        try:
            return parse_booking_date(when)
        except ValueError as e:
            raise ValidationError(str(e))

    def _active_tables(self, night: date) -> set[int]:
        active_ids = self.repo.get_active_combination_ids(self.db, night)
        tables: set[int] = set()
        for combo in self.combinations:
            if combo.id in active_ids:
                tables.update(combo.tables)
        return tables

    def check_combination_eligibility(self, party_size: int) -> dict:
        candidates = self._candidates(party_size)
        if not candidates:
            return {"is_eligible": False, "combined_tables": []}
        combo = candidates[0]
        return {
            "is_eligible": True,
            "combined_tables": list(combo.tables),
            "combination_id": combo.id,
        }

    def find_available_combination(self, when, party_size: int) -> Optional[TableCombinationConfig]:
        night = self._night(when)
        active_ids = self.repo.get_active_combination_ids(self.db, night)
        for combo in self._candidates(party_size):
            if combo.id in active_ids:
                continue
            status = self.repo.get_table_status(self.db, combo.tables, night)
            if all(s == "free" for s in status.values()):
                return combo
        return None

    def check_combined_tables_availability(self, when, party_size: int) -> dict:
        """Every member free for the night and the party inside the capacity range"""
        combo = self.find_available_combination(when, party_size)
        if combo is None:
            return {"available": False, "total_capacity": 0}
        return {
            "available": True,
            "total_capacity": combo.max_capacity,
            "combination_id": combo.id,
            "tables": list(combo.tables),
        }

    def calculate_combination_costs(self, party_size: int) -> dict:
        candidates = self._candidates(party_size)
        if not candidates:
            raise CombinationUnavailableError(
                f"Party size of {party_size} does not qualify for a table combination"
            )
        combo = candidates[0]
        base_price = calculate_base_price(
            combo.tables, self.repo.get_premium_table_numbers(self.db)
        )
        return {
            "combination_id": combo.id,
            "base_combination_fee": combo.combination_fee,
            "setup_time": combo.setup_time_minutes,
            "base_price": base_price,
            "total_cost": round(base_price + combo.combination_fee, 2),
        }

    def validate_individual_table_booking(self, table: int, when) -> dict:
        night = self._night(when)
        if table in self._active_tables(night):
            return {"allowed": False, "reason": TABLE_PART_OF_COMBINATION}
        if self.repo.get_table_status(self.db, [table], night)[table] == "booked":
            return {"allowed": False, "reason": TABLE_ALREADY_BOOKED}
        return {"allowed": True}

    def check_partial_combination_availability(self, when) -> dict:
        """
        Some but not all members of a combination are free. Only for
        "almost available" messaging; never offered as a combination.
        """
        night = self._night(when)
        active_ids = self.repo.get_active_combination_ids(self.db, night)
        available: set[int] = set()
        for combo in self.combinations:
            if combo.id in active_ids:
                continue
            status = self.repo.get_table_status(self.db, combo.tables, night)
            free = [t for t, s in status.items() if s == "free"]
            if 0 < len(free) < len(combo.tables):
                available.update(free)
        return {"partially_available": bool(available), "available_tables": sorted(available)}

    def get_table_layout_state(self, when) -> list[dict]:
        """Combination state per configured combination, for the floor plan"""
        night = self._night(when)
        active_ids = self.repo.get_active_combination_ids(self.db, night)
        layout = []
        for combo in self.combinations:
            if combo.id in active_ids:
                state = "reserved"
            else:
                status = self.repo.get_table_status(self.db, combo.tables, night)
                free = sum(1 for s in status.values() if s == "free")
                if free == len(combo.tables):
                    state = "available"
                elif free:
                    state = "partial"
                else:
                    state = "unavailable"
            layout.append(
                {
                    "combination_id": combo.id,
                    "combined_tables": list(combo.tables),
                    "combination_status": state,
                }
            )
        return layout

    def resolve_assignment(
        self, when, party_size: int, requested_tables: Optional[Sequence[int]] = None
    ) -> tuple[list[int], Optional[str]]:
        """
        Decide which tables a booking gets.

        Parties at or above the threshold need a free combination. Smaller
        parties get the tables they asked for, checked one by one, or the
        smallest free table that seats them. Requested tables must exist, be
        in service and seat the party between them.
        """
        night = self._night(when)

        if party_size >= COMBINATION_THRESHOLD:
            combo = self.find_available_combination(night, party_size)
            if combo is None:
                raise CombinationUnavailableError(
                    f"No suitable table combinations available for {party_size} guests on {night}"
                )
            return list(combo.tables), combo.id

        if requested_tables:
            known = self.repo.get_tables(self.db, requested_tables)
            unknown = [t for t in requested_tables if t not in known]
            if unknown:
                raise ValidationError(f"Unknown or inactive tables: {unknown}")
            seats = sum(known[t].capacity_max for t in requested_tables)
            if seats < party_size:
                raise CombinationUnavailableError(
                    f"Tables {list(requested_tables)} seat {seats}, party is {party_size}"
                )
            for table in requested_tables:
                check = self.validate_individual_table_booking(table, night)
                if not check["allowed"]:
                    raise CombinationUnavailableError(f"Table {table}: {check['reason']}")
            return list(requested_tables), None

        # Auto-assignment leaves combination members for large parties
        combination_tables = {t for c in self.combinations for t in c.tables}
        for table in self.repo.get_active_tables(self.db):
            if table.table_number in combination_tables or table.capacity_max < party_size:
                continue
            if self.repo.get_table_status(self.db, [table.table_number], night)[
                table.table_number
            ] == "free":
                return [table.table_number], None

        raise CombinationUnavailableError(f"No table available for {party_size} guests on {night}")
