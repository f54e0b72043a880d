"""Combination repository - table availability and per-night table assignment"""

from datetime import date
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...exceptions import ConflictError
from ...models import ActiveCombination, TableReservation, VenueTable


class CombinationRepository:
    """Repository for table reservations and active combinations"""

    @staticmethod
    def get_table_status(db: Session, tables: Iterable[int], booking_date: date) -> dict[int, str]:
        tables = list(tables)
        booked = {
            row.table_number
            for row in db.query(TableReservation.table_number).filter(
                TableReservation.booking_date == booking_date,
                TableReservation.table_number.in_(tables),
            )
        }
        return {t: ("booked" if t in booked else "free") for t in tables}

    @staticmethod
    def get_active_combination_ids(db: Session, booking_date: date) -> set[str]:
        return {
            row.combination_id
            for row in db.query(ActiveCombination.combination_id).filter(
                ActiveCombination.booking_date == booking_date
            )
        }

    @staticmethod
    def get_active_tables(db: Session) -> list[VenueTable]:
        return (
            db.query(VenueTable)
            .filter(VenueTable.is_active.is_(True))
            .order_by(VenueTable.capacity_max, VenueTable.table_number)
            .all()
        )

    @staticmethod
    def get_tables(db: Session, table_numbers: Iterable[int]) -> dict[int, VenueTable]:
        """Active tables among the given numbers, keyed by number"""
        rows = (
            db.query(VenueTable)
            .filter(
                VenueTable.table_number.in_(list(table_numbers)),
                VenueTable.is_active.is_(True),
            )
            .all()
        )
        return {row.table_number: row for row in rows}

    @staticmethod
    def get_premium_table_numbers(db: Session) -> set[int]:
        return {
            row.table_number
            for row in db.query(VenueTable.table_number).filter(VenueTable.is_premium.is_(True))
        }

    @staticmethod
    def assign_tables(
        db: Session,
        booking_id: int,
        tables: Iterable[int],
        booking_date: date,
        combination_id: str = None,
    ) -> None:
        """
        Claim tables (and the combination, if any) for a night.

        Unique keys on (table, night) and (combination, night) make this the
        atomic commit point for table assignment. Does not commit.
        """
        try:
            for table in tables:
                db.add(
                    TableReservation(
                        booking_id=booking_id, table_number=table, booking_date=booking_date
                    )
                )
            if combination_id:
                db.add(
                    ActiveCombination(
                        combination_id=combination_id,
                        booking_id=booking_id,
                        booking_date=booking_date,
                    )
                )
            db.flush()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Tables were taken by a concurrent booking")

    @staticmethod
    def release_booking(db: Session, booking_id: int) -> None:
        """Free a cancelled booking's tables and combination. Does not commit."""
        db.query(TableReservation).filter(TableReservation.booking_id == booking_id).delete(
            synchronize_session=False
        )
        db.query(ActiveCombination).filter(ActiveCombination.booking_id == booking_id).delete(
            synchronize_session=False
        )
