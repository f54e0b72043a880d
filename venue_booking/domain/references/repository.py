"""Reference repository - uniqueness lookups against persisted references and codes"""

from sqlalchemy import Integer, cast, func
from sqlalchemy.orm import Session

from ...config import REFERENCE_PREFIX
from ...models import Booking, CheckInCode


class ReferenceRepository:
    """Repository for booking reference and check-in code lookups"""

    @staticmethod
    def reference_exists(db: Session, reference: str) -> bool:
        return db.query(Booking.id).filter(Booking.reference == reference).first() is not None

    @staticmethod
    def check_in_code_exists(db: Session, code: str) -> bool:
        return db.query(CheckInCode.id).filter(CheckInCode.code == code).first() is not None

    @staticmethod
    def count_issued(db: Session, year: int, low: int, high: int) -> int:
        """Count references issued for a year whose numeric suffix falls in [low, high]"""
        prefix = f"{REFERENCE_PREFIX}-{year}-"
        suffix = cast(func.substr(Booking.reference, len(prefix) + 1, 5), Integer)
        return (
            db.query(func.count(Booking.id))
            .filter(Booking.reference.like(f"{prefix}%"), suffix.between(low, high))
            .scalar()
            or 0
        )
