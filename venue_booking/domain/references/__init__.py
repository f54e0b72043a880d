from sqlalchemy.orm import Session

from .generator import ReferenceGenerator
from .repository import ReferenceRepository
from .router import router


def build_reference_generator(db: Session, rng=None) -> ReferenceGenerator:
    """Generator wired to the bookings table for collision checks"""
    repo = ReferenceRepository()
    return ReferenceGenerator(
        rng=rng,
        reference_exists=lambda ref: repo.reference_exists(db, ref),
        code_exists=lambda code: repo.check_in_code_exists(db, code),
        issued_count=lambda year, low, high: repo.count_issued(db, year, low, high),
    )


__all__ = ["router", "ReferenceGenerator", "ReferenceRepository", "build_reference_generator"]
