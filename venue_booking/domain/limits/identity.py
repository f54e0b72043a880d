"""
Customer identity matching across contact channels.

Each matcher looks a customer up through one channel and tags the result
with a confidence. Matchers run in rank order; the best-ranked hit decides
which customer the contact details belong to.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from rapidfuzz import fuzz
from sqlalchemy.orm import Session

from ...models import Customer
from ...shared.validators import normalize_name, validate_email, validate_uk_phone

logger = logging.getLogger(__name__)

FUZZY_NAME_THRESHOLD = 85
PHONE_SUFFIX_DIGITS = 6


@dataclass
class ContactInfo:
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_raw(cls, email=None, phone=None, name=None) -> "ContactInfo":
        """Normalize whatever the caller supplied; bad values are simply not matched on"""
        try:
            email = validate_email(email)
        except ValueError:
            email = None
        try:
            phone = validate_uk_phone(phone)
        except ValueError:
            phone = None
        return cls(email=email, phone=phone, name=name)


@dataclass
class IdentityMatch:
    platform: str
    customer: Customer
    confidence: float


@dataclass
class IdentityResult:
    matches: list[IdentityMatch] = field(default_factory=list)

    @property
    def identified(self) -> bool:
        return bool(self.matches)

    @property
    def best(self) -> Optional[IdentityMatch]:
        return self.matches[0] if self.matches else None

    @property
    def customer(self) -> Optional[Customer]:
        return self.best.customer if self.best else None

    @property
    def platforms(self) -> list[str]:
        return [m.platform for m in self.matches]

    def as_dict(self) -> dict:
        return {
            "identified": self.identified,
            "platforms": self.platforms,
            "customer_id": self.customer.id if self.customer else None,
            "confidence": self.best.confidence if self.best else 0.0,
        }


class IdentityMatcher:
    platform = ""
    confidence = 0.0

    def match(self, db: Session, contact: ContactInfo) -> Optional[Customer]:
        raise NotImplementedError


class ExactEmailMatcher(IdentityMatcher):
    platform = "email"
    confidence = 1.0

    def match(self, db, contact):
        if not contact.email:
            return None
        return db.query(Customer).filter(Customer.email == contact.email).first()


class ExactPhoneMatcher(IdentityMatcher):
    platform = "phone"
    confidence = 0.9

    def match(self, db, contact):
        if not contact.phone:
            return None
        return db.query(Customer).filter(Customer.phone == contact.phone).first()


class FuzzyNamePhoneMatcher(IdentityMatcher):
    """Same name (allowing typos) and same trailing phone digits"""

    platform = "name_phone"
    confidence = 0.6

    def match(self, db, contact):
        if not contact.name or not contact.phone:
            return None

        suffix = contact.phone[-PHONE_SUFFIX_DIGITS:]
        candidates = db.query(Customer).filter(Customer.phone.like(f"%{suffix}")).all()
        wanted = normalize_name(contact.name)

        best, best_score = None, 0.0
        for candidate in candidates:
            score = fuzz.token_sort_ratio(wanted, normalize_name(candidate.name))
            if score >= FUZZY_NAME_THRESHOLD and score > best_score:
                best, best_score = candidate, score
        return best


DEFAULT_MATCHERS = (ExactEmailMatcher(), ExactPhoneMatcher(), FuzzyNamePhoneMatcher())


class CustomerIdentityResolver:
    def __init__(self, matchers=DEFAULT_MATCHERS):
        self.matchers = list(matchers)

    def resolve(self, db: Session, contact: ContactInfo) -> IdentityResult:
        result = IdentityResult()
        for matcher in self.matchers:
            customer = matcher.match(db, contact)
            if customer is None:
                continue
            if result.customer is not None and customer.id != result.customer.id:
                # A lower-ranked channel points at someone else; keep the better match
                logger.warning(
                    f"⚠️ Identity mismatch: {matcher.platform} matched customer {customer.id}, "
                    f"expected {result.customer.id}"
                )
                continue
            result.matches.append(IdentityMatch(matcher.platform, customer, matcher.confidence))
        return result
