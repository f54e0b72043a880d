import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./venue_booking.db")

# Arrival times and "tonight" are in the venue's local time
VENUE_TIMEZONE = os.getenv("VENUE_TIMEZONE", "Europe/London")

# Stripe refunds (payment capture happens upstream; only refunds are issued here)
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_API_URL = os.getenv("STRIPE_API_URL", "https://api.stripe.com/v1")
STRIPE_TIMEOUT_SECONDS = float(os.getenv("STRIPE_TIMEOUT_SECONDS", "10"))

# Signing secret for check-in QR payloads handed to the notification service
CHECKIN_SIGNING_SECRET = os.getenv("CHECKIN_SIGNING_SECRET")
if not CHECKIN_SIGNING_SECRET:
    import warnings

    warnings.warn(
        "CHECKIN_SIGNING_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    CHECKIN_SIGNING_SECRET = "INSECURE-DEV-CHECKIN-SECRET"  # noqa: S105 - Dev fallback only

# Table combinations are configuration, not code
TABLE_COMBINATIONS_PATH = os.getenv(
    "TABLE_COMBINATIONS_PATH",
    str(Path(__file__).resolve().parent / "data" / "table_combinations.json"),
)

# ---------------------------------------------------------------------------
# Booking policy parameters
# ---------------------------------------------------------------------------

# Tables per customer per night, keyed by loyalty tier
TIER_TABLE_QUOTAS = {
    "standard": int(os.getenv("QUOTA_STANDARD", "2")),
    "gold": int(os.getenv("QUOTA_GOLD", "3")),
    "platinum": int(os.getenv("QUOTA_PLATINUM", "3")),
}
VIP_TIERS = {"gold", "platinum"}
MAX_OVERRIDE_TABLES = int(os.getenv("MAX_OVERRIDE_TABLES", "2"))
MAX_PARTY_SIZE = int(os.getenv("MAX_PARTY_SIZE", "20"))
MAX_TABLES_PER_REQUEST = int(os.getenv("MAX_TABLES_PER_REQUEST", "4"))

# Risk score weights (must sum to 100 so the score stays within [0, 100])
RISK_WEIGHT_NO_SHOWS = float(os.getenv("RISK_WEIGHT_NO_SHOWS", "50"))
RISK_WEIGHT_CANCELLATIONS = float(os.getenv("RISK_WEIGHT_CANCELLATIONS", "30"))
RISK_WEIGHT_RECENCY = float(os.getenv("RISK_WEIGHT_RECENCY", "20"))
RISK_RECENCY_FULL_DAYS = int(os.getenv("RISK_RECENCY_FULL_DAYS", "365"))

# Table combinations; premium tables are flagged on the venue_tables rows
COMBINATION_THRESHOLD = int(os.getenv("COMBINATION_THRESHOLD", "7"))
BASE_TABLE_PRICE = float(os.getenv("BASE_TABLE_PRICE", "50.0"))
PREMIUM_MULTIPLIER = float(os.getenv("PREMIUM_MULTIPLIER", "1.2"))

# Cancellation windows
FULL_REFUND_HOURS = float(os.getenv("FULL_REFUND_HOURS", "48"))
PARTIAL_REFUND_HOURS = float(os.getenv("PARTIAL_REFUND_HOURS", "24"))
PARTIAL_REFUND_RATIO = float(os.getenv("PARTIAL_REFUND_RATIO", "0.5"))

# References and check-in codes
REFERENCE_PREFIX = "BRL"
REFERENCE_MIN_YEAR = int(os.getenv("REFERENCE_MIN_YEAR", "2025"))
REFERENCE_MAX_ATTEMPTS = int(os.getenv("REFERENCE_MAX_ATTEMPTS", "50"))
REFERENCE_WRITE_RETRIES = int(os.getenv("REFERENCE_WRITE_RETRIES", "3"))
CHECKIN_CODE_LENGTH = 6
# No O or 0 so door staff cannot misread a code
CHECKIN_CODE_ALPHABET = "ABCDEFGHIJKLMNPQRSTUVWXYZ123456789"

# Refund retry worker
REFUND_MAX_ATTEMPTS = int(os.getenv("REFUND_MAX_ATTEMPTS", "5"))
