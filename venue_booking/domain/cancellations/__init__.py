from .policy import compute_refund_eligibility, event_start
from .router import router
from .service import CancellationService

__all__ = ["router", "CancellationService", "compute_refund_eligibility", "event_start"]
