from .router import door_router, router
from .service import BookingService

__all__ = ["router", "door_router", "BookingService"]
