from .router import router
from .service import LimitService, get_quota

__all__ = ["router", "LimitService", "get_quota"]
