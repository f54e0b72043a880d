from .config import TableCombinationConfig, load_combinations
from .router import router
from .service import CombinationService

__all__ = ["router", "CombinationService", "TableCombinationConfig", "load_combinations"]
