"""
Table combination configuration.

Combinations are physically adjacent tables set up and priced as one unit.
They live in a JSON file so the venue can add one without a code change.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ...config import TABLE_COMBINATIONS_PATH

logger = logging.getLogger(__name__)


class TableCombinationConfig(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    tables: list[int] = Field(..., min_length=2)
    min_capacity: int = Field(..., ge=1)
    max_capacity: int = Field(..., ge=1)
    combination_fee: float = Field(0.0, ge=0)
    setup_time_minutes: int = Field(0, ge=0)
    floor: Optional[str] = None
    features: list[str] = []

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_shape(self):
        if len(set(self.tables)) != len(self.tables):
            raise ValueError(f"Combination {self.id} lists a table twice")
        if self.min_capacity > self.max_capacity:
            raise ValueError(f"Combination {self.id} has min_capacity above max_capacity")
        return self

    def fits(self, party_size: int) -> bool:
        return self.min_capacity <= party_size <= self.max_capacity


class CombinationFile(BaseModel):
    combinations: list[TableCombinationConfig]


def parse_combinations(raw: dict) -> tuple[TableCombinationConfig, ...]:
    combinations = CombinationFile.model_validate(raw).combinations
    seen: set[str] = set()
    for combo in combinations:
        if combo.id in seen:
            raise ValueError(f"Duplicate combination id {combo.id}")
        seen.add(combo.id)
    return tuple(combinations)


@lru_cache(maxsize=8)
def load_combinations(path: str = TABLE_COMBINATIONS_PATH) -> tuple[TableCombinationConfig, ...]:
    """Load and validate the combination table; cached per path"""
    with Path(path).open(encoding="utf-8") as f:
        combinations = parse_combinations(json.load(f))
    logger.info(f"📋 Loaded {len(combinations)} table combination(s) from {path}")
    return combinations
