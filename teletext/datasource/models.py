"""
Data envelope handed to presentation.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class Provenance(str, Enum):
    """Where an envelope's payload came from."""

    LIVE = "live"  # Fresh from a provider (or its still-fresh cache)
    STALE = "stale"  # Expired cache after every provider failed
    RATE_LIMITED = "rate_limited"  # Cache served because the budget is spent
    DEMO = "demo"  # Deterministic fixtures


class DataEnvelope(BaseModel):
    """One resolution result for a section/category. Immutable."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    section: str
    category: str
    payload: Any
    fetched_at: datetime
    provenance: Provenance
    source: str | None = None
    source_error: str | None = None
    notice: str | None = None

    @property
    def is_live(self) -> bool:
        return self.provenance == Provenance.LIVE

    @property
    def is_degraded(self) -> bool:
        return self.provenance != Provenance.LIVE
