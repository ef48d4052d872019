"""
Pydantic schemas for lot update events
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from lotflow.services.lot_migration import MigrationOutcome


class LotChangeEvent(BaseModel):
    """Lot document before and after one write, as delivered by the trigger."""
    before: Optional[Dict[str, Any]] = Field(None, description="Lot data before the write")
    after: Optional[Dict[str, Any]] = Field(None, description="Lot data after the write")


class LotMigrationResponse(BaseModel):
    outcome: MigrationOutcome
