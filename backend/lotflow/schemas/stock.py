"""
Pydantic schemas for stock documents and movement ledger records

Field names match the stored Firestore documents.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class MovementType(str, Enum):
    """Direction of a stock movement"""
    ENTRADA = "Entrada"
    SAIDA = "Saída"


class StockMovement(BaseModel):
    """Immutable ledger record; created once and never updated."""
    productId: str
    variationId: str
    quantity: float = Field(..., ge=0)
    type: MovementType
    user: str
    userEmail: Optional[str] = None
    timestamp: Any = Field(..., description="datetime or Firestore timestamp")
    sourceEntryId: Optional[str] = None

    def to_document(self) -> dict:
        document = self.model_dump(mode="python", exclude={"sourceEntryId"})
        document["type"] = self.type.value
        if self.sourceEntryId:
            document["sourceEntryId"] = self.sourceEntryId
        return document


class ActingUser(BaseModel):
    """Identity recorded on movements."""
    uid: str
    email: Optional[str] = None
