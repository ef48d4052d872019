"""
Pydantic schemas for dashboards (production stages)
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DashboardResponse(BaseModel):
    """Stage document; unknown fields are passed through."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    order: Optional[float] = None
