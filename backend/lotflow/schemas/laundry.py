"""
Pydantic schemas for laundry summaries
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class LaundryDivergence(BaseModel):
    """Sent vs returned totals for one variation label."""
    label: str
    sent: float
    returned: float
    delta: float = Field(..., description="returned - sent")


class LaundryLotTotals(BaseModel):
    lotId: Optional[str] = None
    productName: Optional[str] = None
    completed: bool
    sent: float
    returned: float


class LaundrySummaryResponse(BaseModel):
    dashboardId: str
    pending: int
    completed: int
    averageDuration: float = Field(..., description="Mean turnaround in days")
    divergences: List[LaundryDivergence] = []
    lots: List[LaundryLotTotals] = []
