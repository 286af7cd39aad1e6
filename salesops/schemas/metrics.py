from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CompanyMetrics(BaseModel):
    """Dashboard KPIs derived from inclusion-flagged appointments.

    ``first_calls`` counts flag 1 plus legacy rows without a flag;
    ``countable_appointments`` counts every flag ``>= 1``.
    """

    first_calls: int = 0
    countable_appointments: int = 0
    shows: int = 0
    no_shows: int = 0
    signed: int = 0
    cancellations: int = 0
    show_rate: Optional[float] = Field(None, description="Percentage, 2 decimals")
    close_rate: Optional[float] = Field(None, description="Percentage, 2 decimals")
    cash_collected: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")
    released_commission: Decimal = Decimal("0")
