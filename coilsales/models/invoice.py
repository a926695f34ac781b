from __future__ import annotations
from pydantic import Field
from typing import List, Optional
from datetime import datetime
from .common import SoftDeletable, gen_id

class Invoice(SoftDeletable):
    id: str = Field(default_factory=gen_id)
    invoice_number: str = ""
    client_id: str

    sales_ids: List[str] = Field(default_factory=list)

    date: datetime = Field(default_factory=datetime.now)
    due_date: datetime = Field(default_factory=datetime.now)

    total_ht: float = 0.0
    total_ttc: float = 0.0
    tax_rate: float = 0.19

    is_paid: bool = False
    paid_at: Optional[datetime] = None

    payment_method: Optional[str] = None
    notes: Optional[str] = None
