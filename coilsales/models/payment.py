from __future__ import annotations
from pydantic import Field
from typing import Literal, Optional
from datetime import datetime
from .common import SoftDeletable, gen_id

PaymentMethod = Literal["cash", "bank_transfer", "check", "credit_card"]

class Payment(SoftDeletable):
    id: str = Field(default_factory=gen_id)
    sale_id: str
    client_id: str
    amount: float
    date: datetime = Field(default_factory=datetime.now)
    method: PaymentMethod = "cash"
    notes: Optional[str] = None
    check_number: Optional[str] = None
