from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from .common import SoftDeletable, gen_id


class LineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=gen_id)
    description: str = ""
    quantity: float = 0.0      # tonnes
    unit_price: float = 0.0    # prix à la tonne, HT
    total_ht: float = 0.0      # snapshot
    total_ttc: float = 0.0     # snapshot

    # bobine (optionnel)
    coil_ref: Optional[str] = None
    coil_thickness: Optional[float] = None
    coil_width: Optional[float] = None
    top_coat_ral: Optional[str] = None
    back_coat_ral: Optional[str] = None
    coil_weight: Optional[float] = None


class Sale(SoftDeletable):
    id: str = Field(default_factory=gen_id)
    client_id: str
    date: datetime = Field(default_factory=datetime.now)

    items: List[LineItem] = Field(default_factory=list)
    transportation_fee: float = 0.0
    tax_rate: float = 0.19

    total_ht: float = 0.0
    total_ttc: float = 0.0

    is_invoiced: bool = False
    invoice_id: Optional[str] = None

    payment_method: Optional[str] = None
    notes: Optional[str] = None
