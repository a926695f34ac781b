from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field


class Numbering(BaseModel):
    model_config = ConfigDict(extra="ignore")

    invoice_prefix: str = "INV-"
    invoice_seq: int = 1


class AppSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tax_rate: float = Field(default=0.19, ge=0)
    payment_terms_days: int = Field(default=30, ge=0)
    numbering: Numbering = Field(default_factory=Numbering)
    company: dict = Field(default_factory=dict)
