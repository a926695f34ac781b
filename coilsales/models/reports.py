from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime
from .payment import Payment

# Valeurs dérivées : jamais persistées, recalculées à la demande.

class DocumentTotals(BaseModel):
    items_total_ht: float = 0.0
    fees_ht: float = 0.0
    total_ht: float = 0.0
    tax_amount: float = 0.0
    total_ttc: float = 0.0

class PaymentStatus(BaseModel):
    total_amount: float = 0.0
    total_paid: float = 0.0
    remaining_amount: float = 0.0
    is_fully_paid: bool = False
    payments: List[Payment] = Field(default_factory=list)

class PaidFlag(BaseModel):
    is_paid: bool
    paid_at: Optional[datetime] = None

class ClientDebt(BaseModel):
    client_id: str
    client_name: str = ""
    amount: float = 0.0

class DebtSummary(BaseModel):
    total_debt: float = 0.0
    overdue_debt: float = 0.0
    upcoming_debt: float = 0.0
    debt_by_client: List[ClientDebt] = Field(default_factory=list)

class MonthlyAmount(BaseModel):
    month: str  # YYYY-MM
    amount: float = 0.0

class SalesSummary(BaseModel):
    total_sales: float = 0.0
    invoiced_sales: float = 0.0
    uninvoiced_sales: float = 0.0
    monthly_sales: List[MonthlyAmount] = Field(default_factory=list)

class DashboardStats(BaseModel):
    total_sales: int = 0
    total_invoices: int = 0
    paid_invoices: int = 0
    unpaid_invoices: int = 0
    overdue_invoices: int = 0
    total_revenue: float = 0.0
    revenue_collected: float = 0.0
    outstanding_amount: float = 0.0
    payment_method_totals: Dict[str, float] = Field(default_factory=dict)
