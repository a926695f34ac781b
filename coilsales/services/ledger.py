from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from coilsales.errors import NotFoundError
from coilsales.models.client import Client
from coilsales.models.invoice import Invoice
from coilsales.models.payment import Payment
from coilsales.models.reports import DebtSummary, PaidFlag, PaymentStatus
from coilsales.models.sale import Sale
from coilsales.services import reconciliation as rec


class Ledger(BaseModel):
    """
    Instantané en lecture seule des entités chargées.
    Reconstruit par l'orchestration après chaque mutation, jamais partagé
    globalement.
    """

    clients: List[Client] = Field(default_factory=list)
    sales: List[Sale] = Field(default_factory=list)
    invoices: List[Invoice] = Field(default_factory=list)
    payments: List[Payment] = Field(default_factory=list)

    # ----------- lookups -----------
    def get_client(self, client_id: str) -> Client:
        for c in self.clients:
            if c.id == client_id:
                return c
        raise NotFoundError("client", client_id)

    def get_sale(self, sale_id: str, include_deleted: bool = False) -> Sale:
        for s in self.sales:
            if s.id == sale_id and (include_deleted or not s.is_deleted):
                return s
        raise NotFoundError("sale", sale_id)

    def get_invoice(self, invoice_id: str, include_deleted: bool = False) -> Invoice:
        for i in self.invoices:
            if i.id == invoice_id and (include_deleted or not i.is_deleted):
                return i
        raise NotFoundError("invoice", invoice_id)

    def active_sales(self) -> List[Sale]:
        return [s for s in self.sales if not s.is_deleted]

    def active_invoices(self) -> List[Invoice]:
        return [i for i in self.invoices if not i.is_deleted]

    def active_payments(self) -> List[Payment]:
        return rec.active_payments(self.payments)

    def archived_payments(self) -> List[Payment]:
        return rec.deleted_payments(self.payments)

    # ----------- statuts -----------
    def sale_payment_status(self, sale_id: str) -> PaymentStatus:
        return rec.get_sale_payment_status(self.get_sale(sale_id), self.payments)

    def invoice_payment_status(self, invoice_id: str) -> PaymentStatus:
        return rec.get_invoice_payment_status(self.get_invoice(invoice_id), self.sales, self.payments)

    def invoice_paid_flag(self, invoice_id: str, now: Optional[datetime] = None) -> PaidFlag:
        return rec.reconcile_invoice_paid_flag(self.get_invoice(invoice_id), self.sales, self.payments, now=now)

    def client_debt(self, client_id: str) -> float:
        return rec.get_client_debt(client_id, self.sales, self.payments)

    def client_credit_balance(self, client_id: str) -> float:
        return rec.get_client_credit_balance(client_id, self.sales, self.payments)

    def debt_summary(self, now: Optional[datetime] = None) -> DebtSummary:
        return rec.get_debt_summary(self.clients, self.sales, self.payments, self.invoices, now=now)
