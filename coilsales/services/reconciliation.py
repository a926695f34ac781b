"""
Rapprochement des paiements : payé / reste à payer / dette / avoir.

Fonctions pures sur des collections déjà chargées en mémoire. Seule
erreur levée : NotFoundError quand la vente ou la facture demandée
n'existe pas. Les paiements supprimés (is_deleted) ne comptent jamais.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from coilsales.errors import NotFoundError
from coilsales.models.client import Client
from coilsales.models.invoice import Invoice
from coilsales.models.payment import Payment
from coilsales.models.reports import ClientDebt, DebtSummary, PaidFlag, PaymentStatus
from coilsales.models.sale import Sale
from coilsales.services.calculator import round_money, to_amount


# ---------- Filtres ---------- #

def active_payments(payments: Iterable[Payment]) -> List[Payment]:
    return [p for p in payments or [] if not p.is_deleted]

def deleted_payments(payments: Iterable[Payment]) -> List[Payment]:
    """Vue archive : paiements supprimés, restaurables."""
    return [p for p in payments or [] if p.is_deleted]

def _active_sales(sales: Iterable[Sale]) -> List[Sale]:
    return [s for s in sales or [] if not s.is_deleted]

def _payments_for_sale(sale_id: str, payments: Iterable[Payment]) -> List[Payment]:
    return [p for p in active_payments(payments) if p.sale_id == sale_id]

def _sales_by_id(sales: Iterable[Sale]) -> Dict[str, Sale]:
    return {s.id: s for s in sales or []}


def _status(total_amount: float, payments: List[Payment]) -> PaymentStatus:
    total = round_money(total_amount)
    paid = round_money(sum(to_amount(p.amount) for p in payments))
    # jamais négatif, jamais au-delà du total (trop-perçu -> avoir client)
    remaining = round_money(max(0.0, min(total, total - paid)))
    return PaymentStatus(
        total_amount=total,
        total_paid=paid,
        remaining_amount=remaining,
        is_fully_paid=remaining == 0,
        payments=payments,
    )


# ---------- Vente / facture ---------- #

def get_sale_payment_status(sale: Optional[Sale], payments: Iterable[Payment]) -> PaymentStatus:
    if sale is None:
        raise NotFoundError("sale", None)
    return _status(sale.total_ttc, _payments_for_sale(sale.id, payments))

def _member_sales(invoice: Invoice, sales: Iterable[Sale]) -> List[Sale]:
    by_id = _sales_by_id(sales)
    out: List[Sale] = []
    for sid in invoice.sales_ids:
        sale = by_id.get(sid)
        if sale is None:
            raise NotFoundError("sale", sid)
        out.append(sale)
    return out

def get_invoice_payment_status(
    invoice: Optional[Invoice], sales: Iterable[Sale], payments: Iterable[Payment]
) -> PaymentStatus:
    """Une facture n'a pas de paiement propre : elle hérite de ceux de ses ventes."""
    if invoice is None:
        raise NotFoundError("invoice", None)
    matched: List[Payment] = []
    for sale in _member_sales(invoice, sales):
        matched.extend(_payments_for_sale(sale.id, payments))
    return _status(invoice.total_ttc, matched)

def reconcile_invoice_paid_flag(
    invoice: Invoice,
    sales: Iterable[Sale],
    payments: Iterable[Payment],
    now: Optional[datetime] = None,
) -> PaidFlag:
    members = _member_sales(invoice, sales)
    is_paid = all(get_sale_payment_status(s, payments).is_fully_paid for s in members)
    if not is_paid:
        return PaidFlag(is_paid=False, paid_at=None)
    if invoice.is_paid and invoice.paid_at is not None:
        return PaidFlag(is_paid=True, paid_at=invoice.paid_at)
    return PaidFlag(is_paid=True, paid_at=now or datetime.now())


# ---------- Client ---------- #

def _client_totals(client_id: str, sales: Iterable[Sale], payments: Iterable[Payment]) -> tuple[float, float]:
    total_sales = sum(to_amount(s.total_ttc) for s in _active_sales(sales) if s.client_id == client_id)
    total_paid = sum(to_amount(p.amount) for p in active_payments(payments) if p.client_id == client_id)
    return total_sales, total_paid

def get_client_debt(client_id: str, sales: Iterable[Sale], payments: Iterable[Payment]) -> float:
    # dette nette : un trop-perçu sur une vente compense une autre vente du même client
    total_sales, total_paid = _client_totals(client_id, sales, payments)
    return round_money(max(0.0, total_sales - total_paid))

def get_client_credit_balance(client_id: str, sales: Iterable[Sale], payments: Iterable[Payment]) -> float:
    total_sales, total_paid = _client_totals(client_id, sales, payments)
    return round_money(max(0.0, total_paid - total_sales))


def _local_naive(dt: datetime) -> datetime:
    # heure locale sans fuseau : les dates naïves sont déjà en heure locale
    return dt.astimezone().replace(tzinfo=None) if dt.tzinfo is not None else dt


def is_past_due(due_date: Optional[datetime], now: datetime) -> bool:
    """Échéance dépassée ; dates avec ou sans fuseau comparables entre elles."""
    if due_date is None:
        return False
    return _local_naive(due_date) < _local_naive(now)


def get_debt_summary(
    clients: Iterable[Client],
    sales: Iterable[Sale],
    payments: Iterable[Payment],
    invoices: Iterable[Invoice],
    now: Optional[datetime] = None,
) -> DebtSummary:
    now = now or datetime.now()
    live_sales = _active_sales(sales)
    live_payments = active_payments(payments)

    debt_by_client: List[ClientDebt] = []
    for c in clients or []:
        amount = get_client_debt(c.id, live_sales, live_payments)
        if amount > 0:
            debt_by_client.append(ClientDebt(client_id=c.id, client_name=c.name, amount=amount))
    debt_by_client.sort(key=lambda d: d.amount, reverse=True)

    total_sales = sum(to_amount(s.total_ttc) for s in live_sales)
    total_paid = sum(to_amount(p.amount) for p in live_payments)
    total_debt = round_money(max(0.0, total_sales - total_paid))

    # retard : vente par vente, seulement si la facture liée est échue
    due_dates = {i.id: i.due_date for i in invoices or [] if not i.is_deleted}
    overdue = 0.0
    for sale in live_sales:
        due = due_dates.get(sale.invoice_id) if sale.invoice_id else None
        if not is_past_due(due, now):
            continue
        remaining = get_sale_payment_status(sale, live_payments).remaining_amount
        if remaining > 0:
            overdue += remaining

    overdue_debt = round_money(overdue)
    return DebtSummary(
        total_debt=total_debt,
        overdue_debt=overdue_debt,
        upcoming_debt=round_money(max(0.0, total_debt - overdue_debt)),
        debt_by_client=debt_by_client,
    )
