from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, Optional

from coilsales.models.reports import DashboardStats, DebtSummary, MonthlyAmount, SalesSummary
from coilsales.models.sale import Sale
from coilsales.services import reconciliation as rec
from coilsales.services.calculator import round_money, to_amount
from coilsales.services.ledger import Ledger
from coilsales.services.workflow_service import WorkflowService


def get_sales_summary(sales: Iterable[Sale]) -> SalesSummary:
    """CA HT : total, facturé / non facturé, par mois (YYYY-MM, ordre chronologique)."""
    total = 0.0
    invoiced = 0.0
    monthly: Dict[str, float] = defaultdict(float)
    for s in sales:
        if s.is_deleted:
            continue
        amount = to_amount(s.total_ht)
        total += amount
        if s.is_invoiced:
            invoiced += amount
        monthly[s.date.strftime("%Y-%m")] += amount
    return SalesSummary(
        total_sales=round_money(total),
        invoiced_sales=round_money(invoiced),
        uninvoiced_sales=round_money(total - invoiced),
        monthly_sales=[MonthlyAmount(month=m, amount=round_money(a)) for m, a in sorted(monthly.items())],
    )


def get_dashboard_stats(ledger: Ledger, now: Optional[datetime] = None) -> DashboardStats:
    now = now or datetime.now()
    sales = ledger.active_sales()
    invoices = ledger.active_invoices()
    payments = ledger.active_payments()

    paid = [i for i in invoices if i.is_paid]
    overdue = [i for i in invoices if not i.is_paid and rec.is_past_due(i.due_date, now)]

    method_totals: Dict[str, float] = defaultdict(float)
    for p in payments:
        method_totals[p.method] += to_amount(p.amount)

    collected = sum(to_amount(p.amount) for p in payments)
    total_ttc = sum(to_amount(s.total_ttc) for s in sales)
    return DashboardStats(
        total_sales=len(sales),
        total_invoices=len(invoices),
        paid_invoices=len(paid),
        unpaid_invoices=len(invoices) - len(paid),
        overdue_invoices=len(overdue),
        total_revenue=round_money(sum(to_amount(s.total_ht) for s in sales)),
        revenue_collected=round_money(collected),
        outstanding_amount=round_money(max(0.0, total_ttc - collected)),
        payment_method_totals={k: round_money(v) for k, v in method_totals.items()},
    )


class ReportService:
    def __init__(self, workflow: Optional[WorkflowService] = None):
        self.workflow = workflow or WorkflowService()

    def sales_summary(self) -> SalesSummary:
        return get_sales_summary(self.workflow.sales.list_sales())

    def debt_summary(self, now: Optional[datetime] = None) -> DebtSummary:
        return self.workflow.snapshot().debt_summary(now=now)

    def dashboard(self, now: Optional[datetime] = None) -> DashboardStats:
        return get_dashboard_stats(self.workflow.snapshot(), now=now)
