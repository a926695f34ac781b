from __future__ import annotations
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union
import logging
import os

from coilsales.config import (
    CLIENTS_FILE, INVOICES_FILE, PAYMENTS_FILE, SALES_FILE, SETTINGS_FILE, data_dir,
)
from coilsales.errors import InvoiceMembershipError, NotFoundError
from coilsales.models.client import Client
from coilsales.models.invoice import Invoice
from coilsales.models.payment import Payment
from coilsales.models.sale import LineItem, Sale
from coilsales.services import reconciliation as rec
from coilsales.services.calculator import compute_invoice_totals, to_amount
from coilsales.services.client_service import ClientService
from coilsales.services.invoice_service import InvoiceService
from coilsales.services.ledger import Ledger
from coilsales.services.payment_service import PaymentService
from coilsales.services.sale_service import SaleService, apply_sale_totals
from coilsales.services.settings_service import SettingsService

log = logging.getLogger(__name__)

_SALE_EDITABLE = {"items", "transportation_fee", "tax_rate", "date", "payment_method", "notes"}
_PAYMENT_EDITABLE = {"amount", "method", "date", "notes", "check_number"}


class WorkflowService:
    """
    Orchestration : seul point de mutation des ventes, factures et paiements.
    Après chaque mutation, les totaux et le statut payé des factures sont
    recalculés immédiatement (pas de fenêtre d'incohérence).
    """

    def __init__(self, root: Optional[Union[os.PathLike, str]] = None):
        base = Path(root) if root else data_dir()
        self.settings = SettingsService(base / SETTINGS_FILE)
        self.clients = ClientService(base / CLIENTS_FILE)
        self.sales = SaleService(base / SALES_FILE)
        self.invoices = InvoiceService(base / INVOICES_FILE, settings=self.settings)
        self.payments = PaymentService(base / PAYMENTS_FILE)

    # ----------- lecture -----------
    def snapshot(self) -> Ledger:
        return Ledger(
            clients=self.clients.list_clients(),
            sales=self.sales.list_all(),
            invoices=self.invoices.list_all(),
            payments=self.payments.list_payments(include_deleted=True),
        )

    def _require_client(self, client_id: str) -> Client:
        c = self.clients.get_by_id(client_id)
        if c is None:
            raise NotFoundError("client", client_id)
        return c

    def _require_sale(self, sale_id: str) -> Sale:
        s = self.sales.get_by_id(sale_id)
        if s is None:
            raise NotFoundError("sale", sale_id)
        return s

    def _require_invoice(self, invoice_id: str, include_deleted: bool = False) -> Invoice:
        inv = self.invoices.get_by_id(invoice_id, include_deleted=include_deleted)
        if inv is None:
            raise NotFoundError("invoice", invoice_id)
        return inv

    def _require_payment(self, payment_id: str, include_deleted: bool = False) -> Payment:
        p = self.payments.get_by_id(payment_id, include_deleted=include_deleted)
        if p is None:
            raise NotFoundError("payment", payment_id)
        return p

    # ----------- clients -----------
    def create_client(self, client: Client) -> Client:
        return self.clients.add_client(client)

    # ----------- ventes -----------
    @staticmethod
    def _to_line_items(items: Iterable[Union[LineItem, Dict[str, Any]]]) -> List[LineItem]:
        return [it if isinstance(it, LineItem) else LineItem(**it) for it in items or []]

    def _tax_rate(self, value: Any) -> float:
        # None : taux des paramètres ; texte ("0,2") accepté, négatif -> 0
        if value is None:
            return self.settings.load().tax_rate
        return max(0.0, to_amount(value))

    def create_sale(
        self,
        client_id: str,
        items: Iterable[Union[LineItem, Dict[str, Any]]],
        transportation_fee: Any = 0.0,
        tax_rate: Any = None,
        date: Optional[datetime] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Sale:
        self._require_client(client_id)
        rate = self._tax_rate(tax_rate)
        sale = Sale(
            client_id=client_id,
            date=date or datetime.now(),
            items=self._to_line_items(items),
            transportation_fee=to_amount(transportation_fee),
            tax_rate=rate,
            payment_method=payment_method,
            notes=notes,
        )
        self.sales.add_sale(sale)
        log.info("Vente %s créée (client %s, TTC %.2f)", sale.id, client_id, sale.total_ttc)
        return sale

    def update_sale(self, sale_id: str, **changes: Any) -> Sale:
        unknown = set(changes) - _SALE_EDITABLE
        if unknown:
            raise ValueError(f"Champs non modifiables: {', '.join(sorted(unknown))}")
        sale = self._require_sale(sale_id)
        if "items" in changes:
            changes["items"] = self._to_line_items(changes["items"])
        if "transportation_fee" in changes:
            changes["transportation_fee"] = to_amount(changes["transportation_fee"])
        if "tax_rate" in changes:
            changes["tax_rate"] = self._tax_rate(changes["tax_rate"])
        sale = Sale.model_validate({**sale.model_dump(), **changes})
        apply_sale_totals(sale)
        self.sales.update_sale(sale)
        # la facture liée n'est pas recalculée ici : voir recompute_invoice()
        if sale.invoice_id:
            log.debug("Vente %s modifiée, facture %s non recalculée", sale.id, sale.invoice_id)
        return sale

    def delete_sale(self, sale_id: str) -> None:
        sale = self._require_sale(sale_id)
        if sale.invoice_id:
            inv = self.invoices.get_by_id(sale.invoice_id)
            if inv is not None:
                self.reconcile_invoice_membership(inv, [sid for sid in inv.sales_ids if sid != sale.id])
        for p in self.payments.list_by_sale(sale.id):
            self.payments.soft_delete(p.id)
        self.sales.soft_delete(sale.id)
        log.info("Vente %s supprimée", sale.id)

    def restore_sale(self, sale_id: str) -> Sale:
        sale = self.sales.get_by_id(sale_id, include_deleted=True)
        if sale is None:
            raise NotFoundError("sale", sale_id)
        self.sales.restore(sale_id)
        log.info("Vente %s restaurée", sale_id)
        return self._require_sale(sale_id)

    # ----------- factures -----------
    def _validate_membership(self, invoice: Invoice, sales_ids: List[str]) -> List[Sale]:
        members: List[Sale] = []
        for sid in sales_ids:
            sale = self._require_sale(sid)
            if sale.client_id != invoice.client_id:
                raise InvoiceMembershipError(
                    f"Vente {sid} (client {sale.client_id}) hors client de la facture {invoice.invoice_number or invoice.id}"
                )
            if sale.invoice_id and sale.invoice_id != invoice.id:
                raise InvoiceMembershipError(f"Vente {sid} déjà rattachée à la facture {sale.invoice_id}")
            members.append(sale)
        return members

    def reconcile_invoice_membership(
        self, invoice: Invoice, sales_ids: Iterable[str], now: Optional[datetime] = None
    ) -> Invoice:
        """
        Point unique de mise à jour de invoice.sales_ids : marque/démarque les
        ventes, recalcule les totaux puis le statut payé.
        """
        new_ids = list(dict.fromkeys(sales_ids))
        members = self._validate_membership(invoice, new_ids)

        for sid in set(invoice.sales_ids) - set(new_ids):
            old = self.sales.get_by_id(sid, include_deleted=True)
            if old is not None and old.invoice_id == invoice.id:
                old.is_invoiced = False
                old.invoice_id = None
                self.sales.update_sale(old)
        for sale in members:
            if sale.invoice_id != invoice.id or not sale.is_invoiced:
                sale.is_invoiced = True
                sale.invoice_id = invoice.id
                self.sales.update_sale(sale)

        invoice.sales_ids = new_ids
        invoice.total_ht, invoice.total_ttc = compute_invoice_totals(members)
        flag = rec.reconcile_invoice_paid_flag(invoice, members, self.payments.list_payments(), now=now)
        invoice.is_paid = flag.is_paid
        invoice.paid_at = flag.paid_at
        self.invoices.update_invoice(invoice)
        log.info("Facture %s : %d vente(s), TTC %.2f, payée=%s",
                 invoice.invoice_number, len(new_ids), invoice.total_ttc, invoice.is_paid)
        return invoice

    def create_invoice(
        self,
        client_id: str,
        sales_ids: Iterable[str],
        date: Optional[datetime] = None,
        due_date: Optional[datetime] = None,
        payment_method: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Invoice:
        self._require_client(client_id)
        ids = list(dict.fromkeys(sales_ids))
        s = self.settings.load()
        date = date or datetime.now()
        inv = Invoice(
            client_id=client_id,
            date=date,
            due_date=due_date or date + timedelta(days=s.payment_terms_days),
            tax_rate=s.tax_rate,
            payment_method=payment_method,
            notes=notes,
        )
        members = self._validate_membership(inv, ids)
        rates = {m.tax_rate for m in members}
        if len(rates) == 1:
            inv.tax_rate = rates.pop()
        self.invoices.add_invoice(inv)
        return self.reconcile_invoice_membership(inv, ids, now=now)

    def update_invoice_sales(self, invoice_id: str, sales_ids: Iterable[str], now: Optional[datetime] = None) -> Invoice:
        return self.reconcile_invoice_membership(self._require_invoice(invoice_id), sales_ids, now=now)

    def add_sale_to_invoice(self, invoice_id: str, sale_id: str, now: Optional[datetime] = None) -> Invoice:
        inv = self._require_invoice(invoice_id)
        return self.reconcile_invoice_membership(inv, [*inv.sales_ids, sale_id], now=now)

    def remove_sale_from_invoice(self, invoice_id: str, sale_id: str, now: Optional[datetime] = None) -> Invoice:
        inv = self._require_invoice(invoice_id)
        if sale_id not in inv.sales_ids:
            raise NotFoundError("sale", sale_id)
        return self.reconcile_invoice_membership(inv, [s for s in inv.sales_ids if s != sale_id], now=now)

    def recompute_invoice(self, invoice_id: str, now: Optional[datetime] = None) -> Invoice:
        """Rafraîchissement explicite (ex. après modification d'une vente facturée)."""
        inv = self._require_invoice(invoice_id)
        return self.reconcile_invoice_membership(inv, inv.sales_ids, now=now)

    def delete_invoice(self, invoice_id: str) -> None:
        inv = self._require_invoice(invoice_id)
        for sid in inv.sales_ids:
            sale = self.sales.get_by_id(sid, include_deleted=True)
            if sale is not None and sale.invoice_id == inv.id:
                sale.is_invoiced = False
                sale.invoice_id = None
                self.sales.update_sale(sale)
        self.invoices.soft_delete(inv.id)
        log.info("Facture %s supprimée", inv.invoice_number)

    def restore_invoice(self, invoice_id: str, now: Optional[datetime] = None) -> Invoice:
        inv = self._require_invoice(invoice_id, include_deleted=True)
        self.invoices.restore(inv.id)
        inv = self._require_invoice(invoice_id)
        free: List[str] = []
        for sid in inv.sales_ids:
            sale = self.sales.get_by_id(sid)
            if sale is not None and sale.invoice_id in (None, inv.id):
                free.append(sid)
        dropped = len(inv.sales_ids) - len(free)
        if dropped:
            log.warning("Facture %s restaurée sans %d vente(s) réaffectée(s)", inv.invoice_number, dropped)
        return self.reconcile_invoice_membership(inv, free, now=now)

    # ----------- paiements -----------
    def _refresh_paid_flag(self, invoice_id: Optional[str], now: Optional[datetime] = None) -> Optional[Invoice]:
        if not invoice_id:
            return None
        inv = self.invoices.get_by_id(invoice_id)
        if inv is None:
            return None
        members = [s for s in (self.sales.get_by_id(sid, include_deleted=True) for sid in inv.sales_ids) if s is not None]
        flag = rec.reconcile_invoice_paid_flag(inv, members, self.payments.list_payments(), now=now)
        if flag.is_paid != inv.is_paid or flag.paid_at != inv.paid_at:
            inv.is_paid = flag.is_paid
            inv.paid_at = flag.paid_at
            self.invoices.update_invoice(inv)
            log.info("Facture %s : payée=%s", inv.invoice_number, inv.is_paid)
        return inv

    def record_payment(
        self,
        sale_id: str,
        amount: Any,
        method: str = "cash",
        date: Optional[datetime] = None,
        notes: Optional[str] = None,
        check_number: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Payment:
        sale = self._require_sale(sale_id)
        value = to_amount(amount)
        if value <= 0:
            raise ValueError("Le montant du paiement doit être positif")
        p = Payment(
            sale_id=sale.id,
            client_id=sale.client_id,
            amount=value,
            date=date or datetime.now(),
            method=method,
            notes=notes,
            check_number=check_number,
        )
        self.payments.add_payment(p)
        log.info("Paiement %.2f sur vente %s (%s)", value, sale.id, method)
        self._refresh_paid_flag(sale.invoice_id, now=now)
        return p

    def update_payment(self, payment_id: str, now: Optional[datetime] = None, **changes: Any) -> Payment:
        unknown = set(changes) - _PAYMENT_EDITABLE
        if unknown:
            raise ValueError(f"Champs non modifiables: {', '.join(sorted(unknown))}")
        p = self._require_payment(payment_id)
        if "amount" in changes:
            changes["amount"] = to_amount(changes["amount"])
            if changes["amount"] <= 0:
                raise ValueError("Le montant du paiement doit être positif")
        updated = Payment(**{**p.model_dump(), **changes})
        self.payments.update_payment(updated)
        sale = self.sales.get_by_id(p.sale_id, include_deleted=True)
        self._refresh_paid_flag(sale.invoice_id if sale else None, now=now)
        return updated

    def delete_payment(self, payment_id: str, now: Optional[datetime] = None) -> None:
        p = self._require_payment(payment_id)
        self.payments.soft_delete(p.id)
        log.info("Paiement %s archivé", p.id)
        sale = self.sales.get_by_id(p.sale_id, include_deleted=True)
        self._refresh_paid_flag(sale.invoice_id if sale else None, now=now)

    def restore_payment(self, payment_id: str, now: Optional[datetime] = None) -> Payment:
        p = self._require_payment(payment_id, include_deleted=True)
        sale = self._require_sale(p.sale_id)
        self.payments.restore(p.id)
        log.info("Paiement %s restauré", p.id)
        self._refresh_paid_flag(sale.invoice_id, now=now)
        return self._require_payment(p.id)
