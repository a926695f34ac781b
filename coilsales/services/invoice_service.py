from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging
import os

from pydantic import BaseModel, ValidationError

from coilsales.config import INVOICES_FILE, data_file
from coilsales.models.invoice import Invoice
from coilsales.services.settings_service import SettingsService
from coilsales.storage.repo import JsonRepository

log = logging.getLogger(__name__)


class InvoiceFilter(BaseModel):
    client_id: Optional[str] = None
    is_paid: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    include_deleted: bool = False

    def matches(self, inv: Invoice) -> bool:
        if inv.is_deleted and not self.include_deleted:
            return False
        if self.client_id and inv.client_id != self.client_id:
            return False
        if self.is_paid is not None and inv.is_paid != self.is_paid:
            return False
        if self.start_date and inv.date < self.start_date:
            return False
        if self.end_date and inv.date > self.end_date:
            return False
        return True


class InvoiceService:
    def __init__(
        self,
        path: Optional[os.PathLike | str] = None,
        settings: Optional[SettingsService] = None,
    ):
        self.repo = JsonRepository(path or data_file(INVOICES_FILE), entity_name="invoice", key="id")
        self.settings = settings or SettingsService()

    def _parse(self, rows: Iterable[Dict[str, Any]]) -> List[Invoice]:
        out: List[Invoice] = []
        for d in rows:
            try:
                out.append(Invoice(**d))
            except ValidationError:
                log.warning("Facture invalide ignorée: %s", d.get("id"))
                continue
        return out

    # ----------- lecture -----------
    def list_invoices(self, flt: Optional[InvoiceFilter] = None) -> List[Invoice]:
        flt = flt or InvoiceFilter()
        return [i for i in self._parse(self.repo.list_all()) if flt.matches(i)]

    def list_all(self) -> List[Invoice]:
        return self._parse(self.repo.list_all())

    def list_by_client(self, client_id: str) -> List[Invoice]:
        return self.list_invoices(InvoiceFilter(client_id=client_id))

    def list_deleted(self) -> List[Invoice]:
        return self._parse(self.repo.list_deleted())

    def get_by_id(self, invoice_id: str, include_deleted: bool = False) -> Optional[Invoice]:
        d = self.repo.get_by_id(invoice_id)
        if d is None:
            return None
        try:
            inv = Invoice(**d)
        except ValidationError:
            return None
        if inv.is_deleted and not include_deleted:
            return None
        return inv

    # ----------- écriture -----------
    def add_invoice(self, inv: Invoice) -> Invoice:
        # numéro auto
        if not inv.invoice_number:
            inv.invoice_number = self.settings.next_invoice_number()
        self.repo.add(inv)
        return inv

    def update_invoice(self, inv: Invoice) -> Invoice:
        inv.touch()
        self.repo.update(inv)
        return inv

    def soft_delete(self, invoice_id: str) -> None:
        self.repo.soft_delete(invoice_id)

    def restore(self, invoice_id: str) -> None:
        self.repo.restore(invoice_id)
