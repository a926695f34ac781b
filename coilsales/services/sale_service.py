from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging
import os

from pydantic import BaseModel, ValidationError

from coilsales.config import SALES_FILE, data_file
from coilsales.models.sale import Sale
from coilsales.services.calculator import compute_sale_totals, refresh_line_item
from coilsales.storage.repo import JsonRepository

log = logging.getLogger(__name__)


class SalesFilter(BaseModel):
    client_id: Optional[str] = None
    is_invoiced: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    include_deleted: bool = False

    def matches(self, sale: Sale) -> bool:
        if sale.is_deleted and not self.include_deleted:
            return False
        if self.client_id and sale.client_id != self.client_id:
            return False
        if self.is_invoiced is not None and sale.is_invoiced != self.is_invoiced:
            return False
        if self.start_date and sale.date < self.start_date:
            return False
        if self.end_date and sale.date > self.end_date:
            return False
        return True


def apply_sale_totals(sale: Sale) -> Sale:
    """Recalcule les lignes puis les totaux HT/TTC de la vente (en place)."""
    sale.items = [refresh_line_item(it, sale.tax_rate) for it in sale.items]
    totals = compute_sale_totals(sale)
    sale.transportation_fee = totals.fees_ht
    sale.total_ht = totals.total_ht
    sale.total_ttc = totals.total_ttc
    return sale


class SaleService:
    def __init__(self, path: Optional[os.PathLike | str] = None):
        self.repo = JsonRepository(path or data_file(SALES_FILE), entity_name="sale", key="id")

    def _parse(self, rows: Iterable[Dict[str, Any]]) -> List[Sale]:
        out: List[Sale] = []
        for d in rows:
            try:
                out.append(Sale(**d))
            except ValidationError:
                log.warning("Vente invalide ignorée: %s", d.get("id"))
                continue
        return out

    # ----------- lecture -----------
    def list_sales(self, flt: Optional[SalesFilter] = None) -> List[Sale]:
        flt = flt or SalesFilter()
        return [s for s in self._parse(self.repo.list_all()) if flt.matches(s)]

    def list_all(self) -> List[Sale]:
        """Toutes les ventes, supprimées comprises."""
        return self._parse(self.repo.list_all())

    def list_by_client(self, client_id: str) -> List[Sale]:
        return self.list_sales(SalesFilter(client_id=client_id))

    def list_deleted(self) -> List[Sale]:
        return self._parse(self.repo.list_deleted())

    def get_by_id(self, sale_id: str, include_deleted: bool = False) -> Optional[Sale]:
        d = self.repo.get_by_id(sale_id)
        if d is None:
            return None
        try:
            sale = Sale(**d)
        except ValidationError:
            return None
        if sale.is_deleted and not include_deleted:
            return None
        return sale

    # ----------- écriture -----------
    def add_sale(self, sale: Sale) -> Sale:
        apply_sale_totals(sale)
        self.repo.add(sale)
        return sale

    def update_sale(self, sale: Sale) -> Sale:
        sale.touch()
        self.repo.update(sale)
        return sale

    def soft_delete(self, sale_id: str) -> None:
        self.repo.soft_delete(sale_id)

    def restore(self, sale_id: str) -> None:
        self.repo.restore(sale_id)
