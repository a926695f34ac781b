from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
import logging
import os

from pydantic import ValidationError

from coilsales.config import PAYMENTS_FILE, data_file
from coilsales.models.payment import Payment
from coilsales.storage.repo import JsonRepository

log = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, path: Optional[os.PathLike | str] = None):
        self.repo = JsonRepository(path or data_file(PAYMENTS_FILE), entity_name="payment", key="id")

    def _parse(self, rows: Iterable[Dict[str, Any]]) -> List[Payment]:
        out: List[Payment] = []
        for d in rows:
            try:
                out.append(Payment(**d))
            except ValidationError:
                log.warning("Paiement invalide ignoré: %s", d.get("id"))
                continue
        return out

    def list_payments(self, include_deleted: bool = False) -> List[Payment]:
        rows = self.repo.list_all() if include_deleted else self.repo.list_active()
        return self._parse(rows)

    def list_by_sale(self, sale_id: str) -> List[Payment]:
        return [p for p in self.list_payments() if p.sale_id == sale_id]

    def list_by_client(self, client_id: str) -> List[Payment]:
        return [p for p in self.list_payments() if p.client_id == client_id]

    def list_deleted(self) -> List[Payment]:
        """Archive : paiements supprimés."""
        return self._parse(self.repo.list_deleted())

    def get_by_id(self, payment_id: str, include_deleted: bool = False) -> Optional[Payment]:
        d = self.repo.get_by_id(payment_id)
        if d is None:
            return None
        try:
            p = Payment(**d)
        except ValidationError:
            return None
        if p.is_deleted and not include_deleted:
            return None
        return p

    def add_payment(self, p: Payment) -> Payment:
        self.repo.add(p)
        return p

    def update_payment(self, p: Payment) -> Payment:
        p.touch()
        self.repo.update(p)
        return p

    def soft_delete(self, payment_id: str) -> None:
        self.repo.soft_delete(payment_id)

    def restore(self, payment_id: str) -> None:
        self.repo.restore(payment_id)
