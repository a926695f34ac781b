from __future__ import annotations


class CoilSalesError(Exception):
    """Base des erreurs métier du package."""


class NotFoundError(CoilSalesError, LookupError):
    """Entité inconnue (vente, facture, paiement, client)."""

    def __init__(self, kind: str, obj_id: str | None):
        self.kind = kind
        self.obj_id = obj_id
        super().__init__(f"{kind} {obj_id!r} not found")


class InvoiceMembershipError(CoilSalesError, ValueError):
    """Une vente ne peut pas rejoindre la facture demandée."""
