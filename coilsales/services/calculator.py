"""
Calculs HT / TVA / TTC.

Fonctions pures : aucune ne lève d'exception ni ne journalise. Les entrées
numériques manquantes ou invalides (None, texte, NaN, infini) valent 0.
Les montants visibles (total HT, TVA, total TTC) sont arrondis une seule
fois, au centime, arrondi commercial (demi loin de zéro).
"""
from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Iterable, Tuple

from coilsales.models.reports import DocumentTotals
from coilsales.models.sale import LineItem, Sale

_CENT = Decimal("0.01")


# ---------- Helpers ---------- #

def _clean_decimal(val: Any):
    s = str(val).strip().replace(" ", "").replace("\u00a0", "").replace("€", "")
    if not s:
        return None
    if "," in s and "." in s:
        # le dernier séparateur est le séparateur décimal : 1,234.56 / 1.234,56
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")
    try:
        return Decimal(s)
    except InvalidOperation:
        return None

def to_amount(val: Any) -> float:
    """Conversion "souple" -> float fini (0.0 sinon). Accepte '12,5', '1e5', '1 234,56'."""
    if val is None or isinstance(val, bool):
        return 0.0
    if not isinstance(val, (int, float, Decimal)):
        val = _clean_decimal(val)
        if val is None:
            return 0.0
    try:
        f = float(val)
    except (OverflowError, ValueError):
        return 0.0
    return f if math.isfinite(f) else 0.0

def _non_negative(val: Any) -> float:
    return max(0.0, to_amount(val))

def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)

def round_money(value: Any) -> float:
    """Arrondi au centime, demi loin de zéro (1.005 -> 1.01, -1.005 -> -1.01)."""
    d = Decimal(str(to_amount(value)))
    with localcontext() as ctx:
        # précision suffisante pour les très grands montants (jusqu'à ~1e308)
        ctx.prec = max(ctx.prec, d.adjusted() + 3)
        d = d.quantize(_CENT, rounding=ROUND_HALF_UP)
    return float(d) + 0.0  # pas de -0.0


# ---------- Ligne ---------- #

def compute_line_total(quantity: Any, unit_price: Any) -> float:
    return round_money(_non_negative(quantity) * _non_negative(unit_price))

def apply_tax(amount_ht: Any, tax_rate: Any) -> float:
    # tax_rate est une fraction : 0.19 pour 19 %
    return to_amount(amount_ht) * (1 + _non_negative(tax_rate))

def tax_amount(amount_ht: Any, tax_rate: Any) -> float:
    return to_amount(amount_ht) * _non_negative(tax_rate)

def line_item_totals(quantity: Any, unit_price: Any, tax_rate: Any) -> Tuple[float, float]:
    total_ht = compute_line_total(quantity, unit_price)
    return total_ht, round_money(apply_tax(total_ht, tax_rate))

def build_line_item(description: str, quantity: Any, unit_price: Any, tax_rate: Any, **extra: Any) -> LineItem:
    qty = _non_negative(quantity)
    price = _non_negative(unit_price)
    total_ht, total_ttc = line_item_totals(qty, price, tax_rate)
    return LineItem(
        description=description or "",
        quantity=qty,
        unit_price=price,
        total_ht=total_ht,
        total_ttc=total_ttc,
        **extra,
    )

def refresh_line_item(item: LineItem, tax_rate: Any) -> LineItem:
    """Recalcule les snapshots d'une ligne après modification qté/prix."""
    qty = _non_negative(item.quantity)
    price = _non_negative(item.unit_price)
    total_ht, total_ttc = line_item_totals(qty, price, tax_rate)
    return item.model_copy(update={
        "quantity": qty, "unit_price": price,
        "total_ht": total_ht, "total_ttc": total_ttc,
    })


# ---------- Document ---------- #

def sum_line_items_ht(items: Iterable[Any]) -> float:
    # on fait confiance aux totaux de ligne déjà stockés
    return sum((to_amount(_field(it, "total_ht")) for it in items or []), 0.0)

def compute_document_totals(items: Iterable[Any], fees_ht: Any, tax_rate: Any) -> DocumentTotals:
    items_ht = sum_line_items_ht(items)
    fees = _non_negative(fees_ht)
    total_ht = round_money(items_ht + fees)
    tax = round_money(tax_amount(total_ht, tax_rate))
    return DocumentTotals(
        items_total_ht=round_money(items_ht),
        fees_ht=round_money(fees),
        total_ht=total_ht,
        tax_amount=tax,
        total_ttc=round_money(total_ht + tax),
    )

def compute_sale_totals(sale: Sale) -> DocumentTotals:
    return compute_document_totals(sale.items, sale.transportation_fee, sale.tax_rate)

def compute_invoice_totals(sales: Iterable[Sale]) -> Tuple[float, float]:
    """(total HT, total TTC) d'une facture = somme des ventes rattachées."""
    total_ht = 0.0
    total_ttc = 0.0
    for s in sales:
        total_ht += to_amount(s.total_ht)
        total_ttc += to_amount(s.total_ttc)
    return round_money(total_ht), round_money(total_ttc)
