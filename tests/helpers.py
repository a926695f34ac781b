from datetime import datetime

from coilsales.models.invoice import Invoice
from coilsales.models.payment import Payment
from coilsales.models.sale import Sale

NOW = datetime(2026, 3, 15, 12, 0, 0)


def make_sale(sale_id, client_id="c1", ttc=0.0, ht=None, invoice_id=None, **kw):
    return Sale(
        id=sale_id,
        client_id=client_id,
        total_ttc=ttc,
        total_ht=ht if ht is not None else round(ttc / 1.19, 2),
        invoice_id=invoice_id,
        is_invoiced=invoice_id is not None,
        **kw,
    )


def make_payment(sale_id, amount, client_id="c1", **kw):
    return Payment(sale_id=sale_id, client_id=client_id, amount=amount, **kw)


def make_invoice(invoice_id, sales_ids, client_id="c1", ttc=0.0, due_date=None, **kw):
    return Invoice(
        id=invoice_id,
        invoice_number=f"INV-{invoice_id}",
        client_id=client_id,
        sales_ids=list(sales_ids),
        total_ttc=ttc,
        due_date=due_date or datetime(2026, 4, 30),
        **kw,
    )
