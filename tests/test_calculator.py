import pytest

from coilsales.models.sale import LineItem, Sale
from coilsales.services.calculator import (
    apply_tax,
    build_line_item,
    compute_document_totals,
    compute_invoice_totals,
    compute_line_total,
    compute_sale_totals,
    refresh_line_item,
    round_money,
    sum_line_items_ht,
    tax_amount,
    to_amount,
)

TAX_RATE = 0.19


def test_line_total_is_quantity_times_price():
    assert compute_line_total(10, 1000) == 10000
    assert compute_line_total(2.5, 812.4) == 2031.0


def test_line_total_rounds_to_cents():
    assert compute_line_total(1.333, 3) == 4.0
    assert compute_line_total(0.125, 0.1) == 0.01


@pytest.mark.parametrize("qty, price", [
    (-5, 100),
    (5, -100),
    (None, 100),
    ("abc", 100),
    (float("nan"), 100),
    (float("inf"), 100),
    (10, ""),
])
def test_line_total_coerces_invalid_input_to_zero(qty, price):
    assert compute_line_total(qty, price) == 0


def test_to_amount_accepts_comma_decimal():
    assert to_amount("2,5") == 2.5
    assert to_amount(" 1200.75 ") == 1200.75
    assert compute_line_total("2,5", "4") == 10.0


def test_to_amount_rejects_bool():
    assert to_amount(True) == 0.0


@pytest.mark.parametrize("raw, expected", [
    ("1e5", 100000.0),
    ("1,234.56", 1234.56),
    ("1.234,56", 1234.56),
    ("1 234,56", 1234.56),
    ("1190,00 €", 1190.0),
    ("-10", -10.0),
    ("12abc", 0.0),
    ("n/a", 0.0),
    ("sNaN", 0.0),
    ("Infinity", 0.0),
])
def test_to_amount_parses_text_amounts(raw, expected):
    assert to_amount(raw) == expected


def test_to_amount_overflow_is_zero():
    assert to_amount(10 ** 400) == 0.0
    assert to_amount("1e400") == 0.0
    assert compute_line_total(10 ** 400, 2) == 0.0


def test_huge_amounts_do_not_raise():
    assert compute_line_total(1e13, 1e13) == 1e26
    assert round_money(1e300) == 1e300
    totals = compute_document_totals([{"total_ht": 1e27}], 0, 0.19)
    assert totals.total_ht == 1e27
    assert totals.total_ttc == pytest.approx(1.19e27)


def test_apply_tax():
    assert apply_tax(1000, TAX_RATE) == pytest.approx(1190)
    assert apply_tax(1000, 1) == 2000


@pytest.mark.parametrize("x", [0, 1.005, 0.00000001, 123456.78, 1e12, -42.5])
def test_zero_tax_returns_amount_unchanged(x):
    assert apply_tax(x, 0) == x


def test_tax_amount():
    assert tax_amount(0, TAX_RATE) == 0
    assert tax_amount(1000, TAX_RATE) == pytest.approx(190)
    assert tax_amount(1e12, TAX_RATE) == pytest.approx(1.9e11)
    assert tax_amount(1000, 0) == 0
    assert tax_amount(1000, 1) == 1000


@pytest.mark.parametrize("x", [0, 1, 99.99, 1234.56, 10000, 1e12])
@pytest.mark.parametrize("rate", [0, 0.07, 0.19, 1])
def test_ttc_minus_ht_equals_tax(x, rate):
    assert apply_tax(x, rate) - x == pytest.approx(tax_amount(x, rate), rel=1e-9, abs=1e-9)


@pytest.mark.parametrize("x", [0, 1, 99.99, 1234.56, 10000])
@pytest.mark.parametrize("rate", [0, 0.07, 0.19, 1])
def test_ttc_minus_ht_equals_tax_at_cents(x, rate):
    assert round_money(apply_tax(x, rate) - x) == round_money(tax_amount(x, rate))


def test_round_money_half_away_from_zero():
    assert round_money(1.005) == 1.01
    assert round_money(2.675) == 2.68
    assert round_money(-1.005) == -1.01
    assert round_money(0.004) == 0.0
    assert round_money(-0.001) == 0.0
    assert str(round_money(-0.001)) == "0.0"


def test_sum_line_items_trusts_stored_totals():
    items = [LineItem(quantity=10, unit_price=1000, total_ht=5)]
    assert sum_line_items_ht(items) == 5
    assert sum_line_items_ht([]) == 0


def test_sum_line_items_accepts_dicts():
    assert sum_line_items_ht([{"total_ht": 10000}, {"total_ht": 10000}]) == 20000


def test_sum_line_items_small_and_large_values():
    assert sum_line_items_ht([LineItem(total_ht=0.00000001)]) == 0.00000001
    assert sum_line_items_ht([LineItem(total_ht=1000000000000)]) == 1000000000000


def test_document_totals_single_item():
    item = build_line_item("Bobine DX51D 0.5mm", 10, 1000, TAX_RATE)
    totals = compute_document_totals([item], 0, TAX_RATE)
    assert totals.items_total_ht == 10000
    assert totals.fees_ht == 0
    assert totals.total_ht == 10000
    assert totals.tax_amount == 1900
    assert totals.total_ttc == 11900


def test_document_totals_with_transportation_fee():
    items = [{"total_ht": 10000}, {"total_ht": 10000}]
    totals = compute_document_totals(items, 1000, TAX_RATE)
    assert totals.items_total_ht == 20000
    assert totals.total_ht == 21000
    assert totals.tax_amount == 3990
    assert totals.total_ttc == 24990


def test_document_totals_rounds_once_per_visible_total():
    # 3 x 0.333 -> 0.999 HT, arrondi une seule fois au niveau document
    items = [{"total_ht": 0.333}] * 3
    totals = compute_document_totals(items, 0, 0)
    assert totals.total_ht == 1.0


def test_document_totals_is_idempotent():
    items = [build_line_item("Tôle", 3.2, 875.5, TAX_RATE), build_line_item("Feuillard", 1.75, 990, TAX_RATE)]
    first = compute_document_totals(items, 250, TAX_RATE)
    second = compute_document_totals(items, 250, TAX_RATE)
    assert first == second


def test_document_totals_ignore_invalid_fee_and_rate():
    totals = compute_document_totals([{"total_ht": 100}], "n/a", None)
    assert totals.total_ht == 100
    assert totals.tax_amount == 0
    assert totals.total_ttc == 100


def test_build_line_item_sets_both_totals():
    item = build_line_item("Bobine", 2, 1500, TAX_RATE, coil_ref="BC-0042", coil_weight=2)
    assert item.total_ht == 3000
    assert item.total_ttc == 3570
    assert item.coil_ref == "BC-0042"


def test_refresh_line_item_after_quantity_change():
    item = build_line_item("Bobine", 2, 1500, TAX_RATE)
    changed = refresh_line_item(item.model_copy(update={"quantity": 3}), TAX_RATE)
    assert changed.total_ht == 4500
    assert changed.total_ttc == 5355
    assert changed.id == item.id


def test_compute_sale_totals():
    sale = Sale(
        client_id="c1",
        items=[build_line_item("Bobine", 10, 1000, TAX_RATE)],
        transportation_fee=1000,
        tax_rate=TAX_RATE,
    )
    totals = compute_sale_totals(sale)
    assert totals.total_ht == 11000
    assert totals.total_ttc == 13090


def test_compute_invoice_totals_sums_sales():
    sales = [
        Sale(client_id="c1", total_ht=1000, total_ttc=1190),
        Sale(client_id="c1", total_ht=2000, total_ttc=2380),
    ]
    assert compute_invoice_totals(sales) == (3000, 3570)
    assert compute_invoice_totals([]) == (0, 0)
