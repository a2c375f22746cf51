import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from decimal import Decimal

import pytest

from core.errors import InvalidPercentageException, ValidationAppException
from core.settings import round_money
from modules.costing.pricing import ExtraItem, LineItem, aggregate, apply_margin, apply_taxes, freight_amount


def test_margin_is_markup_on_price():
    result = apply_margin(Decimal("100"), Decimal("20"))
    assert result.price_with_margin == Decimal("125")
    assert result.margin_value == Decimal("25")
    assert result.base_cost == Decimal("100")


@pytest.mark.parametrize("percent", [0, 100])
def test_margin_at_bounds_leaves_cost_unchanged(percent):
    result = apply_margin(Decimal("100"), percent)
    assert result.price_with_margin == Decimal("100")
    assert result.margin_value == 0


@pytest.mark.parametrize("percent", [-1, Decimal("100.01"), 150])
def test_margin_out_of_range_is_rejected(percent):
    with pytest.raises(InvalidPercentageException) as exc_info:
        apply_margin(Decimal("100"), percent)
    assert exc_info.value.code == "invalid_percentage"


def test_margin_rejects_negative_cost():
    with pytest.raises(ValidationAppException):
        apply_margin(Decimal("-1"), 10)


def test_tax_chain_compounds_on_running_total():
    result = apply_taxes(Decimal("1000"), [("ICMS", Decimal("10")), ("ISS", Decimal("5"))])

    icms, iss = result.breakdown
    assert icms.tax_type == "ICMS"
    assert icms.base == Decimal("1000")
    assert round_money(icms.running_total) == Decimal("1111.11")
    assert iss.base == icms.running_total
    assert round_money(iss.running_total) == Decimal("1169.59")
    assert result.final_total == result.taxed_total
    assert round_money(result.taxes_total) == Decimal("169.59")


def test_tax_chain_keeps_given_order():
    forward = apply_taxes(Decimal("1000"), [("ICMS", 10), ("ISS", 5)])
    swapped = apply_taxes(Decimal("1000"), [("ISS", 5), ("ICMS", 10)])

    assert [s.tax_type for s in swapped.breakdown] == ["ISS", "ICMS"]
    assert round_money(forward.breakdown[0].tax_value) == Decimal("111.11")
    assert round_money(swapped.breakdown[0].tax_value) == Decimal("52.63")
    assert round_money(swapped.breakdown[1].tax_value) == Decimal("116.96")
    assert forward.breakdown[1].base != swapped.breakdown[1].base


def test_tax_chain_adds_freight_last():
    result = apply_taxes(Decimal("325"), [("ICMS", 10), ("ISS", 5)], freight=Decimal("20"))
    assert round_money(result.taxed_total) == Decimal("380.12")
    assert result.freight == Decimal("20")
    assert round_money(result.final_total) == Decimal("400.12")


def test_empty_tax_list():
    result = apply_taxes(Decimal("325"), [], freight=Decimal("20"))
    assert result.breakdown == ()
    assert result.final_total == Decimal("345")


@pytest.mark.parametrize("percent", [100, -5, 250])
def test_invalid_tax_percentage_is_rejected(percent):
    with pytest.raises(InvalidPercentageException) as exc_info:
        apply_taxes(Decimal("1000"), [("ICMS", 10), ("ISS", percent)])
    assert exc_info.value.context["imposto"] == "ISS"


def test_order_aggregation():
    lines = [
        LineItem(product_id=1, unit_price=Decimal("125"), quantity=Decimal("2")),
        LineItem(product_id=2, unit_price=Decimal("60"), quantity=Decimal("1")),
    ]
    result = aggregate(lines, [ExtraItem("Instalação", Decimal("15"))], freight=Decimal("20"))

    assert result.products_subtotal == Decimal("310")
    assert result.extras_subtotal == Decimal("15")
    assert result.subtotal == Decimal("325")
    assert result.freight == Decimal("20")


def test_aggregation_rejects_negative_values():
    with pytest.raises(ValidationAppException):
        aggregate([LineItem(product_id=1, unit_price=Decimal("10"), quantity=Decimal("-1"))], [])
    with pytest.raises(ValidationAppException):
        aggregate([], [ExtraItem("Desconto", Decimal("-5"))])
    with pytest.raises(ValidationAppException):
        aggregate([], [], freight=Decimal("-1"))


def test_freight_only_counts_when_flagged():
    assert freight_amount(False, Decimal("20")) == 0
    assert freight_amount(True, Decimal("20")) == Decimal("20")
    assert freight_amount(True, None) == 0
