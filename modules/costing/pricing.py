"""Margin, order aggregation and tax chain.

All three use the same markup-on-price rule: a percentage ``p`` turns a value
``v`` into ``v / (1 - p/100)``, so the percentage is a share of the resulting
price rather than of the original cost.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from core.errors import InvalidPercentageException, ValidationAppException
from core.settings import HUNDRED, ZERO, to_decimal

ONE = Decimal("1")


@dataclass(frozen=True)
class MarginResult:
    base_cost: Decimal
    margin_percent: Decimal
    margin_value: Decimal
    price_with_margin: Decimal


@dataclass(frozen=True)
class LineItem:
    product_id: int
    unit_price: Decimal
    quantity: Decimal

    @property
    def value(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class ExtraItem:
    name: str
    value: Decimal


@dataclass(frozen=True)
class OrderSubtotal:
    products_subtotal: Decimal
    extras_subtotal: Decimal
    freight: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.products_subtotal + self.extras_subtotal


@dataclass(frozen=True)
class TaxStep:
    tax_type: str
    percent: Decimal
    base: Decimal
    tax_value: Decimal
    running_total: Decimal


@dataclass(frozen=True)
class TaxChainResult:
    subtotal: Decimal
    taxed_total: Decimal
    freight: Decimal
    final_total: Decimal
    breakdown: Tuple[TaxStep, ...] = field(default_factory=tuple)

    @property
    def taxes_total(self) -> Decimal:
        return sum((step.tax_value for step in self.breakdown), ZERO)


def apply_margin(base_cost, margin_percent) -> MarginResult:
    base = to_decimal(base_cost)
    percent = to_decimal(margin_percent)
    if base < 0:
        raise ValidationAppException("Custo base não pode ser negativo", context={"etapa": "margem"})
    if percent < 0 or percent > HUNDRED:
        raise InvalidPercentageException(margin_percent, field="margem_lucro_percentual")

    m = percent / HUNDRED
    # m == 1 would divide by zero; m == 0 is a no-op either way
    price = base / (ONE - m) if ZERO < m < ONE else base
    return MarginResult(base_cost=base, margin_percent=percent, margin_value=price - base, price_with_margin=price)


def aggregate(line_items: Iterable[LineItem], extra_items: Iterable[ExtraItem], freight=ZERO) -> OrderSubtotal:
    products = ZERO
    for item in line_items:
        if item.quantity < 0 or item.unit_price < 0:
            raise ValidationAppException(
                "Item do pedido com valor ou quantidade negativa",
                context={"produto_id": item.product_id, "etapa": "agregacao"},
            )
        products += item.value

    extras = ZERO
    for extra in extra_items:
        if extra.value < 0:
            raise ValidationAppException(
                "Item extra com valor negativo", context={"item": extra.name, "etapa": "agregacao"}
            )
        extras += extra.value

    freight_value = to_decimal(freight)
    if freight_value < 0:
        raise ValidationAppException("Frete não pode ser negativo", context={"etapa": "agregacao"})
    return OrderSubtotal(products_subtotal=products, extras_subtotal=extras, freight=freight_value)


def validate_tax_percentages(ordered_taxes: Sequence[Tuple[str, object]]) -> None:
    for tax_type, percent in ordered_taxes:
        value = to_decimal(percent)
        if value < 0 or value >= HUNDRED:
            raise InvalidPercentageException(percent, field="percentual", context={"imposto": tax_type})


def apply_taxes(subtotal, ordered_taxes: Sequence[Tuple[str, object]], freight=ZERO) -> TaxChainResult:
    """Apply taxes one after another, each on the running total.

    ``ordered_taxes`` is a sequence of ``(type, percent)`` pairs and is never
    reordered: later taxes compound on earlier ones. Freight is added after
    the last tax, untaxed.
    """
    base = to_decimal(subtotal)
    freight_value = to_decimal(freight)
    if base < 0 or freight_value < 0:
        raise ValidationAppException("Subtotal e frete devem ser não negativos", context={"etapa": "impostos"})
    validate_tax_percentages(ordered_taxes)

    running = base
    steps: List[TaxStep] = []
    for tax_type, percent in ordered_taxes:
        p = to_decimal(percent) / HUNDRED
        tax_value = running * p / (ONE - p)
        steps.append(
            TaxStep(
                tax_type=tax_type,
                percent=to_decimal(percent),
                base=running,
                tax_value=tax_value,
                running_total=running + tax_value,
            )
        )
        running = running + tax_value

    return TaxChainResult(
        subtotal=base,
        taxed_total=running,
        freight=freight_value,
        final_total=running + freight_value,
        breakdown=tuple(steps),
    )


def freight_amount(has_freight: bool, amount: Optional[Decimal]) -> Decimal:
    if not has_freight or amount is None:
        return ZERO
    return to_decimal(amount)
