"""Trip costing.

Turns material line items plus surcharges into a :class:`CostBreakdown`.
Pure: no I/O, no shared state, inputs are never mutated.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal, localcontext
from typing import Any

from pydantic import BaseModel, ConfigDict

from fleetsync.config import DEFAULT_TAX_RATE
from fleetsync.ingestion.normalize import MONEY_CONTEXT, finite_or_zero, round2, to_decimal

# Wire/field names accepted for each input, in lookup order.
_QUANTITY_KEYS = ("quantity",)
_RATE_KEYS = ("rate",)
_TRANSPORT_KEYS = ("transport_charges", "transportCharges")
_OTHER_KEYS = ("other_charges", "otherCharges")


class CostBreakdown(BaseModel):
    """Result of :func:`compute_cost`. Money values are rounded ``Decimal`` amounts."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    line_amounts: tuple[Decimal, ...] = ()
    """Per material line ``round2(quantity * rate)``, in input order."""
    materials_total: Decimal = Decimal("0")
    transport_charges: Decimal = Decimal("0")
    other_charges: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    def to_wire(self) -> dict[str, Any]:
        """camelCase dict persisted alongside a trip record."""
        return {
            "materialsTotal": float(self.materials_total),
            "transportCharges": float(self.transport_charges),
            "otherCharges": float(self.other_charges),
            "subtotal": float(self.subtotal),
            "taxRate": float(self.tax_rate),
            "tax": float(self.tax),
            "total": float(self.total),
        }


def _read(source: Any, keys: tuple[str, ...]) -> Any:
    if source is None:
        return None
    if isinstance(source, Mapping):
        for key in keys:
            if key in source:
                return source[key]
        return None
    for key in keys:
        value = getattr(source, key, None)
        if value is not None:
            return value
    return None


def line_amount(line: Any) -> Decimal:
    """``round2(quantity * rate)`` for a single material line."""
    quantity = to_decimal(_read(line, _QUANTITY_KEYS), field="quantity")
    rate = to_decimal(_read(line, _RATE_KEYS), field="rate")
    with localcontext(MONEY_CONTEXT):
        product = quantity * rate
    return round2(product, field="line amount")


def compute_cost(
    material_lines: Iterable[Any] | None,
    surcharges: Any = None,
    *,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
) -> CostBreakdown:
    """Compute the cost breakdown of a trip.

    Parameters
    ----------
    material_lines
        :class:`~fleetsync.models.trip.MaterialLine` models or plain
        mappings with ``quantity`` and ``rate``.
    surcharges
        :class:`~fleetsync.models.trip.Surcharges` or a mapping with
        ``transportCharges``/``otherCharges``. Missing fields count as 0.
    tax_rate
        Fraction applied to the subtotal.

    Non-numeric values never raise; they count as 0 and emit
    :class:`~fleetsync.exceptions.NumericCoercionWarning`. Arithmetic runs
    in :data:`~fleetsync.ingestion.normalize.MONEY_CONTEXT`, so large
    amounts keep their cents and amounts beyond its range also count as 0.
    """
    amounts = tuple(line_amount(line) for line in material_lines or ())

    transport = to_decimal(_read(surcharges, _TRANSPORT_KEYS), field="transportCharges")
    other = to_decimal(_read(surcharges, _OTHER_KEYS), field="otherCharges")
    rate = to_decimal(tax_rate, field="tax_rate")

    with localcontext(MONEY_CONTEXT):
        materials_total = finite_or_zero(sum(amounts, Decimal("0")), field="materials total")
        subtotal = finite_or_zero(materials_total + transport + other, field="subtotal")
        tax = round2(subtotal * rate, field="tax")
        total = finite_or_zero(subtotal + tax, field="total")

    return CostBreakdown(
        line_amounts=amounts,
        materials_total=materials_total,
        transport_charges=transport,
        other_charges=other,
        subtotal=subtotal,
        tax_rate=rate,
        tax=tax,
        total=total,
    )
