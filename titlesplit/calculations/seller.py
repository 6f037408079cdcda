"""
Seller Calculations

Purchase price, number of flats and average price per flat. Whichever of the
three was edited last wins; the dependent field is re-derived from it.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from titlesplit.calculations.inputs import parse_amount, parse_count, round_half_up
from titlesplit.calculations.observable import Observable

logger = logging.getLogger(__name__)

SELLER_FIELDS = ("purchase_price", "num_flats", "average_price_per_flat")


@dataclass(frozen=True)
class SellerValues:
    """Headline figures of the block as listed by the seller."""

    purchase_price: float = 700000
    num_flats: int = 8
    average_price_per_flat: float = 87500


@dataclass(frozen=True)
class SellerEdit:
    """A single field edit, tagged with the field it targets."""

    field: str
    value: Any


def average_price(purchase_price: float, num_flats: int) -> Optional[int]:
    """Average price per flat, or None when there are no flats to divide by."""
    if num_flats <= 0:
        return None
    return round_half_up(purchase_price / num_flats)


def apply_seller_edit(state: SellerValues, edit: SellerEdit) -> SellerValues:
    """
    Apply one edit and resolve the dependent field.

    Editing the price or the flat count re-derives the average price per
    flat (skipped while the flat count is zero). Editing the average
    re-derives the purchase price.

    Args:
        state: Current seller values
        edit: The field edit to apply

    Returns:
        New seller values

    Raises:
        ValueError: If the edit targets an unknown field
    """
    if edit.field not in SELLER_FIELDS:
        raise ValueError(f"Unknown seller field: {edit.field}")

    if edit.field == "num_flats":
        updated = replace(state, num_flats=parse_count(edit.value))
    else:
        updated = replace(state, **{edit.field: parse_amount(edit.value)})

    if edit.field == "average_price_per_flat":
        return replace(
            updated,
            purchase_price=round_half_up(
                updated.average_price_per_flat * updated.num_flats
            ),
        )

    average = average_price(updated.purchase_price, updated.num_flats)
    if average is None:
        return updated
    return replace(updated, average_price_per_flat=average)


def merge_extraction(state: SellerValues, partial: Dict[str, Any]) -> SellerValues:
    """
    Merge an extracted partial update into the seller values.

    When the price or the flat count arrives without an explicit average,
    the average is recomputed from the merged values.
    """
    updates = {}
    for field in SELLER_FIELDS:
        if partial.get(field) is None:
            continue
        if field == "num_flats":
            updates[field] = parse_count(partial[field])
        else:
            updates[field] = parse_amount(partial[field])

    updated = replace(state, **updates)

    touches_inputs = "purchase_price" in updates or "num_flats" in updates
    if touches_inputs and "average_price_per_flat" not in updates:
        average = average_price(updated.purchase_price, updated.num_flats)
        if average is not None:
            updated = replace(updated, average_price_per_flat=average)

    return updated


class SellerModel(Observable):
    """Owns the seller values and notifies subscribers of every change."""

    def __init__(self, values: Optional[SellerValues] = None):
        super().__init__()
        self.values = values or SellerValues()

    def set_field(self, field: str, value: Any) -> SellerValues:
        self.values = apply_seller_edit(self.values, SellerEdit(field, value))
        logger.debug(f"Seller {field} set: {self.values}")
        self._emit(self.values)
        return self.values

    def apply_extraction(self, partial: Dict[str, Any]) -> SellerValues:
        self.values = merge_extraction(self.values, partial)
        logger.debug(f"Seller updated from extraction: {self.values}")
        self._emit(self.values)
        return self.values
