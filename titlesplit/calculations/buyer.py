"""
Buyer Calculations

Refurbishment and legal costs, the buyer's offer price and the estimated
value of each flat. Cost totals are derived on read and never stored.

The offer price and flat value are re-derived by an offer policy whenever the
seller's purchase price or flat count changes. The default policy overwrites
anything the user typed into those two fields: when the headline price of the
deal moves, consistency wins over manual control.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, FrozenSet, Optional, Tuple

from titlesplit.calculations.inputs import parse_amount, round_half_up
from titlesplit.calculations.observable import Observable
from titlesplit.calculations.seller import SellerValues

logger = logging.getLogger(__name__)

DEFAULT_OFFER_RATIO = 0.865

BUYER_FIELDS = (
    "refurbishment_cost",
    "legal_cost_to_buy",
    "legal_cost_for_title_splitting",
    "legal_cost_for_refinancing",
    "stamp_duty_land_tax",
    "estimated_flat_value",
    "buyer_offer_price",
)

# Fields an offer policy is allowed to overwrite
OFFER_FIELDS = ("buyer_offer_price", "estimated_flat_value")


@dataclass(frozen=True)
class BuyerValues:
    """Costs per flat or per deal, plus the buyer's offer."""

    refurbishment_cost: float = 7500  # Per flat
    legal_cost_to_buy: float = 1000  # Per deal
    legal_cost_for_title_splitting: float = 600  # Per flat
    legal_cost_for_refinancing: float = 1000  # Per flat
    stamp_duty_land_tax: float = 21000
    estimated_flat_value: float = 75688  # Offer split across the default 8 flats
    buyer_offer_price: float = 605500  # Default asking price at the default offer ratio


@dataclass(frozen=True)
class BuyerTotals:
    """Cost totals across the whole block."""

    total_refurb_cost: float
    total_legal_cost_to_buy: float
    total_legal_title_splitting: float
    total_legal_refinancing: float
    total_costs: float


def calculate_totals(seller: SellerValues, buyer: BuyerValues) -> BuyerTotals:
    """Scale the per-flat costs by the number of flats and add them up."""
    total_refurb = buyer.refurbishment_cost * seller.num_flats
    total_title_splitting = buyer.legal_cost_for_title_splitting * seller.num_flats
    total_refinancing = buyer.legal_cost_for_refinancing * seller.num_flats

    total_costs = (
        total_refurb
        + buyer.legal_cost_to_buy
        + total_title_splitting
        + total_refinancing
        + buyer.stamp_duty_land_tax
    )

    return BuyerTotals(
        total_refurb_cost=total_refurb,
        total_legal_cost_to_buy=buyer.legal_cost_to_buy,
        total_legal_title_splitting=total_title_splitting,
        total_legal_refinancing=total_refinancing,
        total_costs=total_costs,
    )


def calculate_total_costs(seller: SellerValues, buyer: BuyerValues) -> float:
    """Total buyer costs on top of the offer price."""
    return calculate_totals(seller, buyer).total_costs


def _with_offer(seller: SellerValues, buyer: BuyerValues, offer: int) -> BuyerValues:
    """Store an offer price and split it across the flats when possible."""
    if seller.num_flats <= 0:
        return replace(buyer, buyer_offer_price=offer)
    return replace(
        buyer,
        buyer_offer_price=offer,
        estimated_flat_value=round_half_up(offer / seller.num_flats),
    )


OfferPolicy = Callable[[SellerValues, BuyerValues, FrozenSet[str]], BuyerValues]


class RatioOfferPolicy:
    """Offer a fixed share of the asking price."""

    def __init__(self, offer_ratio: float = DEFAULT_OFFER_RATIO):
        self.offer_ratio = offer_ratio

    def __call__(
        self,
        seller: SellerValues,
        buyer: BuyerValues,
        overridden: FrozenSet[str] = frozenset(),
    ) -> BuyerValues:
        offer = round_half_up(seller.purchase_price * self.offer_ratio)
        return _with_offer(seller, buyer, offer)


class CostDeductionOfferPolicy:
    """Offer the asking price less every buyer cost, never below zero."""

    def __call__(
        self,
        seller: SellerValues,
        buyer: BuyerValues,
        overridden: FrozenSet[str] = frozenset(),
    ) -> BuyerValues:
        total_costs = calculate_total_costs(seller, buyer)
        offer = round_half_up(max(0, seller.purchase_price - total_costs))
        return _with_offer(seller, buyer, offer)


class PreserveManualOverridePolicy:
    """Wrap another policy but keep offer fields the user has typed in."""

    def __init__(self, inner: OfferPolicy):
        self.inner = inner

    def __call__(
        self,
        seller: SellerValues,
        buyer: BuyerValues,
        overridden: FrozenSet[str] = frozenset(),
    ) -> BuyerValues:
        derived = self.inner(seller, buyer, overridden)
        kept = {field: getattr(buyer, field) for field in OFFER_FIELDS if field in overridden}
        return replace(derived, **kept)


def get_offer_policy(
    name: str = "ratio",
    offer_ratio: float = DEFAULT_OFFER_RATIO,
    preserve_manual_overrides: bool = False,
) -> OfferPolicy:
    """
    Build an offer policy by name.

    Args:
        name: "ratio" or "cost_deduction"
        offer_ratio: Share of the asking price offered by the ratio policy
        preserve_manual_overrides: Keep offer fields the user edited

    Raises:
        ValueError: If the policy name is unknown
    """
    if name == "ratio":
        policy: OfferPolicy = RatioOfferPolicy(offer_ratio)
    elif name == "cost_deduction":
        policy = CostDeductionOfferPolicy()
    else:
        raise ValueError(f"Unknown offer policy: {name}")

    if preserve_manual_overrides:
        policy = PreserveManualOverridePolicy(policy)
    return policy


class BuyerModel(Observable):
    """
    Owns the buyer values.

    Subscribers receive (BuyerValues, BuyerTotals) on every change.
    """

    def __init__(
        self,
        values: Optional[BuyerValues] = None,
        offer_policy: Optional[OfferPolicy] = None,
        seller: Optional[SellerValues] = None,
    ):
        super().__init__()
        self.values = values or BuyerValues()
        self.offer_policy = offer_policy or RatioOfferPolicy()
        self.seller = seller or SellerValues()
        self.overridden: FrozenSet[str] = frozenset()
        # Seeding with known seller values means the offer was already derived for them
        self._last_headline: Optional[Tuple[float, int]] = (
            (seller.purchase_price, seller.num_flats) if seller is not None else None
        )

    @property
    def totals(self) -> BuyerTotals:
        return calculate_totals(self.seller, self.values)

    def set_field(self, field: str, value: Any) -> BuyerValues:
        if field not in BUYER_FIELDS:
            raise ValueError(f"Unknown buyer field: {field}")

        self.values = replace(self.values, **{field: parse_amount(value)})
        if field in OFFER_FIELDS:
            self.overridden = self.overridden | {field}
        self._emit(self.values, self.totals)
        return self.values

    def on_upstream_change(self, seller: SellerValues) -> BuyerValues:
        """
        Take new seller values.

        The offer policy only runs when the purchase price or the flat count
        differs from what was last seen; other seller changes just refresh
        the totals.
        """
        self.seller = seller
        headline = (seller.purchase_price, seller.num_flats)

        if headline != self._last_headline:
            self._last_headline = headline
            self.values = self.offer_policy(seller, self.values, self.overridden)
            logger.debug(
                f"Offer re-derived: offer={self.values.buyer_offer_price}, "
                f"flat value={self.values.estimated_flat_value}"
            )

        self._emit(self.values, self.totals)
        return self.values
