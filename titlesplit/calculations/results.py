"""
Title Splitting Results

Read-only view of the deal after refurbishment: what the split flats are
worth, the profit if sold, and the cash released by refinancing.

The post-refurbishment value of a flat is a fixed market assumption, not
something derived from the inputs.
"""

from dataclasses import dataclass
from typing import Optional

from titlesplit.calculations.buyer import BuyerValues, calculate_total_costs
from titlesplit.calculations.observable import Observable
from titlesplit.calculations.seller import SellerValues

DEFAULT_POST_REFURB_FLAT_VALUE = 150000
DEFAULT_REFINANCE_LTV = 0.75

CASH_OUT = "cash_out"
TOP_UP = "top_up"


@dataclass(frozen=True)
class ResultsValues:
    """Outcome of the title splitting strategy."""

    total_costs: float
    post_refurb_flat_value: float
    estimated_block_value: float
    total_spend: float
    new_value_created: float
    profit_on_sale: float
    refinance_deposit: float
    refinance_mortgage: float
    cash_released: float
    cash_released_display: float
    refinance_outcome: str
    roi: Optional[float]


def calculate_roi(profit: float, total_spend: float) -> Optional[float]:
    """Return on total spend, or None when nothing has been spent."""
    if total_spend == 0:
        return None
    return profit / total_spend


def compute_results(
    seller: SellerValues,
    buyer: BuyerValues,
    post_refurb_flat_value: float = DEFAULT_POST_REFURB_FLAT_VALUE,
    refinance_ltv: float = DEFAULT_REFINANCE_LTV,
) -> ResultsValues:
    """
    Compute sale and refinance outcomes.

    Args:
        seller: Current seller values
        buyer: Current buyer values
        post_refurb_flat_value: Assumed value of each flat once split
        refinance_ltv: Loan-to-value of the refinance mortgage (e.g. 0.75)

    Returns:
        ResultsValues. cash_released keeps its sign so a negative value can
        drive the "top up" message; cash_released_display is floored at zero.
    """
    total_costs = calculate_total_costs(seller, buyer)
    estimated_block_value = seller.num_flats * post_refurb_flat_value
    total_spend = buyer.buyer_offer_price + total_costs
    new_value_created = estimated_block_value - total_spend

    refinance_deposit = estimated_block_value * (1 - refinance_ltv)
    refinance_mortgage = estimated_block_value * refinance_ltv
    cash_released = refinance_mortgage - buyer.buyer_offer_price

    return ResultsValues(
        total_costs=total_costs,
        post_refurb_flat_value=post_refurb_flat_value,
        estimated_block_value=estimated_block_value,
        total_spend=total_spend,
        new_value_created=new_value_created,
        profit_on_sale=new_value_created,
        refinance_deposit=refinance_deposit,
        refinance_mortgage=refinance_mortgage,
        cash_released=cash_released,
        cash_released_display=max(0, cash_released),
        refinance_outcome=CASH_OUT if cash_released > 0 else TOP_UP,
        roi=calculate_roi(new_value_created, total_spend),
    )


class ResultsModel(Observable):
    """Recomputes results from upstream values; owns no editable state."""

    def __init__(
        self,
        post_refurb_flat_value: float = DEFAULT_POST_REFURB_FLAT_VALUE,
        refinance_ltv: float = DEFAULT_REFINANCE_LTV,
    ):
        super().__init__()
        self.post_refurb_flat_value = post_refurb_flat_value
        self.refinance_ltv = refinance_ltv
        self.values = compute_results(
            SellerValues(), BuyerValues(), post_refurb_flat_value, refinance_ltv
        )

    def on_upstream_change(self, seller: SellerValues, buyer: BuyerValues) -> ResultsValues:
        self.values = compute_results(
            seller, buyer, self.post_refurb_flat_value, self.refinance_ltv
        )
        self._emit(self.values)
        return self.values
