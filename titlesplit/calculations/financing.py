"""
Financing Calculations

Deposit and mortgage split, interest on the mortgage and on bridging
finance, and the rent the block brings in while it is held. The user owns
every input here; propagation only refreshes the derived figures.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple

from titlesplit.calculations.buyer import BuyerValues
from titlesplit.calculations.inputs import parse_amount, round_half_up
from titlesplit.calculations.observable import Observable
from titlesplit.calculations.seller import SellerValues

logger = logging.getLogger(__name__)

MIN_DEPOSIT_PERCENTAGE = 5
MAX_DEPOSIT_PERCENTAGE = 50

FINANCING_FIELDS = (
    "deposit_percentage",
    "mortgage_interest_rate",
    "bridging_finance_rate",
    "rent_per_flat_monthly",
)

FINANCING_BASES = ("purchase_price", "offer_price")


@dataclass(frozen=True)
class FinancingValues:
    """Financing assumptions entered by the user."""

    deposit_percentage: float = 25
    mortgage_interest_rate: float = 6  # Annual, in percent
    bridging_finance_rate: float = 8  # Annual, in percent
    rent_per_flat_monthly: float = 600


@dataclass(frozen=True)
class FinancingResults:
    """Figures derived from the financing assumptions."""

    financed_price: float
    deposit_amount: int
    mortgage_principal: float
    mortgage_interest_yearly: int
    mortgage_interest_monthly: int
    bridging_interest_yearly: int
    bridging_interest_monthly: int
    rent_per_flat_yearly: float
    rent_per_block_yearly: float
    rent_per_block_monthly: float
    profit_after_mortgage_monthly: float
    profit_after_bridging_monthly: float


def calculate_interest(principal: float, annual_rate: float) -> Tuple[int, int]:
    """
    Calculate simple yearly and monthly interest.

    Args:
        principal: Amount borrowed
        annual_rate: Annual rate in percent (e.g. 6 for 6%)

    Returns:
        (yearly, monthly), each rounded to whole units
    """
    yearly = round_half_up(principal * annual_rate / 100)
    monthly = round_half_up(yearly / 12)
    return yearly, monthly


def calculate_financing(
    seller: SellerValues,
    financing: FinancingValues,
    buyer: Optional[BuyerValues] = None,
    basis: str = "purchase_price",
) -> FinancingResults:
    """
    Derive deposit, interest and rental figures.

    The financed price is the seller's purchase price unless the basis is
    "offer_price", in which case the buyer's offer price is financed.

    Raises:
        ValueError: If the basis is unknown, or "offer_price" is asked for
            without buyer values
    """
    if basis == "purchase_price":
        financed_price = seller.purchase_price
    elif basis == "offer_price":
        if buyer is None:
            raise ValueError("Buyer values are required to finance the offer price")
        financed_price = buyer.buyer_offer_price
    else:
        raise ValueError(f"Unknown financing basis: {basis}")

    deposit_amount = round_half_up(financed_price * financing.deposit_percentage / 100)
    mortgage_principal = financed_price - deposit_amount

    mortgage_yearly, mortgage_monthly = calculate_interest(
        mortgage_principal, financing.mortgage_interest_rate
    )
    bridging_yearly, bridging_monthly = calculate_interest(
        mortgage_principal, financing.bridging_finance_rate
    )

    rent_per_flat_yearly = financing.rent_per_flat_monthly * 12
    rent_per_block_yearly = rent_per_flat_yearly * seller.num_flats
    rent_per_block_monthly = rent_per_block_yearly / 12

    return FinancingResults(
        financed_price=financed_price,
        deposit_amount=deposit_amount,
        mortgage_principal=mortgage_principal,
        mortgage_interest_yearly=mortgage_yearly,
        mortgage_interest_monthly=mortgage_monthly,
        bridging_interest_yearly=bridging_yearly,
        bridging_interest_monthly=bridging_monthly,
        rent_per_flat_yearly=rent_per_flat_yearly,
        rent_per_block_yearly=rent_per_block_yearly,
        rent_per_block_monthly=rent_per_block_monthly,
        profit_after_mortgage_monthly=rent_per_block_monthly - mortgage_monthly,
        profit_after_bridging_monthly=rent_per_block_monthly - bridging_monthly,
    )


class FinancingModel(Observable):
    """
    Owns the financing assumptions.

    Subscribers receive (FinancingValues, FinancingResults) on every change.
    """

    def __init__(
        self,
        values: Optional[FinancingValues] = None,
        basis: str = "purchase_price",
    ):
        super().__init__()
        if basis not in FINANCING_BASES:
            raise ValueError(f"Unknown financing basis: {basis}")
        self.values = values or FinancingValues()
        self.basis = basis
        self.seller = SellerValues()
        self.buyer = BuyerValues()
        self.results = self._calculate()

    def _calculate(self) -> FinancingResults:
        return calculate_financing(self.seller, self.values, self.buyer, self.basis)

    def set_field(self, field: str, value: Any) -> FinancingValues:
        if field not in FINANCING_FIELDS:
            raise ValueError(f"Unknown financing field: {field}")

        number = parse_amount(value)
        if field == "deposit_percentage":
            number = min(max(number, MIN_DEPOSIT_PERCENTAGE), MAX_DEPOSIT_PERCENTAGE)

        self.values = replace(self.values, **{field: number})
        self.results = self._calculate()
        self._emit(self.values, self.results)
        return self.values

    def on_upstream_change(self, seller: SellerValues, buyer: BuyerValues) -> FinancingResults:
        self.seller = seller
        self.buyer = buyer
        self.results = self._calculate()
        logger.debug(f"Financing recalculated on {self.basis}: {self.results.financed_price}")
        self._emit(self.values, self.results)
        return self.results
