"""
Deal Calculator

Owns one session's four models and the propagation between them:

    seller -> buyer -> financing
                    -> results

Every edit settles the whole graph before a single snapshot is published, so
subscribers never see a half-updated deal.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from titlesplit.calculations.buyer import BuyerModel, BuyerTotals, BuyerValues, get_offer_policy
from titlesplit.calculations.financing import FinancingModel, FinancingResults, FinancingValues
from titlesplit.calculations.observable import Observable
from titlesplit.calculations.results import ResultsModel, ResultsValues
from titlesplit.calculations.seller import SellerModel, SellerValues
from titlesplit.config import Settings, get_settings
from titlesplit.services.extraction import (
    ExtractionError,
    ExtractionResult,
    get_domain,
    to_seller_update,
    validate_listing_url,
)

logger = logging.getLogger(__name__)

EDIT_GROUPS = ("seller", "buyer", "financing")

APPLIED = "applied"
FAILED = "failed"
REJECTED = "rejected"
STALE = "stale"


@dataclass(frozen=True)
class DealSnapshot:
    """Settled values of every model after one event."""

    seller: SellerValues
    buyer: BuyerValues
    buyer_totals: BuyerTotals
    financing: FinancingValues
    financing_results: FinancingResults
    results: ResultsValues


@dataclass(frozen=True)
class ExtractionOutcome:
    """What happened to one extraction request, with a message for the user."""

    status: str
    message: str
    address: Optional[str] = None
    seller_update: Optional[Dict[str, Any]] = None


class DealCalculator(Observable):
    """
    Wires the models together and applies edits to them.

    Subscribers receive one DealSnapshot per settled event.
    """

    def __init__(
        self,
        seller: SellerModel,
        buyer: BuyerModel,
        financing: FinancingModel,
        results: ResultsModel,
    ):
        super().__init__()
        self.seller = seller
        self.buyer = buyer
        self.financing = financing
        self.results = results
        self._latest_token = 0

        seller.subscribe(self._on_seller_change)
        buyer.subscribe(self._on_buyer_change)

        # Initial sync; also derives the offer unless the buyer was seeded for these seller values
        self.buyer.on_upstream_change(self.seller.values)

    def _on_seller_change(self, seller: SellerValues) -> None:
        self.buyer.on_upstream_change(seller)

    def _on_buyer_change(self, buyer: BuyerValues, totals: BuyerTotals) -> None:
        self.financing.on_upstream_change(self.seller.values, buyer)
        self.results.on_upstream_change(self.seller.values, buyer)

    def snapshot(self) -> DealSnapshot:
        return DealSnapshot(
            seller=self.seller.values,
            buyer=self.buyer.values,
            buyer_totals=self.buyer.totals,
            financing=self.financing.values,
            financing_results=self.financing.results,
            results=self.results.values,
        )

    def _publish(self) -> DealSnapshot:
        snapshot = self.snapshot()
        self._emit(snapshot)
        return snapshot

    def edit(self, group: str, field: str, value: Any) -> DealSnapshot:
        """
        Apply a user edit to one model and propagate it.

        Raises:
            ValueError: If the group or field is unknown
        """
        if group == "seller":
            self.seller.set_field(field, value)
        elif group == "buyer":
            self.buyer.set_field(field, value)
        elif group == "financing":
            self.financing.set_field(field, value)
        else:
            raise ValueError(f"Unknown value group: {group}")
        return self._publish()

    def begin_extraction(self) -> int:
        """Issue a token for a new extraction; older tokens become stale."""
        self._latest_token += 1
        return self._latest_token

    def finish_extraction(self, token: int, result: ExtractionResult) -> ExtractionOutcome:
        """
        Apply an extraction result if its request is still the latest.

        Failed results leave the seller values untouched.
        """
        if token != self._latest_token:
            logger.info(f"Ignoring extraction response for superseded token {token}")
            return ExtractionOutcome(status=STALE, message="A newer extraction request is in progress")

        if not result.success or result.data is None:
            message = result.error or "Could not extract property data"
            logger.warning(f"Extraction failed: {message}")
            return ExtractionOutcome(status=FAILED, message=message)

        update = to_seller_update(result)
        if update:
            self.seller.apply_extraction(update)
            self._publish()

        return ExtractionOutcome(
            status=APPLIED,
            message="Data extracted",
            address=result.data.address,
            seller_update=update,
        )

    async def extract(self, url: str, extractor) -> ExtractionOutcome:
        """
        Validate the URL, call the extractor and apply its result.

        Malformed input is rejected without calling the extractor. Errors
        raised by the extractor are reported as failures.
        """
        try:
            url = validate_listing_url(url)
        except ExtractionError as e:
            return ExtractionOutcome(status=REJECTED, message=str(e))

        token = self.begin_extraction()
        try:
            result = await extractor.extract(url)
        except Exception as e:
            logger.error(f"Error during property data extraction: {str(e)}")
            result = ExtractionResult(success=False, error="Failed to process the URL")

        outcome = self.finish_extraction(token, result)
        if outcome.status == APPLIED:
            return ExtractionOutcome(
                status=APPLIED,
                message=f"Data extracted from {get_domain(url)}",
                address=outcome.address,
                seller_update=outcome.seller_update,
            )
        return outcome


def create_calculator(
    settings: Optional[Settings] = None,
    seller: Optional[SellerValues] = None,
    buyer: Optional[BuyerValues] = None,
    financing: Optional[FinancingValues] = None,
) -> DealCalculator:
    """
    Build a calculator with the configured policies.

    Without values the session starts from the defaults and the buyer's
    offer is derived from the default seller values. When seller and buyer
    values are both given, the buyer values are taken as they are.
    """
    settings = settings or get_settings()
    policy = get_offer_policy(
        settings.offer_policy,
        offer_ratio=settings.offer_ratio,
        preserve_manual_overrides=settings.preserve_manual_overrides,
    )
    return DealCalculator(
        seller=SellerModel(seller),
        buyer=BuyerModel(buyer, offer_policy=policy, seller=seller if buyer is not None else None),
        financing=FinancingModel(financing, basis=settings.financing_basis),
        results=ResultsModel(
            post_refurb_flat_value=settings.post_refurb_flat_value,
            refinance_ltv=settings.refinance_ltv,
        ),
    )
