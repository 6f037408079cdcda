"""
Financial calculation API endpoints.

These endpoints accept the current values and return calculated results
without keeping any state. Used by the front end for real-time updates.
"""

from dataclasses import asdict
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from titlesplit.calculations.buyer import BuyerValues, calculate_totals
from titlesplit.calculations.calculator import create_calculator
from titlesplit.calculations.financing import FinancingValues, calculate_financing
from titlesplit.calculations.results import compute_results
from titlesplit.calculations.seller import SellerEdit, SellerValues, apply_seller_edit
from titlesplit.config import Settings, get_settings

router = APIRouter()


class SellerInput(BaseModel):
    """Seller values as entered."""

    purchase_price: float = SellerValues.purchase_price
    num_flats: int = SellerValues.num_flats
    average_price_per_flat: float = SellerValues.average_price_per_flat

    def to_values(self) -> SellerValues:
        return SellerValues(**self.model_dump())


class BuyerInput(BaseModel):
    """Buyer values as entered."""

    refurbishment_cost: float = BuyerValues.refurbishment_cost
    legal_cost_to_buy: float = BuyerValues.legal_cost_to_buy
    legal_cost_for_title_splitting: float = BuyerValues.legal_cost_for_title_splitting
    legal_cost_for_refinancing: float = BuyerValues.legal_cost_for_refinancing
    stamp_duty_land_tax: float = BuyerValues.stamp_duty_land_tax
    estimated_flat_value: float = BuyerValues.estimated_flat_value
    buyer_offer_price: float = BuyerValues.buyer_offer_price

    def to_values(self) -> BuyerValues:
        return BuyerValues(**self.model_dump())


class FinancingInput(BaseModel):
    """Financing assumptions as entered."""

    deposit_percentage: float = FinancingValues.deposit_percentage
    mortgage_interest_rate: float = FinancingValues.mortgage_interest_rate
    bridging_finance_rate: float = FinancingValues.bridging_finance_rate
    rent_per_flat_monthly: float = FinancingValues.rent_per_flat_monthly

    def to_values(self) -> FinancingValues:
        return FinancingValues(**self.model_dump())


class FieldEdit(BaseModel):
    """A single field edit. Empty or non-numeric values count as zero."""

    field: str
    value: Union[float, str, None] = None


class GroupEdit(FieldEdit):
    """A field edit tagged with the value group it belongs to."""

    group: str


class SellerEditInput(BaseModel):
    """Input for a seller edit."""

    seller: SellerInput = SellerInput()
    edit: FieldEdit


class DealInput(BaseModel):
    """Input for the full calculation pipeline."""

    seller: SellerInput = SellerInput()
    buyer: BuyerInput = BuyerInput()
    financing: FinancingInput = FinancingInput()
    edit: Optional[GroupEdit] = None


@router.post("/seller")
async def calculate_seller(inputs: SellerEditInput):
    """Apply one seller edit and resolve the dependent field."""
    try:
        values = apply_seller_edit(
            inputs.seller.to_values(), SellerEdit(inputs.edit.field, inputs.edit.value)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return asdict(values)


@router.post("/buyer")
async def calculate_buyer_totals(inputs: DealInput):
    """Cost totals across the block."""
    totals = calculate_totals(inputs.seller.to_values(), inputs.buyer.to_values())
    return asdict(totals)


@router.post("/financing")
async def calculate_financing_endpoint(
    inputs: DealInput, settings: Settings = Depends(get_settings)
):
    """Deposit, interest and rental figures."""
    results = calculate_financing(
        inputs.seller.to_values(),
        inputs.financing.to_values(),
        inputs.buyer.to_values(),
        basis=settings.financing_basis,
    )
    return asdict(results)


@router.post("/results")
async def calculate_results(inputs: DealInput, settings: Settings = Depends(get_settings)):
    """Sale and refinance outcomes."""
    results = compute_results(
        inputs.seller.to_values(),
        inputs.buyer.to_values(),
        post_refurb_flat_value=settings.post_refurb_flat_value,
        refinance_ltv=settings.refinance_ltv,
    )
    return asdict(results)


@router.post("/deal")
async def calculate_deal(inputs: DealInput, settings: Settings = Depends(get_settings)):
    """
    Run the whole pipeline.

    The given values are taken as the current state; the optional edit is
    applied and propagated exactly as it would be in a session.
    """
    calculator = create_calculator(
        settings,
        seller=inputs.seller.to_values(),
        buyer=inputs.buyer.to_values(),
        financing=inputs.financing.to_values(),
    )

    if inputs.edit is None:
        return asdict(calculator.snapshot())

    try:
        snapshot = calculator.edit(inputs.edit.group, inputs.edit.field, inputs.edit.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return asdict(snapshot)
