"""
Tests for the seller, buyer, financing and results calculations.
"""

import pytest

from titlesplit.calculations.inputs import parse_amount, parse_count, round_half_up
from titlesplit.calculations.seller import (
    SellerEdit,
    SellerModel,
    SellerValues,
    apply_seller_edit,
    merge_extraction,
)
from titlesplit.calculations.buyer import (
    BuyerModel,
    BuyerValues,
    CostDeductionOfferPolicy,
    PreserveManualOverridePolicy,
    RatioOfferPolicy,
    calculate_totals,
    get_offer_policy,
)
from titlesplit.calculations.financing import (
    FinancingModel,
    FinancingValues,
    calculate_financing,
    calculate_interest,
)
from titlesplit.calculations.results import CASH_OUT, TOP_UP, compute_results


class TestInputParsing:
    """Test raw field parsing and rounding."""

    def test_empty_input_is_zero(self):
        assert parse_amount("") == 0
        assert parse_amount("   ") == 0
        assert parse_amount(None) == 0

    def test_non_numeric_input_is_zero(self):
        assert parse_amount("abc") == 0
        assert parse_amount(True) == 0
        assert parse_amount(float("nan")) == 0

    def test_numeric_strings(self):
        assert parse_amount("700000") == 700000
        assert parse_amount("1,250.5") == 1250.5
        assert parse_amount(-50) == -50

    def test_count_truncates(self):
        assert parse_count("7.9") == 7
        assert parse_count("") == 0

    def test_round_half_up(self):
        assert round_half_up(75687.5) == 75688
        assert round_half_up(2.5) == 3
        assert round_half_up(97857.14) == 97857
        assert round_half_up(-2.5) == -2


class TestSeller:
    """Test the price / flats / average derivation."""

    def test_price_edit_derives_average(self):
        state = apply_seller_edit(SellerValues(), SellerEdit("purchase_price", 700000))
        assert state.average_price_per_flat == 87500

    def test_flats_edit_derives_average(self):
        state = apply_seller_edit(SellerValues(), SellerEdit("num_flats", "7"))
        assert state.num_flats == 7
        assert state.average_price_per_flat == 100000

    def test_average_edit_derives_price(self):
        state = apply_seller_edit(SellerValues(), SellerEdit("average_price_per_flat", 100000))
        assert state.purchase_price == 800000
        assert state.num_flats == 8

    @pytest.mark.parametrize("price", [0, 1, 333333, 700000, 1234567])
    @pytest.mark.parametrize("flats", [1, 3, 7, 8])
    def test_average_matches_rounded_ratio(self, price, flats):
        state = SellerValues(num_flats=flats)
        state = apply_seller_edit(state, SellerEdit("purchase_price", price))
        assert state.average_price_per_flat == round_half_up(price / flats)

    def test_zero_flats_keeps_previous_average(self):
        state = apply_seller_edit(SellerValues(), SellerEdit("num_flats", 0))
        assert state.num_flats == 0
        assert state.average_price_per_flat == 87500

        state = apply_seller_edit(state, SellerEdit("purchase_price", 900000))
        assert state.purchase_price == 900000
        assert state.average_price_per_flat == 87500

    def test_empty_price_is_zero(self):
        state = apply_seller_edit(SellerValues(), SellerEdit("purchase_price", ""))
        assert state.purchase_price == 0
        assert state.average_price_per_flat == 0

    def test_edit_is_idempotent(self):
        edit = SellerEdit("purchase_price", 650000)
        once = apply_seller_edit(SellerValues(), edit)
        twice = apply_seller_edit(once, edit)
        assert once == twice

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            apply_seller_edit(SellerValues(), SellerEdit("asking_price", 1))

    def test_merge_extraction_with_both_fields(self):
        state = merge_extraction(SellerValues(), {"purchase_price": 685000, "num_flats": 7})
        assert state == SellerValues(685000, 7, 97857)

    def test_merge_extraction_price_only(self):
        state = merge_extraction(SellerValues(), {"purchase_price": 800000})
        assert state.num_flats == 8
        assert state.average_price_per_flat == 100000

    def test_merge_extraction_keeps_explicit_average(self):
        state = merge_extraction(
            SellerValues(),
            {"purchase_price": 685000, "num_flats": 7, "average_price_per_flat": 90000},
        )
        assert state.average_price_per_flat == 90000

    def test_model_emits_full_values(self):
        model = SellerModel()
        received = []
        model.subscribe(received.append)

        model.set_field("purchase_price", 700000)
        model.set_field("purchase_price", 700000)

        assert received == [SellerValues(700000, 8, 87500)] * 2

    def test_unsubscribe(self):
        model = SellerModel()
        received = []
        unsubscribe = model.subscribe(received.append)
        unsubscribe()
        model.set_field("num_flats", 4)
        assert received == []


class TestBuyer:
    """Test buyer totals and offer policies."""

    def test_total_refurb_cost(self):
        totals = calculate_totals(SellerValues(num_flats=8), BuyerValues(refurbishment_cost=7500))
        assert totals.total_refurb_cost == 60000

    def test_default_totals(self):
        totals = calculate_totals(SellerValues(), BuyerValues())
        assert totals.total_legal_title_splitting == 4800
        assert totals.total_legal_refinancing == 8000
        assert totals.total_legal_cost_to_buy == 1000
        assert totals.total_costs == 94800

    @pytest.mark.parametrize("delta", [-5000, 1, 12345])
    def test_stamp_duty_is_separable(self, delta):
        seller = SellerValues()
        base = calculate_totals(seller, BuyerValues()).total_costs
        changed = calculate_totals(
            seller, BuyerValues(stamp_duty_land_tax=21000 + delta)
        ).total_costs
        assert changed - base == delta

    def test_ratio_policy(self):
        buyer = RatioOfferPolicy(0.865)(SellerValues(), BuyerValues())
        assert buyer.buyer_offer_price == 605500
        assert buyer.estimated_flat_value == 75688

    def test_defaults_agree_with_default_policy(self):
        assert RatioOfferPolicy()(SellerValues(), BuyerValues()) == BuyerValues()

    def test_ratio_policy_zero_flats_keeps_flat_value(self):
        buyer = RatioOfferPolicy()(SellerValues(num_flats=0), BuyerValues(estimated_flat_value=1))
        assert buyer.buyer_offer_price == 605500
        assert buyer.estimated_flat_value == 1

    def test_cost_deduction_policy(self):
        buyer = CostDeductionOfferPolicy()(SellerValues(), BuyerValues())
        assert buyer.buyer_offer_price == 605200
        assert buyer.estimated_flat_value == 75650

    def test_cost_deduction_policy_never_negative(self):
        buyer = CostDeductionOfferPolicy()(SellerValues(purchase_price=1000), BuyerValues())
        assert buyer.buyer_offer_price == 0

    def test_preserve_override_policy(self):
        policy = PreserveManualOverridePolicy(RatioOfferPolicy())
        buyer = policy(
            SellerValues(),
            BuyerValues(buyer_offer_price=500000, estimated_flat_value=60000),
            frozenset({"buyer_offer_price"}),
        )
        assert buyer.buyer_offer_price == 500000
        assert buyer.estimated_flat_value == 75688

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            get_offer_policy("haggle")

    def test_upstream_change_overwrites_manual_offer(self):
        model = BuyerModel()
        model.on_upstream_change(SellerValues())
        model.set_field("buyer_offer_price", 550000)
        assert model.values.buyer_offer_price == 550000

        model.on_upstream_change(SellerValues(purchase_price=800000, average_price_per_flat=100000))
        assert model.values.buyer_offer_price == 692000
        assert model.values.estimated_flat_value == 86500

    def test_unchanged_headline_keeps_manual_offer(self):
        model = BuyerModel()
        model.on_upstream_change(SellerValues())
        model.set_field("estimated_flat_value", 80000)

        model.on_upstream_change(SellerValues())
        assert model.values.estimated_flat_value == 80000

    def test_set_field_emits_values_and_totals(self):
        model = BuyerModel()
        received = []
        model.subscribe(lambda values, totals: received.append((values, totals)))

        model.set_field("stamp_duty_land_tax", "")

        values, totals = received[-1]
        assert values.stamp_duty_land_tax == 0
        assert totals.total_costs == 73800

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            BuyerModel().set_field("agent_fee", 100)


class TestFinancing:
    """Test deposit, interest and rent calculations."""

    def test_deposit_split(self):
        results = calculate_financing(SellerValues(), FinancingValues(deposit_percentage=25))
        assert results.deposit_amount == 175000
        assert results.mortgage_principal == 525000

    def test_interest(self):
        results = calculate_financing(SellerValues(), FinancingValues())
        assert results.mortgage_interest_yearly == 31500
        assert results.mortgage_interest_monthly == 2625
        assert results.bridging_interest_yearly == 42000
        assert results.bridging_interest_monthly == 3500

    def test_interest_rounds_half_up(self):
        assert calculate_interest(525000, 6) == (31500, 2625)
        assert calculate_interest(1000, 0.05) == (1, 0)

    def test_rent_and_profit(self):
        results = calculate_financing(SellerValues(), FinancingValues())
        assert results.rent_per_flat_yearly == 7200
        assert results.rent_per_block_yearly == 57600
        assert results.rent_per_block_monthly == 4800
        assert results.profit_after_mortgage_monthly == 2175
        assert results.profit_after_bridging_monthly == 1300

    def test_rent_per_block_monthly_is_not_rounded(self):
        results = calculate_financing(
            SellerValues(num_flats=1), FinancingValues(rent_per_flat_monthly=100.25)
        )
        assert results.rent_per_block_monthly == pytest.approx(100.25)

    def test_profit_may_be_negative(self):
        results = calculate_financing(SellerValues(), FinancingValues(rent_per_flat_monthly=0))
        assert results.profit_after_mortgage_monthly == -2625

    def test_offer_price_basis(self):
        results = calculate_financing(
            SellerValues(),
            FinancingValues(),
            BuyerValues(buyer_offer_price=600000),
            basis="offer_price",
        )
        assert results.deposit_amount == 150000
        assert results.mortgage_principal == 450000

    def test_offer_price_basis_needs_buyer(self):
        with pytest.raises(ValueError):
            calculate_financing(SellerValues(), FinancingValues(), basis="offer_price")

    def test_deposit_percentage_clamped(self):
        model = FinancingModel()
        model.set_field("deposit_percentage", 80)
        assert model.values.deposit_percentage == 50
        model.set_field("deposit_percentage", "")
        assert model.values.deposit_percentage == 5

    def test_user_fields_survive_upstream_change(self):
        model = FinancingModel()
        model.set_field("mortgage_interest_rate", 4.5)
        model.on_upstream_change(SellerValues(purchase_price=1000000), BuyerValues())
        assert model.values.mortgage_interest_rate == 4.5
        assert model.results.deposit_amount == 250000


class TestResults:
    """Test sale and refinance outcomes."""

    def test_block_value_and_profit(self):
        seller = SellerValues()
        buyer = BuyerValues(buyer_offer_price=605500)
        results = compute_results(seller, buyer)

        assert results.estimated_block_value == 1200000
        assert results.total_spend == 605500 + 94800
        assert results.profit_on_sale == 1200000 - results.total_spend
        assert results.new_value_created == results.profit_on_sale

    def test_refinance(self):
        results = compute_results(SellerValues(), BuyerValues(buyer_offer_price=605500))
        assert results.refinance_deposit == 300000
        assert results.refinance_mortgage == 900000
        assert results.cash_released == 294500
        assert results.cash_released_display == 294500
        assert results.refinance_outcome == CASH_OUT

    def test_top_up_when_cash_released_negative(self):
        results = compute_results(SellerValues(num_flats=1), BuyerValues(buyer_offer_price=605500))
        assert results.cash_released == 112500 - 605500
        assert results.cash_released_display == 0
        assert results.refinance_outcome == TOP_UP

    def test_roi(self):
        results = compute_results(SellerValues(), BuyerValues(buyer_offer_price=605500))
        assert results.roi == pytest.approx(499700 / 700300)

    def test_roi_undefined_without_spend(self):
        buyer = BuyerValues(
            refurbishment_cost=0,
            legal_cost_to_buy=0,
            legal_cost_for_title_splitting=0,
            legal_cost_for_refinancing=0,
            stamp_duty_land_tax=0,
            buyer_offer_price=0,
        )
        results = compute_results(SellerValues(), buyer)
        assert results.total_spend == 0
        assert results.roi is None

    def test_configurable_assumptions(self):
        results = compute_results(
            SellerValues(),
            BuyerValues(),
            post_refurb_flat_value=100000,
            refinance_ltv=0.6,
        )
        assert results.estimated_block_value == 800000
        assert results.refinance_mortgage == pytest.approx(480000)
