"""
Tests for the financial derivations (vehicle profit and sale totals).
"""
from decimal import Decimal, ROUND_HALF_UP

import pytest
from beanie import PydanticObjectId

from royaldrive.models.sales_transaction import SalesTransaction
from royaldrive.services.calculation_service import CalculationService


@pytest.fixture
def calc() -> CalculationService:
    return CalculationService()


def _round2(value) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# Vehicle profit

def test_profit_uses_list_price_until_sold(calc):
    profit = calc.calculate_vehicle_profit(list_price=25000, acquisition_cost=19000)
    assert profit.profit_loss == 6000.0
    assert profit.profit_margin == 24.0


def test_profit_prefers_actual_sale_price(calc):
    profit = calc.calculate_vehicle_profit(
        list_price=25000, actual_sale_price=20000, acquisition_cost=19000
    )
    assert profit.profit_loss == 1000.0
    assert profit.profit_margin == 5.0


def test_profit_without_acquisition_cost(calc):
    profit = calc.calculate_vehicle_profit(list_price=18000)
    assert profit.profit_loss == 18000.0
    assert profit.profit_margin == 100.0


def test_profit_margin_zero_when_revenue_is_zero(calc):
    profit = calc.calculate_vehicle_profit(list_price=0, acquisition_cost=500)
    assert profit.profit_loss == -500.0
    assert profit.profit_margin == 0.0
    assert isinstance(profit.profit_margin, float)


def test_profit_margin_rounded_to_two_decimals(calc):
    profit = calc.calculate_vehicle_profit(list_price=30000, acquisition_cost=20000)
    # 100 * 10000 / 30000 = 33.333...
    assert profit.profit_margin == 33.33


# Sale financials

def test_sale_with_hst(calc):
    financials = calc.calculate_sale(sale_price=20000, discount=0, tax_rate=0.13)
    assert financials.gross_price == 20000.0
    assert financials.tax_amount == 2600.0
    assert financials.total_price == 22600.0
    assert financials.margin is None


def test_sale_discount_reduces_taxable_base(calc):
    financials = calc.calculate_sale(
        sale_price=20000, discount=1000, tax_rate=0.13, cost_of_goods=16500
    )
    assert financials.gross_price == 20000.0
    assert financials.tax_amount == 2470.0
    assert financials.total_price == 21470.0
    assert financials.margin == 3500.0


def test_sale_discount_larger_than_price_floors_at_zero(calc):
    financials = calc.calculate_sale(sale_price=500, discount=800, tax_rate=0.13)
    assert financials.tax_amount == 0.0
    assert financials.total_price == 0.0


@pytest.mark.parametrize(
    "sale_price, discount, tax_rate",
    [
        (20000, 0, 0.13),
        (19999.99, 250.5, 0.13),
        (12345.67, 12345.67, 0.05),
        (0.01, 0, 1),
        (31500, 499.99, 0.15),
        (7, 3, 0),
    ],
)
def test_financial_identity(calc, sale_price, discount, tax_rate):
    financials = calc.calculate_sale(sale_price=sale_price, discount=discount, tax_rate=tax_rate)
    base = max(0, sale_price - discount)

    assert financials.total_price == pytest.approx(_round2(base * (1 + tax_rate)), abs=0.01)
    assert financials.tax_amount == pytest.approx(financials.total_price - base, abs=0.01)


def test_recalculate_sale_writes_back_and_clears_margin(calc):
    transaction = SalesTransaction(
        vehicle=PydanticObjectId(),
        customer_name="Jane Doe",
        sale_price=20000,
        cost_of_goods=16500,
        tax_rate=0.13,
    )
    calc.recalculate_sale(transaction)
    assert transaction.total_price == 22600.0
    assert transaction.margin == 3500.0
    assert transaction.margin_percent == 0.175

    transaction.cost_of_goods = None
    transaction.sale_price = 21000
    calc.recalculate_sale(transaction)
    assert transaction.gross_price == 21000.0
    assert transaction.tax_amount == 2730.0
    assert transaction.total_price == 23730.0
    assert transaction.margin is None
    assert transaction.margin_percent is None
