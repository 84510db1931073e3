"""
Calculation Service - Financial Derivation

Single home for every money computation in the back-office:
- Vehicle profit/loss and profit margin (read-time, never persisted)
- Sales transaction gross/discount/tax/total/margin

Uses Decimal for precision to avoid floating-point errors; results are
returned as floats rounded to cents because that is how they are stored.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")


def _to_decimal(value) -> Decimal:
    return Decimal(str(value))


def _round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class VehicleProfit:
    """Derived profit figures for one vehicle."""
    profit_loss: float
    profit_margin: float


@dataclass(frozen=True)
class SaleFinancials:
    """Derived fields of a sales transaction."""
    gross_price: float
    tax_amount: float
    total_price: float
    margin: Optional[float]


class CalculationService:
    """Service for financial derivations with precise decimal arithmetic"""

    def calculate_vehicle_profit(
        self,
        list_price: float,
        actual_sale_price: Optional[float] = None,
        acquisition_cost: Optional[float] = None,
    ) -> VehicleProfit:
        """
        Compute profit/loss and margin for a vehicle.

        Formula:
            revenue      = actual_sale_price ?? list_price
            profit_loss  = revenue - (acquisition_cost ?? 0)
            profit_margin = round(100 * profit_loss / revenue, 2), 0 when revenue is 0

        Args:
            list_price: Advertised price
            actual_sale_price: Price the vehicle actually sold for, if sold
            acquisition_cost: What the dealership paid, if known

        Returns:
            VehicleProfit with both figures rounded to cents
        """
        revenue = _to_decimal(actual_sale_price if actual_sale_price is not None else list_price or 0)
        cost = _to_decimal(acquisition_cost if acquisition_cost is not None else 0)

        profit_loss = revenue - cost

        if revenue == 0:
            profit_margin = Decimal("0.00")
        else:
            profit_margin = _round_cents(Decimal("100") * profit_loss / revenue)

        return VehicleProfit(
            profit_loss=float(_round_cents(profit_loss)),
            profit_margin=float(profit_margin),
        )

    def calculate_sale(
        self,
        sale_price: float,
        discount: Optional[float] = 0,
        tax_rate: Optional[float] = 0,
        cost_of_goods: Optional[float] = None,
    ) -> SaleFinancials:
        """
        Recompute the derived fields of a sale.

        Formula:
            gross  = sale_price
            base   = max(0, gross - discount)
            tax    = round(base * tax_rate, 2)
            total  = round(base + tax, 2)
            margin = sale_price - cost_of_goods (only when cost is known)
        """
        gross = _to_decimal(sale_price)
        base = max(Decimal("0"), gross - _to_decimal(discount or 0))
        tax_amount = _round_cents(base * _to_decimal(tax_rate or 0))
        total = _round_cents(base + tax_amount)

        margin = None
        if cost_of_goods is not None:
            margin = float(gross - _to_decimal(cost_of_goods))

        return SaleFinancials(
            gross_price=float(gross),
            tax_amount=float(tax_amount),
            total_price=float(total),
            margin=margin,
        )

    def recalculate_sale(self, transaction) -> None:
        """
        Write derived fields back onto a SalesTransaction in place.
        """
        financials = self.calculate_sale(
            sale_price=transaction.sale_price,
            discount=transaction.discount,
            tax_rate=transaction.tax_rate,
            cost_of_goods=transaction.cost_of_goods,
        )
        transaction.gross_price = financials.gross_price
        transaction.tax_amount = financials.tax_amount
        transaction.total_price = financials.total_price
        transaction.margin = financials.margin


# Singleton instance for easy import
calculation_service = CalculationService()
