"""
EMI (equated monthly instalment) calculator for home loans.

    EMI = P · r · (1 + r)^n / ((1 + r)^n − 1)

where r is the monthly interest rate and n the number of monthly
instalments. The result is rounded to whole rupees.
"""

from dataclasses import dataclass

from urgentsales.core.pricing import round_half_up

DEFAULT_PRINCIPAL = 5_000_000
DEFAULT_RATE = 8.5
DEFAULT_TENURE_YEARS = 20


@dataclass(frozen=True)
class LoanBreakdown:
    monthly_emi: int
    total_amount: int
    total_interest: int
    months: int


def _check(principal: float, annual_rate_pct: float, tenure_years: float) -> None:
    if principal <= 0:
        raise ValueError("Loan amount must be positive")
    if annual_rate_pct < 0:
        raise ValueError("Interest rate cannot be negative")
    if tenure_years <= 0:
        raise ValueError("Loan tenure must be positive")


def monthly_emi(
    principal: float = DEFAULT_PRINCIPAL,
    annual_rate_pct: float = DEFAULT_RATE,
    tenure_years: float = DEFAULT_TENURE_YEARS,
) -> int:
    """
    Monthly instalment for a loan.

    Args:
        principal: loan amount in rupees
        annual_rate_pct: yearly interest rate in percent (8.5 → 8.5 %)
        tenure_years: loan tenure in years

    Raises:
        ValueError: non-positive principal or tenure, negative rate
    """
    _check(principal, annual_rate_pct, tenure_years)

    months = round(tenure_years * 12)
    rate = annual_rate_pct / 12 / 100
    if rate == 0:
        return round_half_up(principal / months)

    growth = (1 + rate) ** months
    return round_half_up(principal * rate * growth / (growth - 1))


def loan_breakdown(
    principal: float = DEFAULT_PRINCIPAL,
    annual_rate_pct: float = DEFAULT_RATE,
    tenure_years: float = DEFAULT_TENURE_YEARS,
) -> LoanBreakdown:
    """EMI plus the total repaid and the interest component."""
    emi = monthly_emi(principal, annual_rate_pct, tenure_years)
    months = round(tenure_years * 12)
    total = emi * months
    return LoanBreakdown(
        monthly_emi=emi,
        total_amount=total,
        total_interest=max(total - round_half_up(principal), 0),
        months=months,
    )
