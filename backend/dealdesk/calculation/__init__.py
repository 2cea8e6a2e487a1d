"""Finance, lease and cash derivations plus the tax step."""
from dealdesk.calculation.engine import derive
from dealdesk.calculation.finance import calculate_amount_financed, calculate_monthly_payment
from dealdesk.calculation.lease import apr_to_money_factor, money_factor_to_apr
from dealdesk.calculation.tax import calculate_sales_tax, get_lease_tax_strategy

__all__ = [
    "derive",
    "calculate_amount_financed",
    "calculate_monthly_payment",
    "apr_to_money_factor",
    "money_factor_to_apr",
    "calculate_sales_tax",
    "get_lease_tax_strategy",
]
