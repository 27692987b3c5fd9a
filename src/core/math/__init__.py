"""
Core math modules для launchpad

Целочисленные примитивы и constant-product bonding curve.
"""

# Integer Math
from src.core.math.integer_math import (
    BPS_DENOMINATOR,
    apply_slippage_bps,
    bps_of,
    clamp_int,
    div_ceil,
    div_floor,
    mul_div_floor,
    validate_bps,
    validate_integer,
    validate_non_negative_int,
)

# Bonding Curve
from src.core.math.bonding_curve import (
    DEFAULT_CREATOR_FEE_BPS,
    DEFAULT_GRADUATION_THRESHOLD_USD,
    DEFAULT_PLATFORM_FEE_BPS,
    FeeBreakdown,
    TradeQuote,
    apply_buy,
    apply_sell,
    bonding_progress,
    calculate_buy_return,
    calculate_fees,
    calculate_market_cap,
    calculate_sell_return,
    check_graduation,
    get_price,
    min_amount_out,
    quote_buy,
    quote_sell,
)

__all__ = [
    # Integer Math: Constants
    "BPS_DENOMINATOR",
    # Integer Math: Division
    "div_floor",
    "div_ceil",
    "mul_div_floor",
    # Integer Math: Basis points
    "bps_of",
    "apply_slippage_bps",
    "clamp_int",
    # Integer Math: Validation
    "validate_integer",
    "validate_non_negative_int",
    "validate_bps",
    # Bonding Curve: Constants
    "DEFAULT_PLATFORM_FEE_BPS",
    "DEFAULT_CREATOR_FEE_BPS",
    "DEFAULT_GRADUATION_THRESHOLD_USD",
    # Bonding Curve: Types
    "FeeBreakdown",
    "TradeQuote",
    # Bonding Curve: Functions
    "get_price",
    "calculate_fees",
    "calculate_buy_return",
    "calculate_sell_return",
    "apply_buy",
    "apply_sell",
    "quote_buy",
    "quote_sell",
    "min_amount_out",
    "calculate_market_cap",
    "bonding_progress",
    "check_graduation",
]
