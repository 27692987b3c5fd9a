"""
Domain models and value objects.

Contains fundamental domain entities like TokenReserveState, Escrow, Milestone
and the base-unit conversion helpers.
"""

from src.core.domain.escrow import Escrow, EscrowStatus, Milestone
from src.core.domain.token_reserve import (
    DEFAULT_VIRTUAL_ETH_RESERVE,
    DEFAULT_VIRTUAL_TOKEN_RESERVE,
    TokenReserveState,
)
from src.core.domain.units import (
    ETH_DECIMALS,
    PRICE_SCALE,
    TOKEN_DECIMALS,
    WEI_PER_ETH,
    fixed_point_to_decimal,
    format_base_units,
    from_base_units,
    to_base_units,
    wei_to_usd,
)

__all__ = [
    # Units module
    "ETH_DECIMALS",
    "TOKEN_DECIMALS",
    "WEI_PER_ETH",
    "PRICE_SCALE",
    "to_base_units",
    "from_base_units",
    "fixed_point_to_decimal",
    "format_base_units",
    "wei_to_usd",
    # Token reserve model
    "TokenReserveState",
    "DEFAULT_VIRTUAL_ETH_RESERVE",
    "DEFAULT_VIRTUAL_TOKEN_RESERVE",
    # Escrow model
    "Escrow",
    "EscrowStatus",
    "Milestone",
]
