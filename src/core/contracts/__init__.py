"""
Contract Validation Module

Модуль для валидации JSON контрактов снапшотов, получаемых от
chain-reading и persistence слоёв.
"""

from .validators import (
    ContractValidator,
    EscrowValidator,
    SchemaLoader,
    TokenReserveStateValidator,
    validate_escrow,
    validate_token_reserve_state,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "TokenReserveStateValidator",
    "EscrowValidator",
    # Functions
    "validate_token_reserve_state",
    "validate_escrow",
]
