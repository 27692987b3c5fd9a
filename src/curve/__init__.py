"""Bonding curve engine — параметризованная кривая и лимиты сделок.

Один конфигурируемый модуль вместо вариантов контракта
(Dev, LowFee, Secure, UltraSecure).
"""

from .engine import (
    DEV_CURVE,
    LOW_FEE_CURVE,
    PRESETS,
    SECURE_CURVE,
    ULTRA_SECURE_CURVE,
    BondingCurveEngine,
    CurveConfig,
)

__all__ = [
    "BondingCurveEngine",
    "CurveConfig",
    "DEV_CURVE",
    "LOW_FEE_CURVE",
    "SECURE_CURVE",
    "ULTRA_SECURE_CURVE",
    "PRESETS",
]
