"""
Units — централизованный модуль конверсии on-chain единиц

Единственный допустимый способ преобразований между:
- base units (wei, минимальная единица токена) — int
- human-facing значениями (ETH, токены, USD) — Decimal

ЗАПРЕЩЕНО хранить в одном поле значения в разных единицах (wei vs ETH vs USD).
Float не используется: Decimal только для отображения.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Final


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Десятичность ETH и стандартного ERC-20 токена
ETH_DECIMALS: Final[int] = 18
TOKEN_DECIMALS: Final[int] = 18

# 1 ETH в wei
WEI_PER_ETH: Final[int] = 10**ETH_DECIMALS

# Масштаб fixed-point цены (18 знаков, совпадает с base unit токена)
PRICE_SCALE: Final[int] = 10**18

# Точность Decimal контекста для конверсий (с запасом под 10**42 и выше)
DECIMAL_PRECISION: Final[int] = 80


# =============================================================================
# КОНВЕРТЕРЫ
# =============================================================================


def to_base_units(value: Decimal | str | int, decimals: int = TOKEN_DECIMALS) -> int:
    """
    Конверсия: human-facing значение → base units.

    Дробная часть мельче 10**-decimals отбрасывается (округление вниз).

    Args:
        value: Значение в целых единицах ("0.01", Decimal("1.5"), 3)
        decimals: Десятичность актива

    Returns:
        Значение в base units (int)

    Raises:
        ValueError: Если value не парсится или отрицательное

    Examples:
        >>> to_base_units("0.01")
        10000000000000000
        >>> to_base_units("0.5", decimals=9)
        500000000
    """
    if isinstance(value, float):
        raise ValueError("float values are not accepted, pass str or Decimal")

    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Cannot parse amount {value!r}") from e

    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")

    if amount < 0:
        raise ValueError(f"Amount cannot be negative: {value!r}")

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        scaled = (amount * (Decimal(10) ** decimals)).to_integral_value(
            rounding=ROUND_DOWN
        )

    return int(scaled)


def from_base_units(amount: int, decimals: int = TOKEN_DECIMALS) -> Decimal:
    """
    Конверсия: base units → Decimal в целых единицах (точная).

    Examples:
        >>> from_base_units(10**16)
        Decimal('0.01')
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return Decimal(amount).scaleb(-decimals).normalize()


def fixed_point_to_decimal(value: int, scale: int = PRICE_SCALE) -> Decimal:
    """Конверсия fixed-point значения (например, цены) в Decimal."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return (Decimal(value) / Decimal(scale)).normalize()


def format_base_units(
    amount: int,
    decimals: int = TOKEN_DECIMALS,
    display_places: int = 6,
) -> str:
    """
    Форматирование base units для отображения (округление вниз).

    Examples:
        >>> format_base_units(1_234_567_890_000_000_000)
        '1.234567'
    """
    quantum = Decimal(1).scaleb(-display_places)
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        value = from_base_units(amount, decimals).quantize(quantum, rounding=ROUND_DOWN)
    return f"{value:f}"


def wei_to_usd(amount_wei: int, eth_usd_price: Decimal) -> Decimal:
    """
    Конверсия: wei → USD по курсу ETH/USD.

    Единственный путь смешения единиц wei и USD.
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return from_base_units(amount_wei, ETH_DECIMALS) * Decimal(eth_usd_price)


def reject_bool_amount(value: object, name: str) -> object:
    """
    Pre-validation целочисленной суммы модели: bool не является суммой.

    Десятичные строки и int пропускаются дальше (коэрсия pydantic).

    Raises:
        ValueError: Если value — bool
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer amount, got bool {value!r}")
    return value
