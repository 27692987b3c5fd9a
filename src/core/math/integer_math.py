"""
Integer Math — целочисленные примитивы для on-chain сумм

Все суммы (wei, base units токена) — целые произвольной точности.
Float запрещён: только финальное отображение может использовать Decimal.

Модуль обеспечивает:
- Деление с явным направлением округления (floor/ceil)
- Комиссии в basis points с округлением вниз
- Валидацию целочисленных аргументов

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Каждое деление явно указывает направление округления
2. bool не принимается как int (True != 1 wei)
3. Все операции детерминированы и воспроизводимы
"""

from typing import Final

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Знаменатель basis points: 10_000 bps = 100%
BPS_DENOMINATOR: Final[int] = 10_000


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def is_integer(value: object) -> bool:
    """True для int (bool исключён)."""
    return isinstance(value, int) and not isinstance(value, bool)


def validate_integer(value: object, name: str) -> None:
    """
    Валидация, что значение — целое число.

    Raises:
        ValueError: Если value не int (или является bool)
    """
    if not is_integer(value):
        raise ValueError(f"{name} must be an integer, got {value!r}")


def validate_non_negative_int(value: int, name: str) -> None:
    """
    Валидация, что значение — неотрицательное целое.

    Raises:
        ValueError: Если value не int или value < 0
    """
    validate_integer(value, name)

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_bps(value: int, name: str) -> None:
    """
    Валидация basis points: целое в [0, 10000].

    Raises:
        ValueError: Если значение вне диапазона
    """
    validate_non_negative_int(value, name)

    if value > BPS_DENOMINATOR:
        raise ValueError(f"{name} must be <= {BPS_DENOMINATOR} bps, got {value}")


# =============================================================================
# ДЕЛЕНИЕ С ЯВНЫМ ОКРУГЛЕНИЕМ
# =============================================================================


def div_floor(numerator: int, denominator: int) -> int:
    """
    Целочисленное деление с округлением вниз.

    Для неотрицательных аргументов совпадает с truncation (деление в EVM).

    Raises:
        ZeroDivisionError: Если denominator == 0
    """
    return numerator // denominator


def div_ceil(numerator: int, denominator: int) -> int:
    """
    Целочисленное деление с округлением вверх.

    Examples:
        >>> div_ceil(10, 3)
        4
        >>> div_ceil(9, 3)
        3
    """
    return -(-numerator // denominator)


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) без потери точности."""
    return (a * b) // denominator


# =============================================================================
# BASIS POINTS
# =============================================================================


def bps_of(amount: int, bps: int) -> int:
    """
    Доля amount в basis points, округление вниз.

    amount * bps // 10000 — как в контрактах bonding curve.

    Examples:
        >>> bps_of(10**16, 100)
        100000000000000
        >>> bps_of(99, 100)
        0
    """
    return mul_div_floor(amount, bps, BPS_DENOMINATOR)


def apply_slippage_bps(amount: int, slippage_bps: int) -> int:
    """
    Минимально допустимый результат с учётом slippage tolerance.

    floor(amount * (10000 - slippage_bps) / 10000)

    Args:
        amount: Ожидаемый результат (base units)
        slippage_bps: Допустимое проскальзывание в bps (например, 50 = 0.5%)

    Returns:
        Нижняя граница результата

    Raises:
        ValueError: Если аргументы некорректны
    """
    validate_non_negative_int(amount, "amount")
    validate_bps(slippage_bps, "slippage_bps")

    return mul_div_floor(amount, BPS_DENOMINATOR - slippage_bps, BPS_DENOMINATOR)


def clamp_int(
    value: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """
    Ограничение целого значения диапазоном [min_value, max_value].

    Examples:
        >>> clamp_int(5, 0, 10)
        5
        >>> clamp_int(15, 0, 10)
        10
    """
    result = value

    if min_value is not None:
        result = max(result, min_value)

    if max_value is not None:
        result = min(result, max_value)

    return result
