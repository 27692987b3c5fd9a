"""
Bonding Curve — constant-product pricing engine

Чистые функции над TokenReserveState: цена, buy/sell return, market cap,
bonding progress и graduation. Engine не меняет on-chain состояние: он
зеркалирует его для off-chain отображения и pre-trade валидации.

Формулы (x * y = k, x = effective ETH, y = effective tokens):

    BUY:
        fee_i          = eth_in * fee_bps_i // 10000          (floor)
        eth_after_fees = eth_in - platform_fee - creator_fee
        new_y          = k // (x + eth_after_fees)            (truncation, как on-chain)
        tokens_out     = y - new_y

    SELL:
        new_x               = ceil(k / (y + tokens_in))
        eth_out_before_fees = x - new_x                       (округление вниз)
        eth_out             = eth_out_before_fees - fees

    PRICE:
        price = x * PRICE_SCALE // y                          (18-decimal fixed point)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Только int арифметика; Decimal только для USD/процентов
2. Округление выхода в пользу протокола: ETH, покидающий пул, округляется вниз
3. Покупка не забирает больше real_token_reserve (кроме превью свежей кривой),
   продажа — больше real_eth_reserve
4. Graduated кривая не торгуется
"""

from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Final

from loguru import logger

from src.core.domain.token_reserve import TokenReserveState
from src.core.domain.units import DECIMAL_PRECISION, PRICE_SCALE, wei_to_usd
from src.core.errors import (
    CurveGraduated,
    DivisionByZero,
    InsufficientLiquidity,
    InvalidAmount,
)
from src.core.math.integer_math import (
    BPS_DENOMINATOR,
    apply_slippage_bps,
    bps_of,
    clamp_int,
    div_ceil,
    div_floor,
    validate_bps,
    validate_integer,
)


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Порог graduation по умолчанию (USD market cap)
DEFAULT_GRADUATION_THRESHOLD_USD: Final[Decimal] = Decimal("69000")

# Комиссии по умолчанию: 1% platform + 1% creator
DEFAULT_PLATFORM_FEE_BPS: Final[int] = 100
DEFAULT_CREATOR_FEE_BPS: Final[int] = 100

MAX_PROGRESS_PCT: Final[Decimal] = Decimal(100)


# =============================================================================
# ТИПЫ
# =============================================================================


@dataclass(frozen=True)
class FeeBreakdown:
    """Разбивка комиссий сделки (все суммы в wei)."""

    gross_amount: int
    platform_fee: int
    creator_fee: int

    @property
    def total_fee(self) -> int:
        return self.platform_fee + self.creator_fee

    @property
    def net_amount(self) -> int:
        return self.gross_amount - self.total_fee


@dataclass(frozen=True)
class TradeQuote:
    """Превью сделки для pre-trade simulation endpoint."""

    is_buy: bool
    amount_in: int
    amount_out: int
    fees: FeeBreakdown

    price_before: int
    price_after: int

    # Диагностика
    price_impact_bps: int
    state_after: TokenReserveState


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def _validate_fees(platform_fee_bps: int, creator_fee_bps: int) -> None:
    validate_bps(platform_fee_bps, "platform_fee_bps")
    validate_bps(creator_fee_bps, "creator_fee_bps")

    if platform_fee_bps + creator_fee_bps >= BPS_DENOMINATOR:
        raise ValueError(
            f"Combined fee {platform_fee_bps + creator_fee_bps} bps must be < "
            f"{BPS_DENOMINATOR} bps"
        )


def _require_positive_amount(amount: int, name: str) -> None:
    validate_integer(amount, name)

    if amount <= 0:
        raise InvalidAmount(f"{name} must be positive, got {amount}")


def _require_tradeable(state: TokenReserveState) -> None:
    if state.graduated:
        raise CurveGraduated("Token has graduated, bonding curve trading is disabled")


# =============================================================================
# ЦЕНА
# =============================================================================


def get_price(state: TokenReserveState) -> int:
    """
    Цена токена в ETH как 18-decimal fixed point (floor).

    price = effective_eth_reserve * PRICE_SCALE // effective_token_reserve

    Raises:
        DivisionByZero: Если effective_token_reserve == 0 (нарушение инварианта)
    """
    token_reserve = state.effective_token_reserve

    if token_reserve == 0:
        logger.error(
            "Bonding curve invariant violated: effective token reserve is zero "
            "(virtual={}, real={})",
            state.virtual_token_reserve,
            state.real_token_reserve,
        )
        raise DivisionByZero("effective_token_reserve is zero")

    return state.effective_eth_reserve * PRICE_SCALE // token_reserve


def calculate_fees(
    amount: int,
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS,
    creator_fee_bps: int = DEFAULT_CREATOR_FEE_BPS,
) -> FeeBreakdown:
    """
    Комиссии сделки: каждая округляется вниз отдельно.

    Args:
        amount: Сумма, с которой берётся комиссия (wei)
        platform_fee_bps: Комиссия платформы в bps
        creator_fee_bps: Комиссия создателя токена в bps

    Returns:
        FeeBreakdown
    """
    validate_integer(amount, "amount")
    _validate_fees(platform_fee_bps, creator_fee_bps)

    return FeeBreakdown(
        gross_amount=amount,
        platform_fee=bps_of(amount, platform_fee_bps),
        creator_fee=bps_of(amount, creator_fee_bps),
    )


# =============================================================================
# BUY / SELL
# =============================================================================


def _buy(
    state: TokenReserveState,
    eth_in: int,
    platform_fee_bps: int,
    creator_fee_bps: int,
) -> tuple[int, FeeBreakdown]:
    _require_positive_amount(eth_in, "eth_in")
    _require_tradeable(state)

    fees = calculate_fees(eth_in, platform_fee_bps, creator_fee_bps)

    eth_reserve = state.effective_eth_reserve
    token_reserve = state.effective_token_reserve

    new_eth_reserve = eth_reserve + fees.net_amount
    # Truncation совпадает с арифметикой контракта
    new_token_reserve = div_floor(state.k, new_eth_reserve)
    tokens_out = token_reserve - new_token_reserve

    if tokens_out <= 0:
        raise InsufficientLiquidity(
            f"Buy of {eth_in} wei yields no tokens (eth_after_fees={fees.net_amount})"
        )

    if tokens_out > state.sale_ceiling:
        raise InsufficientLiquidity(
            f"tokens_out {tokens_out} exceeds tokens available for sale "
            f"{state.sale_ceiling}"
        )

    return tokens_out, fees


def _sell(
    state: TokenReserveState,
    tokens_in: int,
    platform_fee_bps: int,
    creator_fee_bps: int,
) -> tuple[int, FeeBreakdown]:
    _require_positive_amount(tokens_in, "tokens_in")
    _require_tradeable(state)
    _validate_fees(platform_fee_bps, creator_fee_bps)

    eth_reserve = state.effective_eth_reserve
    token_reserve = state.effective_token_reserve

    new_token_reserve = token_reserve + tokens_in
    # Округление нового резерва вверх округляет выходящий ETH вниз
    new_eth_reserve = div_ceil(state.k, new_token_reserve)
    eth_out_before_fees = eth_reserve - new_eth_reserve

    if eth_out_before_fees > state.real_eth_reserve:
        raise InsufficientLiquidity(
            f"eth_out {eth_out_before_fees} exceeds real ETH reserve "
            f"{state.real_eth_reserve}"
        )

    return eth_out_before_fees, calculate_fees(
        eth_out_before_fees, platform_fee_bps, creator_fee_bps
    )


def calculate_buy_return(
    state: TokenReserveState,
    eth_in: int,
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS,
    creator_fee_bps: int = DEFAULT_CREATOR_FEE_BPS,
) -> int:
    """
    Количество токенов за eth_in wei.

    Args:
        state: Снапшот резервов
        eth_in: ETH на входе (wei)
        platform_fee_bps: Комиссия платформы в bps
        creator_fee_bps: Комиссия создателя в bps

    Returns:
        tokens_out (base units)

    Raises:
        InvalidAmount: Если eth_in <= 0
        CurveGraduated: Если кривая graduated
        InsufficientLiquidity: Если tokens_out <= 0 или превышает sale ceiling
    """
    tokens_out, _ = _buy(state, eth_in, platform_fee_bps, creator_fee_bps)
    return tokens_out


def calculate_sell_return(
    state: TokenReserveState,
    tokens_in: int,
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS,
    creator_fee_bps: int = DEFAULT_CREATOR_FEE_BPS,
) -> int:
    """
    ETH (wei, после комиссий) за tokens_in base units.

    Комиссии берутся с eth_out_before_fees так же, как при покупке.

    Raises:
        InvalidAmount: Если tokens_in <= 0
        CurveGraduated: Если кривая graduated
        InsufficientLiquidity: Если eth_out_before_fees > real_eth_reserve
    """
    _, fees = _sell(state, tokens_in, platform_fee_bps, creator_fee_bps)
    return fees.net_amount


def apply_buy(
    state: TokenReserveState,
    eth_in: int,
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS,
    creator_fee_bps: int = DEFAULT_CREATOR_FEE_BPS,
) -> TokenReserveState:
    """
    Новое состояние после покупки (зеркало on-chain мутации).

    В пул попадает eth_after_fees; комиссии уходят платформе и создателю.
    Виртуальные токены никогда не передаются: покупка требует реальных
    токенов на продажу.

    Raises:
        InsufficientLiquidity: Если tokens_out > real_token_reserve
    """
    tokens_out, fees = _buy(state, eth_in, platform_fee_bps, creator_fee_bps)

    if tokens_out > state.real_token_reserve:
        raise InsufficientLiquidity(
            f"tokens_out {tokens_out} exceeds real token reserve "
            f"{state.real_token_reserve}"
        )

    return state.model_copy(
        update={
            "real_eth_reserve": state.real_eth_reserve + fees.net_amount,
            "real_token_reserve": state.real_token_reserve - tokens_out,
            "total_eth_traded": state.total_eth_traded + eth_in,
            "total_tokens_traded": state.total_tokens_traded + tokens_out,
        }
    )


def apply_sell(
    state: TokenReserveState,
    tokens_in: int,
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS,
    creator_fee_bps: int = DEFAULT_CREATOR_FEE_BPS,
) -> TokenReserveState:
    """Новое состояние после продажи: пул отдаёт eth_out_before_fees."""
    eth_out_before_fees, _ = _sell(state, tokens_in, platform_fee_bps, creator_fee_bps)

    return state.model_copy(
        update={
            "real_eth_reserve": state.real_eth_reserve - eth_out_before_fees,
            "real_token_reserve": state.real_token_reserve + tokens_in,
            "total_eth_traded": state.total_eth_traded + eth_out_before_fees,
            "total_tokens_traded": state.total_tokens_traded + tokens_in,
        }
    )


def _price_impact_bps(price_before: int, price_after: int) -> int:
    if price_before == 0:
        return 0
    return abs(price_after - price_before) * BPS_DENOMINATOR // price_before


def quote_buy(
    state: TokenReserveState,
    eth_in: int,
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS,
    creator_fee_bps: int = DEFAULT_CREATOR_FEE_BPS,
) -> TradeQuote:
    """Полное превью покупки: выход, комиссии, цена до/после, price impact."""
    tokens_out, fees = _buy(state, eth_in, platform_fee_bps, creator_fee_bps)

    # Превью свежей кривой: реальных токенов нет, выход списывается с виртуального резерва
    from_virtual = tokens_out if state.is_fresh else 0
    state_after = state.model_copy(
        update={
            "real_eth_reserve": state.real_eth_reserve + fees.net_amount,
            "real_token_reserve": clamp_int(
                state.real_token_reserve - tokens_out, min_value=0
            ),
            "virtual_token_reserve": state.virtual_token_reserve - from_virtual,
            "total_eth_traded": state.total_eth_traded + eth_in,
            "total_tokens_traded": state.total_tokens_traded + tokens_out,
        }
    )

    price_before = get_price(state)
    price_after = get_price(state_after)

    return TradeQuote(
        is_buy=True,
        amount_in=eth_in,
        amount_out=tokens_out,
        fees=fees,
        price_before=price_before,
        price_after=price_after,
        price_impact_bps=_price_impact_bps(price_before, price_after),
        state_after=state_after,
    )


def quote_sell(
    state: TokenReserveState,
    tokens_in: int,
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS,
    creator_fee_bps: int = DEFAULT_CREATOR_FEE_BPS,
) -> TradeQuote:
    """Полное превью продажи."""
    state_after = apply_sell(state, tokens_in, platform_fee_bps, creator_fee_bps)
    eth_out_before_fees = state.real_eth_reserve - state_after.real_eth_reserve
    fees = calculate_fees(eth_out_before_fees, platform_fee_bps, creator_fee_bps)

    price_before = get_price(state)
    price_after = get_price(state_after)

    return TradeQuote(
        is_buy=False,
        amount_in=tokens_in,
        amount_out=fees.net_amount,
        fees=fees,
        price_before=price_before,
        price_after=price_after,
        price_impact_bps=_price_impact_bps(price_before, price_after),
        state_after=state_after,
    )


def min_amount_out(amount: int, slippage_bps: int) -> int:
    """
    Минимальный допустимый выход сделки при slippage tolerance.

    Examples:
        >>> min_amount_out(10_000, 50)
        9950
    """
    return apply_slippage_bps(amount, slippage_bps)


# =============================================================================
# MARKET CAP / GRADUATION
# =============================================================================


def calculate_market_cap(state: TokenReserveState, total_supply: int) -> int:
    """
    Market cap в wei: price * total_supply / PRICE_SCALE (floor).

    Args:
        state: Снапшот резервов
        total_supply: Полный supply токена (base units)

    Returns:
        Market cap (wei)
    """
    validate_integer(total_supply, "total_supply")

    if total_supply < 0:
        raise InvalidAmount(f"total_supply cannot be negative, got {total_supply}")

    return get_price(state) * total_supply // PRICE_SCALE


def bonding_progress(
    state: TokenReserveState,
    total_supply: int,
    graduation_threshold_usd: Decimal = DEFAULT_GRADUATION_THRESHOLD_USD,
    eth_usd_price: Decimal = Decimal("2000"),
) -> Decimal:
    """
    Прогресс к graduation в процентах [0, 100].

    progress = min(100, market_cap_eth * eth_usd_price / threshold_usd * 100)

    Значение производное и не хранится.

    Raises:
        InvalidAmount: Если threshold <= 0 или eth_usd_price < 0
    """
    threshold = Decimal(graduation_threshold_usd)
    eth_usd = Decimal(eth_usd_price)

    if threshold <= 0:
        raise InvalidAmount(
            f"graduation_threshold_usd must be positive, got {graduation_threshold_usd}"
        )

    if eth_usd < 0:
        raise InvalidAmount(f"eth_usd_price cannot be negative, got {eth_usd_price}")

    market_cap_usd = wei_to_usd(calculate_market_cap(state, total_supply), eth_usd)

    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        progress = market_cap_usd / threshold * MAX_PROGRESS_PCT

    return min(MAX_PROGRESS_PCT, progress)


def check_graduation(
    state: TokenReserveState,
    total_supply: int,
    graduation_threshold_usd: Decimal = DEFAULT_GRADUATION_THRESHOLD_USD,
    eth_usd_price: Decimal = Decimal("2000"),
) -> bool:
    """
    Предикат graduation: bonding_progress >= 100.

    Сам переход graduated=True выполняет контракт; здесь только превью.
    """
    progress = bonding_progress(
        state, total_supply, graduation_threshold_usd, eth_usd_price
    )
    return progress >= MAX_PROGRESS_PCT
