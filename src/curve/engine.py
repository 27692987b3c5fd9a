"""Bonding Curve Engine — конфигурируемая кривая вместо вариантов контракта.

Варианты контракта (Dev, LowFee, Secure, UltraSecure) отличаются только
параметрами: комиссии, лимиты сделок, cooldown и лимит токенов на
создателя. Engine связывает чистые функции bonding_curve с CurveConfig
и проверяет лимиты до отправки сделки on-chain.

Лимиты:
- min/max размер сделки (wei)
- max slippage tolerance (bps)
- cooldown между созданиями токенов одним пользователем
- max_tokens_per_user, снимается после unlock_revenue_wei выручки платформы
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Final

from loguru import logger

from src.core.domain.token_reserve import TokenReserveState
from src.core.domain.units import TOKEN_DECIMALS, WEI_PER_ETH
from src.core.errors import TradeLimitExceeded
from src.core.math import bonding_curve
from src.core.math.bonding_curve import (
    DEFAULT_CREATOR_FEE_BPS,
    DEFAULT_GRADUATION_THRESHOLD_USD,
    DEFAULT_PLATFORM_FEE_BPS,
    TradeQuote,
)
from src.core.math.integer_math import BPS_DENOMINATOR, validate_bps


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TOTAL_SUPPLY: Final[int] = 1_000_000_000 * 10**TOKEN_DECIMALS
DEFAULT_CREATION_FEE_WEI: Final[int] = WEI_PER_ETH // 1000  # 0.001 ETH

# Причины TradeLimitExceeded
REASON_BELOW_MIN_TRADE: Final[str] = "below_min_trade"
REASON_ABOVE_MAX_TRADE: Final[str] = "above_max_trade"
REASON_SLIPPAGE_TOO_HIGH: Final[str] = "slippage_too_high"
REASON_COOLDOWN_ACTIVE: Final[str] = "cooldown_active"
REASON_MAX_TOKENS_PER_USER: Final[str] = "max_tokens_per_user"
REASON_INSUFFICIENT_CREATION_FEE: Final[str] = "insufficient_creation_fee"


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class CurveConfig:
    """Конфигурация bonding curve.

    None в лимите означает «без ограничения».
    """

    # Комиссии (bps)
    platform_fee_bps: int = DEFAULT_PLATFORM_FEE_BPS
    creator_fee_bps: int = DEFAULT_CREATOR_FEE_BPS

    # Лимиты сделки (wei)
    min_trade_wei: int | None = None
    max_trade_wei: int | None = None
    max_slippage_bps: int | None = None

    # Anti-spam на создание токенов
    cooldown_seconds: int = 0
    max_tokens_per_user: int | None = None
    unlock_revenue_wei: int | None = None  # снимает max_tokens_per_user

    # Graduation
    graduation_threshold_usd: Decimal = DEFAULT_GRADUATION_THRESHOLD_USD
    total_supply: int = DEFAULT_TOTAL_SUPPLY

    creation_fee_wei: int = DEFAULT_CREATION_FEE_WEI

    def __post_init__(self) -> None:
        validate_bps(self.platform_fee_bps, "platform_fee_bps")
        validate_bps(self.creator_fee_bps, "creator_fee_bps")

        if self.platform_fee_bps + self.creator_fee_bps >= BPS_DENOMINATOR:
            raise ValueError("Combined fee must be below 100%")

        if self.max_slippage_bps is not None:
            validate_bps(self.max_slippage_bps, "max_slippage_bps")

        if self.min_trade_wei is not None and self.min_trade_wei <= 0:
            raise ValueError(f"min_trade_wei must be positive, got {self.min_trade_wei}")

        if (
            self.min_trade_wei is not None
            and self.max_trade_wei is not None
            and self.min_trade_wei > self.max_trade_wei
        ):
            raise ValueError(
                f"min_trade_wei {self.min_trade_wei} > max_trade_wei {self.max_trade_wei}"
            )

        if self.cooldown_seconds < 0:
            raise ValueError(
                f"cooldown_seconds must be non-negative, got {self.cooldown_seconds}"
            )

        if self.max_tokens_per_user is not None and self.max_tokens_per_user <= 0:
            raise ValueError("max_tokens_per_user must be positive")

        if self.graduation_threshold_usd <= 0:
            raise ValueError("graduation_threshold_usd must be positive")

        if self.total_supply <= 0:
            raise ValueError("total_supply must be positive")

        if self.creation_fee_wei < 0:
            raise ValueError("creation_fee_wei must be non-negative")


# Dev: без cooldown и без min/max
DEV_CURVE: Final[CurveConfig] = CurveConfig()

LOW_FEE_CURVE: Final[CurveConfig] = CurveConfig(
    min_trade_wei=WEI_PER_ETH // 10_000,
)

SECURE_CURVE: Final[CurveConfig] = CurveConfig(
    min_trade_wei=WEI_PER_ETH // 10_000,  # 0.0001 ETH
    max_trade_wei=10 * WEI_PER_ETH,
    cooldown_seconds=60,
    max_tokens_per_user=3,
    unlock_revenue_wei=WEI_PER_ETH,
)

ULTRA_SECURE_CURVE: Final[CurveConfig] = CurveConfig(
    min_trade_wei=WEI_PER_ETH // 10_000,
    max_trade_wei=10 * WEI_PER_ETH,
    max_slippage_bps=500,
    cooldown_seconds=60,
    max_tokens_per_user=3,
    unlock_revenue_wei=WEI_PER_ETH,
)

PRESETS: Final[dict[str, CurveConfig]] = {
    "dev": DEV_CURVE,
    "low_fee": LOW_FEE_CURVE,
    "secure": SECURE_CURVE,
    "ultra_secure": ULTRA_SECURE_CURVE,
}


# =============================================================================
# ENGINE
# =============================================================================


class BondingCurveEngine:
    """Bonding curve, параметризованная CurveConfig.

    Не хранит состояние кривой: каждый вызов получает свежий снапшот.
    """

    def __init__(self, config: CurveConfig | None = None):
        """
        Args:
            config: конфигурация кривой (default: DEV_CURVE)
        """
        self.config = config or DEV_CURVE

    @classmethod
    def from_preset(cls, name: str) -> "BondingCurveEngine":
        try:
            return cls(PRESETS[name])
        except KeyError:
            raise ValueError(
                f"Unknown curve preset {name!r}, expected one of {sorted(PRESETS)}"
            ) from None

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def price(self, state: TokenReserveState) -> int:
        return bonding_curve.get_price(state)

    def buy_return(self, state: TokenReserveState, eth_in: int) -> int:
        self.check_trade_size(eth_in)
        return bonding_curve.calculate_buy_return(
            state, eth_in, self.config.platform_fee_bps, self.config.creator_fee_bps
        )

    def sell_return(self, state: TokenReserveState, tokens_in: int) -> int:
        """ETH после комиссий; лимит сделки проверяется по сумме до комиссий."""
        return self.quote_sell(state, tokens_in).amount_out

    def quote_buy(
        self,
        state: TokenReserveState,
        eth_in: int,
        slippage_bps: int = 0,
    ) -> TradeQuote:
        """Превью покупки с проверкой лимитов сделки и slippage."""
        self.check_trade_size(eth_in)
        self.check_slippage(slippage_bps)
        return bonding_curve.quote_buy(
            state, eth_in, self.config.platform_fee_bps, self.config.creator_fee_bps
        )

    def quote_sell(
        self,
        state: TokenReserveState,
        tokens_in: int,
        slippage_bps: int = 0,
    ) -> TradeQuote:
        self.check_slippage(slippage_bps)
        quote = bonding_curve.quote_sell(
            state, tokens_in, self.config.platform_fee_bps, self.config.creator_fee_bps
        )
        self.check_trade_size(quote.fees.gross_amount)
        return quote

    def market_cap(self, state: TokenReserveState) -> int:
        return bonding_curve.calculate_market_cap(state, self.config.total_supply)

    def progress(self, state: TokenReserveState, eth_usd_price: Decimal) -> Decimal:
        return bonding_curve.bonding_progress(
            state,
            self.config.total_supply,
            self.config.graduation_threshold_usd,
            eth_usd_price,
        )

    def is_graduation_ready(
        self, state: TokenReserveState, eth_usd_price: Decimal
    ) -> bool:
        return bonding_curve.check_graduation(
            state,
            self.config.total_supply,
            self.config.graduation_threshold_usd,
            eth_usd_price,
        )

    # -------------------------------------------------------------------------
    # Limits
    # -------------------------------------------------------------------------

    def check_trade_size(self, eth_amount: int) -> None:
        """Проверка min/max размера сделки (ETH сторона, wei).

        Raises:
            TradeLimitExceeded: below_min_trade / above_max_trade
        """
        min_trade = self.config.min_trade_wei
        max_trade = self.config.max_trade_wei

        if min_trade is not None and eth_amount < min_trade:
            raise TradeLimitExceeded(
                REASON_BELOW_MIN_TRADE,
                f"Trade of {eth_amount} wei is below minimum {min_trade} wei",
            )

        if max_trade is not None and eth_amount > max_trade:
            raise TradeLimitExceeded(
                REASON_ABOVE_MAX_TRADE,
                f"Trade of {eth_amount} wei exceeds maximum {max_trade} wei",
            )

    def check_slippage(self, slippage_bps: int) -> None:
        validate_bps(slippage_bps, "slippage_bps")

        max_slippage = self.config.max_slippage_bps
        if max_slippage is not None and slippage_bps > max_slippage:
            raise TradeLimitExceeded(
                REASON_SLIPPAGE_TOO_HIGH,
                f"Slippage tolerance {slippage_bps} bps exceeds maximum {max_slippage} bps",
            )

    def check_creation_limits(
        self,
        tokens_created_by_user: int,
        last_created_at: datetime | None,
        now: datetime,
        platform_revenue_wei: int = 0,
        value_wei: int | None = None,
    ) -> None:
        """Anti-spam проверка перед созданием нового токена.

        Args:
            tokens_created_by_user: сколько токенов пользователь уже создал
            last_created_at: время последнего создания (None если не создавал)
            now: текущее время
            platform_revenue_wei: выручка платформы (снимает лимит токенов)
            value_wei: ETH, отправленный с транзакцией создания (creation fee
                + dev buy); None если оплату проверяет вызывающий

        Raises:
            TradeLimitExceeded: insufficient_creation_fee / cooldown_active /
                max_tokens_per_user
        """
        if value_wei is not None and value_wei < self.config.creation_fee_wei:
            raise TradeLimitExceeded(
                REASON_INSUFFICIENT_CREATION_FEE,
                f"Creation requires {self.config.creation_fee_wei} wei, got {value_wei}",
            )

        if last_created_at is not None and self.config.cooldown_seconds > 0:
            ready_at = last_created_at + timedelta(seconds=self.config.cooldown_seconds)
            if now < ready_at:
                remaining = (ready_at - now).total_seconds()
                logger.debug("Token creation blocked by cooldown: {:.1f}s left", remaining)
                raise TradeLimitExceeded(
                    REASON_COOLDOWN_ACTIVE,
                    f"Cooldown active, next creation allowed in {remaining:.0f}s",
                )

        max_tokens = self.config.max_tokens_per_user
        if max_tokens is None:
            return

        unlock = self.config.unlock_revenue_wei
        if unlock is not None and platform_revenue_wei >= unlock:
            return

        if tokens_created_by_user >= max_tokens:
            raise TradeLimitExceeded(
                REASON_MAX_TOKENS_PER_USER,
                f"User already created {tokens_created_by_user} tokens "
                f"(limit {max_tokens})",
            )
