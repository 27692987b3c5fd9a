"""Тесты для BondingCurveEngine и CurveConfig.

Coverage:
- Пресеты вариантов кривой (dev/low_fee/secure/ultra_secure)
- Валидация CurveConfig
- Лимиты размера сделки и slippage
- Anti-spam: cooldown и лимит токенов на создателя
- Делегирование в pricing engine
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from src.core.domain.token_reserve import TokenReserveState
from src.core.domain.units import WEI_PER_ETH
from src.core.errors import TradeLimitExceeded
from src.core.math.bonding_curve import (
    calculate_buy_return,
    calculate_sell_return,
    get_price,
)
from src.curve import (
    DEV_CURVE,
    PRESETS,
    SECURE_CURVE,
    ULTRA_SECURE_CURVE,
    BondingCurveEngine,
    CurveConfig,
)

TOKEN = 10**18
NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def state() -> TokenReserveState:
    return TokenReserveState(real_token_reserve=800_000 * TOKEN)


class TestCurveConfig:
    """Тесты конфигурации."""

    def test_defaults(self):
        config = CurveConfig()
        assert config.platform_fee_bps == 100
        assert config.creator_fee_bps == 100
        assert config.graduation_threshold_usd == Decimal("69000")
        assert config.min_trade_wei is None
        assert config.cooldown_seconds == 0

    def test_secure_preset(self):
        assert SECURE_CURVE.min_trade_wei == WEI_PER_ETH // 10_000
        assert SECURE_CURVE.max_trade_wei == 10 * WEI_PER_ETH
        assert SECURE_CURVE.cooldown_seconds == 60
        assert SECURE_CURVE.max_tokens_per_user == 3

    def test_presets_registered(self):
        assert set(PRESETS) == {"dev", "low_fee", "secure", "ultra_secure"}

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"platform_fee_bps": -1},
            {"creator_fee_bps": 10_001},
            {"platform_fee_bps": 5_000, "creator_fee_bps": 5_000},
            {"min_trade_wei": 0},
            {"min_trade_wei": 10, "max_trade_wei": 5},
            {"cooldown_seconds": -1},
            {"max_tokens_per_user": 0},
            {"graduation_threshold_usd": Decimal(0)},
            {"total_supply": 0},
            {"max_slippage_bps": 20_000},
            {"creation_fee_wei": -1},
        ],
    )
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            CurveConfig(**kwargs)

    def test_config_is_frozen(self):
        with pytest.raises(AttributeError):
            DEV_CURVE.platform_fee_bps = 0


class TestEnginePricing:
    """Делегирование в pricing engine."""

    def test_default_engine_is_dev(self):
        assert BondingCurveEngine().config is DEV_CURVE

    def test_from_preset(self):
        engine = BondingCurveEngine.from_preset("secure")
        assert engine.config is SECURE_CURVE

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown curve preset"):
            BondingCurveEngine.from_preset("mainnet")

    def test_buy_return_uses_config_fees(self, state):
        engine = BondingCurveEngine(CurveConfig(platform_fee_bps=50, creator_fee_bps=0))
        assert engine.buy_return(state, 10**16) == calculate_buy_return(state, 10**16, 50, 0)

    def test_price_and_quote(self, state):
        engine = BondingCurveEngine()
        quote = engine.quote_buy(state, 10**17, slippage_bps=100)

        assert quote.price_before == engine.price(state)
        assert quote.price_after == get_price(quote.state_after)
        assert quote.amount_out == engine.buy_return(state, 10**17)

    def test_sell_round_trip(self, state):
        engine = BondingCurveEngine()
        quote = engine.quote_buy(state, 10**17)
        eth_back = engine.sell_return(quote.state_after, quote.amount_out)

        assert eth_back <= 10**17
        assert engine.quote_sell(quote.state_after, quote.amount_out).amount_out == eth_back

    def test_market_cap_and_graduation(self):
        engine = BondingCurveEngine(
            CurveConfig(graduation_threshold_usd=Decimal("2000000"))
        )
        fresh = TokenReserveState()

        assert engine.market_cap(fresh) == 1000 * WEI_PER_ETH
        assert engine.progress(fresh, Decimal("1000")) == Decimal(50)
        assert engine.is_graduation_ready(fresh, Decimal("2000"))
        assert not engine.is_graduation_ready(fresh, Decimal("1999.8"))


class TestTradeLimits:
    """Лимиты размера сделки и slippage."""

    def test_below_min_trade(self, state):
        engine = BondingCurveEngine(SECURE_CURVE)
        with pytest.raises(TradeLimitExceeded) as exc_info:
            engine.buy_return(state, WEI_PER_ETH // 100_000)
        assert exc_info.value.reason == "below_min_trade"

    def test_above_max_trade(self, state):
        engine = BondingCurveEngine(SECURE_CURVE)
        with pytest.raises(TradeLimitExceeded) as exc_info:
            engine.quote_buy(state, 11 * WEI_PER_ETH)
        assert exc_info.value.reason == "above_max_trade"

    def test_limits_inclusive(self):
        engine = BondingCurveEngine(SECURE_CURVE)
        engine.check_trade_size(SECURE_CURVE.min_trade_wei)
        engine.check_trade_size(SECURE_CURVE.max_trade_wei)

    def test_dev_curve_has_no_limits(self, state):
        engine = BondingCurveEngine(DEV_CURVE)
        engine.check_trade_size(1)
        engine.check_trade_size(10**30)
        assert engine.buy_return(state, 1) > 0

    def test_small_sell_below_min(self, state):
        """Лимит применяется к ETH стороне продажи"""
        engine = BondingCurveEngine(SECURE_CURVE)
        after = engine.quote_buy(state, 10**17).state_after
        with pytest.raises(TradeLimitExceeded):
            engine.sell_return(after, TOKEN)

    def test_sell_limit_uses_amount_before_fees(self, state):
        """Лимит продажи сравнивается с ETH до комиссий в sell_return и quote_sell"""
        after = BondingCurveEngine(DEV_CURVE).quote_buy(state, 10**17).state_after
        tokens_in = 1_000 * TOKEN
        gross = calculate_sell_return(after, tokens_in, 0, 0)
        engine = BondingCurveEngine(CurveConfig(min_trade_wei=gross))

        eth_out = engine.sell_return(after, tokens_in)

        assert eth_out == engine.quote_sell(after, tokens_in).amount_out
        assert eth_out < gross

        strict = BondingCurveEngine(CurveConfig(min_trade_wei=gross + 1))
        with pytest.raises(TradeLimitExceeded) as exc_info:
            strict.sell_return(after, tokens_in)
        assert exc_info.value.reason == "below_min_trade"
        with pytest.raises(TradeLimitExceeded):
            strict.quote_sell(after, tokens_in)

    def test_slippage_limit(self, state):
        engine = BondingCurveEngine(ULTRA_SECURE_CURVE)
        engine.check_slippage(500)
        with pytest.raises(TradeLimitExceeded) as exc_info:
            engine.quote_buy(state, 10**17, slippage_bps=600)
        assert exc_info.value.reason == "slippage_too_high"


class TestCreationLimits:
    """Anti-spam при создании токенов."""

    def test_cooldown_active(self):
        engine = BondingCurveEngine(SECURE_CURVE)
        with pytest.raises(TradeLimitExceeded) as exc_info:
            engine.check_creation_limits(
                tokens_created_by_user=1,
                last_created_at=NOW - timedelta(seconds=30),
                now=NOW,
            )
        assert exc_info.value.reason == "cooldown_active"

    def test_cooldown_elapsed(self):
        engine = BondingCurveEngine(SECURE_CURVE)
        engine.check_creation_limits(
            tokens_created_by_user=1,
            last_created_at=NOW - timedelta(seconds=60),
            now=NOW,
        )

    def test_max_tokens_per_user(self):
        engine = BondingCurveEngine(SECURE_CURVE)
        with pytest.raises(TradeLimitExceeded) as exc_info:
            engine.check_creation_limits(
                tokens_created_by_user=3, last_created_at=None, now=NOW
            )
        assert exc_info.value.reason == "max_tokens_per_user"

    def test_limit_unlocked_by_platform_revenue(self):
        engine = BondingCurveEngine(SECURE_CURVE)
        engine.check_creation_limits(
            tokens_created_by_user=10,
            last_created_at=None,
            now=NOW,
            platform_revenue_wei=WEI_PER_ETH,
        )

    def test_dev_curve_unlimited(self):
        engine = BondingCurveEngine(DEV_CURVE)
        engine.check_creation_limits(
            tokens_created_by_user=100, last_created_at=NOW, now=NOW
        )

    def test_creation_fee_required(self):
        engine = BondingCurveEngine(DEV_CURVE)
        assert DEV_CURVE.creation_fee_wei == WEI_PER_ETH // 1000

        with pytest.raises(TradeLimitExceeded) as exc_info:
            engine.check_creation_limits(
                tokens_created_by_user=0,
                last_created_at=None,
                now=NOW,
                value_wei=10**14,
            )
        assert exc_info.value.reason == "insufficient_creation_fee"

        engine.check_creation_limits(
            tokens_created_by_user=0,
            last_created_at=None,
            now=NOW,
            value_wei=10**15,
        )
