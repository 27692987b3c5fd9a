"""
TokenReserveState — снапшот резервов bonding curve

Immutable Pydantic модель, зеркалирующая on-chain состояние кривой.
Мутация происходит только on-chain; локально любое изменение создаёт новый
экземпляр (см. apply_buy/apply_sell в bonding_curve).

Инвариант:
    effective_eth_reserve   = virtual_eth_reserve   + real_eth_reserve
    effective_token_reserve = virtual_token_reserve + real_token_reserve
    k = effective_eth_reserve * effective_token_reserve
"""

from typing import Final

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from .units import TOKEN_DECIMALS, WEI_PER_ETH, reject_bool_amount


# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Виртуальные резервы по умолчанию: 1 ETH и 1,000,000 токенов
DEFAULT_VIRTUAL_ETH_RESERVE: Final[int] = 1 * WEI_PER_ETH
DEFAULT_VIRTUAL_TOKEN_RESERVE: Final[int] = 1_000_000 * 10**TOKEN_DECIMALS


# =============================================================================
# TOKEN RESERVE STATE MODEL
# =============================================================================


class TokenReserveState(BaseModel):
    """
    Модель резервов bonding curve.

    Все суммы — целые в минимальных единицах (wei / base units токена).
    Поля принимают десятичные строки: persistence слой хранит big int как str.

    Immutable модель (frozen=True). После graduated=True торговля через
    кривую запрещена навсегда.
    """

    virtual_eth_reserve: int = Field(
        DEFAULT_VIRTUAL_ETH_RESERVE, gt=0, description="Виртуальный ETH резерв (wei)"
    )
    virtual_token_reserve: int = Field(
        DEFAULT_VIRTUAL_TOKEN_RESERVE,
        gt=0,
        description="Виртуальный token резерв (base units)",
    )
    real_eth_reserve: int = Field(0, ge=0, description="Реальный ETH резерв (wei)")
    real_token_reserve: int = Field(
        0, ge=0, description="Реальные токены на продажу (base units)"
    )

    # Информационные счётчики (монотонные)
    total_eth_traded: int = Field(0, ge=0, description="Суммарный ETH объём (wei)")
    total_tokens_traded: int = Field(
        0, ge=0, description="Суммарный объём токенов (base units)"
    )

    graduated: bool = Field(False, description="Terminal: торговля через кривую отключена")

    model_config = {"frozen": True}

    @field_validator(
        "virtual_eth_reserve",
        "virtual_token_reserve",
        "real_eth_reserve",
        "real_token_reserve",
        "total_eth_traded",
        "total_tokens_traded",
        mode="before",
    )
    @classmethod
    def validate_not_bool(cls, v: object, info: ValidationInfo) -> object:
        """True/False не принимаются как 1/0 wei."""
        return reject_bool_amount(v, info.field_name)

    @property
    def effective_eth_reserve(self) -> int:
        return self.virtual_eth_reserve + self.real_eth_reserve

    @property
    def effective_token_reserve(self) -> int:
        return self.virtual_token_reserve + self.real_token_reserve

    @property
    def k(self) -> int:
        """Constant product."""
        return self.effective_eth_reserve * self.effective_token_reserve

    @property
    def is_fresh(self) -> bool:
        """
        Свежая кривая: засеяна только виртуальными резервами и не торговалась.
        """
        return (
            self.real_eth_reserve == 0
            and self.real_token_reserve == 0
            and self.total_eth_traded == 0
            and self.total_tokens_traded == 0
        )

    @property
    def sale_ceiling(self) -> int:
        """
        Максимум токенов, которые может забрать одна покупка.

        Реальные токены на продажу — жёсткий потолок. Исключение только для
        свежей кривой (превью до засева реальными токенами): потолком служит
        сама кривая. Распроданная кривая не продаёт ничего.
        """
        if self.is_fresh:
            return self.effective_token_reserve
        return self.real_token_reserve
