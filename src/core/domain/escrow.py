"""
Escrow — модель escrow соглашения с milestone выплатами

Immutable Pydantic модели Escrow и Milestone.

Инварианты (поддерживаются src.escrow.reconciler):
- released_amount == sum(amount для released milestones)
- released_amount <= total_amount
- status == COMPLETED ровно тогда, когда выплачены все milestones

Модели сознательно не проверяют агрегаты при загрузке: записи из хранилища
могут содержать drift, который устраняет reconcile().
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from .units import reject_bool_amount


# =============================================================================
# ENUMS
# =============================================================================


class EscrowStatus(str, Enum):
    """Статус escrow."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    DISPUTED = "DISPUTED"
    CANCELLED = "CANCELLED"


# =============================================================================
# MILESTONE MODEL
# =============================================================================


class Milestone(BaseModel):
    """
    Дискретная, независимо выплачиваемая часть escrow.

    Принадлежит ровно одному Escrow. released монотонен (false → true),
    released_at устанавливается один раз.
    """

    milestone_index: int = Field(
        ..., ge=0, description="Стабильный индекс, совпадает с on-chain event log"
    )
    amount: int = Field(..., ge=0, description="Сумма milestone (base units токена)")
    released: bool = Field(False, description="Milestone выплачен")
    released_at: datetime | None = Field(None, description="Время выплаты")
    title: str | None = Field(None, description="Название milestone")

    model_config = {"frozen": True}

    @field_validator("milestone_index", "amount", mode="before")
    @classmethod
    def validate_not_bool(cls, v: object, info: ValidationInfo) -> object:
        return reject_bool_amount(v, info.field_name)


# =============================================================================
# ESCROW MODEL
# =============================================================================


class Escrow(BaseModel):
    """
    Модель escrow (снапшот записи хранилища).

    Immutable модель (frozen=True). Каждое изменение создаёт новый экземпляр
    с version + 1 — точка compare-and-set для persistence слоя.
    """

    escrow_id: str = Field(..., min_length=1, description="Идентификатор escrow")
    total_amount: int = Field(..., ge=0, description="Сумма escrow (base units)")
    released_amount: int = Field(0, ge=0, description="Выплаченная сумма (base units)")
    status: EscrowStatus = Field(EscrowStatus.ACTIVE, description="Статус escrow")
    milestones: tuple[Milestone, ...] = Field(
        default_factory=tuple, description="Milestones в порядке milestone_index"
    )
    completed_at: datetime | None = Field(None, description="Время завершения")
    version: int = Field(0, ge=0, description="Версия снапшота для CAS")

    model_config = {"frozen": True}

    @field_validator("total_amount", "released_amount", "version", mode="before")
    @classmethod
    def validate_not_bool(cls, v: object, info: ValidationInfo) -> object:
        """bool не принимается как сумма или версия."""
        return reject_bool_amount(v, info.field_name)

    @field_validator("milestones")
    @classmethod
    def validate_unique_indexes(
        cls, v: tuple[Milestone, ...]
    ) -> tuple[Milestone, ...]:
        """Индексы milestones уникальны; хранятся отсортированными."""
        indexes = [m.milestone_index for m in v]
        if len(set(indexes)) != len(indexes):
            raise ValueError(f"duplicate milestone_index in {indexes}")
        return tuple(sorted(v, key=lambda m: m.milestone_index))

    def get_milestone(self, milestone_index: int) -> Milestone | None:
        for milestone in self.milestones:
            if milestone.milestone_index == milestone_index:
                return milestone
        return None

    def all_released(self) -> bool:
        """
        True если выплачены все milestones.

        Escrow без milestones никогда не считается завершённым.
        """
        return bool(self.milestones) and all(m.released for m in self.milestones)

    def computed_released_amount(self) -> int:
        return sum(m.amount for m in self.milestones if m.released)

    def remaining_amount(self) -> int:
        """Сумма, ещё не выплаченная по milestones."""
        return sum(m.amount for m in self.milestones if not m.released)
