"""Escrow Reconciler — статусы escrow и выплаты milestones.

- Валидация release запроса до отправки в chain-writer
- Применение release с пересчётом released_amount и статуса
- Идемпотентный reconcile агрегатов по списку milestones
- Replay MilestoneReleased событий из on-chain лога

State machine:
    ACTIVE → COMPLETED (terminal), ACTIVE → DISPUTED, ACTIVE → CANCELLED
    DISPUTED → ACTIVE (только явное внешнее разрешение спора), DISPUTED → CANCELLED
    COMPLETED и CANCELLED терминальны.

Все функции чистые: принимают свежий снапшот и возвращают новый с
version + 1. Блокировки и CAS — ответственность persistence слоя.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Final, Iterable, Optional, Sequence

from loguru import logger

from src.core.domain.escrow import Escrow, EscrowStatus, Milestone
from src.core.errors import (
    AlreadyReleased,
    EscrowNotActive,
    InvalidEscrowTerms,
    InvalidTransition,
    MilestoneNotFound,
)


ALLOWED_TRANSITIONS: Final[dict[EscrowStatus, frozenset[EscrowStatus]]] = {
    EscrowStatus.ACTIVE: frozenset(
        {EscrowStatus.COMPLETED, EscrowStatus.DISPUTED, EscrowStatus.CANCELLED}
    ),
    EscrowStatus.DISPUTED: frozenset({EscrowStatus.ACTIVE, EscrowStatus.CANCELLED}),
    EscrowStatus.COMPLETED: frozenset(),
    EscrowStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class MilestoneReleasedEvent:
    """On-chain событие выплаты milestone (от chain indexer)."""

    milestone_index: int
    released_at: datetime
    tx_hash: Optional[str] = None


@dataclass(frozen=True)
class ReconcileReport:
    """Результат reconcile для batch repair jobs."""

    escrow: Escrow
    changed: bool

    released_amount_before: int
    released_amount_after: int
    status_before: EscrowStatus
    status_after: EscrowStatus

    # Диагностика
    details: str


# =============================================================================
# STATUS DERIVATION
# =============================================================================


def _derive_status(escrow: Escrow, milestones: Sequence[Milestone]) -> EscrowStatus:
    """Статус по флагам milestones.

    - DISPUTED/CANCELLED — внешний override, сохраняется
    - COMPLETED никогда не понижается
    - ACTIVE → COMPLETED когда выплачены все milestones
    """
    if escrow.status != EscrowStatus.ACTIVE:
        return escrow.status

    if milestones and all(m.released for m in milestones):
        return EscrowStatus.COMPLETED

    return EscrowStatus.ACTIVE


def _completion_time(milestones: Sequence[Milestone]) -> datetime | None:
    release_times = [m.released_at for m in milestones if m.released_at is not None]
    return max(release_times) if release_times else None


def _require_within_total(escrow: Escrow, released_amount: int) -> None:
    """released_amount никогда не превышает total_amount.

    Raises:
        InvalidEscrowTerms: суммы выплаченных milestones больше total_amount
    """
    if released_amount > escrow.total_amount:
        logger.error(
            "Escrow {} invariant violated: released {} exceeds total_amount {}",
            escrow.escrow_id,
            released_amount,
            escrow.total_amount,
        )
        raise InvalidEscrowTerms(
            f"Escrow {escrow.escrow_id}: released milestones sum to {released_amount}, "
            f"exceeding total_amount {escrow.total_amount}"
        )


# =============================================================================
# RELEASE
# =============================================================================


def validate_release(escrow: Escrow, milestone_index: int) -> int:
    """Проверка release запроса.

    Args:
        escrow: свежий снапшот escrow
        milestone_index: индекс milestone

    Returns:
        amount milestone — ожидаемая сумма выплаты для chain-writer

    Raises:
        MilestoneNotFound: milestone отсутствует в escrow
        AlreadyReleased: milestone уже выплачен (защита от double release)
        EscrowNotActive: escrow не в статусе ACTIVE
    """
    milestone = escrow.get_milestone(milestone_index)

    if milestone is None:
        raise MilestoneNotFound(
            f"Milestone {milestone_index} not found in escrow {escrow.escrow_id}"
        )

    if milestone.released:
        raise AlreadyReleased(
            f"Milestone {milestone_index} of escrow {escrow.escrow_id} already released"
        )

    if escrow.status != EscrowStatus.ACTIVE:
        raise EscrowNotActive(
            f"Escrow {escrow.escrow_id} is {escrow.status.value}, expected ACTIVE"
        )

    return milestone.amount


def apply_release(escrow: Escrow, milestone_index: int, released_at: datetime) -> Escrow:
    """Применение выплаты milestone.

    Предусловие: validate_release уже прошёл. Функция доверяет вызывающему
    и не перепроверяет on-chain состояние.

    Returns:
        Новый снапшот escrow (released_amount и status пересчитаны)

    Raises:
        MilestoneNotFound: milestone отсутствует в escrow
        InvalidEscrowTerms: выплата превысила бы total_amount
    """
    if escrow.get_milestone(milestone_index) is None:
        raise MilestoneNotFound(
            f"Milestone {milestone_index} not found in escrow {escrow.escrow_id}"
        )

    milestones = tuple(
        m.model_copy(
            update={
                "released": True,
                # released_at устанавливается один раз
                "released_at": m.released_at or released_at,
            }
        )
        if m.milestone_index == milestone_index
        else m
        for m in escrow.milestones
    )

    released_amount = sum(m.amount for m in milestones if m.released)
    _require_within_total(escrow, released_amount)

    new_status = _derive_status(escrow, milestones)
    completed_at = escrow.completed_at
    if new_status == EscrowStatus.COMPLETED and completed_at is None:
        completed_at = released_at

    if new_status != escrow.status:
        logger.debug(
            "Escrow {} status {} -> {} after milestone {}",
            escrow.escrow_id,
            escrow.status.value,
            new_status.value,
            milestone_index,
        )

    return escrow.model_copy(
        update={
            "milestones": milestones,
            "released_amount": released_amount,
            "status": new_status,
            "completed_at": completed_at,
            "version": escrow.version + 1,
        }
    )


def replay_release_events(
    escrow: Escrow, events: Iterable[MilestoneReleasedEvent]
) -> Escrow:
    """Применение MilestoneReleased событий из on-chain лога по порядку.

    Уже выплаченные milestones пропускаются: повторный replay того же лога
    не меняет снапшот. Статус escrow при replay не проверяется — on-chain
    событие уже произошло.

    Raises:
        MilestoneNotFound: событие ссылается на неизвестный milestone
    """
    result = escrow
    for event in events:
        milestone = result.get_milestone(event.milestone_index)

        if milestone is None:
            raise MilestoneNotFound(
                f"Event for milestone {event.milestone_index} does not match "
                f"escrow {escrow.escrow_id}"
            )

        if milestone.released:
            continue

        result = apply_release(result, event.milestone_index, event.released_at)

    return result


# =============================================================================
# RECONCILE
# =============================================================================


def reconcile_with_report(escrow: Escrow) -> ReconcileReport:
    """Полный пересчёт released_amount, status и completed_at.

    Returns:
        ReconcileReport; если ничего не изменилось, report.escrow is escrow

    Raises:
        InvalidEscrowTerms: выплаченные milestones превышают total_amount;
            такой снапшот не чинится автоматически
    """
    released_amount = escrow.computed_released_amount()
    status = _derive_status(escrow, escrow.milestones)

    completed_at = escrow.completed_at
    if status == EscrowStatus.COMPLETED and completed_at is None:
        completed_at = _completion_time(escrow.milestones)

    if escrow.status == EscrowStatus.COMPLETED and not escrow.all_released():
        logger.warning(
            "Escrow {} is COMPLETED but has unreleased milestones, status kept",
            escrow.escrow_id,
        )

    _require_within_total(escrow, released_amount)

    changes = []
    if released_amount != escrow.released_amount:
        changes.append(f"released_amount {escrow.released_amount} -> {released_amount}")
    if status != escrow.status:
        changes.append(f"status {escrow.status.value} -> {status.value}")
    if completed_at != escrow.completed_at:
        changes.append("completed_at set")

    if not changes:
        return ReconcileReport(
            escrow=escrow,
            changed=False,
            released_amount_before=escrow.released_amount,
            released_amount_after=released_amount,
            status_before=escrow.status,
            status_after=status,
            details="no_drift",
        )

    details = ", ".join(changes)
    logger.info("Escrow {} repaired: {}", escrow.escrow_id, details)

    repaired = escrow.model_copy(
        update={
            "released_amount": released_amount,
            "status": status,
            "completed_at": completed_at,
            "version": escrow.version + 1,
        }
    )

    return ReconcileReport(
        escrow=repaired,
        changed=True,
        released_amount_before=escrow.released_amount,
        released_amount_after=released_amount,
        status_before=escrow.status,
        status_after=status,
        details=details,
    )


def reconcile(escrow: Escrow) -> Escrow:
    """Идемпотентный пересчёт агрегатов escrow.

    reconcile(reconcile(e)) == reconcile(e)
    """
    return reconcile_with_report(escrow).escrow


# =============================================================================
# TRANSITIONS
# =============================================================================


def transition(
    escrow: Escrow,
    new_status: EscrowStatus,
    at: datetime | None = None,
) -> Escrow:
    """Явный переход статуса (dispute, cancel, разрешение спора).

    COMPLETED через transition() допускается только когда выплачены все
    milestones; обычно он выставляется apply_release/reconcile.

    Raises:
        InvalidTransition: переход не разрешён state machine
    """
    if new_status not in ALLOWED_TRANSITIONS[escrow.status]:
        raise InvalidTransition(
            f"Escrow {escrow.escrow_id}: {escrow.status.value} -> {new_status.value} "
            f"is not allowed"
        )

    if new_status == EscrowStatus.COMPLETED and not escrow.all_released():
        raise InvalidTransition(
            f"Escrow {escrow.escrow_id} cannot complete with unreleased milestones"
        )

    update: dict = {"status": new_status, "version": escrow.version + 1}
    if new_status == EscrowStatus.COMPLETED:
        update["completed_at"] = escrow.completed_at or at

    logger.debug(
        "Escrow {} transition {} -> {}",
        escrow.escrow_id,
        escrow.status.value,
        new_status.value,
    )

    result = escrow.model_copy(update=update)

    # Разрешённый спор мог пропустить последнюю выплату
    if new_status == EscrowStatus.ACTIVE:
        return reconcile(result)

    return result


# =============================================================================
# CREATION
# =============================================================================


def validate_escrow_terms(total_amount: int, milestone_amounts: Sequence[int]) -> None:
    """Проверка условий escrow при создании.

    Raises:
        InvalidEscrowTerms: нет milestones, неположительная сумма или
            суммы milestones не равны total_amount
    """
    if not milestone_amounts:
        raise InvalidEscrowTerms("At least one milestone is required")

    if total_amount <= 0:
        raise InvalidEscrowTerms(f"total_amount must be positive, got {total_amount}")

    for index, amount in enumerate(milestone_amounts):
        if amount <= 0:
            raise InvalidEscrowTerms(
                f"Milestone {index} amount must be positive, got {amount}"
            )

    milestones_total = sum(milestone_amounts)
    if milestones_total != total_amount:
        raise InvalidEscrowTerms(
            f"Milestone amounts sum to {milestones_total}, expected {total_amount}"
        )


def create_escrow(
    escrow_id: str,
    total_amount: int,
    milestone_amounts: Sequence[int],
    titles: Sequence[str] | None = None,
) -> Escrow:
    """Новый ACTIVE escrow с невыплаченными milestones (индексы 0..n-1)."""
    validate_escrow_terms(total_amount, milestone_amounts)

    if titles is not None and len(titles) != len(milestone_amounts):
        raise InvalidEscrowTerms(
            f"Got {len(titles)} titles for {len(milestone_amounts)} milestones"
        )

    milestones = tuple(
        Milestone(
            milestone_index=index,
            amount=amount,
            title=titles[index] if titles is not None else None,
        )
        for index, amount in enumerate(milestone_amounts)
    )

    return Escrow(
        escrow_id=escrow_id,
        total_amount=total_amount,
        milestones=milestones,
    )
