"""
Ошибки ядра launchpad

Единая иерархия исключений для pricing engine и escrow reconciler.

Все ошибки пробрасываются вызывающему коду как типизированные исключения:
ядро никогда не делает retry и не подменяет ошибку значением по умолчанию.
Формирование пользовательских сообщений (например, "insufficient liquidity")
— ответственность API слоя.
"""


class LaunchpadError(Exception):
    """Базовое исключение ядра."""

    kind: str = "launchpad_error"


# =============================================================================
# BONDING CURVE
# =============================================================================


class InvalidAmount(LaunchpadError):
    """Неположительная входная сумма (eth_in, tokens_in, threshold)."""

    kind = "invalid_amount"


class InsufficientLiquidity(LaunchpadError):
    """Сделка превышает реальные резервы кривой.

    Виртуальные резервы формируют цену, но никогда не выводятся:
    покупка ограничена sale ceiling, продажа — real_eth_reserve.
    """

    kind = "insufficient_liquidity"


class DivisionByZero(LaunchpadError):
    """
    Нарушение инварианта: эффективный резерв равен нулю.

    Не должно происходить при ненулевых virtual резервах. Считается
    фатальным: логируется на уровне error и пробрасывается, никогда не
    восстанавливается молча.
    """

    kind = "division_by_zero"


class CurveGraduated(LaunchpadError):
    """Кривая graduated: торговля через bonding curve отключена навсегда."""

    kind = "curve_graduated"


class TradeLimitExceeded(LaunchpadError):
    """Нарушен лимит сделки из CurveConfig (min/max, cooldown, per-user cap)."""

    kind = "trade_limit_exceeded"

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


# =============================================================================
# ESCROW
# =============================================================================


class MilestoneNotFound(LaunchpadError):
    kind = "milestone_not_found"


class AlreadyReleased(LaunchpadError):
    """Milestone уже выплачен — повторный release запрещён."""

    kind = "already_released"


class EscrowNotActive(LaunchpadError):
    kind = "escrow_not_active"


class InvalidTransition(LaunchpadError):
    """Недопустимый переход статуса escrow."""

    kind = "invalid_transition"


class InvalidEscrowTerms(LaunchpadError):
    """Условия escrow некорректны (пустые milestones, суммы не сходятся)."""

    kind = "invalid_escrow_terms"
