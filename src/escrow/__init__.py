"""Escrow — reconciler статусов и выплат milestones.

- Валидация и применение milestone release
- Идемпотентный reconcile агрегатов (замена ручных repair скриптов)
- Replay on-chain MilestoneReleased событий
"""

from .reconciler import (
    ALLOWED_TRANSITIONS,
    MilestoneReleasedEvent,
    ReconcileReport,
    apply_release,
    create_escrow,
    reconcile,
    reconcile_with_report,
    replay_release_events,
    transition,
    validate_escrow_terms,
    validate_release,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "MilestoneReleasedEvent",
    "ReconcileReport",
    "validate_release",
    "apply_release",
    "reconcile",
    "reconcile_with_report",
    "replay_release_events",
    "transition",
    "validate_escrow_terms",
    "create_escrow",
]
