"""Lifecycle rules for committed orders.

``pending -> confirmed -> preparing -> ready -> delivered`` is the normal flow
and ``cancelled`` is reachable from every non-terminal state. Transitions are
admin-driven and not forced forward-only: any target may be set directly.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.enums import OrderStatus

INITIAL_STATUS = OrderStatus.pending

TERMINAL_STATUSES = frozenset({OrderStatus.delivered, OrderStatus.cancelled})


@dataclass(frozen=True)
class TransitionDecision:
    from_status: OrderStatus
    to_status: OrderStatus
    applied: bool
    reason: str | None = None


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def plan_transition(current: OrderStatus | str, target: OrderStatus | str) -> TransitionDecision:
    """Decide whether moving ``current`` to ``target`` changes anything.

    Re-setting the current status and cancelling a terminal order are no-ops.
    Unknown status values raise ``ValueError``.
    """
    current = OrderStatus(current)
    target = OrderStatus(target)

    if target == OrderStatus.cancelled and is_terminal(current):
        return TransitionDecision(current, target, applied=False, reason=f"already {current.value}")
    if target == current:
        return TransitionDecision(current, target, applied=False, reason="unchanged")
    return TransitionDecision(current, target, applied=True)
