# app/transactions/state_machine.py
from __future__ import annotations

from typing import Optional


class InvalidTransition(Exception):
    pass


TERMINAL_STATUSES = ("SUCCESS", "FAILED", "CANCELLED")

ALLOWED = {
    "INITIATED": {"PENDING", "SUCCESS", "FAILED", "CANCELLED"},
    "PENDING": {"PENDING", "SUCCESS", "FAILED", "CANCELLED"},  # PENDING->PENDING for repeated in-flight callbacks
    "SUCCESS": set(),
    "FAILED": set(),
    "CANCELLED": set(),
}


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(old: str, new: Optional[str]) -> bool:
    if not new:
        return False
    return new in ALLOWED.get(old, set())


def assert_transition(old: str, new: str) -> None:
    if not can_transition(old, new):
        raise InvalidTransition(f"Illegal transaction transition: {old} -> {new}")


def normalize_processor_status(status_raw: str) -> Optional[str]:
    """
    Map a processor status string to our status. None => not recognized.
    """
    status = (status_raw or "").strip().upper()

    if status in ("SUCCESS", "SUCCESSFUL", "COMPLETED", "CONFIRMED", "PAID"):
        return "SUCCESS"
    if status in ("FAILED", "FAILURE", "REJECTED", "DECLINED", "ERROR", "EXPIRED"):
        return "FAILED"
    if status in ("CANCELLED", "CANCELED"):
        return "CANCELLED"
    if status in ("PENDING", "PROCESSING", "INITIATED", "IN_PROGRESS"):
        return "PENDING"
    return None
