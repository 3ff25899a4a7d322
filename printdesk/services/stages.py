"""
PrintDesk - Stage Graph

Ordered fulfillment stage vocabulary and transition legality.

Position in STAGES defines progression: an order may move to any later
stage (skips allowed, e.g. straight past Quality Check) but never backward.
"""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """Wire-visible stage values, in progression order."""

    UPLOADED = "Uploaded"
    ASSIGNED_TO_VENDOR = "Assigned to Vendor"
    PRINTING = "Printing"
    QUALITY_CHECK = "Quality Check"
    PACKED = "Packed"
    SHIPPED_TO_ADMIN = "Shipped to Admin"
    RECEIVED_BY_ADMIN = "Received by Admin"
    FINAL_PACKED_FOR_CUSTOMER = "Final Packed for Customer"
    SHIPPED_TO_CUSTOMER = "Shipped to Customer"
    DELIVERED = "Delivered"


class UnknownStagePolicy(str, Enum):
    """What an unrecognized *current* stage permits on update."""

    PERMISSIVE = "permissive"  # any stage
    STRICT = "strict"  # nothing


STAGES: tuple[str, ...] = tuple(stage.value for stage in Stage)
FIRST_STAGE: str = STAGES[0]
TERMINAL_STAGE: str = STAGES[-1]

_STAGE_COLORS: dict[str, str] = {
    "Uploaded": "bg-gray-100 text-gray-700",
    "Assigned to Vendor": "bg-slate-100 text-slate-700",
    "Printing": "bg-blue-100 text-blue-700",
    "Quality Check": "bg-cyan-100 text-cyan-700",
    "Packed": "bg-amber-100 text-amber-700",
    "Shipped to Admin": "bg-indigo-100 text-indigo-700",
    "Received by Admin": "bg-purple-100 text-purple-700",
    "Final Packed for Customer": "bg-pink-100 text-pink-700",
    "Shipped to Customer": "bg-teal-100 text-teal-700",
    "Delivered": "bg-emerald-100 text-emerald-700",
}
DEFAULT_COLOR_CLASS = "bg-neutral-100 text-neutral-600"


def _value(stage: str | Stage | None) -> str | None:
    if isinstance(stage, Stage):
        return stage.value
    return stage


def all_stages() -> list[str]:
    """All stages in progression order."""
    return list(STAGES)


def is_known_stage(stage: str | Stage | None) -> bool:
    return _value(stage) in STAGES


def stage_index(stage: str | Stage | None) -> int | None:
    """Position of the stage in the progression, None if unrecognized."""
    value = _value(stage)
    if value not in STAGES:
        return None
    return STAGES.index(value)


def next_options(current: str | Stage | None) -> list[str]:
    """
    Every stage strictly after `current`.

    An unrecognized current stage carries no position information, so the
    whole vocabulary is returned. The terminal stage returns [].
    """
    index = stage_index(current)
    if index is None:
        return list(STAGES)
    return list(STAGES[index + 1 :])


def allowed_targets(
    current: str | Stage | None,
    policy: UnknownStagePolicy | str = UnknownStagePolicy.PERMISSIVE,
) -> list[str]:
    """Stages an order currently at `current` may be written with."""
    index = stage_index(current)
    if index is None:
        if UnknownStagePolicy(policy) is UnknownStagePolicy.STRICT:
            return []
        return list(STAGES)
    return list(STAGES[index:])


def is_forward_or_same(
    current: str | Stage | None,
    target: str | Stage,
    policy: UnknownStagePolicy | str = UnknownStagePolicy.PERMISSIVE,
) -> bool:
    """Rewriting the current stage is always legal, even an unrecognized one."""
    if _value(target) == _value(current):
        return True
    return _value(target) in allowed_targets(current, policy)


def color_class(stage: str | Stage | None) -> str:
    """Display token for a stage badge."""
    value = _value(stage)
    if value is None:
        return DEFAULT_COLOR_CLASS
    return _STAGE_COLORS.get(value, DEFAULT_COLOR_CLASS)
