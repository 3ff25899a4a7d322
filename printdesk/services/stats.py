"""
PrintDesk - Admin Stats

Point-in-time operational metrics over the full order set:

    newToday     created on the same local calendar day as `now`
    dueSoon      deadline 0..3 days (inclusive) after now's calendar date
    missingPdfs  no artifact key yet
    byStage      every stage pre-seeded at 0; unknown stages count as the first
    total        orders scanned

compute_stats() is a pure function of (orders, now).
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from ..models import AdminStats, Order
from .orders import OrderStore
from .stages import FIRST_STAGE, STAGES, is_known_stage

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 3


def _local_date_of_millis(millis: int, tz) -> date:
    return datetime.fromtimestamp(millis / 1000, tz=tz).date()


def compute_stats(
    orders: Iterable[Order],
    now: datetime,
    due_soon_days: int = DUE_SOON_DAYS,
) -> AdminStats:
    """
    Aggregate `orders` as of `now`.

    Calendar days are taken in `now`'s timezone; a naive `now` means the
    process's local time.
    """
    today = now.date()
    tz = now.tzinfo

    by_stage = {stage: 0 for stage in STAGES}
    new_today = 0
    due_soon = 0
    missing_pdfs = 0
    total = 0

    for order in orders:
        total += 1

        stage = order.stage if is_known_stage(order.stage) else FIRST_STAGE
        by_stage[stage] += 1

        if _local_date_of_millis(order.created_at, tz) == today:
            new_today += 1

        if not order.s3_key:
            missing_pdfs += 1

        if order.deadline is not None:
            days_until = (order.deadline - today).days
            if 0 <= days_until <= due_soon_days:
                due_soon += 1

    return AdminStats(
        new_today=new_today,
        due_soon=due_soon,
        missing_pdfs=missing_pdfs,
        by_stage=by_stage,
        total=total,
    )


class StatsAggregator:
    """On-demand stats over an OrderStore snapshot."""

    def __init__(self, orders: OrderStore):
        self._orders = orders

    def compute(self, now: Optional[datetime] = None) -> AdminStats:
        now = now or datetime.now()
        snapshot = self._orders.list_all()
        stats = compute_stats(snapshot, now)
        logger.info(
            f"Stats computed over {stats.total} orders "
            f"(newToday={stats.new_today}, dueSoon={stats.due_soon}, "
            f"missingPdfs={stats.missing_pdfs})",
            extra={"count": stats.total},
        )
        return stats
