from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Dict, Iterable, List, Tuple
from zoneinfo import ZoneInfo

from .models import Order, OrderStatus

REVENUE_STATUSES = frozenset({OrderStatus.SERVED, OrderStatus.PAID})
WEEKDAYS_JA = ("月", "火", "水", "木", "金", "土", "日")


@dataclass
class DailySummary:
    date: date
    label: str
    orders: List[Order] = field(default_factory=list)
    total_amount: int = 0
    count: int = 0


def restaurant_timezone() -> tzinfo:
    return ZoneInfo(os.environ.get("RESTAURANT_TZ", "Asia/Tokyo"))


def format_day_label(day: date) -> str:
    """Render a date the way ja-JP short-weekday formatting does: 2026/10/17(土)."""
    return f"{day.year:04d}/{day.month:02d}/{day.day:02d}({WEEKDAYS_JA[day.weekday()]})"


def daily_summaries(orders: Iterable[Order], tz: tzinfo | None = None) -> List[DailySummary]:
    tz = tz or restaurant_timezone()
    grouped: Dict[date, DailySummary] = {}
    for order in orders:
        if order.status not in REVENUE_STATUSES:
            continue
        day = order.timestamp.astimezone(tz).date()
        summary = grouped.get(day)
        if summary is None:
            summary = grouped[day] = DailySummary(date=day, label=format_day_label(day))
        summary.orders.append(order)
        summary.total_amount += order.total_amount
        summary.count += 1
    return sorted(grouped.values(), key=lambda summary: summary.date, reverse=True)


def overall_totals(summaries: Iterable[DailySummary]) -> Tuple[int, int]:
    count = 0
    amount = 0
    for summary in summaries:
        count += summary.count
        amount += summary.total_amount
    return count, amount
