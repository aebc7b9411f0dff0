from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from table_order_service.models import Order, OrderLine, OrderStatus
from table_order_service.sales import daily_summaries, format_day_label, overall_totals

TOKYO = ZoneInfo("Asia/Tokyo")


def _order(order_id: str, status: OrderStatus, amount: int, when: datetime, sequence: int = 0) -> Order:
    return Order(
        id=order_id,
        table_id="1",
        lines=(OrderLine(menu_item_id="item", name="枝豆", price=amount, quantity=1),),
        status=status,
        total_amount=amount,
        timestamp=when,
        sequence=sequence,
    )


def test_empty_input_gives_empty_list():
    assert daily_summaries([], tz=TOKYO) == []


def test_pending_and_cancelled_orders_are_excluded():
    when = datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)
    orders = [
        _order("a", OrderStatus.PENDING, 400, when),
        _order("b", OrderStatus.CANCELLED, 600, when),
        _order("c", OrderStatus.SERVED, 700, when),
        _order("d", OrderStatus.PAID, 800, when),
    ]

    days = daily_summaries(orders, tz=TOKYO)

    assert len(days) == 1
    assert [o.id for o in days[0].orders] == ["c", "d"]
    assert days[0].count == 2
    assert days[0].total_amount == 1500
    assert overall_totals(days) == (2, 1500)


def test_groups_are_sorted_newest_day_first():
    orders = [
        _order("old", OrderStatus.PAID, 1000, datetime(2026, 10, 15, 3, 0, tzinfo=timezone.utc)),
        _order("new", OrderStatus.SERVED, 500, datetime(2026, 10, 17, 3, 0, tzinfo=timezone.utc)),
        _order("mid", OrderStatus.PAID, 300, datetime(2026, 10, 16, 3, 0, tzinfo=timezone.utc)),
    ]

    days = daily_summaries(orders, tz=TOKYO)

    assert [day.date for day in days] == [date(2026, 10, 17), date(2026, 10, 16), date(2026, 10, 15)]
    assert sum(day.count for day in days) == 3
    assert sum(day.total_amount for day in days) == 1800


def test_days_follow_restaurant_timezone():
    # 16:00 UTC on the 16th is already the 17th in Tokyo
    late = _order("late", OrderStatus.SERVED, 500, datetime(2026, 10, 16, 16, 0, tzinfo=timezone.utc))

    (day,) = daily_summaries([late], tz=TOKYO)

    assert day.date == date(2026, 10, 17)
    assert day.label == "2026/10/17(土)"


def test_orders_within_a_day_keep_input_order():
    later = _order("later", OrderStatus.SERVED, 100, datetime(2026, 10, 17, 5, 0, tzinfo=timezone.utc))
    earlier = _order("earlier", OrderStatus.SERVED, 100, datetime(2026, 10, 17, 1, 0, tzinfo=timezone.utc))

    (day,) = daily_summaries([later, earlier], tz=TOKYO)

    assert [o.id for o in day.orders] == ["later", "earlier"]


def test_format_day_label():
    assert format_day_label(date(2026, 10, 19)) == "2026/10/19(月)"
