"""Reporting helpers for dashboards and the reports page.

All functions are pure and take whatever expense list the caller is allowed to
see, normally :meth:`ExpenseStore.own_approved` or :meth:`ExpenseStore.all_visible`.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from ..models.expense import Expense

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
TIME_RANGES = ("week", "month", "year", "all")


@dataclass(frozen=True)
class ExpenseSummary:
    """Total, count and average of a set of expenses."""

    total: float
    count: int
    average: float


@dataclass(frozen=True)
class DashboardStats:
    today: float
    last_7_days: float
    last_30_days: float
    last_year: float
    total: float


def expense_date(expense: Expense) -> date:
    return date.fromisoformat(expense.date[:10])


def _months_back(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def range_start(time_range: str, today: Optional[date] = None) -> Optional[date]:
    """Return the first date inside ``time_range``, or None for ``all``."""

    today = today or date.today()
    if time_range == "week":
        return today - timedelta(days=7)
    if time_range == "month":
        return _months_back(today, 1)
    if time_range == "year":
        return _months_back(today, 12)
    if time_range == "all":
        return None
    raise ValueError(f"Unknown time range: {time_range}")


def filter_by_range(
    expenses: Iterable[Expense], time_range: str, today: Optional[date] = None
) -> list[Expense]:
    start = range_start(time_range, today)
    items = list(expenses)
    if start is None:
        return items
    return [e for e in items if expense_date(e) >= start]


def summarize(expenses: Iterable[Expense]) -> ExpenseSummary:
    amounts = [e.amount for e in expenses]
    total = sum(amounts)
    count = len(amounts)
    return ExpenseSummary(total=total, count=count, average=total / count if count else 0.0)


def totals_by_year_level(expenses: Iterable[Expense]) -> list[dict[str, object]]:
    """Roll up amounts by year level, largest first."""

    totals: dict[str, float] = {}
    for expense in expenses:
        totals[expense.year_level] = totals.get(expense.year_level, 0.0) + expense.amount
    breakdown = [{"name": name, "value": value} for name, value in totals.items()]
    breakdown.sort(key=lambda entry: entry["value"], reverse=True)
    return breakdown


def monthly_totals(expenses: Iterable[Expense]) -> list[dict[str, object]]:
    """Sum amounts into twelve calendar-month buckets, regardless of year."""

    buckets = [0.0] * 12
    for expense in expenses:
        buckets[expense_date(expense).month - 1] += expense.amount
    return [{"name": label, "amount": amount} for label, amount in zip(MONTH_LABELS, buckets)]


def dashboard_stats(expenses: Iterable[Expense], today: Optional[date] = None) -> DashboardStats:
    today = today or date.today()
    items = [(expense_date(e), e.amount) for e in expenses]

    def since(start: date) -> float:
        return sum(amount for day, amount in items if day >= start)

    return DashboardStats(
        today=since(today),
        last_7_days=since(today - timedelta(days=7)),
        last_30_days=since(today - timedelta(days=30)),
        last_year=since(_months_back(today, 12)),
        total=sum(amount for _, amount in items),
    )


def daily_series(
    expenses: Iterable[Expense], days: int = 7, today: Optional[date] = None
) -> list[dict[str, object]]:
    """Per-day totals for the last ``days`` days, oldest first."""

    today = today or date.today()
    totals: dict[date, float] = {}
    for expense in expenses:
        day = expense_date(expense)
        totals[day] = totals.get(day, 0.0) + expense.amount
    series = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        series.append(
            {"date": day.isoformat(), "weekday": day.strftime("%a"), "amount": totals.get(day, 0.0)}
        )
    return series


def recent(expenses: Iterable[Expense], limit: int = 5) -> list[Expense]:
    """Most recent expenses by spending date."""

    return sorted(expenses, key=expense_date, reverse=True)[:limit]
