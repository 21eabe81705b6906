"""
Calendar windows for the eligibility policies.

Pure date arithmetic on local (business timezone) calendar days.
"""

import calendar
from datetime import date, timedelta
from typing import NamedTuple

from fincore.app.core.config import settings

SATURDAY_OFFSET = 5


class DayRange(NamedTuple):
    """Inclusive range of local calendar days."""
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def previous_month(day: date) -> date:
    """First day of the month before `day`'s month."""
    return (first_of_month(day) - timedelta(days=1)).replace(day=1)


def next_month(day: date) -> date:
    """First day of the month after `day`'s month."""
    return last_day_of_month(day.year, day.month) + timedelta(days=1)


def calendar_month(day: date) -> DayRange:
    start = first_of_month(day)
    return DayRange(start, last_day_of_month(start.year, start.month))


def week_window(day: date) -> DayRange:
    """
    Monday to Saturday of the week containing `day`.

    Sunday belongs to the week that just ended, so on a Sunday the window
    is the Monday six days earlier through yesterday.
    """
    monday = day - timedelta(days=day.weekday())
    return DayRange(monday, monday + timedelta(days=SATURDAY_OFFSET))


def mid_month_window(day: date) -> DayRange:
    return DayRange(
        day.replace(day=settings.mid_month_start_day),
        day.replace(day=settings.mid_month_end_day),
    )


def end_month_salary_month(day: date) -> date:
    """First day of the salary month an end-month request on `day` counts against."""
    if day.day <= settings.end_month_closing_day:
        return previous_month(day)
    return first_of_month(day)


def end_month_period(salary_month: date) -> DayRange:
    """
    Days whose end-month requests count against `salary_month`.

    Runs from the day after the previous closing day through the closing
    day of the following month.
    """
    closing = settings.end_month_closing_day
    return DayRange(
        salary_month.replace(day=closing + 1),
        next_month(salary_month).replace(day=closing),
    )


def end_month_window(salary_month: date) -> DayRange:
    last = last_day_of_month(salary_month.year, salary_month.month)
    return DayRange(last, next_month(salary_month).replace(day=settings.end_month_closing_day))
