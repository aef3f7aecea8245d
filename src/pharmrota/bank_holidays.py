"""
English bank holidays.

Used to pre-select the working weekdays of a week: a bank holiday is left
out of the default selection so no rota is generated for it.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List

from dateutil.easter import easter
from dateutil.relativedelta import MO, relativedelta

from .models.shift import WEEKDAYS, weekday_name


@dataclass(frozen=True)
class BankHoliday:
    title: str
    date: date


def _fixed_with_substitute(title: str, day: date) -> BankHoliday:
    if day.weekday() == 5:
        return BankHoliday(f"{title} (substitute)", day + timedelta(days=2))
    if day.weekday() == 6:
        return BankHoliday(f"{title} (substitute)", day + timedelta(days=1))
    return BankHoliday(title, day)


def _christmas_pair(year: int) -> List[BankHoliday]:
    christmas = date(year, 12, 25)
    boxing = date(year, 12, 26)
    weekday = christmas.weekday()
    if weekday == 5:  # Saturday: both move to Mon/Tue
        return [
            BankHoliday("Christmas Day (substitute)", date(year, 12, 27)),
            BankHoliday("Boxing Day (substitute)", date(year, 12, 28)),
        ]
    if weekday == 6:  # Sunday: Boxing Day keeps Monday, Christmas moves to Tuesday
        return [
            BankHoliday("Boxing Day", boxing),
            BankHoliday("Christmas Day (substitute)", date(year, 12, 27)),
        ]
    if weekday == 4:  # Friday: Boxing Day falls on Saturday
        return [
            BankHoliday("Christmas Day", christmas),
            BankHoliday("Boxing Day (substitute)", date(year, 12, 28)),
        ]
    return [BankHoliday("Christmas Day", christmas), BankHoliday("Boxing Day", boxing)]


def english_bank_holidays(year: int) -> List[BankHoliday]:
    """Bank holidays in England for a year, sorted by date."""
    easter_sunday = easter(year)
    holidays = [
        _fixed_with_substitute("New Year's Day", date(year, 1, 1)),
        BankHoliday("Good Friday", easter_sunday - timedelta(days=2)),
        BankHoliday("Easter Monday", easter_sunday + timedelta(days=1)),
        BankHoliday("Early May Bank Holiday", date(year, 5, 1) + relativedelta(weekday=MO(1))),
        BankHoliday("Spring Bank Holiday", date(year, 5, 31) + relativedelta(weekday=MO(-1))),
        BankHoliday("Summer Bank Holiday", date(year, 8, 31) + relativedelta(weekday=MO(-1))),
    ]
    holidays.extend(_christmas_pair(year))
    return sorted(holidays, key=lambda h: h.date)


def is_bank_holiday(day: date) -> bool:
    return any(h.date == day for h in english_bank_holidays(day.year))


def bank_holidays_in_week(week_start: date) -> List[BankHoliday]:
    """Bank holidays falling within the seven days from ``week_start``."""
    week_end = week_start + timedelta(days=6)
    years = {week_start.year, week_end.year}
    found = [
        h for year in sorted(years) for h in english_bank_holidays(year)
        if week_start <= h.date <= week_end
    ]
    return sorted(found, key=lambda h: h.date)


def default_weekdays(week_start: date) -> List[str]:
    """Monday to Friday of the week, minus any bank holidays."""
    holidays = {h.date for h in bank_holidays_in_week(week_start)}
    days = [week_start + timedelta(days=i) for i in range(len(WEEKDAYS))]
    return [weekday_name(d) for d in days if d not in holidays]
