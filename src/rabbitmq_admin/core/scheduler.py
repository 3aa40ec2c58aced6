"""Cron-driven job scheduling for periodic maintenance tasks.

Wraps APScheduler's ``AsyncIOScheduler`` and translates the Spring-style
cron expressions used by operators (``sec min hour dom month dow [year]``,
with ``?`` for "no specific value") into ``CronTrigger`` instances. Standard
five-field crontab expressions are accepted as well and fire at second 0.
"""

import re

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

# Spring/crontab numbering: 0 and 7 are both Sunday
_CRON_WEEKDAYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun")


def _weekday_name(match: re.Match[str]) -> str:
    number = int(match.group())
    if number >= len(_CRON_WEEKDAYS):
        msg = f"day-of-week value {number} is out of range 0-7"
        raise ValueError(msg)
    return _CRON_WEEKDAYS[number]


def _convert_day_of_week(field: str) -> str:
    """Rewrite numeric weekdays as names; APScheduler counts from Monday."""
    converted = []
    for part in field.lower().split(","):
        base, sep, step = part.partition("/")
        converted.append(re.sub(r"\d+", _weekday_name, base) + sep + step)
    return ",".join(converted)


def parse_cron_expression(expression: str, timezone: str = "UTC") -> CronTrigger:
    """Build a ``CronTrigger`` from a Spring-style or crontab expression.

    Args:
        expression: Five, six or seven whitespace-separated cron fields.
        timezone: Timezone the schedule is evaluated in.

    Returns:
        The equivalent APScheduler trigger.

    Raises:
        ValueError: If the expression has the wrong number of fields or any
            field is not understood by APScheduler.
    """
    fields = expression.split()
    if len(fields) == 5:
        fields = ["0", *fields]
    if len(fields) not in (6, 7):
        msg = f"cron expression must have 5, 6 or 7 fields, got {len(fields)}: '{expression}'"
        raise ValueError(msg)

    second, minute, hour, day, month, day_of_week, *year = fields
    try:
        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day="*" if day == "?" else day,
            month=month,
            day_of_week="*" if day_of_week == "?" else _convert_day_of_week(day_of_week),
            year=year[0] if year else None,
            timezone=timezone,
        )
    except ValueError as e:
        msg = f"invalid cron expression '{expression}': {e}"
        raise ValueError(msg) from e


def create_scheduler() -> AsyncIOScheduler:
    """Create the application job scheduler.

    Missed runs are coalesced into one and a job never overlaps with itself.
    The scheduler must be started from within a running event loop.
    """
    return AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 300,
        },
    )
