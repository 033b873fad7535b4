"""Whether the scheduled daily run is due."""

from datetime import datetime


def is_daily_run_due(
    now: datetime,
    daily_time: str,
    last_daily_run: str,
    digest_exists: bool,
) -> bool:
    """Decide whether a scheduler tick should start the daily run.

    Due once the scheduled ``HH:MM`` has passed today and either no run
    finished today or today's digest is missing.

    Args:
        now: Current time, in the timezone ``daily_time`` refers to.
        daily_time: Scheduled ``HH:MM``.
        last_daily_run: ISO timestamp of the last live run, ``""`` if none.
        digest_exists: Whether today's inbox digest exists.

    Returns:
        True when the run should start.
    """
    hour, minute = (int(part) for part in daily_time.split(":"))
    if (now.hour, now.minute) < (hour, minute):
        return False
    ran_today = last_daily_run[:10] == now.date().isoformat()
    return not ran_today or not digest_exists
