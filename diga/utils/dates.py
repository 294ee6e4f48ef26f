import calendar
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

try:
    _TZ_SP = ZoneInfo("America/Sao_Paulo")
except ZoneInfoNotFoundError:
    _TZ_SP = None

def now_sp():
    now_utc = datetime.now(timezone.utc)
    if _TZ_SP is not None:
        return now_utc.astimezone(_TZ_SP)
    return (now_utc + timedelta(hours=-3)).replace(tzinfo=timezone(timedelta(hours=-3)))

def today_sp():
    return now_sp().date()

def now_ms():
    return int(datetime.now(timezone.utc).timestamp() * 1000)

def add_months(dt, months):
    """Shift ``dt`` by whole months, clamping the day to the target month length."""
    total = dt.month - 1 + int(months)
    year = dt.year + total // 12
    month = total % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
