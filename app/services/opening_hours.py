import re
from dataclasses import dataclass

MINUTES_PER_DAY = 24 * 60

# 「星期一: 08:00 – 21:00」の形。区切りは en dash (–)。
# 前半は貪欲マッチなので、「08:00 – 12:00, 13:00 – 21:00」なら最後の閉店時刻が取れる
_HOURS_LINE_RE = re.compile(r": (.+) – (.+)")
_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


@dataclass(frozen=True)
class DailyHours:
    open_minutes: int | None
    close_minutes: int
    closing_time: str  # "HH:MM"


def _clock_to_minutes(text: str) -> int | None:
    m = _CLOCK_RE.match(text.strip())
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if hour > 24 or minute > 59:
        return None
    return hour * 60 + minute


def parse_hours_line(line: str) -> DailyHours | None:
    """
    weekday_text の1行から閉店時刻を取り出す。
    「24 小時營業」「休息」など形が合わない行は None (= その店はスキップ)。
    """
    if not isinstance(line, str):
        return None

    match = _HOURS_LINE_RE.search(line)
    if not match:
        return None

    close_minutes = _clock_to_minutes(match.group(2))
    if close_minutes is None:
        return None

    return DailyHours(
        open_minutes=_clock_to_minutes(match.group(1)),
        close_minutes=close_minutes,
        closing_time=f"{close_minutes // 60:02d}:{close_minutes % 60:02d}",
    )


def todays_hours(place: dict, weekday_index: int) -> DailyHours | None:
    weekday_text = (place.get("opening_hours") or {}).get("weekday_text")
    if not weekday_text:
        return None
    if not 0 <= weekday_index < len(weekday_text):
        return None
    return parse_hours_line(weekday_text[weekday_index])


def minutes_until_close(
    hours: DailyHours,
    current_minutes: int,
    overnight_rollover: bool = False,
) -> int:
    close = hours.close_minutes
    # 深夜営業 (閉店が開店より前) を翌日扱いにするかどうか。デフォルトは扱わない
    if (
        overnight_rollover
        and hours.open_minutes is not None
        and close < hours.open_minutes
    ):
        close += MINUTES_PER_DAY
    return close - current_minutes


def is_open_long_enough(
    hours: DailyHours,
    current_minutes: int,
    min_minutes: int = 180,
    overnight_rollover: bool = False,
) -> bool:
    return minutes_until_close(hours, current_minutes, overnight_rollover) >= min_minutes
