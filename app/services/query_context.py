import re
from dataclasses import dataclass
from datetime import date, datetime


class InputValidationError(Exception):
    """
    入力値エラー。fields は「フィールド名 -> 受け取った値 or エラーマーカー」。
    """

    def __init__(self, fields: dict):
        self.fields = fields
        super().__init__(f"invalid input: {fields}")


_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


@dataclass(frozen=True)
class QueryContext:
    latitude: float
    longitude: float
    instant: datetime
    current_minutes: int
    weekday_index: int  # 月曜=0 .. 日曜=6 (weekday_text の並びと同じ)


def parse_current_time(value: str) -> tuple[int, int]:
    m = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not m:
        raise InputValidationError({"currentTime": "invalid currentTime"})
    return int(m.group(1)), int(m.group(2))


def build_query_context(
    latitude: float,
    longitude: float,
    current_time: str | None,
    now: datetime | None = None,
) -> QueryContext:
    """
    今日の日付 + currentTime で検索時刻を作る。
    currentTime が無ければ now (省略時は現在時刻) をそのまま使う。
    """
    if current_time is None:
        instant = now or datetime.now()
    else:
        hour, minute = parse_current_time(current_time)
        today = now.date() if now else date.today()
        instant = datetime(today.year, today.month, today.day, hour, minute)

    return QueryContext(
        latitude=latitude,
        longitude=longitude,
        instant=instant,
        current_minutes=instant.hour * 60 + instant.minute,
        weekday_index=instant.weekday(),
    )
