import math

import httpx

from app.config import Settings
from app.services.decrypt_client import decrypt_payload
from app.services.query_context import (
    InputValidationError,
    QueryContext,
    build_query_context,
    parse_current_time,
)


def _coordinate(value, limit: float) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v) or abs(v) > limit:
        return None
    return v


def validate_fields(body, require_current_time: bool) -> tuple[float, float, str | None]:
    """
    latitude / longitude / currentTime をチェックする。
    どれか1つでもダメなら、3つ全部の状態を入れて InputValidationError。
    """
    if not isinstance(body, dict):
        body = {}

    fields: dict = {}
    ok = True

    raw_lat = body.get("latitude")
    lat = _coordinate(raw_lat, 90.0)
    raw_lng = body.get("longitude")
    lng = _coordinate(raw_lng, 180.0)

    for name, raw, value in (("latitude", raw_lat, lat), ("longitude", raw_lng, lng)):
        if raw is None or raw == "":
            fields[name] = f"missing {name}"
            ok = False
        elif value is None:
            fields[name] = f"invalid {name}"
            ok = False
        else:
            fields[name] = raw

    current_time = body.get("currentTime")
    if current_time is None or current_time == "":
        current_time = None
        if require_current_time:
            fields["currentTime"] = "missing currentTime"
            ok = False
        else:
            fields["currentTime"] = None
    else:
        try:
            parse_current_time(current_time)
            fields["currentTime"] = current_time
        except InputValidationError:
            fields["currentTime"] = "invalid currentTime"
            ok = False

    if not ok:
        raise InputValidationError(fields)
    return lat, lng, current_time


# ==================================================
# リクエストの受け取り方 (平文 / 復号APIを通す)
# ==================================================
class PlainInput:
    def __init__(self, require_current_time: bool = True):
        self.require_current_time = require_current_time

    async def resolve(self, body) -> QueryContext:
        lat, lng, current_time = validate_fields(body, self.require_current_time)
        return build_query_context(lat, lng, current_time)


class DecryptingInput:
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def resolve(self, body) -> QueryContext:
        data = await decrypt_payload(self.client, self.settings, body)
        # 暗号化経路では currentTime も必須
        lat, lng, current_time = validate_fields(data, require_current_time=True)
        return build_query_context(lat, lng, current_time)
