import asyncio
import logging

from app.config import Settings
from app.models import Cafe
from app.services.geo import flat_distance_km
from app.services.opening_hours import is_open_long_enough, todays_hours
from app.services.places import PlacesClient
from app.services.query_context import QueryContext
from app.services.ranking import select_nearest

logger = logging.getLogger("uvicorn.error")


def to_candidate(place: dict, ctx: QueryContext, settings: Settings) -> dict | None:
    """
    Place Details の result を候補に変換する。条件を満たさなければ None
    """
    hours = todays_hours(place, ctx.weekday_index)
    if hours is None:
        logger.debug("skip %s: no parsable hours", place.get("name"))
        return None

    if not is_open_long_enough(
        hours,
        ctx.current_minutes,
        settings.min_open_minutes,
        settings.overnight_rollover,
    ):
        return None

    loc = (place.get("geometry") or {}).get("location") or {}
    shop_lat = loc.get("lat")
    shop_lng = loc.get("lng")
    if shop_lat is None or shop_lng is None:
        logger.debug("skip %s: no location", place.get("name"))
        return None

    km = flat_distance_km(ctx.latitude, ctx.longitude, shop_lat, shop_lng)

    cafe = Cafe(
        name=place.get("name"),
        address=place.get("formatted_address"),
        rating=place.get("rating"),
        distance_km=round(km, 2),
        closing_time=hours.closing_time,
    )
    # rating が無い店はキーごと落とす
    return cafe.model_dump(exclude={"rating"} if cafe.rating is None else None)


async def collect_candidates(
    places: PlacesClient,
    results: list[dict],
    ctx: QueryContext,
    settings: Settings,
) -> list[dict]:
    """
    Nearby Search の順番どおりに Details を見て、条件を満たす店を集める。
    max_candidates 件たまったらそこで打ち切る。

    Details は details_concurrency 件ずつまとめて並列で取りに行くが、
    結果は元の順番で評価するので、1件ずつ取る場合と同じ候補になる。
    """
    place_ids = [r.get("place_id") for r in results if r.get("place_id")]
    batch_size = settings.details_concurrency
    candidates: list[dict] = []

    for start in range(0, len(place_ids), batch_size):
        batch = place_ids[start:start + batch_size]
        # 例外も結果として受け取り、順番どおりに見たときだけ投げる
        details = await asyncio.gather(
            *(places.fetch_details(pid) for pid in batch), return_exceptions=True
        )

        for place in details:
            if isinstance(place, BaseException):
                raise place
            if place is None:
                continue
            candidate = to_candidate(place, ctx, settings)
            if candidate is not None:
                candidates.append(candidate)
            if len(candidates) >= settings.max_candidates:
                return candidates

    return candidates


async def find_open_cafes(
    places: PlacesClient, ctx: QueryContext, settings: Settings
) -> list[dict] | None:
    """
    近くのカフェのうち、あと min_open_minutes 分以上開いている店を近い順に top_n 件。
    周辺検索が0件なら None を返す (0件マーカー付きレスポンス用)
    """
    logger.info(
        "cafe search at %s,%s minutes=%s weekday=%s",
        ctx.latitude, ctx.longitude, ctx.current_minutes, ctx.weekday_index,
    )

    results = await places.search_nearby(ctx.latitude, ctx.longitude)
    if not results:
        return None

    candidates = await collect_candidates(places, results, ctx, settings)
    return select_nearest(candidates, settings.top_n)
