import httpx

from app.config import Settings
from app.services.http_retry import request_with_retry

DETAIL_FIELDS = "name,rating,formatted_address,opening_hours,geometry"


# =========================
# Google Places 系のエラー用
# =========================
class PlacesUpstreamError(Exception):
    def __init__(self, status: str, message: str | None = None):
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}")


class PlacesClient:
    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def _get_json(self, url: str, params: dict) -> dict:
        s = self.settings
        try:
            r = await request_with_retry(
                self.client,
                "GET",
                url,
                params=params,
                retries=s.http_retries,
                backoff_sec=s.http_backoff_sec,
            )
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPStatusError as e:
            raise PlacesUpstreamError("HTTP_ERROR", str(e)) from e
        except httpx.HTTPError as e:
            raise PlacesUpstreamError("TRANSPORT_ERROR", str(e)) from e
        except ValueError as e:
            raise PlacesUpstreamError("INVALID_JSON", str(e)) from e

        if not isinstance(data, dict):
            raise PlacesUpstreamError("INVALID_JSON", "response is not an object")
        return data

    # ==================================================
    # ① 周辺検索（Nearby Search）
    # ==================================================
    # 結果の一覧 (place_id 入り) だけ返す。0件なら空リスト
    async def search_nearby(self, lat: float, lng: float) -> list[dict]:
        s = self.settings
        if not s.google_places_api_key:
            raise PlacesUpstreamError("CONFIG_ERROR", "PLACES_API_KEY is missing")

        params = {
            "location": f"{lat},{lng}",
            "radius": s.search_radius_m,
            "type": "establishment",
            "keyword": s.search_keyword,
            "language": s.search_language,
            "key": s.google_places_api_key,
        }
        data = await self._get_json(s.google_nearby_url, params)

        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status not in (None, "OK"):
            raise PlacesUpstreamError(status, data.get("error_message"))

        return data.get("results") or []

    # ==================================================
    # ② 詳細（Place Details）
    # ==================================================
    # 営業時間・座標を取る。店が消えている等で取れなければ None
    async def fetch_details(self, place_id: str) -> dict | None:
        s = self.settings
        params = {
            "place_id": place_id,
            "fields": DETAIL_FIELDS,
            "language": s.search_language,
            "key": s.google_places_api_key,
        }
        data = await self._get_json(s.google_details_url, params)

        status = data.get("status")
        if status in ("NOT_FOUND", "ZERO_RESULTS"):
            return None
        if status not in (None, "OK"):
            raise PlacesUpstreamError(status, data.get("error_message"))

        result = data.get("result")
        return result if isinstance(result, dict) else None
