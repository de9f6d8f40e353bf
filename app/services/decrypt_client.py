import httpx

from app.config import Settings
from app.services.http_retry import request_with_retry


class DecryptUpstreamError(Exception):
    pass


class DecryptionRejectedError(Exception):
    """復号APIが 2xx 以外を返したとき。detail はそのままクライアントに返す"""

    def __init__(self, detail):
        self.detail = detail
        super().__init__(f"decryption rejected: {detail}")


async def decrypt_payload(
    client: httpx.AsyncClient, settings: Settings, payload
) -> dict:
    try:
        res = await request_with_retry(
            client,
            "POST",
            settings.decrypt_api_url,
            json=payload,
            retries=settings.http_retries,
            backoff_sec=settings.http_backoff_sec,
        )
    except httpx.HTTPError as e:
        raise DecryptUpstreamError(f"decrypt request failed: {e}") from e

    if res.status_code >= 400:
        try:
            detail = res.json()
        except ValueError:
            detail = res.text
        raise DecryptionRejectedError(detail)

    try:
        data = res.json()
    except ValueError as e:
        raise DecryptUpstreamError(f"decrypt response is not JSON: {e}") from e

    if not isinstance(data, dict):
        raise DecryptUpstreamError("decrypt response is not an object")
    return data
