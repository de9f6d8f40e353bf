import asyncio
import logging

import httpx

logger = logging.getLogger("uvicorn.error")


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    retries: int = 1,
    backoff_sec: float = 0.5,
    **kwargs,
) -> httpx.Response:
    """
    通信エラーと 5xx のときだけ再試行する。
    再試行し尽くしたら、最後の例外を投げるか最後のレスポンスを返す。
    """
    attempt = 0
    while True:
        try:
            r = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            if attempt >= retries:
                raise
            logger.warning("%s %s failed (%s), retrying", method, url, e)
        else:
            if r.status_code < 500 or attempt >= retries:
                return r
            logger.warning("%s %s returned %s, retrying", method, url, r.status_code)

        attempt += 1
        await asyncio.sleep(backoff_sec * attempt)
