import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import Settings, load_public_key, load_settings
from app.services.cafes import find_open_cafes
from app.services.decrypt_client import DecryptionRejectedError, DecryptUpstreamError
from app.services.envelope import JweResponse, PlainResponse, build_payload
from app.services.inputs import DecryptingInput, PlainInput
from app.services.places import PlacesClient, PlacesUpstreamError
from app.services.query_context import InputValidationError

logger = logging.getLogger("uvicorn.error")

SEARCH_PATH = "/api/nearby-cafes-open-3hr"


@dataclass
class AppContext:
    settings: Settings
    places: PlacesClient
    plain_input: PlainInput
    decrypting_input: DecryptingInput
    plain_response: PlainResponse
    jwe_response: JweResponse | None


def _server_error(e: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "server error", "detail": str(e)})


async def _search(request: Request, resolver, encoder) -> JSONResponse | dict:
    """
    入力の受け取り方 (resolver) と返し方 (encoder) だけ差し替えて、中身は共通
    """
    ctx: AppContext = request.app.state.ctx

    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "invalid JSON body"})

    try:
        query = await resolver.resolve(body)
        cafes = await find_open_cafes(ctx.places, query, ctx.settings)
        return encoder.encode(build_payload(cafes))
    except InputValidationError as e:
        return JSONResponse(status_code=400, content=e.fields)
    except DecryptionRejectedError as e:
        logger.info("decrypt rejected: %s", e.detail)
        return JSONResponse(
            status_code=400, content={"error": "decryption failed", "detail": e.detail}
        )
    except (PlacesUpstreamError, DecryptUpstreamError) as e:
        logger.error("upstream error: %s", e)
        return _server_error(e)
    except Exception as e:
        logger.exception("cafe search failed")
        return _server_error(e)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # APIキー・公開鍵が無ければここで落とす (リクエスト時ではなく起動時)
        settings.validate()
        jwe_response = None
        if settings.jwe_public_key_path:
            key = load_public_key(settings.jwe_public_key_path)
            jwe_response = JweResponse(key, settings.jwe_alg, settings.jwe_enc)

        async with httpx.AsyncClient(
            timeout=settings.http_timeout_sec, transport=transport
        ) as client:
            app.state.ctx = AppContext(
                settings=settings,
                places=PlacesClient(client, settings),
                plain_input=PlainInput(settings.require_current_time),
                decrypting_input=DecryptingInput(client, settings),
                plain_response=PlainResponse(),
                jwe_response=jwe_response,
            )
            logger.info("cafe finder started (encrypted=%s)", jwe_response is not None)
            yield

    app = FastAPI(title="Open Cafe Finder", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(SEARCH_PATH)
    async def nearby_cafes(request: Request):
        ctx: AppContext = request.app.state.ctx
        return await _search(request, ctx.plain_input, ctx.plain_response)

    @app.post(f"{SEARCH_PATH}/decrypt")
    async def nearby_cafes_decrypt(request: Request):
        ctx: AppContext = request.app.state.ctx
        return await _search(request, ctx.decrypting_input, ctx.plain_response)

    if settings.jwe_public_key_path:

        @app.post(f"{SEARCH_PATH}/encrypted")
        async def nearby_cafes_encrypted(request: Request):
            ctx: AppContext = request.app.state.ctx
            return await _search(request, ctx.plain_input, ctx.jwe_response)

    return app


app = create_app()
