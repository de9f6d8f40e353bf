import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from jwcrypto import jwk

# プロジェクト直下の .env を読む
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

GOOGLE_NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
GOOGLE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
DECRYPT_API_URL = "https://decrypt-api-gait.onrender.com/api/decrypt"


class ConfigError(Exception):
    pass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(x.strip() for x in raw.split(",") if x.strip())


@dataclass(frozen=True)
class Settings:
    google_places_api_key: str = ""
    google_nearby_url: str = GOOGLE_NEARBY_URL
    google_details_url: str = GOOGLE_DETAILS_URL
    decrypt_api_url: str = DECRYPT_API_URL

    # 未設定なら暗号化レスポンスのルートは生やさない
    jwe_public_key_path: str | None = None
    jwe_alg: str = "RSA-OAEP-256"
    jwe_enc: str = "A256GCM"

    search_radius_m: int = 2000
    search_keyword: str = "咖啡"
    search_language: str = "zh-TW"

    min_open_minutes: int = 180
    max_candidates: int = 20
    top_n: int = 3
    details_concurrency: int = 5

    http_timeout_sec: float = 10.0
    http_retries: int = 1
    http_backoff_sec: float = 0.5

    require_current_time: bool = True
    overnight_rollover: bool = False

    cors_origins: tuple[str, ...] = field(default_factory=lambda: ("*",))

    def validate(self) -> None:
        if not self.google_places_api_key:
            raise ConfigError("GOOGLE_PLACES_API_KEY is missing")
        if self.details_concurrency < 1:
            raise ConfigError("DETAILS_CONCURRENCY must be >= 1")
        if self.http_retries < 0:
            raise ConfigError("HTTP_RETRIES must be >= 0")


def load_settings() -> Settings:
    return Settings(
        google_places_api_key=os.getenv("GOOGLE_PLACES_API_KEY", ""),
        google_nearby_url=os.getenv("GOOGLE_NEARBY_URL", GOOGLE_NEARBY_URL),
        google_details_url=os.getenv("GOOGLE_DETAILS_URL", GOOGLE_DETAILS_URL),
        decrypt_api_url=os.getenv("DECRYPT_API_URL", DECRYPT_API_URL),
        jwe_public_key_path=os.getenv("JWE_PUBLIC_KEY_PATH") or None,
        jwe_alg=os.getenv("JWE_ALG", "RSA-OAEP-256"),
        jwe_enc=os.getenv("JWE_ENC", "A256GCM"),
        search_radius_m=int(os.getenv("SEARCH_RADIUS_M", "2000")),
        search_keyword=os.getenv("SEARCH_KEYWORD", "咖啡"),
        search_language=os.getenv("SEARCH_LANGUAGE", "zh-TW"),
        min_open_minutes=int(os.getenv("MIN_OPEN_MINUTES", "180")),
        max_candidates=int(os.getenv("MAX_CANDIDATES", "20")),
        top_n=int(os.getenv("TOP_N", "3")),
        details_concurrency=int(os.getenv("DETAILS_CONCURRENCY", "5")),
        http_timeout_sec=float(os.getenv("HTTP_TIMEOUT_SEC", "10")),
        http_retries=int(os.getenv("HTTP_RETRIES", "1")),
        http_backoff_sec=float(os.getenv("HTTP_BACKOFF_SEC", "0.5")),
        require_current_time=_env_bool("REQUIRE_CURRENT_TIME", True),
        overnight_rollover=_env_bool("OVERNIGHT_ROLLOVER", False),
        cors_origins=_env_list("CORS_ORIGINS", "*"),
    )


def load_public_key(path: str) -> jwk.JWK:
    """
    PEM の公開鍵を読み込む。起動時に一度だけ呼ぶ想定。
    """
    try:
        pem = Path(path).read_bytes()
    except OSError as e:
        raise ConfigError(f"cannot read public key {path}: {e}") from e

    try:
        key = jwk.JWK.from_pem(pem)
    except (ValueError, TypeError) as e:
        raise ConfigError(f"invalid PEM public key {path}: {e}") from e

    if key.has_private:
        # 秘密鍵を渡されても公開鍵部分だけ使う
        key = jwk.JWK(**key.export_public(as_dict=True))
    return key
