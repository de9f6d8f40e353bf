import json

from jwcrypto import jwe, jwk
from jwcrypto.common import json_encode

from app.models import EncryptedEnvelope

NO_DATA_MESSAGE = "query succeeded but no data"

ENVELOPE_FIELDS = ("protected", "encrypted_key", "iv", "ciphertext", "tag")


def build_payload(cafes: list[dict] | None) -> dict:
    # 周辺検索0件 (None) のときだけマーカーを付ける
    if cafes is None:
        return {"code": 200, "message": NO_DATA_MESSAGE, "data": []}
    return {"data": cafes}


def serialize_payload(payload: dict) -> bytes:
    # JSONResponse と同じ書き方にして、平文レスポンスとバイト単位で揃える
    return json.dumps(
        payload, ensure_ascii=False, allow_nan=False, separators=(",", ":")
    ).encode("utf-8")


# ==================================================
# レスポンスの返し方 (平文 / JWE)
# ==================================================
class PlainResponse:
    def encode(self, payload: dict) -> dict:
        return payload


class JweResponse:
    def __init__(self, public_key: jwk.JWK, alg: str = "RSA-OAEP-256", enc: str = "A256GCM"):
        self.public_key = public_key
        self.alg = alg
        self.enc = enc

    def encrypt(self, plaintext: bytes) -> str:
        token = jwe.JWE(
            plaintext,
            recipient=self.public_key,
            protected=json_encode({"alg": self.alg, "enc": self.enc, "cty": "JSON"}),
        )
        return token.serialize(compact=True)

    def encode(self, payload: dict) -> dict:
        compact = self.encrypt(serialize_payload(payload))
        parts = compact.split(".")
        if len(parts) != len(ENVELOPE_FIELDS):
            raise ValueError(f"unexpected JWE segment count: {len(parts)}")
        return EncryptedEnvelope(**dict(zip(ENVELOPE_FIELDS, parts))).model_dump()
