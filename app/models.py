from pydantic import BaseModel, Field


class Cafe(BaseModel):
    name: str | None
    address: str | None
    rating: int | float | None = None
    distance_km: float
    closing_time: str = Field(..., description='"HH:MM"')


class EncryptedEnvelope(BaseModel):
    protected: str
    encrypted_key: str
    iv: str
    ciphertext: str
    tag: str
