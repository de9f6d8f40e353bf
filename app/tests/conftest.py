import pytest

from app.config import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(google_places_api_key="test-key", http_backoff_sec=0)
