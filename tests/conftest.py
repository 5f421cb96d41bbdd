from pathlib import Path

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from taxadvisor.config import AppSettings, GeminiConfig, ImageModelConfig
from taxadvisor.db import Database
from taxadvisor.main import create_app
from tests.fakes import FakeGeminiClient, FakeImageClient


def make_settings(tmp_path: Path, **overrides) -> AppSettings:
    settings = AppSettings(
        gemini=GeminiConfig(base_url="http://gemini.test", api_key="test-key", model="test-model"),
        image=ImageModelConfig(base_url="http://gemini.test", api_key="image-key", model="test-image-model"),
        database_path=str(tmp_path / "test.db"),
        seed_demo_data=True,
        default_user_id="me",
        host="127.0.0.1",
        port=8000,
    )
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


@pytest.fixture
async def seeded_db(tmp_path: Path) -> Database:
    db = Database(str(tmp_path / "seeded.db"))
    await db.init(seed_demo_data=True)
    return db


@pytest.fixture
def app_factory(tmp_path: Path):
    def _factory(
        *,
        fake_gemini: FakeGeminiClient | None = None,
        fake_image: FakeImageClient | None = None,
        **settings_overrides,
    ):
        settings = make_settings(tmp_path, **settings_overrides)
        gemini_client = fake_gemini or FakeGeminiClient(configured=False)
        image_client = fake_image or FakeImageClient(configured=False)
        app = create_app(settings, gemini_client=gemini_client, image_client=image_client)
        return app, gemini_client, image_client

    return _factory


@pytest.fixture
async def client(app_factory):
    app, gemini_client, image_client = app_factory()
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as http_client:
            http_client.app = app  # type: ignore[attr-defined]
            http_client.fake_gemini = gemini_client  # type: ignore[attr-defined]
            http_client.fake_image = image_client  # type: ignore[attr-defined]
            yield http_client
