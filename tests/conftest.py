"""
Shared test fixtures and configuration for GunMerch AI tests.
"""
from datetime import datetime, timedelta, timezone
from io import BytesIO
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient
from PIL import Image, ImageDraw

from gunmerch import create_app
from gunmerch.config import Config, TestConfig
from gunmerch.storage.activity_log import ActivityLog
from gunmerch.storage.assets import AssetStore
from gunmerch.storage.designs import DesignRepository
from gunmerch.storage.json_store import JsonStore
from gunmerch.storage.notifications import Notifier
from gunmerch.storage.settings import SettingsStore
from gunmerch.storage.trends import TrendStore


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory for JsonStore tests."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def json_store(temp_data_dir: Path) -> JsonStore:
    return JsonStore(temp_data_dir)


@pytest.fixture
def activity(json_store, clock) -> ActivityLog:
    return ActivityLog(json_store, clock)


@pytest.fixture
def notifier(json_store, clock) -> Notifier:
    return Notifier(json_store, clock)


@pytest.fixture
def settings(json_store) -> SettingsStore:
    return SettingsStore(json_store, Config.DEFAULT_SETTINGS)


@pytest.fixture
def trend_store(json_store, clock) -> TrendStore:
    return TrendStore(json_store, clock)


@pytest.fixture
def designs(json_store, activity, clock) -> DesignRepository:
    return DesignRepository(json_store, activity, clock)


@pytest.fixture
def assets(tmp_path: Path) -> AssetStore:
    return AssetStore(tmp_path / "assets", "https://merch.example.com")


@pytest.fixture
def app(tmp_path: Path) -> Flask:
    """Flask app with isolated data/asset directories and no credentials."""
    app = create_app(TestConfig, overrides={
        "DATA_DIR": tmp_path / "app-data",
        "ASSETS_DIR": tmp_path / "app-assets",
        "PUBLIC_BASE_URL": "https://merch.example.com",
        "PRINTFUL_STORE_ID": None,
        "PRINTFUL_TEMPLATE_PRODUCT_ID": None,
        "SHOPIFY_TEMPLATE_PRODUCT_ID": None,
    })
    yield app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    """Create a Flask test client."""
    return app.test_client()


@pytest.fixture
def runner(app: Flask):
    """Create a Flask CLI test runner."""
    return app.test_cli_runner()


@pytest.fixture
def pipeline(app: Flask):
    return app.extensions["gunmerch"]


@pytest.fixture
def sample_design_data() -> dict:
    return {
        "title": "Boating Accident Survivor",
        "concept": "Classic joke about losing guns in a boating accident",
        "design_text": "I lost everything in a boating accident",
        "trend_topic": "Boating accident meme goes viral",
        "trend_source": "https://example.com/boating-accident",
        "estimated_margin": 40,
    }


def _shape_image(size=(200, 160), border=(250, 250, 250), shape=(20, 40, 200),
                 box=(70, 50, 130, 110)) -> Image.Image:
    img = Image.new("RGB", size, border)
    ImageDraw.Draw(img).rectangle(box, fill=shape)
    return img


def _png_bytes(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_shape_image():
    """Factory: uniform background with a solid rectangle in the middle."""
    return _shape_image


@pytest.fixture
def png_bytes():
    return _png_bytes


@pytest.fixture
def sample_png() -> bytes:
    return _png_bytes(_shape_image())
