import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: str) -> list[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


DEFAULT_IMAGE_PROMPT_TEMPLATE = (
    "Bold, print-ready t-shirt graphic on a plain solid background. "
    "Main text: \"{slogan}\". Theme: {concept}. {custom_prompt} {highlight} "
    "Flat vector style, limited color palette, high contrast, centered composition, "
    "no mockup, no model, no extra text."
)


class Config:
    BASE_DIR = Path(__file__).resolve().parent.parent
    DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
    ASSETS_DIR = Path(os.getenv("ASSETS_DIR", BASE_DIR / "assets"))
    PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5003")

    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_BASE = os.getenv("OPENAI_BASE", "https://api.openai.com/v1")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
    REMOVE_BG_API_KEY = os.getenv("REMOVE_BG_API_KEY")

    PRINTFUL_API_KEY = os.getenv("PRINTFUL_API_KEY")
    PRINTFUL_STORE_ID = os.getenv("PRINTFUL_STORE_ID")
    PRINTFUL_TEMPLATE_PRODUCT_ID = os.getenv("PRINTFUL_TEMPLATE_PRODUCT_ID")
    SHOPIFY_STORE_DOMAIN = os.getenv("SHOPIFY_STORE_DOMAIN")
    SHOPIFY_ADMIN_TOKEN = os.getenv("SHOPIFY_ADMIN_TOKEN")
    SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2024-10")
    SHOPIFY_TEMPLATE_PRODUCT_ID = os.getenv("SHOPIFY_TEMPLATE_PRODUCT_ID")

    TREND_SOURCES = _env_list("TREND_SOURCES", "reddit,news,mock")
    REDDIT_URL = os.getenv("REDDIT_URL", "https://www.reddit.com/r/guns/hot.json")
    NEWS_FEEDS = _env_list(
        "NEWS_FEEDS",
        "https://www.ammoland.com/feed/,https://www.thefirearmblog.com/feed/",
    )

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE")

    ALLOWED_EXTS = {".png", ".jpg", ".jpeg", ".webp"}

    # Operator-editable defaults; the persisted settings collection overrides these.
    DEFAULT_SETTINGS = {
        "storefront": "printful",
        "auto_publish": False,
        "designs_per_scan": 10,
        "default_margin": 40,
        "min_reddit_score": 10,
        "image_prompt_template": DEFAULT_IMAGE_PROMPT_TEMPLATE,
        "trend_retention_days": 7,
        "log_retention_days": 30,
        "sales_window_days": 7,
        "upscale_backend": "lanczos",
    }


class DevConfig(Config):
    DEBUG = True


class ProdConfig(Config):
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    OPENAI_API_KEY = None
    GEMINI_API_KEY = None
    REMOVE_BG_API_KEY = None
    PRINTFUL_API_KEY = None
    SHOPIFY_STORE_DOMAIN = None
    SHOPIFY_ADMIN_TOKEN = None
    TREND_SOURCES = ["mock"]
    LOG_FILE = None
