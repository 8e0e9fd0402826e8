# gunmerch/extensions.py
from dataclasses import dataclass
from pathlib import Path

from flask import current_app
from flask_cors import CORS

from .services.concepts import ConceptGenerator
from .services.gemini_svc import GeminiImageProvider
from .services.image_synth import ImageSynthesizer
from .services.openai_svc import OpenAIChatClient, OpenAIImageProvider
from .services.orchestrator import Orchestrator
from .services.postprocess import ImagePostProcessor
from .services.printful_client import PrintfulClient
from .services.publisher import Publisher
from .services.removebg_client import RemoveBgClient
from .services.sales import SalesReconciler
from .services.shopify_client import ShopifyClient
from .services.trend_sources import TrendScanner
from .storage.activity_log import ActivityLog
from .storage.assets import AssetStore
from .storage.designs import DesignRepository
from .storage.json_store import JsonStore
from .storage.notifications import Notifier
from .storage.settings import SettingsStore
from .storage.trends import TrendStore

# CORS is a real Flask extension (keeps init_app)
cors = CORS()

EXTENSION_KEY = "gunmerch"


@dataclass
class Pipeline:
    store: JsonStore
    activity: ActivityLog
    notifier: Notifier
    settings: SettingsStore
    trends: TrendStore
    designs: DesignRepository
    assets: AssetStore
    printful: PrintfulClient
    shopify: ShopifyClient
    orchestrator: Orchestrator


def build_pipeline(config) -> Pipeline:
    """Construct every component once, leaves first, and wire them by constructor."""
    store = JsonStore(Path(config["DATA_DIR"]))
    activity = ActivityLog(store)
    notifier = Notifier(store)
    settings = SettingsStore(store, config["DEFAULT_SETTINGS"])
    trends = TrendStore(store)
    designs = DesignRepository(store, activity)
    assets = AssetStore(Path(config["ASSETS_DIR"]), config.get("PUBLIC_BASE_URL") or "")

    llm = OpenAIChatClient(config.get("OPENAI_API_KEY"), model=config.get("OPENAI_MODEL") or "gpt-4o-mini",
                           base_url=config.get("OPENAI_BASE") or "https://api.openai.com/v1")
    image_providers = [
        GeminiImageProvider(config.get("GEMINI_API_KEY"),
                            model=config.get("GEMINI_IMAGE_MODEL") or "gemini-2.5-flash-image"),
        OpenAIImageProvider(config.get("OPENAI_API_KEY"), model=config.get("OPENAI_IMAGE_MODEL") or "dall-e-3"),
    ]
    matting = RemoveBgClient(config.get("REMOVE_BG_API_KEY"))
    printful = PrintfulClient(config.get("PRINTFUL_API_KEY"), store_id=config.get("PRINTFUL_STORE_ID"),
                              template_product_id=config.get("PRINTFUL_TEMPLATE_PRODUCT_ID"))
    shopify = ShopifyClient(config.get("SHOPIFY_STORE_DOMAIN"), config.get("SHOPIFY_ADMIN_TOKEN"),
                            api_version=config.get("SHOPIFY_API_VERSION") or "2024-10",
                            template_product_id=config.get("SHOPIFY_TEMPLATE_PRODUCT_ID"))
    storefronts = {"printful": printful, "shopify": shopify}

    scanner = TrendScanner(trends, activity, settings, sources=config.get("TREND_SOURCES") or ["mock"],
                           reddit_url=config.get("REDDIT_URL"), news_feeds=config.get("NEWS_FEEDS") or [],
                           mock_trends=config.get("MOCK_TRENDS"))
    concepts = ConceptGenerator(llm, activity, settings)
    images = ImageSynthesizer(designs, assets, settings, activity, image_providers)
    postprocess = ImagePostProcessor(designs, assets, settings, activity, matting)
    publisher = Publisher(designs, assets, settings, activity, notifier, storefronts)
    sales = SalesReconciler(store, designs, settings, activity, notifier, storefronts)

    orchestrator = Orchestrator(
        scanner=scanner, trends=trends, concepts=concepts, designs=designs, assets=assets,
        images=images, postprocess=postprocess, publisher=publisher, sales=sales,
        settings=settings, activity=activity, notifier=notifier,
    )
    return Pipeline(store=store, activity=activity, notifier=notifier, settings=settings, trends=trends,
                    designs=designs, assets=assets, printful=printful, shopify=shopify,
                    orchestrator=orchestrator)


def get_pipeline() -> Pipeline:
    return current_app.extensions[EXTENSION_KEY]
