"""Operator and cron triggers: scan -> generate -> review -> publish -> sync sales.

Every trigger returns an ``Outcome`` carrying a readable message and the number
of affected items; routes and CLI commands only render it.
"""
import logging

from ..errors import Outcome
from ..storage.activity_log import ActivityLog
from ..storage.assets import AssetStore
from ..storage.designs import DesignRepository
from ..storage.notifications import Notifier
from ..storage.settings import SettingsStore
from ..storage.trends import TrendStore
from .concepts import ConceptGenerator
from .image_synth import ImageSynthesizer
from .postprocess import ImagePostProcessor
from .publisher import Publisher, is_text_only
from .sales import SalesReconciler
from .trend_sources import TrendScanner

logger = logging.getLogger(__name__)

PUBLISH_SKIPPED_MESSAGE = (
    "Design approved. Auto-publish skipped because the design has no image yet; "
    "generate an image and re-approve to publish."
)


class Orchestrator:
    def __init__(self, *, scanner: TrendScanner, trends: TrendStore, concepts: ConceptGenerator,
                 designs: DesignRepository, assets: AssetStore, images: ImageSynthesizer,
                 postprocess: ImagePostProcessor, publisher: Publisher, sales: SalesReconciler,
                 settings: SettingsStore, activity: ActivityLog, notifier: Notifier):
        self.scanner = scanner
        self.trends = trends
        self.concepts = concepts
        self.designs = designs
        self.assets = assets
        self.images = images
        self.postprocess = postprocess
        self.publisher = publisher
        self.sales = sales
        self.settings = settings
        self.activity = activity
        self.notifier = notifier

    # --- trends and generation ---------------------------------------------
    def scan_trends(self) -> Outcome:
        results = self.scanner.scan_all_sources()
        self.activity.log("info", f"Trend scan completed: {len(results)} trends found")
        return Outcome.success(f"Trend scan complete. Found {len(results)} trending topics.",
                               count=len(results))

    def generate_designs(self, count: int | None = None) -> Outcome:
        if count is None:
            count = int(self.settings.get("designs_per_scan", 10))
        count = max(0, int(count))

        trends = self.trends.get_current_trends(count)
        if not trends:
            trends = self.scanner.get_mock_trends()

        created = []
        for trend in trends[:count]:
            draft = self.concepts.create_design_from_trend(trend)
            created.append(self.designs.create_design(draft))

        if created:
            self.notifier.notify("new_designs", f"{len(created)} new designs generated from trending topics")
        self.activity.log("info", f"Generated {len(created)} designs from trends")
        return Outcome.success(f"Generated {len(created)} new designs.", count=len(created), design_ids=created)

    def regenerate_design(self, design_id: int) -> Outcome:
        design = self.designs.get_design(design_id)
        if design is None:
            return Outcome.failure("design_not_found", "Design not found")
        topic = design.get("trend_topic") or design.get("title")
        draft = self.concepts.create_design_from_trend({"topic": topic, "source_url": design.get("trend_source")})
        draft["regenerated_from"] = design["id"]
        new_id = self.designs.create_design(draft)
        return Outcome.success("Design regenerated.", count=1, design_id=new_id, regenerated_from=design["id"])

    # --- review -------------------------------------------------------------
    def approve_design(self, design_id: int) -> Outcome:
        result = self.designs.update_design_status(design_id, "approved")
        if not result.ok:
            return result
        design = self.designs.get_design(design_id)
        title = design.get("title") or ""

        if not self.settings.get("auto_publish", False):
            return Outcome.success("Design approved successfully!", count=1, design_id=design["id"],
                                   design_title=title, published=False)

        if not self.assets.exists(design.get("image")) and not is_text_only(design):
            logger.info("Auto-publish skipped for design %s: no image", design["id"])
            return Outcome.success(PUBLISH_SKIPPED_MESSAGE, count=1, design_id=design["id"],
                                   design_title=title, published=False, publish_skipped=True)

        published = self.publisher.create_product(design["id"])
        if published.ok:
            backend = published.data.get("backend", "")
            return Outcome.success(f"Design '{title}' approved and sent to {backend.capitalize()}", count=1,
                                   design_id=design["id"], design_title=title, published=True,
                                   product_id=published.data.get("product_id"))
        return Outcome.success(f"Design approved, but publishing failed: {published.message}", count=1,
                               design_id=design["id"], design_title=title, published=False,
                               publish_error=published.code)

    def reject_design(self, design_id: int) -> Outcome:
        result = self.designs.update_design_status(design_id, "rejected")
        if not result.ok:
            return result
        return Outcome.success("Design rejected.", count=1, design_id=int(design_id))

    def bulk_approve(self, design_ids: list[int]) -> Outcome:
        approved = failed = 0
        for design_id in design_ids:
            if self.approve_design(design_id).ok:
                approved += 1
            else:
                failed += 1
        return Outcome.success(f"{approved} designs approved. {failed} failed.", count=approved,
                               approved=approved, failed=failed)

    def bulk_reject(self, design_ids: list[int]) -> Outcome:
        rejected = failed = 0
        for design_id in design_ids:
            if self.reject_design(design_id).ok:
                rejected += 1
            else:
                failed += 1
        return Outcome.success(f"{rejected} designs rejected. {failed} failed.", count=rejected,
                               rejected=rejected, failed=failed)

    # --- artwork ------------------------------------------------------------
    def generate_image(self, design_id: int) -> Outcome:
        return self.images.generate_image(design_id)

    def remove_background(self, design_id: int) -> Outcome:
        return self.postprocess.remove_background(design_id)

    def upscale_image(self, design_id: int) -> Outcome:
        return self.postprocess.upscale(design_id)

    # --- storefront ---------------------------------------------------------
    def publish_design(self, design_id: int) -> Outcome:
        return self.publisher.create_product(design_id)

    def test_connection(self) -> Outcome:
        return self.publisher.test_connection()

    def sync_sales(self) -> Outcome:
        orders = self.sales.sync_sales()
        self.activity.log("info", f"Sales sync completed: {len(orders)} orders synced")
        unmatched = [i for o in orders for i in o["items"] if i["status"] == "unmatched"]
        return Outcome.success(f"Synced {len(orders)} orders.", count=len(orders), orders=orders,
                               unmatched=len(unmatched))

    def run_maintenance(self) -> Outcome:
        trends = self.trends.clear_old_trends(int(self.settings.get("trend_retention_days", 7)))
        logs = self.activity.clear_old_logs(int(self.settings.get("log_retention_days", 30)))
        self.activity.log("system", f"Maintenance: pruned {trends} trends and {logs} log entries")
        return Outcome.success(f"Pruned {trends} trends and {logs} log entries.", count=trends + logs,
                               trends_deleted=trends, logs_deleted=logs)
