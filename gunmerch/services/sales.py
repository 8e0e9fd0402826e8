import logging
from datetime import timedelta

import httpx

from ..errors import GunmerchError
from ..storage.activity_log import ActivityLog
from ..storage.designs import DesignRepository
from ..storage.json_store import JsonStore
from ..storage.notifications import Notifier
from ..storage.settings import SettingsStore
from ..utils.clock import utcnow, to_iso

logger = logging.getLogger(__name__)

LEDGER_COLLECTION = "sales_ledger"


def ledger_key(backend: str, order_id, item_id) -> str:
    return f"{backend}:{order_id}:{item_id}"


class SalesReconciler:
    """Applies fulfilled storefront orders to design sales counters.

    Each ``backend:order:item`` is written to a ledger once applied, so rerunning
    over an overlapping window never counts the same line item twice.
    """

    def __init__(self, store: JsonStore, designs: DesignRepository, settings: SettingsStore,
                 activity: ActivityLog, notifier: Notifier, storefronts: dict, clock=utcnow):
        self.store = store
        self.designs = designs
        self.settings = settings
        self.activity = activity
        self.notifier = notifier
        self.storefronts = storefronts
        self.clock = clock

    def is_applied(self, key: str) -> bool:
        return self.store.get(LEDGER_COLLECTION, key) is not None

    def _match(self, item: dict) -> dict | None:
        design = None
        if item.get("external_id"):
            design = self.designs.find_by_external_id(item["external_id"])
        if design is None and item.get("remote_product_id"):
            design = self.designs.find_by_remote_product_id(item["remote_product_id"])
        return design

    def _apply(self, backend: str, order: dict, item: dict) -> dict:
        key = ledger_key(backend, order["order_id"], item["item_id"])
        design = self._match(item)
        result = {
            "design_id": design["id"] if design else 0,
            "external_id": item.get("external_id") or "",
            "quantity": item.get("quantity", 0),
            "price": item.get("price", 0.0),
            "applied": False,
        }
        if design is None:
            result["status"] = "unmatched"
            return result
        if self.is_applied(key):
            result["status"] = "already_applied"
            return result

        updated = self.designs.record_sale(design["id"], item["quantity"], item["price"])
        self.store.upsert(LEDGER_COLLECTION, key, {
            "key": key,
            "design_id": design["id"],
            "quantity": item["quantity"],
            "price": item["price"],
            "applied_at": to_iso(self.clock()),
        })
        if updated.get("status") == "live":
            self.designs.update_design_status(design["id"], "sold", {"order_id": order["order_id"]})

        self.activity.log("info", f"Sale recorded: {item['quantity']} units at ${float(item['price']):.2f}",
                          design["id"], {"order_id": order["order_id"], "backend": backend})
        self.notifier.notify(f"sale_{design['id']}", f"New sale: '{design.get('title')}' shirt sold!")
        result.update(status="applied", applied=True)
        return result

    def sync_backend(self, backend) -> list[dict]:
        since = self.clock() - timedelta(days=int(self.settings.get("sales_window_days", 7)))
        processed = []
        for order in backend.list_fulfilled_orders(since):
            items = [self._apply(backend.name, order, item) for item in order.get("items") or []]
            processed.append({
                "backend": backend.name,
                "order_id": order["order_id"],
                "created": order.get("created"),
                "total": order.get("total"),
                "items": items,
            })
        return processed

    def sync_sales(self) -> list[dict]:
        """Pull fulfilled orders from every configured storefront; a failing one is logged and skipped."""
        processed = []
        for backend in self.storefronts.values():
            if not backend.is_configured:
                continue
            try:
                processed.extend(self.sync_backend(backend))
            except (GunmerchError, httpx.HTTPError) as e:
                logger.warning("Sales sync from %s failed: %s", backend.name, e)
                self.activity.log("error", f"Failed to sync sales from {backend.name}: {e}")

        applied = sum(1 for o in processed for i in o["items"] if i["applied"])
        self.activity.log("info", f"Synced {len(processed)} orders ({applied} new line items)")
        return processed
