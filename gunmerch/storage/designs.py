"""Design records and their review/publish status machine.

A design moves ``pending -> approved|rejected``, ``approved -> live`` once a
storefront product exists, and ``live -> sold`` on its first reconciled sale.
Any other move, such as reviving a rejected design, is refused.
"""
from ..errors import Outcome
from ..utils.clock import utcnow, to_iso
from .activity_log import ActivityLog
from .json_store import JsonStore

COLLECTION = "designs"
STATS_COLLECTION = "stats"
STATS_KEY = "totals"

DESIGN_STATUSES = {
    "pending": "Pending Review",
    "approved": "Approved",
    "rejected": "Rejected",
    "live": "Live",
    "sold": "Sold",
}
# Every status except pending and rejected may be re-entered.
ALLOWED_TRANSITIONS = {
    "pending": {"approved", "rejected"},
    "approved": {"approved", "live"},
    "rejected": set(),
    "live": {"live", "sold"},
    "sold": {"sold"},
}
DESIGN_TYPES = ("text", "image")

STAT_DEFAULTS = {
    "total_designs_generated": 0,
    "total_designs_approved": 0,
    "total_designs_rejected": 0,
    "total_sales": 0,
    "total_revenue": 0.0,
}


def design_id_from_external_id(external_id) -> int | None:
    """``"42"`` and ``"42-v3"`` both belong to design 42."""
    head = str(external_id or "").strip().split("-", 1)[0]
    return int(head) if head.isdigit() else None


class DesignRepository:
    def __init__(self, store: JsonStore, activity: ActivityLog, clock=utcnow):
        self.store = store
        self.activity = activity
        self.clock = clock

    def status_labels(self) -> dict[str, str]:
        return dict(DESIGN_STATUSES)

    # --- CRUD -------------------------------------------------------------
    def create_design(self, data: dict) -> int:
        design_type = data.get("design_type") or "text"
        if design_type not in DESIGN_TYPES:
            design_type = "text"
        design_id = self.store.next_id(COLLECTION)
        now = to_iso(self.clock())
        design = {
            "id": design_id,
            "title": str(data.get("title") or "").strip(),
            "concept": str(data.get("concept") or "").strip(),
            "design_text": str(data.get("design_text") or "").strip(),
            "design_type": design_type,
            "trend_topic": str(data.get("trend_topic") or "").strip(),
            "trend_source": data.get("trend_source") or "",
            "estimated_margin": float(data.get("estimated_margin") or 40),
            "status": "pending",
            "created_at": now,
            "status_updated_at": now,
            "image": None,
            "remote_product_id": None,
            "remote_backend": None,
            "sales_count": 0,
            "revenue": 0.0,
            "regenerated_from": data.get("regenerated_from"),
            "meta": {str(k): str(v) for k, v in (data.get("meta") or {}).items()},
        }
        self.store.upsert(COLLECTION, design_id, design)
        self.activity.log_design_action(design_id, "created")
        self.update_stats("generated")
        return design_id

    def get_design(self, design_id) -> dict | None:
        try:
            return self.store.get(COLLECTION, int(design_id))
        except (TypeError, ValueError):
            return None

    def list_designs(self, *, status: str | None = None, limit: int = 20, offset: int = 0) -> list[dict]:
        rows = self.store.find(COLLECTION, lambda d: not status or d.get("status") == status)
        rows.sort(key=lambda d: (d.get("created_at") or "", d["id"]), reverse=True)
        return rows[offset:offset + limit]

    def update_fields(self, design_id: int, **fields) -> dict:
        design = self.get_design(design_id)
        if design is None:
            raise KeyError(design_id)
        design.update(fields)
        self.store.upsert(COLLECTION, design["id"], design)
        return design

    def get_meta(self, design_id: int, key: str, default: str = "") -> str:
        design = self.get_design(design_id) or {}
        return (design.get("meta") or {}).get(key, default)

    def set_meta(self, design_id: int, key: str, value) -> dict:
        design = self.get_design(design_id)
        if design is None:
            raise KeyError(design_id)
        meta = design.setdefault("meta", {})
        if value is None or value == "":
            meta.pop(key, None)
        else:
            meta[str(key)] = str(value)
        self.store.upsert(COLLECTION, design["id"], design)
        return design

    def attach_image(self, design_id: int, asset_ref: str, *, design_type: str | None = None) -> dict:
        fields = {"image": asset_ref}
        if design_type:
            fields["design_type"] = design_type
        return self.update_fields(design_id, **fields)

    # --- status machine -----------------------------------------------------
    def update_design_status(self, design_id: int, status: str, meta: dict | None = None) -> Outcome:
        design = self.get_design(design_id)
        if design is None:
            return Outcome.failure("design_not_found", "Design not found")
        if status not in DESIGN_STATUSES:
            return Outcome.failure("invalid_status", f"Invalid design status: {status!r}")
        previous = design.get("status")
        if status not in ALLOWED_TRANSITIONS.get(previous, ()):
            return Outcome.failure(
                "invalid_transition",
                f"Cannot move a {DESIGN_STATUSES.get(previous, previous)} design to {DESIGN_STATUSES[status]}",
            )
        if status == "live" and not design.get("remote_product_id"):
            return Outcome.failure("invalid_transition", "A design can only go live once a product exists")

        design["status"] = status
        design["status_updated_at"] = to_iso(self.clock())
        self.store.upsert(COLLECTION, design["id"], design)

        if status != previous:
            self.update_stats(status)
        self.activity.log_design_action(design["id"], status, {"from": previous, **(meta or {})})
        return Outcome.success(f"Design status set to {status}", design_id=design["id"], previous=previous)

    # --- remote product linkage --------------------------------------------
    def find_by_remote_product_id(self, remote_id) -> dict | None:
        rid = str(remote_id)
        return self.store.first(COLLECTION, lambda d: str(d.get("remote_product_id") or "") == rid)

    def find_by_external_id(self, external_id) -> dict | None:
        design_id = design_id_from_external_id(external_id)
        return self.get_design(design_id) if design_id else None

    def record_remote_product(self, design_id: int, remote_id, backend: str) -> Outcome:
        owner = self.find_by_remote_product_id(remote_id)
        if owner and owner["id"] != int(design_id):
            return Outcome.failure(
                "duplicate_remote_id",
                f"Remote product {remote_id} already belongs to design {owner['id']}",
            )
        self.update_fields(design_id, remote_product_id=str(remote_id), remote_backend=backend,
                           remote_synced_at=to_iso(self.clock()))
        return Outcome.success(product_id=str(remote_id))

    def record_sale(self, design_id: int, quantity: int, unit_price: float) -> dict:
        design = self.get_design(design_id)
        if design is None:
            raise KeyError(design_id)
        quantity = max(0, int(quantity))
        amount = round(float(unit_price) * quantity, 2)
        design["sales_count"] = int(design.get("sales_count") or 0) + quantity
        design["revenue"] = round(float(design.get("revenue") or 0) + amount, 2)
        self.store.upsert(COLLECTION, design["id"], design)
        self.update_stats("sale", amount=amount)
        return design

    # --- stats --------------------------------------------------------------
    def update_stats(self, kind: str, amount: float = 0.0):
        stats = {**STAT_DEFAULTS, **(self.store.get(STATS_COLLECTION, STATS_KEY) or {})}
        if kind == "generated":
            stats["total_designs_generated"] += 1
        elif kind == "approved":
            stats["total_designs_approved"] += 1
        elif kind == "rejected":
            stats["total_designs_rejected"] += 1
        elif kind == "sale":
            stats["total_sales"] += 1
            stats["total_revenue"] = round(stats["total_revenue"] + amount, 2)
        else:
            return
        self.store.upsert(STATS_COLLECTION, STATS_KEY, stats)

    def get_stats(self) -> dict:
        return {**STAT_DEFAULTS, **(self.store.get(STATS_COLLECTION, STATS_KEY) or {})}
