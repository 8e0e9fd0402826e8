"""Idempotent product creation on the configured storefront (Printful or Shopify).

Only approved designs are published. The storefront is always asked first
whether a product carrying the design's external id already exists, so a
retried or double-clicked publish adopts the existing product instead of
creating a second one. Publishing a design that is already live or sold
returns its recorded product untouched.
"""
import logging

import httpx

from ..errors import ConfigurationError, GunmerchError, Outcome, ValidationError
from ..storage.activity_log import ActivityLog
from ..storage.assets import AssetStore
from ..storage.designs import DESIGN_STATUSES, DesignRepository
from ..storage.notifications import Notifier
from ..storage.settings import SettingsStore
from ..utils import imaging

logger = logging.getLogger(__name__)

TRUTHY = ("1", "true", "yes", "y", "on")
DISPLAY_NAMES = {"printful": "Printful", "shopify": "Shopify"}


def is_text_only(design: dict) -> bool:
    return str((design.get("meta") or {}).get("text_only") or "").strip().lower() in TRUTHY


class Publisher:
    def __init__(self, designs: DesignRepository, assets: AssetStore, settings: SettingsStore,
                 activity: ActivityLog, notifier: Notifier, storefronts: dict):
        self.designs = designs
        self.assets = assets
        self.settings = settings
        self.activity = activity
        self.notifier = notifier
        self.storefronts = storefronts

    def select_backend(self):
        """Storefront named by the ``storefront`` setting, rerouted when Printful can't create products."""
        preferred = self.settings.get("storefront", "printful")
        backend = self.storefronts.get(preferred)
        if backend is None or not backend.is_configured:
            raise ConfigurationError(f"{DISPLAY_NAMES.get(preferred, preferred)} is not configured")
        if backend.can_create_products():
            return backend

        for name, alternate in self.storefronts.items():
            if name != preferred and alternate.is_configured:
                logger.info("%s store cannot create products, routing to %s", preferred, name)
                self.activity.log("warning", f"{DISPLAY_NAMES.get(preferred, preferred)} store is connected "
                                             f"as an ecommerce platform; publishing to {name}")
                return alternate
        raise ConfigurationError(
            f"{DISPLAY_NAMES.get(preferred, preferred)} store is connected as an ecommerce platform "
            "and cannot create products; configure an alternate storefront"
        )

    def _print_file(self, design: dict) -> str:
        if self.assets.exists(design.get("image")):
            return design["image"]
        if not is_text_only(design):
            raise ValidationError("Design needs an image before publishing", code="needs_image")

        meta = design.get("meta") or {}
        text = design.get("design_text") or design.get("title")
        img = imaging.render_text_design(
            text,
            color=imaging.parse_hex_color(meta.get("text_color")) or (255, 255, 255, 255),
            highlight_word=meta.get("highlight_word"),
            highlight_color=imaging.parse_hex_color(meta.get("highlight_color")),
        )
        ref = self.assets.save_image(design["id"], img)
        self.designs.attach_image(design["id"], ref)
        self.activity.log("info", "Rendered text-only print file", design["id"], {"asset": ref})
        return ref

    def _go_live(self, design: dict, backend, remote_id: str, *, adopted: bool) -> Outcome:
        recorded = self.designs.record_remote_product(design["id"], remote_id, backend.name)
        if not recorded.ok:
            return recorded
        status = self.designs.update_design_status(design["id"], "live", {"product_id": remote_id,
                                                                          "backend": backend.name})
        if not status.ok:
            return status

        title = design.get("title") or f"Design {design['id']}"
        self.notifier.notify(
            f"design_published_{design['id']}",
            f"Design '{title}' approved and sent to {DISPLAY_NAMES.get(backend.name, backend.name)}",
        )
        message = "Existing product adopted" if adopted else "Product created"
        return Outcome.success(message, product_id=remote_id, design_id=design["id"],
                               backend=backend.name, adopted=adopted)

    def create_product(self, design_id: int) -> Outcome:
        design = self.designs.get_design(design_id)
        if design is None:
            return Outcome.failure("design_not_found", "Design not found")
        status = design.get("status")
        if status in ("live", "sold") and design.get("remote_product_id"):
            return Outcome.success("Product already published", product_id=design["remote_product_id"],
                                   design_id=design["id"], backend=design.get("remote_backend"), adopted=True)
        if status != "approved":
            label = DESIGN_STATUSES.get(status, status)
            return Outcome.failure("invalid_transition",
                                   f"Only approved designs can be published (design is {label})")

        backend = None
        payload = None
        try:
            backend = self.select_backend()
            existing = backend.find_product_by_external_id(str(design["id"]))
            if existing:
                logger.info("Design %s already exists on %s as %s", design["id"], backend.name, existing["id"])
                self.activity.log("info", f"Adopted existing {backend.name} product {existing['id']}", design["id"])
                return self._go_live(design, backend, existing["id"], adopted=True)

            ref = self._print_file(design)
            uploaded = backend.upload_asset(url=self.assets.public_url(design["id"]),
                                            file_name=f"gunmerch-design-{design['id']}.png")
            template = backend.get_template_product()
            payload = backend.build_product_payload(template, design=design, file_url=uploaded["url"],
                                                    file_id=uploaded.get("id"))
            remote_id = backend.create_product(payload)
        except ValidationError as e:
            return Outcome.from_error(e)
        except (GunmerchError, httpx.HTTPError) as e:
            name = backend.name if backend else self.settings.get("storefront")
            self.activity.log_api_call(name, "create_product", payload or {"design_id": design["id"]}, str(e), False)
            logger.warning("Publishing design %s failed: %s", design["id"], e)
            if isinstance(e, GunmerchError):
                return Outcome.from_error(e)
            return Outcome.failure("provider_error", str(e))

        self.activity.log_api_call(backend.name, "create_product", payload, {"id": remote_id, "asset": ref}, True)
        return self._go_live(design, backend, remote_id, adopted=False)

    def test_connection(self) -> Outcome:
        name = self.settings.get("storefront", "printful")
        backend = self.storefronts.get(name)
        if backend is None or not backend.is_configured:
            return Outcome.failure("not_configured", f"{DISPLAY_NAMES.get(name, name)} is not configured")
        try:
            info = backend.test_connection()
        except (GunmerchError, httpx.HTTPError) as e:
            return Outcome.failure(getattr(e, "code", "provider_error"), str(e))
        info.pop("success", None)
        return Outcome.success(f"Connected to {DISPLAY_NAMES.get(name, name)}", backend=name, **info)
