import logging
from io import BytesIO

import httpx
from PIL import Image

from ..errors import GunmerchError, Outcome
from ..storage.activity_log import ActivityLog
from ..storage.assets import AssetStore
from ..storage.designs import DesignRepository
from ..storage.settings import SettingsStore
from ..utils import imaging
from .removebg_client import RemoveBgClient

logger = logging.getLogger(__name__)


class ImagePostProcessor:
    """Background removal and upscaling; both overwrite the design's asset in place."""

    def __init__(self, designs: DesignRepository, assets: AssetStore, settings: SettingsStore,
                 activity: ActivityLog, matting: RemoveBgClient):
        self.designs = designs
        self.assets = assets
        self.settings = settings
        self.activity = activity
        self.matting = matting

    def _load(self, design_id: int):
        design = self.designs.get_design(design_id)
        if design is None:
            return None, Outcome.failure("design_not_found", "Design not found")
        if not self.assets.exists(design.get("image")):
            return None, Outcome.failure("no_image", "Design has no image to process")
        return design, None

    def remove_background(self, design_id: int) -> Outcome:
        design, failure = self._load(design_id)
        if failure:
            return failure

        method = "local"
        if self.matting.is_configured:
            try:
                matted = self.matting.matte(self.assets.read_bytes(design["image"]))
                img = Image.open(BytesIO(matted))
                img.load()
                method = self.matting.name
            except (httpx.HTTPError, GunmerchError, OSError) as e:
                self.activity.log_api_call(self.matting.name, "/v1.0/removebg", {"design_id": design["id"]},
                                           str(e), False)
                return Outcome.failure("matting_failed", f"Background removal failed: {e}")
        else:
            img = imaging.remove_background(self.assets.open_image(design["image"]))

        try:
            img = imaging.autocrop(img)
        except imaging.NoContentError as e:
            return Outcome.failure("no_content", str(e))

        ref = self.assets.save_image(design["id"], img)
        self.designs.attach_image(design["id"], ref)
        self.activity.log("info", f"Background removed ({method})", design["id"],
                          {"method": method, "size": list(img.size)})
        return Outcome.success("Background removed", asset=ref, method=method, size=list(img.size))

    def upscale(self, design_id: int) -> Outcome:
        design, failure = self._load(design_id)
        if failure:
            return failure

        source = self.assets.open_image(design["image"])
        backend = self.settings.get("upscale_backend", "lanczos")
        try:
            img, used = imaging.upscale(source, imaging.UPSCALE_FACTOR, backend)
        except MemoryError:
            return Outcome.failure("too_large", f"Image {source.size} is too large to upscale")

        ref = self.assets.save_image(design["id"], img)
        self.designs.attach_image(design["id"], ref)
        self.activity.log("info", f"Image upscaled {imaging.UPSCALE_FACTOR}x ({used})", design["id"],
                          {"from": list(source.size), "to": list(img.size)})
        return Outcome.success("Image upscaled", asset=ref, backend=used, size=list(img.size))
