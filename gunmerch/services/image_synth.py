import logging

import httpx

from ..errors import GunmerchError, Outcome
from ..storage.activity_log import ActivityLog
from ..storage.assets import AssetStore
from ..storage.designs import DesignRepository
from ..storage.settings import SettingsStore

logger = logging.getLogger(__name__)


def build_image_prompt(template: str, design: dict) -> str:
    """Plain token replacement; unknown braces in the template are left alone."""
    meta = design.get("meta") or {}
    slogan = design.get("design_text") or design.get("title") or ""
    highlight = ""
    word = (meta.get("highlight_word") or "").strip()
    color = (meta.get("highlight_color") or "").strip()
    if word and color:
        highlight = f"Render the word \"{word}\" in {color}."
    elif word:
        highlight = f"Emphasize the word \"{word}\"."

    values = {
        "{slogan}": slogan,
        "{title}": design.get("title") or "",
        "{concept}": design.get("concept") or "",
        "{custom_prompt}": (meta.get("custom_prompt") or "").strip(),
        "{highlight}": highlight,
    }
    prompt = template
    for token, value in values.items():
        prompt = prompt.replace(token, value)
    return " ".join(prompt.split())


class ImageSynthesizer:
    def __init__(self, designs: DesignRepository, assets: AssetStore, settings: SettingsStore,
                 activity: ActivityLog, providers: list):
        self.designs = designs
        self.assets = assets
        self.settings = settings
        self.activity = activity
        self.providers = providers

    def generate_image(self, design_id: int) -> Outcome:
        design = self.designs.get_design(design_id)
        if design is None:
            return Outcome.failure("design_not_found", "Design not found")

        configured = [p for p in self.providers if p.is_configured]
        if not configured:
            return Outcome.failure("no_provider", "No image generation provider configured")

        prompt = build_image_prompt(self.settings.get("image_prompt_template"), design)
        errors = []
        for provider in configured:
            try:
                payload = provider.generate(prompt)
                image_bytes = payload.get("bytes")
                if not image_bytes:
                    raise GunmerchError(f"{provider.name} returned no image data")
                ref = self.assets.save_bytes(design["id"], image_bytes)
            except (GunmerchError, httpx.HTTPError, OSError, ValueError) as e:
                errors.append(f"{provider.name}: {e}")
                self.activity.log_api_call(provider.name, "generate_image", {"prompt": prompt}, str(e), False)
                continue

            self.designs.attach_image(design["id"], ref, design_type="image")
            self.activity.log("info", f"Image generated with {provider.name}", design["id"],
                              {"provider": provider.name, "asset": ref})
            return Outcome.success("Image generated", asset=ref, provider=provider.name)

        logger.warning("Image generation failed for design %s: %s", design_id, "; ".join(errors))
        return Outcome.failure("generation_failed", "Image generation failed: " + "; ".join(errors))
