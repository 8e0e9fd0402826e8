import base64
from io import BytesIO

from PIL import Image

from ..errors import ConfigurationError, ProviderError


def _pil_to_png_bytes(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _bytes_from_part(part) -> bytes | None:
    inline = getattr(part, "inline_data", None) or getattr(part, "inlineData", None)
    if inline is not None:
        data = getattr(inline, "data", None)
        if isinstance(data, bytes) and data:
            return data
        if isinstance(data, str) and data:
            try:
                return base64.b64decode(data)
            except ValueError:
                return None
    if hasattr(part, "as_image"):
        try:
            img = part.as_image()
        except (ValueError, OSError):
            img = None
        if isinstance(img, Image.Image):
            return _pil_to_png_bytes(img)
    return None


def extract_generated_image_bytes(response) -> bytes | None:
    """Find the first inline image in a generate_content response."""
    parts = list(getattr(response, "parts", None) or [])
    for cand in getattr(response, "candidates", None) or []:
        content = getattr(cand, "content", None)
        parts.extend(getattr(content, "parts", None) or [])
    for part in parts:
        data = _bytes_from_part(part)
        if data:
            return data
    return None


class GeminiImageProvider:
    """Primary image provider: Gemini image model returning inline bytes."""

    name = "gemini"

    def __init__(self, api_key: str | None, model: str = "gemini-2.5-flash-image",
                 aspect_ratio: str = "1:1"):
        self.api_key = api_key
        self.model = model
        self.aspect_ratio = aspect_ratio

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _client(self):
        from google import genai
        return genai.Client(api_key=self.api_key)

    def generate(self, prompt: str) -> dict:
        if not self.is_configured:
            raise ConfigurationError("GEMINI_API_KEY missing in environment.")
        if not prompt or not prompt.strip():
            raise ValueError("prompt is required")

        from google.genai import errors as genai_errors
        from google.genai import types

        cfg = types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=types.ImageConfig(aspect_ratio=self.aspect_ratio),
        )
        try:
            response = self._client().models.generate_content(model=self.model, contents=[prompt], config=cfg)
        except genai_errors.APIError as e:
            raise ProviderError(f"Gemini image generation failed: {e}", endpoint=self.model,
                                status=getattr(e, "code", None))

        image_bytes = extract_generated_image_bytes(response)
        if not image_bytes:
            raise ProviderError(
                "Gemini response did not include an image. Check model access and safety filters.",
                endpoint=self.model,
            )
        return {"bytes": image_bytes, "url": None, "mime_type": "image/png"}
