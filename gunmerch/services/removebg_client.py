import httpx

from ..errors import ConfigurationError

REMOVE_BG_URL = "https://api.remove.bg/v1.0/removebg"


class RemoveBgClient:
    """Third-party matting: upload image bytes, receive a transparent PNG."""

    name = "remove.bg"

    def __init__(self, api_key: str | None, timeout: float = 60):
        self.api_key = api_key
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def matte(self, image_bytes: bytes, file_name: str = "design.png") -> bytes:
        if not self.is_configured:
            raise ConfigurationError("remove.bg API key not configured")
        with httpx.Client(timeout=self.timeout) as client:
            r = client.post(
                REMOVE_BG_URL,
                headers={"X-Api-Key": self.api_key},
                data={"size": "auto", "format": "png"},
                files={"image_file": (file_name, image_bytes, "image/png")},
            )
            try:
                r.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise httpx.HTTPStatusError(f"{e} — body: {r.text}", request=e.request, response=e.response)
            return r.content
