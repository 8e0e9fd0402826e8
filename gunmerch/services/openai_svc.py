import base64

import httpx
from openai import OpenAI, OpenAIError

from ..errors import ConfigurationError, ProviderError

SYSTEM_PROMPT = (
    "You are a creative t-shirt designer specializing in gun culture, 2A rights, "
    "and firearm enthusiast apparel. Create funny, clever, and engaging t-shirt designs."
)


class OpenAIChatClient:
    """Text completions over the chat endpoint (plain httpx, 60s timeout)."""

    name = "openai"

    def __init__(self, api_key: str | None, model: str = "gpt-4o-mini",
                 base_url: str = "https://api.openai.com/v1", timeout: float = 60):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def complete(self, system_prompt: str, user_prompt: str, *, temperature: float = 0.8,
                 max_tokens: int = 200) -> str:
        if not self.is_configured:
            raise ConfigurationError("OpenAI API key not configured")
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        with httpx.Client(timeout=self.timeout) as client:
            r = client.post(f"{self.base_url}/chat/completions", headers=self.headers, json=body)
            try:
                r.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise httpx.HTTPStatusError(f"{e} — body: {r.text}", request=e.request, response=e.response)
            data = r.json()
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise ProviderError("OpenAI response had no message content", endpoint="/chat/completions")
        return content


class OpenAIImageProvider:
    """Secondary image provider: OpenAI Images API, which answers with a hosted URL."""

    name = "openai"

    def __init__(self, api_key: str | None, model: str = "dall-e-3", size: str = "1024x1024",
                 timeout: float = 90):
        self.api_key = api_key
        self.model = model
        self.size = size
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def generate(self, prompt: str) -> dict:
        """Returns ``{"bytes": ..., "url": ..., "mime_type": ...}``."""
        if not self.is_configured:
            raise ConfigurationError("OpenAI API key not configured")
        client = OpenAI(api_key=self.api_key, timeout=self.timeout)
        try:
            resp = client.images.generate(model=self.model, prompt=prompt, size=self.size, n=1)
        except OpenAIError as e:
            raise ProviderError(f"OpenAI image generation failed: {e}", endpoint="/images/generations")

        item = resp.data[0] if resp.data else None
        if item is None:
            raise ProviderError("OpenAI returned no image", endpoint="/images/generations")
        if getattr(item, "b64_json", None):
            return {"bytes": base64.b64decode(item.b64_json), "url": None, "mime_type": "image/png"}
        if not getattr(item, "url", None):
            raise ProviderError("OpenAI image response had neither bytes nor URL", endpoint="/images/generations")
        return {"bytes": download_image(item.url, timeout=self.timeout), "url": item.url, "mime_type": "image/png"}


def download_image(url: str, timeout: float = 60) -> bytes:
    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        r = client.get(url)
        r.raise_for_status()
        ctype = (r.headers.get("content-type") or "").split(";")[0].strip().lower()
        if ctype and not ctype.startswith("image/") and ctype != "application/octet-stream":
            raise ProviderError(f"Expected an image from {url}, got {ctype}", endpoint=url)
        return r.content
