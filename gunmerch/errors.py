from dataclasses import dataclass, field
from typing import Any


class GunmerchError(Exception):
    """Base class for pipeline errors."""

    code = "error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code:
            self.code = code


class ConfigurationError(GunmerchError):
    """A credential or required setting is missing. Not worth retrying."""

    code = "not_configured"


class ProviderError(GunmerchError):
    """An external API failed (network, rate limit, non-2xx, bad payload)."""

    code = "provider_error"

    def __init__(self, message: str, *, endpoint: str | None = None, status: int | None = None,
                 code: str | None = None):
        super().__init__(message, code=code)
        self.endpoint = endpoint
        self.status = status


class ValidationError(GunmerchError):
    """A domain rule was broken (bad status, missing image, nothing to crop)."""

    code = "invalid"


@dataclass
class Outcome:
    """Typed success/failure returned by every pipeline step."""

    ok: bool
    message: str = ""
    code: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, message: str = "", **data) -> "Outcome":
        return cls(True, message, None, data)

    @classmethod
    def failure(cls, code: str, message: str, **data) -> "Outcome":
        return cls(False, message, code, data)

    @classmethod
    def from_error(cls, err: GunmerchError, **data) -> "Outcome":
        return cls(False, str(err), err.code, data)

    @property
    def count(self) -> int:
        return int(self.data.get("count", 0))

    def to_dict(self) -> dict:
        out = {"success": self.ok, "message": self.message}
        if self.code:
            out["code"] = self.code
        out.update(self.data)
        return out
