from typing import Any

from ..errors import ValidationError
from .json_store import JsonStore

COLLECTION = "settings"
KEY = "global"

_CHOICES = {
    "storefront": {"printful", "shopify"},
    "upscale_backend": {"lanczos", "basic"},
}


def _coerce(name: str, value, default):
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "y", "on")
        return bool(value)
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Setting '{name}' must be an integer")
    value = str(value)
    if name in _CHOICES and value not in _CHOICES[name]:
        raise ValidationError(f"Setting '{name}' must be one of {sorted(_CHOICES[name])}")
    return value


class SettingsStore:
    """Operator-editable settings persisted on top of Config defaults."""

    def __init__(self, store: JsonStore, defaults: dict[str, Any]):
        self.store = store
        self.defaults = dict(defaults)

    def all(self) -> dict[str, Any]:
        saved = self.store.get(COLLECTION, KEY) or {}
        merged = dict(self.defaults)
        merged.update({k: v for k, v in saved.items() if k in self.defaults})
        return merged

    def get(self, name: str, default=None):
        return self.all().get(name, default)

    def update(self, changes: dict[str, Any]) -> dict[str, Any]:
        unknown = sorted(set(changes) - set(self.defaults))
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(unknown)}")
        saved = self.store.get(COLLECTION, KEY) or {}
        for name, value in changes.items():
            saved[name] = _coerce(name, value, self.defaults[name])
        self.store.upsert(COLLECTION, KEY, saved)
        return self.all()
