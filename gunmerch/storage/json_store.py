from pathlib import Path
import json
from typing import Any, Callable, Dict, List, Optional

SEQUENCES = "_sequences"


class JsonStore:
    """Simple JSON-on-disk collections: one file per collection, keyed by string id."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _load(self, collection: str) -> Dict[str, Any]:
        p = self._path(collection)
        if not p.exists():
            return {}
        with p.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self, collection: str, obj: Dict[str, Any]):
        p = self._path(collection)
        tmp = p.with_suffix(".json.tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(obj, f, indent=2, ensure_ascii=False)
        tmp.replace(p)

    def list(self, collection: str) -> List[Dict[str, Any]]:
        return list(self._load(collection).values())

    def find(self, collection: str, predicate: Callable[[Dict[str, Any]], bool]) -> List[Dict[str, Any]]:
        return [v for v in self._load(collection).values() if predicate(v)]

    def first(self, collection: str, predicate: Callable[[Dict[str, Any]], bool]) -> Optional[Dict[str, Any]]:
        return next((v for v in self._load(collection).values() if predicate(v)), None)

    def get(self, collection: str, key):
        return self._load(collection).get(str(key))

    def upsert(self, collection: str, key, value: Dict[str, Any]):
        data = self._load(collection)
        data[str(key)] = value
        self._save(collection, data)

    def delete(self, collection: str, key):
        data = self._load(collection)
        data.pop(str(key), None)
        self._save(collection, data)

    def delete_where(self, collection: str, predicate: Callable[[Dict[str, Any]], bool]) -> int:
        data = self._load(collection)
        keep = {k: v for k, v in data.items() if not predicate(v)}
        removed = len(data) - len(keep)
        if removed:
            self._save(collection, keep)
        return removed

    def next_id(self, collection: str) -> int:
        """Allocate the next integer id for a collection. Ids are never reused."""
        seq = self._load(SEQUENCES)
        value = int(seq.get(collection, 0)) + 1
        seq[collection] = value
        self._save(SEQUENCES, seq)
        return value
