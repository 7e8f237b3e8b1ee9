# providers/memory.py
import copy
import json
import logging
import os
import tempfile
from typing import List, Optional

from providers.store import StoreProvider

logger = logging.getLogger(__name__)

COLLECTIONS = (
    "users", "classes", "subjects", "topics", "lessons",
    "assignments", "submissions", "announcements", "progress", "questions",
)


def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(k) == v for k, v in query.items())


class MemoryProvider(StoreProvider):
    """Store kept in process memory, optionally mirrored to a JSON file."""

    def __init__(self, data_file: str = None, **kwargs):
        super().__init__(**kwargs)
        self.data_file = data_file
        self.db = {name: [] for name in COLLECTIONS}
        if data_file and os.path.exists(data_file):
            with open(data_file, encoding="utf-8") as f:
                stored = json.load(f)
            for name in COLLECTIONS:
                self.db[name] = stored.get(name, [])
            logger.info(f"Loaded store from {data_file}")

    def _save(self):
        if not self.data_file:
            return
        directory = os.path.dirname(os.path.abspath(self.data_file))
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(self.db, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.data_file)

    async def _find(self, collection: str, query: dict) -> List[dict]:
        return [copy.deepcopy(d) for d in self.db[collection] if _matches(d, query)]

    async def _find_one(self, collection: str, query: dict) -> Optional[dict]:
        for doc in self.db[collection]:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def _insert(self, collection: str, doc: dict) -> None:
        self.db[collection].append(copy.deepcopy(doc))
        self._save()

    async def _update(self, collection: str, query: dict, fields: dict) -> int:
        matched = [d for d in self.db[collection] if _matches(d, query)]
        for doc in matched:
            doc.update(copy.deepcopy(fields))
        if matched:
            self._save()
        return len(matched)

    async def _replace(self, collection: str, query: dict, doc: dict) -> int:
        for i, existing in enumerate(self.db[collection]):
            if _matches(existing, query):
                self.db[collection][i] = copy.deepcopy(doc)
                self._save()
                return 1
        return 0

    async def _delete(self, collection: str, query: dict) -> int:
        before = len(self.db[collection])
        self.db[collection] = [d for d in self.db[collection] if not _matches(d, query)]
        removed = before - len(self.db[collection])
        if removed:
            self._save()
        return removed

    async def _increment(self, collection: str, query: dict, field: str, amount: int) -> None:
        changed = False
        for doc in self.db[collection]:
            if _matches(doc, query) and doc.get(field, 0) + amount >= 0:
                doc[field] = doc.get(field, 0) + amount
                changed = True
        if changed:
            self._save()

    async def _upsert(self, collection: str, query: dict, fields: dict, on_insert: dict) -> dict:
        for doc in self.db[collection]:
            if _matches(doc, query):
                doc.update(copy.deepcopy(fields))
                self._save()
                return copy.deepcopy(doc)
        doc = {**query, **on_insert, **fields}
        self.db[collection].append(copy.deepcopy(doc))
        self._save()
        return doc
