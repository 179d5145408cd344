# ology/store.py
"""
Keyed persistent storage.

A Store is one namespace of JSON-compatible records, keyed by string.
Configs are keyed by DID, lists by their list key, cached identity
documents by bare DID. Each namespace is an independent index file:

    store_dir/
        config.json       # DID -> config record
        list.json         # list key -> list record
        did_docs.json     # DID -> identity document

Passing store_dir=None keeps the namespace in memory only.
"""

import copy
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

LIST_KEY_SEPARATOR = "-"


@dataclass
class ActionResponse:
    """Success flag and message returned by import/update operations."""
    success: bool
    message: str


def parse_list_key(name: str) -> str:
    """
    Derive the storage key for a list from its human-entered name.

    Lower-cases the name and replaces each whitespace character with
    LIST_KEY_SEPARATOR, so "My Reading List" -> "my-reading-list".
    """
    return re.sub(r"\s", LIST_KEY_SEPARATOR, name.lower())


class Store:
    """
    A single keyed namespace.

    get() returns None for missing keys, put() is an upsert that returns
    the stored value, delete() of a missing key is a no-op. Values are
    copied on the way in and out so callers never alias stored state.
    """

    def __init__(self, store_dir: Path | str | None, namespace: str):
        self.namespace = namespace
        self.store_dir = Path(store_dir) if store_dir is not None else None
        if self.store_dir is not None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
        self._records: Dict[str, Any] = {}
        self._load()

    def _index_path(self) -> Optional[Path]:
        if self.store_dir is None:
            return None
        return self.store_dir / f"{self.namespace}.json"

    def _load(self):
        """Load records from disk."""
        index_path = self._index_path()
        if index_path is None or not index_path.exists():
            return
        try:
            with open(index_path) as f:
                data = json.load(f)
            records = data.get("records", {})
            if not isinstance(records, dict):
                raise ValueError(f"records must be an object, got {type(records).__name__}")
            self._records = dict(records)
        except (ValueError, AttributeError) as e:
            logger.warning(f"Failed to load {self.namespace} store: {e}")
            self._records = {}

    def _save(self):
        """Save records to disk."""
        index_path = self._index_path()
        if index_path is None:
            return
        data = {
            "version": "1.0",
            "records": self._records,
        }
        with open(index_path, "w") as f:
            json.dump(data, f, indent=2)

    def get(self, key: str) -> Optional[Any]:
        """Get a record by key, or None if absent."""
        value = self._records.get(key)
        if value is None:
            return None
        return copy.deepcopy(value)

    def put(self, key: str, value: Any) -> Any:
        """Create or replace a record. Returns the stored value."""
        self._records[key] = copy.deepcopy(value)
        self._save()
        logger.debug(f"Stored {self.namespace}/{key}")
        return copy.deepcopy(self._records[key])

    def delete(self, key: str) -> None:
        """Remove a record. Deleting a missing key does nothing."""
        if key not in self._records:
            return
        del self._records[key]
        self._save()
        logger.debug(f"Deleted {self.namespace}/{key}")

    def iterate_all(self) -> Iterator[Any]:
        """
        Yield every stored value (order unspecified).

        Iterates over a snapshot, so writes during iteration are not seen.
        Call again to restart.
        """
        for value in list(self._records.values()):
            yield copy.deepcopy(value)

    def keys(self) -> List[str]:
        """List all keys in this namespace."""
        return list(self._records.keys())

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)
