# ology/lists.py
"""
Curated article lists.

A list is a named, ordered set of article records plus the URL it came
from. Lists are stored under parse_list_key(name), so "Morning Reads"
and "morning reads" are the same list.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import RecordError
from .store import ActionResponse, Store, parse_list_key

logger = logging.getLogger(__name__)

LIST_NAMESPACE = "list"


@dataclass
class ArticleList:
    """
    Attributes:
        name: Display name
        url: Endpoint the list was imported from
        articles: Article records, newest first
    """
    name: str
    url: str = ""
    articles: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def key(self) -> str:
        return parse_list_key(self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "key": self.key,
            "articles": self.articles,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ArticleList":
        """
        Raises:
            RecordError: if name is missing or articles is not a list
        """
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise RecordError("List record must have a name")
        articles = data.get("articles", [])
        if not isinstance(articles, list):
            raise RecordError(f"List {data['name']} articles must be a list")
        return cls(name=data["name"], url=data.get("url", ""), articles=list(articles))


def parse_items(items: str) -> List[Dict[str, Any]]:
    """
    Parse newline-delimited JSON article records, skipping blank lines.

    Raises:
        RecordError: if a line is not a JSON object
    """
    articles = []
    for line_no, line in enumerate(items.split("\n"), start=1):
        if not line.strip():
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError as e:
            raise RecordError(f"line {line_no}: {e}") from e
        if not isinstance(item, dict):
            raise RecordError(f"line {line_no}: expected a JSON object")
        articles.append(item)
    return articles


class ListManager:
    """
    Stores article lists.

    Args:
        store: The list namespace (keyed by list key)
    """

    def __init__(self, store: Store):
        self.store = store

    def _load(self, data: Any) -> Optional[ArticleList]:
        try:
            return ArticleList.from_dict(data)
        except RecordError as e:
            logger.warning(f"Skipping unreadable list: {e}")
            return None

    def get_all_lists(self) -> List[ArticleList]:
        lists = []
        for data in self.store.iterate_all():
            article_list = self._load(data)
            if article_list is not None:
                lists.append(article_list)
        return lists

    def get_list(self, name: str) -> Optional[ArticleList]:
        """Get a list by name (any case/spacing that maps to its key)."""
        data = self.store.get(parse_list_key(name))
        if data is None:
            return None
        return self._load(data)

    def put_list(self, article_list: ArticleList) -> Optional[ArticleList]:
        """Create or replace a list. Returns the stored list."""
        stored = self.store.put(article_list.key, article_list.to_dict())
        return self._load(stored)

    def delete_list(self, name: str) -> None:
        self.store.delete(parse_list_key(name))

    def import_list(self, name: str, url: str, items: str = "") -> ActionResponse:
        """
        Create a list from newline-delimited JSON article records.

        Replaces any list with the same key.
        """
        try:
            articles = parse_items(items) if items else []
        except RecordError as e:
            return ActionResponse(False, f"Error importing list: {e}")

        stored = self.put_list(ArticleList(name=name, url=url, articles=articles))
        if stored is None or len(stored.articles) != len(articles):
            return ActionResponse(False, "List import failed")

        logger.info(f"Imported list {stored.key} with {len(articles)} article(s)")
        return ActionResponse(True, "Successfully imported list")

    def add_article_to_list(self, name: str, article: Dict[str, Any]) -> ActionResponse:
        """Put an article record at the front of a list."""
        article_list = self.get_list(name)
        if article_list is None:
            return ActionResponse(False, f"No list named {name!r}")

        article_list.articles.insert(0, article)
        if self.put_list(article_list) is None:
            return ActionResponse(False, "Unable to put list")
        return ActionResponse(True, f"Added article to {article_list.key}")
