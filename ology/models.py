# ology/models.py
"""
Records received from the network: identity documents, articles, feeds.

Each has a from_dict() that validates the shape this package relies on
and raises DocumentError/RecordError otherwise. Fields not needed here are
kept in `raw` so to_dict() returns what was received.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .dids import is_did
from .errors import DocumentError, RecordError


def _dig(data: Any, *keys: str) -> Any:
    """Follow nested keys, returning None if any level is missing."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


@dataclass
class DidDocument:
    """
    A resolved identity document.

    Attributes:
        id: The DID the document describes
        psqr: The psqr extension block (publicIdentity, publicKeys, ...), if any
        raw: The full document as received
    """
    id: str
    psqr: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def public_keys(self) -> List[Dict[str, Any]]:
        """Published public JWKs (empty without a psqr block)."""
        if self.psqr is None:
            return []
        return list(self.psqr.get("publicKeys", []))

    def find_keys(self, kid: str) -> List[Dict[str, Any]]:
        """All published keys whose kid matches."""
        return [k for k in self.public_keys if k.get("kid") == kid]

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self.raw)

    @classmethod
    def from_dict(cls, data: Any) -> "DidDocument":
        """
        Validate and wrap a document.

        Raises:
            DocumentError: if the document is not an object with a DID id,
                or its psqr block is malformed
        """
        if not isinstance(data, dict):
            raise DocumentError("DID document must be a JSON object")

        doc_id = data.get("id")
        if not is_did(doc_id):
            raise DocumentError(f"DID document has invalid id {doc_id!r}")

        psqr = data.get("psqr")
        if psqr is not None:
            if not isinstance(psqr, dict):
                raise DocumentError(f"DID document {doc_id} has a non-object psqr block")
            keys = psqr.get("publicKeys", [])
            if not isinstance(keys, list):
                raise DocumentError(f"DID document {doc_id} publicKeys must be a list")
            for key in keys:
                if not isinstance(key, dict) or not isinstance(key.get("kid"), str):
                    raise DocumentError(f"DID document {doc_id} has a public key without a kid")

        return cls(id=doc_id, psqr=copy.deepcopy(psqr), raw=copy.deepcopy(data))


@dataclass
class Article:
    """
    A syndicated article, content-addressed by info_hash.

    `info` is the block whose compact JSON serialization was signed; it is
    kept exactly as received, key order included.

    reply_thread and thread_truncated are filled in by ThreadBuilder and
    are not part of the received record.
    """
    info_hash: str
    created_by: str
    provenance: Dict[str, Any]
    info: Dict[str, Any]
    name: str = ""
    created: Optional[float] = None
    url_list: List[str] = field(default_factory=list)
    announce: List[str] = field(default_factory=list)
    files: List[Dict[str, Any]] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)
    reply_thread: List["Article"] = field(default_factory=list, repr=False)
    thread_truncated: bool = False

    @property
    def signature(self) -> Optional[str]:
        """The detached compact JWS over info."""
        return self.provenance.get("signature")

    @property
    def key_id(self) -> Optional[str]:
        """kid of the public key the provenance claims to be signed with."""
        return _dig(self.provenance, "jwk", "kid")

    @property
    def package(self) -> Dict[str, Any]:
        package = _dig(self.info, "publicSquare", "package")
        return package if isinstance(package, dict) else {}

    @property
    def canonical_url(self) -> Optional[str]:
        return self.package.get("canonicalUrl")

    @property
    def reply_reference(self) -> str:
        """Reference to the article this one replies to ("" if none)."""
        reply = _dig(self.package, "references", "content", "reply")
        return reply if isinstance(reply, str) else ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as received, with the current info block."""
        data = copy.deepcopy(self.raw)
        data["info"] = copy.deepcopy(self.info)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Article":
        """
        Validate and wrap an article record.

        Raises:
            RecordError: if required fields are missing or mistyped
        """
        if not isinstance(data, dict):
            raise RecordError("Article must be a JSON object")
        if not isinstance(data.get("infoHash"), str) or not data["infoHash"]:
            raise RecordError("Article is missing infoHash")
        info_hash = data["infoHash"]
        if not isinstance(data.get("createdBy"), str):
            raise RecordError(f"Article {info_hash} is missing createdBy")
        provenance = data.get("provenance")
        if not isinstance(provenance, dict) or not isinstance(provenance.get("signature"), str):
            raise RecordError(f"Article {info_hash} has no provenance signature")
        if not isinstance(data.get("info"), dict):
            raise RecordError(f"Article {info_hash} is missing info")

        raw = copy.deepcopy(data)
        return cls(
            info_hash=info_hash,
            created_by=data["createdBy"],
            provenance=raw["provenance"],
            info=raw["info"],
            name=data.get("name", ""),
            created=data.get("created"),
            url_list=list(data.get("urlList", [])),
            announce=list(data.get("announce", [])),
            files=list(data.get("files", [])),
            raw=raw,
        )


@dataclass
class Feed:
    """
    A feed's article pool as seen by the thread builder.

    Attributes:
        feed_url: Where the feed was fetched from
        all_articles: Every article known for this feed
        duplicate_articles: infoHashes already shown inside a thread
    """
    feed_url: str = ""
    all_articles: List[Article] = field(default_factory=list)
    duplicate_articles: List[str] = field(default_factory=list)

    def add_duplicate(self, info_hash: str) -> bool:
        """Record a duplicate. Returns False if it was already recorded."""
        if info_hash in self.duplicate_articles:
            return False
        self.duplicate_articles.append(info_hash)
        return True

    def is_duplicate(self, info_hash: str) -> bool:
        return info_hash in self.duplicate_articles

    def get(self, info_hash: str) -> Optional[Article]:
        """Find an article in the pool by infoHash."""
        for article in self.all_articles:
            if article.info_hash == info_hash:
                return article
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Feed":
        """
        Build a feed from {"feedUrl": ..., "allArticles": [...]}.

        Raises:
            RecordError: if any article is malformed
        """
        return cls(
            feed_url=data.get("feedUrl", ""),
            all_articles=[Article.from_dict(a) for a in data.get("allArticles", [])],
            duplicate_articles=list(data.get("duplicateArticles", [])),
        )
