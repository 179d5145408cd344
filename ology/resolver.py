# ology/resolver.py
"""
Identity resolution: DID -> identity document.

Resolution strips any key fragment, derives the document URL from the DID
method (see ology.dids), fetches and validates the document, and caches it
by bare DID. The cache lives for the process and is backed by a Store, so
documents fetched in an earlier run are reused until removed.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .config import Settings
from .dids import parse_bare_did, parse_did_method, parse_did_url
from .errors import DidError, DocumentError
from .fetch import Fetch, make_fetch
from .models import DidDocument
from .store import Store

logger = logging.getLogger(__name__)

DID_DOC_NAMESPACE = "did_docs"
ACCEPT_HEADER = "application/json,application/did+json"


@dataclass
class CacheStats:
    """Hit/miss counters for the identity document cache."""
    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0

    def record_hit(self):
        self.hits += 1
        self._update_rate()

    def record_miss(self):
        self.misses += 1
        self._update_rate()

    def _update_rate(self):
        total = self.hits + self.misses
        self.hit_rate = self.hits / total if total > 0 else 0.0


@dataclass
class ResolveResult:
    """
    Outcome of IdentityResolver.resolve().

    success is True with did_doc set, or False with error set to the
    exception that stopped resolution.
    """
    success: bool
    did_doc: Optional[DidDocument] = None
    error: Optional[Exception] = None


class DidDocCache:
    """
    Identity documents keyed by bare DID.

    Best effort: a document that no longer parses is dropped and
    treated as a miss.
    """

    def __init__(self, store: Optional[Store] = None):
        self.store = store if store is not None else Store(None, DID_DOC_NAMESPACE)
        self.stats = CacheStats()
        self._docs: Dict[str, DidDocument] = {}

    def get(self, did: str) -> Optional[DidDocument]:
        """Get a cached document, or None."""
        bare = parse_bare_did(did)
        doc = self._docs.get(bare)
        if doc is None:
            data = self.store.get(bare)
            if data is not None:
                try:
                    doc = DidDocument.from_dict(data)
                    self._docs[bare] = doc
                except DocumentError as e:
                    logger.warning(f"Dropping unreadable cached document for {bare}: {e}")
                    self._forget(bare)

        if doc is None:
            self.stats.record_miss()
            return None

        self.stats.record_hit()
        logger.debug(f"DID document cache hit: {bare}")
        return doc

    def _forget(self, bare: str) -> None:
        try:
            self.store.delete(bare)
        except OSError as e:
            logger.warning(f"Could not drop cached document for {bare}: {e}")

    def put(self, doc: DidDocument, did: Optional[str] = None) -> DidDocument:
        """Cache a document under did (defaults to doc.id)."""
        bare = parse_bare_did(did or doc.id)
        self._docs[bare] = doc
        self.store.put(bare, doc.to_dict())
        return doc

    def remove(self, did: str) -> None:
        bare = parse_bare_did(did)
        self._docs.pop(bare, None)
        self.store.delete(bare)

    def clear(self) -> None:
        """Forget every cached document."""
        for key in self.store.keys():
            self.store.delete(key)
        self._docs.clear()
        self.stats = CacheStats()

    def __contains__(self, did: str) -> bool:
        bare = parse_bare_did(did)
        return bare in self._docs or bare in self.store


class IdentityResolver:
    """
    Resolves DIDs to identity documents.

    Args:
        cache: Document cache (in-memory if not given)
        fetch: Callable fetching a URL as JSON (urllib if not given)
    """

    def __init__(self, cache: Optional[DidDocCache] = None, fetch: Optional[Fetch] = None):
        self.cache = cache if cache is not None else DidDocCache()
        self._fetch = fetch if fetch is not None else make_fetch()

    @classmethod
    def from_settings(cls, settings: Settings, fetch: Optional[Fetch] = None) -> "IdentityResolver":
        """Resolver with a persistent cache under settings.store_dir."""
        cache = DidDocCache(Store(settings.store_dir, DID_DOC_NAMESPACE))
        if fetch is None:
            fetch = make_fetch(timeout=settings.fetch_timeout, user_agent=settings.user_agent)
        return cls(cache=cache, fetch=fetch)

    def resolve(self, did: str, use_cache: bool = True) -> ResolveResult:
        """
        Resolve a DID (or KID) to its identity document.

        Args:
            did: DID, optionally with a "#key" fragment
            use_cache: Return a cached document if there is one

        Returns:
            ResolveResult; never raises
        """
        try:
            bare = parse_bare_did(did)
            method = parse_did_method(bare)
            url = parse_did_url(bare)
        except DidError as e:
            logger.warning(f"Cannot resolve {did!r}: {e}")
            return ResolveResult(success=False, error=e)

        if use_cache:
            cached = self.cache.get(bare)
            if cached is not None:
                return ResolveResult(success=True, did_doc=cached)

        headers = {} if method == "web" else {"Accept": ACCEPT_HEADER}

        try:
            data = self._fetch(url, headers)
            doc = DidDocument.from_dict(data)
            if doc.id != bare:
                raise DocumentError(f"Document at {url} describes {doc.id}, not {bare}")
        except Exception as e:
            logger.warning(f"Failed to resolve {bare}: {e}")
            return ResolveResult(success=False, error=e)

        try:
            self.cache.put(doc, bare)
        except OSError as e:
            logger.warning(f"Could not cache document for {bare}: {e}")
        logger.info(f"Resolved {bare} from {url}")
        return ResolveResult(success=True, did_doc=doc)
