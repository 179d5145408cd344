# ology/thread.py
"""
Reply thread reconstruction.

An article's reply reference names its parent with a scheme prefix:

    twitter:<canonical url>   -> article whose package canonicalUrl matches
    psqr:<infoHash>           -> article with that infoHash

Threads are built by walking parents through a feed's article pool,
accepting each parent only if its provenance verifies. Parents end up in
the feed's duplicate list so they are not listed again at top level.
"""

import logging
import re
from typing import Callable, Dict, List, Optional

from .models import Article, Feed
from .provenance import ProvenanceVerifier

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

_SCHEME = re.compile(r"^[a-z]+:")


def _by_canonical_url(feed: Feed, value: str) -> Optional[Article]:
    for article in feed.all_articles:
        if article.canonical_url == value:
            return article
    return None


def _by_info_hash(feed: Feed, value: str) -> Optional[Article]:
    return feed.get(value)


# Reference scheme -> lookup in the feed's article pool
REFERENCE_SCHEMES: Dict[str, Callable[[Feed, str], Optional[Article]]] = {
    "twitter": _by_canonical_url,
    "psqr": _by_info_hash,
}


def to_thread_array(article: Article) -> List[Article]:
    """The thread oldest-first, ending with the article itself."""
    if not article.reply_thread:
        return [article]
    return list(article.reply_thread) + [article]


class ThreadBuilder:
    """
    Builds reply threads over a feed's article pool.

    Args:
        verifier: Checks each parent before it joins a thread
        max_depth: Most ancestors a thread may hold
    """

    def __init__(self, verifier: ProvenanceVerifier, max_depth: int = DEFAULT_MAX_DEPTH):
        self.verifier = verifier
        self.max_depth = max_depth

    def find_reply(self, feed: Feed, reference: str) -> Optional[Article]:
        """
        Find the verified article a reply reference points at.

        Returns None for an empty reference, an unknown scheme, no match
        in the pool, or a match that fails verification.
        """
        if not reference:
            return None

        match = _SCHEME.match(reference)
        if match is None:
            return None

        scheme = match.group(0)[:-1]
        lookup = REFERENCE_SCHEMES.get(scheme)
        if lookup is None:
            logger.debug(f"Unknown reply scheme: {reference}")
            return None

        candidate = lookup(feed, reference[match.end():])
        if candidate is None:
            return None

        if not self.verifier.verify(candidate):
            return None
        return candidate

    def build_thread(self, feed: Feed, article: Article) -> Article:
        """
        Fill in article.reply_thread from the feed.

        Walks back one parent at a time, oldest parent ending up first.
        Stops at the first reference that does not resolve. A parent seen
        before, or a chain longer than max_depth, also stops the walk and
        marks the thread truncated.

        Returns:
            The same article, with reply_thread and thread_truncated set
        """
        article.reply_thread = []
        article.thread_truncated = False
        visited = {article.info_hash}

        current = article
        while True:
            parent = self.find_reply(feed, current.reply_reference)
            if parent is None:
                break
            if parent.info_hash in visited:
                logger.warning(
                    f"Reply cycle at {parent.info_hash} while threading {article.info_hash}"
                )
                article.thread_truncated = True
                break
            if len(article.reply_thread) >= self.max_depth:
                logger.warning(
                    f"Thread for {article.info_hash} exceeds {self.max_depth} replies, truncating"
                )
                article.thread_truncated = True
                break

            visited.add(parent.info_hash)
            article.reply_thread.insert(0, parent)
            current = parent

        for parent in article.reply_thread:
            feed.add_duplicate(parent.info_hash)

        return article
