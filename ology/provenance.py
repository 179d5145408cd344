# ology/provenance.py
"""
Article provenance verification.

An article is trusted when the identity named by its createdBy publishes
exactly one key with the kid its provenance names, and that key's
signature recovers the compact JSON of the article's info block.

The signer serializes info with JavaScript's JSON.stringify. Python's
json module writes strings, integers and most floats the same way, but
not floats that need an exponent: 1e-7 is written "1e-07" here and
0.00001 is written "1e-05". An info block holding such a number does
not verify.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .dids import parse_bare_did
from .errors import DidError, DocumentError, KeyPairError
from .keys import decode_header, import_public_key, verify_text
from .models import Article, DidDocument
from .resolver import IdentityResolver, ResolveResult

logger = logging.getLogger(__name__)


class VerificationStatus(Enum):
    VERIFIED = "verified"
    # Checked and found untrustworthy
    REJECTED = "rejected"
    # Could not be checked (identity document unreachable); may succeed later
    UNAVAILABLE = "unavailable"


@dataclass
class VerificationResult:
    """
    Outcome of verifying one article.

    Truthy only when the article verified, so it can be used as a plain
    boolean where the reason does not matter.
    """
    status: VerificationStatus
    info_hash: Optional[str] = None
    reason: str = ""

    @property
    def verified(self) -> bool:
        return self.status is VerificationStatus.VERIFIED

    def __bool__(self) -> bool:
        return self.verified


def canonical_info(info: Dict[str, Any]) -> str:
    """
    Serialize an info block the way it was signed.

    Compact separators, key order as given, non-ASCII left as is.
    """
    return json.dumps(info, separators=(",", ":"), ensure_ascii=False)


class ProvenanceVerifier:
    """
    Verifies article signatures against resolved identity documents.

    Args:
        resolver: Resolver whose cache is consulted before fetching
    """

    def __init__(self, resolver: IdentityResolver):
        self.resolver = resolver

    def _result(self, article: Article, status: VerificationStatus, reason: str = "") -> VerificationResult:
        info_hash = getattr(article, "info_hash", None)
        if status is not VerificationStatus.VERIFIED:
            logger.warning(f"Article {info_hash} {status.value}: {reason}")
        return VerificationResult(status=status, info_hash=info_hash, reason=reason)

    def _identity_document(self, did: str) -> ResolveResult:
        cached = self.resolver.cache.get(did)
        if cached is not None:
            return ResolveResult(success=True, did_doc=cached)
        return self.resolver.resolve(did, use_cache=False)

    def verify(self, article: Article) -> VerificationResult:
        """
        Verify an article's provenance.

        Besides the single matching published key and the payload check,
        the key's DID must be the article's createdBy DID, and a kid in
        the signature header must equal the provenance kid.

        Never raises: every failure becomes a REJECTED or UNAVAILABLE result.
        """
        try:
            return self._verify(article)
        except Exception as e:
            return self._result(article, VerificationStatus.REJECTED, f"verification error: {e!r}")

    def _verify(self, article: Article) -> VerificationResult:
        rejected = VerificationStatus.REJECTED

        try:
            creator = parse_bare_did(article.created_by)
        except DidError as e:
            return self._result(article, rejected, str(e))

        resolved = self._identity_document(creator)
        if not resolved.success:
            status = rejected if isinstance(resolved.error, (DidError, DocumentError)) \
                else VerificationStatus.UNAVAILABLE
            return self._result(article, status, f"cannot resolve {creator}: {resolved.error}")
        doc: DidDocument = resolved.did_doc

        if doc.psqr is None:
            return self._result(article, rejected, f"DID document {doc.id} has no psqr property")

        kid = article.key_id
        if not kid:
            return self._result(article, rejected, "provenance names no key")

        keys = doc.find_keys(kid)
        if len(keys) != 1:
            return self._result(article, rejected, f"{len(keys)} published keys match {kid}")

        try:
            if parse_bare_did(kid) != creator:
                return self._result(article, rejected, f"key {kid} does not belong to {creator}")
            header = decode_header(article.signature)
        except ValueError as e:
            return self._result(article, rejected, str(e))
        if "kid" in header and header["kid"] != kid:
            return self._result(article, rejected, f"signature kid {header['kid']} does not match {kid}")

        try:
            public = import_public_key(keys[0])
        except KeyPairError as e:
            return self._result(article, rejected, f"published key {kid} unusable: {e}")

        payload = verify_text(article.signature, public)
        if payload is None:
            return self._result(article, rejected, "signature does not verify")

        if payload != canonical_info(article.info):
            return self._result(article, rejected, "signed payload does not match info")

        logger.debug(f"Verified article {article.info_hash} signed by {kid}")
        return self._result(article, VerificationStatus.VERIFIED)
