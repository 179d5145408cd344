# ology - Article provenance verification over decentralized identities
#
# Verifies that syndicated articles were signed by the DID that claims them,
# rebuilds reply threads from a feed's article pool, and keeps local
# identities, signing keys and curated lists.
#
# Core concepts:
# - DID: An identity whose document publishes its public keys
# - KeyPair: A P-384 signing key named by a KID (DID#key)
# - Provenance: An article's ES384 signature over its info block
# - Thread: The verified chain of articles a reply answers

from .store import Store, ActionResponse, parse_list_key
from .keys import (
    KeyHandle,
    KeyPair,
    PairResponse,
    generate_key_pair,
    parse_key_pair,
    sign_text,
    validate_key_pair,
    verify_text,
)
from .models import Article, DidDocument, Feed
from .resolver import DidDocCache, IdentityResolver, ResolveResult
from .provenance import ProvenanceVerifier, VerificationResult, VerificationStatus, canonical_info
from .thread import ThreadBuilder, to_thread_array
from .identity import Config, Identity, IdentityManager
from .lists import ArticleList, ListManager
from .config import Settings, load_settings

__all__ = [
    # Storage
    "Store",
    "ActionResponse",
    "parse_list_key",
    # Keys
    "KeyHandle",
    "KeyPair",
    "PairResponse",
    "generate_key_pair",
    "parse_key_pair",
    "sign_text",
    "validate_key_pair",
    "verify_text",
    # Records
    "Article",
    "DidDocument",
    "Feed",
    # Resolution and verification
    "DidDocCache",
    "IdentityResolver",
    "ResolveResult",
    "ProvenanceVerifier",
    "VerificationResult",
    "VerificationStatus",
    "canonical_info",
    # Threads
    "ThreadBuilder",
    "to_thread_array",
    # Identities and lists
    "Config",
    "Identity",
    "IdentityManager",
    "ArticleList",
    "ListManager",
    # Settings
    "Settings",
    "load_settings",
]

__version__ = "0.1.0"
