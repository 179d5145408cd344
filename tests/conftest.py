# tests/conftest.py
"""Shared fixtures: identities, signed articles, and a fake document fetch."""

import copy
import tempfile
from pathlib import Path
from typing import Any, Dict, List

import pytest

from ology.errors import FetchError
from ology.keys import KeyPair, generate_key_pair, sign_text
from ology.models import Article
from ology.provenance import canonical_info

ALICE = "did:psqr:example.com/alice"
ALICE_KID = f"{ALICE}#publish"
ALICE_URL = "https://example.com/alice"

BOB = "did:psqr:example.com/bob"
BOB_KID = f"{BOB}#publish"
BOB_URL = "https://example.com/bob"


class FakeFetch:
    """Serves identity documents from a dict of URL -> document."""

    def __init__(self, documents: Dict[str, Any] = None):
        self.documents = dict(documents or {})
        self.calls: List[tuple] = []

    def __call__(self, url: str, headers: Dict[str, str]) -> Any:
        self.calls.append((url, dict(headers)))
        if url not in self.documents:
            raise FetchError(f"HTTP 404 fetching {url}", url=url, status=404)
        return copy.deepcopy(self.documents[url])


def make_did_doc(did: str, *pairs: KeyPair) -> Dict[str, Any]:
    """Identity document publishing the public keys of the given pairs."""
    return {
        "@context": [
            "https://www.w3.org/ns/did/v1",
            "https://vpsqr.com/ns/did-psqr/v1",
        ],
        "id": did,
        "psqr": {
            "publicIdentity": {"name": did.rsplit("/", 1)[-1]},
            "publicKeys": [pair.public.export_jwk() for pair in pairs],
            "permissions": [],
        },
    }


def make_info(title: str = "Hello", reply: str = "", canonical_url: str = None) -> Dict[str, Any]:
    return {
        "publicSquare": {
            "package": {
                "geo": "",
                "politicalSubdivision": "",
                "publishDate": 1700000000000,
                "lang": "en",
                "title": title,
                "description": "",
                "image": "",
                "body": f"<p>{title}</p>",
                "canonicalUrl": canonical_url or f"https://example.com/articles/{title.lower()}",
                "references": {
                    "content": {
                        "reply": reply,
                        "amplify": "",
                        "like": "",
                    },
                },
            },
        },
    }


def make_article(pair: KeyPair, info_hash: str, reply: str = "", title: str = None,
                 canonical_url: str = None, created_by: str = None) -> Article:
    """An article whose info block is signed by pair."""
    info = make_info(title or info_hash, reply=reply, canonical_url=canonical_url)
    return Article.from_dict({
        "name": title or info_hash,
        "infoHash": info_hash,
        "created": 1700000000000,
        "createdBy": created_by or pair.did,
        "urlList": [],
        "announce": [],
        "files": [],
        "provenance": {
            "signature": sign_text(canonical_info(info), pair),
            "jwk": pair.public.export_jwk(),
            "publisher": {"name": "Alice"},
        },
        "info": info,
    })


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="session")
def alice_pair() -> KeyPair:
    return generate_key_pair(ALICE_KID)


@pytest.fixture(scope="session")
def bob_pair() -> KeyPair:
    return generate_key_pair(BOB_KID)


@pytest.fixture
def fetch(alice_pair, bob_pair) -> FakeFetch:
    """Fake fetch serving Alice's and Bob's identity documents."""
    return FakeFetch({
        ALICE_URL: make_did_doc(ALICE, alice_pair),
        BOB_URL: make_did_doc(BOB, bob_pair),
    })
