# ology/dids.py
"""
DID and KID string handling.

Two DID methods are supported:

    did:psqr:{hostname}/{path}          -> https://{hostname}/{path}
    did:psqr:{hostname}                 -> https://{hostname}/.well-known/psqr
    did:web:{hostname}:{path}           -> https://{hostname}/{path}/did.json
    did:web:{hostname}                  -> https://{hostname}/.well-known/did.json

A KID is a DID followed by "#<key name>".
"""

import re

from .errors import DidError

SUPPORTED_METHODS = ("web", "psqr")

DID_PATTERN = re.compile(r"did:(web|psqr):[A-Za-z0-9.\-_/%:]+")
KID_PATTERN = re.compile(r"did:(web|psqr):[A-Za-z0-9.\-_/%:]+#\w+$")


def is_did(value: str) -> bool:
    """Check a string looks like a supported DID."""
    return isinstance(value, str) and DID_PATTERN.match(value) is not None


def is_kid(value: str) -> bool:
    """Check a string looks like a supported KID (DID#key)."""
    return isinstance(value, str) and KID_PATTERN.match(value) is not None


def parse_bare_did(kid: str) -> str:
    """
    Strip any "#fragment" from a DID or KID.

    Raises:
        DidError: if nothing precedes the fragment
    """
    if not isinstance(kid, str):
        raise DidError(f"DID must be a string, got {type(kid).__name__}")
    bare = kid.split("#", 1)[0]
    if not bare:
        raise DidError(f"Unable to parse DID from {kid!r}")
    return bare


def parse_did_method(did: str) -> str:
    """
    Return the method of a DID ("web" or "psqr").

    Raises:
        DidError: if the string is not a DID or the method is unsupported
    """
    parts = parse_bare_did(did).split(":")
    if len(parts) < 3 or parts[0] != "did":
        raise DidError(
            f"Unable to parse DID {did!r}. Expected format: did:psqr:{{hostname}}/{{path}}#{{keyId}}"
        )
    method = parts[1]
    if method not in SUPPORTED_METHODS:
        raise DidError(f"Unsupported DID method {method!r} in {did!r}")
    return method


def parse_did_url(did: str) -> str:
    """
    Derive the https URL an identity document is published at.

    Raises:
        DidError: if the DID cannot be parsed
    """
    bare = parse_bare_did(did)
    method = parse_did_method(bare)

    segments = bare.split(":")[2:]
    if not all(segments):
        raise DidError(f"Empty path segment in DID {did!r}")

    path = "/".join(segments)
    if "/" not in path:
        path += "/.well-known/psqr" if method == "psqr" else "/.well-known"
    if method == "web":
        path += "/did.json"

    return f"https://{path}"
