# ology/keys.py
"""
Key pair import, validation and signing.

Keys are P-384 elliptic-curve keys exchanged as JWKs and used for ES384
compact JWS tokens (python-jose). A KeyPair holds two handles: the
private handle is never extractable, the public handle can be exported
back to a JWK.

Key pair records look like:

    {
        "kid": "did:psqr:example.com/alice#publish",
        "private": {"kty": "EC", "crv": "P-384", "alg": "ES384", "kid": ..., "x": ..., "y": ..., "d": ...},
        "public": {"kty": "EC", "crv": "P-384", "alg": "ES384", "kid": ..., "x": ..., "y": ...}
    }

"public" may be omitted; it is then derived from the private JWK.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwk, jws
from jose.exceptions import JOSEError

from .dids import is_kid, parse_bare_did
from .errors import KeyPairError

logger = logging.getLogger(__name__)

KEY_TYPE = "EC"
CURVE = "P-384"
ALGORITHM = "ES384"

# Signed and verified by validate_key_pair
TEST_MESSAGE = "Hello There!"

PUBLIC_FIELDS = ("kty", "crv", "alg", "kid", "x", "y")


@dataclass(frozen=True)
class KeyHandle:
    """
    An imported key.

    Attributes:
        key: The python-jose key object
        kid: Key ID the key was imported under
        extractable: Whether export_jwk() is allowed
    """
    key: Any = field(repr=False)
    kid: Optional[str]
    extractable: bool

    @property
    def is_private(self) -> bool:
        return self.key is not None and not self.key.is_public()

    def export_jwk(self) -> Dict[str, Any]:
        """Export the public JWK for this key."""
        if not self.extractable:
            raise KeyPairError(f"Key {self.kid} is not extractable")
        public_key = self.key.public_key() if self.is_private else self.key
        exported = public_key.to_dict()
        if self.kid is not None:
            exported["kid"] = self.kid
        return exported


@dataclass
class KeyPair:
    """
    A signing key pair owned by a local identity.

    Attributes:
        kid: DID with "#fragment" naming this key
        private: Non-extractable private key handle
        public: Extractable public key handle
        record: The JWK record the pair was imported from (for storage)
    """
    kid: str
    private: KeyHandle
    public: KeyHandle
    record: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def did(self) -> str:
        """The DID that owns this key."""
        return parse_bare_did(self.kid)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for storage."""
        return copy.deepcopy(self.record)


@dataclass
class PairResponse:
    """Result of parse_key_pair()."""
    success: bool
    message: str
    pair: Optional[KeyPair] = None


def _check_params(key_data: Any, private: bool = False) -> None:
    """Reject JWKs that are not EC / P-384 / ES384."""
    if not isinstance(key_data, dict):
        raise KeyPairError("JWK must be an object")
    if key_data.get("kty") != KEY_TYPE:
        raise KeyPairError(f"Unsupported key type {key_data.get('kty')!r}, expected {KEY_TYPE}")
    if key_data.get("crv") != CURVE:
        raise KeyPairError(f"Unsupported curve {key_data.get('crv')!r}, expected {CURVE}")
    if key_data.get("alg") != ALGORITHM:
        raise KeyPairError(f"Unsupported algorithm {key_data.get('alg')!r}, expected {ALGORITHM}")
    for name in ("x", "y", "d") if private else ("x", "y"):
        if not isinstance(key_data.get(name), str):
            raise KeyPairError(f"JWK is missing '{name}'")


def _construct(key_data: Dict[str, Any]):
    try:
        return jwk.construct(key_data, algorithm=ALGORITHM)
    except (JOSEError, ValueError) as e:
        raise KeyPairError(f"Invalid key: {e}") from e


def import_public_key(key_data: Dict[str, Any]) -> KeyHandle:
    """
    Import a public JWK as an extractable key handle.

    Raises:
        KeyPairError: if the JWK is malformed or not P-384/ES384
    """
    _check_params(key_data)
    public = {k: v for k, v in key_data.items() if k != "d"}
    return KeyHandle(key=_construct(public), kid=key_data.get("kid"), extractable=True)


def import_private_key(key_data: Dict[str, Any]) -> KeyHandle:
    """
    Import a private JWK as a non-extractable key handle.

    Raises:
        KeyPairError: if the JWK is malformed, not P-384/ES384, or its
            x/y do not belong to d
    """
    _check_params(key_data, private=True)
    return KeyHandle(key=_construct(key_data), kid=key_data.get("kid"), extractable=False)


def parse_key_pair(raw: Dict[str, Any]) -> PairResponse:
    """
    Parse a private and public key pair record into a KeyPair.

    The private JWK is marked non-extractable and the public JWK
    extractable before both are imported.

    Args:
        raw: Key pair record with kid, private and (optionally) public JWKs

    Returns:
        PairResponse with the KeyPair, or a message naming the failing kid
    """
    kid = raw.get("kid") if isinstance(raw, dict) else None
    try:
        if not isinstance(raw, dict):
            raise KeyPairError("Key pair record must be an object")
        if not is_kid(kid):
            raise KeyPairError("Invalid KID. Expected format: did:(psqr|web):{hostname}(/|:){path}#{keyId}")
        if not isinstance(raw.get("private"), dict):
            raise KeyPairError("Private JWK missing")

        private_jwk = dict(raw["private"])
        if isinstance(raw.get("public"), dict):
            public_jwk = dict(raw["public"])
        else:
            public_jwk = {k: private_jwk[k] for k in PUBLIC_FIELDS if k in private_jwk}

        private_jwk["ext"] = False
        public_jwk["ext"] = True

        private = import_private_key(private_jwk)
        public = import_public_key(public_jwk)
    except KeyPairError as e:
        return PairResponse(success=False, message=f"Error parsing Key Pair {kid}: {e}")

    pair = KeyPair(
        kid=kid,
        private=private,
        public=public,
        record={"kid": kid, "private": private_jwk, "public": public_jwk},
    )
    return PairResponse(success=True, message="Successfully parsed Key Pair", pair=pair)


def validate_key_pair(pair: KeyPair) -> bool:
    """
    Check a key pair by signing TEST_MESSAGE and verifying it.

    Returns:
        True if the public key recovers exactly TEST_MESSAGE, False on
        any mismatch or error
    """
    expected = TEST_MESSAGE.encode("utf-8")
    try:
        token = jws.sign(expected, pair.private.key, algorithm=ALGORITHM)
        payload = jws.verify(token, pair.public.key, algorithms=[ALGORITHM])
    except Exception as e:
        logger.warning(f"Error validating key pair {getattr(pair, 'kid', None)}: {e!r}")
        return False
    return payload == expected


def sign_text(text: str, pair: KeyPair) -> str | bool:
    """
    Sign a text string with a key pair.

    The token's protected header carries alg=ES384 and the pair's kid.

    Returns:
        Compact JWS token, or False if signing failed
    """
    try:
        return jws.sign(text.encode("utf-8"), pair.private.key,
                        headers={"kid": pair.kid}, algorithm=ALGORITHM)
    except Exception as e:
        logger.warning(f"Error signing text with {getattr(pair, 'kid', None)}: {e!r}")
        return False


def decode_header(token: str) -> Dict[str, Any]:
    """
    Read the protected header of a token without verifying it.

    Raises:
        ValueError: if the token is malformed
    """
    try:
        return jws.get_unverified_header(token)
    except (JOSEError, AttributeError) as e:
        raise ValueError(f"Invalid JWS token: {e}") from e


def verify_text(token: str, key: KeyPair | KeyHandle) -> Optional[str]:
    """
    Verify a token and return its payload as text.

    Only ES384 tokens are accepted.

    Returns:
        The signed text, or None if the token does not verify
    """
    handle = key.public if isinstance(key, KeyPair) else key
    try:
        payload = jws.verify(token, handle.key, algorithms=[ALGORITHM])
        return payload.decode("utf-8")
    except (JOSEError, UnicodeDecodeError) as e:
        logger.debug(f"Token did not verify against {handle.kid}: {e!r}")
        return None


def generate_key_pair(kid: str) -> KeyPair:
    """
    Generate a new P-384 key pair under the given kid.

    Raises:
        KeyPairError: if kid is not a valid KID
    """
    if not is_kid(kid):
        raise KeyPairError(f"Invalid KID {kid!r}")

    private_key = ec.generate_private_key(ec.SECP384R1())
    private_jwk = dict(jwk.construct(private_key, algorithm=ALGORITHM).to_dict(), kid=kid)
    public_jwk = {k: v for k, v in private_jwk.items() if k != "d"}

    response = parse_key_pair({"kid": kid, "private": private_jwk, "public": public_jwk})
    if not response.success:
        raise KeyPairError(response.message)
    return response.pair
