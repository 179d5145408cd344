# ology/identity.py
"""
Local identities and their signing keys.

A config record holds one identity: its DID, its identity document and
the key pairs it signs with. Records are stored by DID:

    {
        "name": "alice",
        "identity": {
            "did": "did:psqr:example.com/alice",
            "didDoc": {...},
            "keyPairs": [{"kid": ..., "private": {...}, "public": {...}}]
        },
        "network": {...}
    }
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .dids import parse_bare_did
from .errors import DidError, DocumentError, RecordError
from .keys import KeyPair, parse_key_pair, sign_text, validate_key_pair
from .models import DidDocument
from .store import ActionResponse, Store

logger = logging.getLogger(__name__)

CONFIG_NAMESPACE = "config"


@dataclass
class Identity:
    """
    A local identity.

    Attributes:
        did: The identity's DID
        did_doc: Its identity document
        key_pairs: Key pairs owned by the identity, in import order
    """
    did: str
    did_doc: DidDocument
    key_pairs: List[KeyPair] = field(default_factory=list)

    def find_key_pair(self, kid: str) -> Optional[KeyPair]:
        for pair in self.key_pairs:
            if pair.kid == kid:
                return pair
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "did": self.did,
            "didDoc": self.did_doc.to_dict(),
            "keyPairs": [pair.to_dict() for pair in self.key_pairs],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        """
        Raises:
            RecordError: if the document or a key pair does not parse
        """
        try:
            did_doc = DidDocument.from_dict(data.get("didDoc"))
        except DocumentError as e:
            raise RecordError(str(e)) from e

        key_pairs = []
        for raw in data.get("keyPairs") or []:
            response = parse_key_pair(raw)
            if not response.success:
                raise RecordError(response.message)
            key_pairs.append(response.pair)

        return cls(did=data.get("did") or did_doc.id, did_doc=did_doc, key_pairs=key_pairs)


@dataclass
class Config:
    """A stored identity config. `network` is carried as given."""
    identity: Identity
    name: str = ""
    network: Dict[str, Any] = field(default_factory=dict)

    @property
    def did(self) -> str:
        return self.identity.did

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "identity": self.identity.to_dict(),
            "network": self.network,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Config":
        """
        Raises:
            RecordError: if the record is malformed
        """
        if not isinstance(data, dict) or not isinstance(data.get("identity"), dict):
            raise RecordError("Identity object not present in config")
        return cls(
            identity=Identity.from_dict(data["identity"]),
            name=data.get("name", ""),
            network=data.get("network") or {},
        )


class IdentityManager:
    """
    Stores identity configs and manages their key pairs.

    Args:
        store: The config namespace (keyed by DID)
    """

    def __init__(self, store: Store):
        self.store = store

    def _load(self, data: Any) -> Optional[Config]:
        try:
            return Config.from_dict(data)
        except RecordError as e:
            logger.warning(f"Skipping unreadable config: {e}")
            return None

    def import_config(self, data: Any) -> ActionResponse:
        """
        Validate and store a config.

        Every key pair is parsed, self-tested and checked to belong to the
        identity's DID before anything is stored.
        """
        if not isinstance(data, dict) or not isinstance(data.get("identity"), dict):
            return ActionResponse(False, "Identity object not present in config")
        identity = data["identity"]
        if identity.get("didDoc") is None:
            return ActionResponse(False, "DID doc not present in config")

        try:
            did_doc = DidDocument.from_dict(identity["didDoc"])
        except DocumentError as e:
            return ActionResponse(False, f"Invalid DID doc: {e}")

        did = identity.get("did") or did_doc.id
        if did != did_doc.id:
            return ActionResponse(False, f"Config DID {did} does not match DID doc {did_doc.id}")

        key_pairs = []
        for raw in identity.get("keyPairs") or []:
            response = parse_key_pair(raw)
            if not response.success:
                return ActionResponse(False, response.message)
            pair = response.pair
            if not validate_key_pair(pair):
                return ActionResponse(False, f"{pair.kid} Key Pair is invalid")
            if pair.did != did:
                return ActionResponse(False, f"{pair.kid} does not belong to {did}")
            key_pairs.append(pair)

        config = Config(
            identity=Identity(did=did, did_doc=did_doc, key_pairs=key_pairs),
            name=data.get("name", ""),
            network=data.get("network") or {},
        )
        if self.put_config(did, config) is None:
            return ActionResponse(False, "Unable to put config")

        logger.info(f"Imported config for {did} with {len(key_pairs)} key pair(s)")
        return ActionResponse(True, "Successfully put config")

    def get_config(self, did: str) -> Optional[Config]:
        """Get the config for a DID, or None."""
        data = self.store.get(did)
        if data is None:
            return None
        return self._load(data)

    def put_config(self, did: str, config: Config) -> Optional[Config]:
        """Create or replace the config stored under did."""
        stored = self.store.put(did, config.to_dict())
        return self._load(stored)

    def delete_config(self, did: str) -> None:
        self.store.delete(did)

    def get_all_configs(self) -> List[Config]:
        configs = []
        for data in self.store.iterate_all():
            config = self._load(data)
            if config is not None:
                configs.append(config)
        return configs

    def get_all_dids(self) -> List[DidDocument]:
        """Identity documents of every local identity."""
        return [config.identity.did_doc for config in self.get_all_configs()]

    def get_did(self, did: str) -> Optional[DidDocument]:
        config = self.get_config(did)
        if config is None:
            return None
        return config.identity.did_doc

    def get_all_key_pairs(self) -> List[KeyPair]:
        pairs = []
        for config in self.get_all_configs():
            pairs.extend(config.identity.key_pairs)
        return pairs

    def get_key_pair(self, kid: str) -> Optional[KeyPair]:
        """Find a key pair by kid, or None."""
        try:
            did = parse_bare_did(kid)
        except DidError:
            return None
        config = self.get_config(did)
        if config is None:
            return None
        return config.identity.find_key_pair(kid)

    def add_key_pair(self, raw: Dict[str, Any]) -> ActionResponse:
        """
        Add a key pair to the identity its kid names.

        Replaces an existing pair with the same kid.
        """
        response = parse_key_pair(raw)
        if not response.success:
            return ActionResponse(False, response.message)
        pair = response.pair
        if not validate_key_pair(pair):
            return ActionResponse(False, f"{pair.kid} Key Pair is invalid")

        config = self.get_config(pair.did)
        if config is None:
            return ActionResponse(False, f"No config for {pair.did}")

        pairs = config.identity.key_pairs
        for i, existing in enumerate(pairs):
            if existing.kid == pair.kid:
                pairs[i] = pair
                break
        else:
            pairs.append(pair)

        if self.put_config(pair.did, config) is None:
            return ActionResponse(False, "Unable to put config")
        return ActionResponse(True, f"Added key pair {pair.kid}")

    def delete_key_pair(self, kid: str) -> bool:
        """
        Remove the key pair with this kid and persist the config.

        Other key pairs of the same identity are left alone.

        Returns:
            True if a key pair was removed
        """
        try:
            did = parse_bare_did(kid)
        except DidError:
            return False
        config = self.get_config(did)
        if config is None:
            return False

        remaining = [p for p in config.identity.key_pairs if p.kid != kid]
        if len(remaining) == len(config.identity.key_pairs):
            return False

        config.identity.key_pairs = remaining
        self.put_config(did, config)
        logger.info(f"Deleted key pair {kid}")
        return True

    def sign_text(self, kid: str, text: str) -> str | bool:
        """Sign text with a stored key pair. False if missing or signing fails."""
        pair = self.get_key_pair(kid)
        if pair is None:
            logger.warning(f"No key pair for {kid}")
            return False
        return sign_text(text, pair)
