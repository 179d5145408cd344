#!/usr/bin/env python3
"""
Set up a did:psqr identity with a P-384 signing key.

Writes:
  ~/.ology/identities/{name}.json   config to load with `ology import-config`
  ./{name}.did.json                 identity document to publish at the DID's URL

Usage:
  setup_identity.py <hostname> <name> [--key publish] [--display-name "Alice"]
"""

import argparse
import json
import os
import sys
import time
from pathlib import Path

# Add ology to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ology.dids import parse_did_url
from ology.keys import generate_key_pair


def create_did_doc(did: str, display_name: str, public_jwk: dict) -> dict:
    """Create the identity document for a did:psqr identity."""
    return {
        "@context": [
            "https://www.w3.org/ns/did/v1",
            "https://vpsqr.com/ns/did-psqr/v1",
        ],
        "id": did,
        "psqr": {
            "publicIdentity": {"name": display_name},
            "publicKeys": [public_jwk],
            "permissions": [
                {"kid": public_jwk["kid"], "grant": ["publish", "admin"]},
            ],
            "updated": int(time.time() * 1000),
        },
    }


def main():
    parser = argparse.ArgumentParser(description="Create a did:psqr identity")
    parser.add_argument("hostname", help="Host the identity document is served from")
    parser.add_argument("name", help="Identity name (path component of the DID)")
    parser.add_argument("--key", default="publish", help="Key name (KID fragment)")
    parser.add_argument("--display-name", help="Public display name")
    args = parser.parse_args()

    did = f"did:psqr:{args.hostname}/{args.name}"
    kid = f"{did}#{args.key}"

    config_path = Path.home() / ".ology" / "identities" / f"{args.name}.json"
    if config_path.exists():
        print(f"Config already exists: {config_path}")
        print("Delete it first if you want to regenerate.")
        sys.exit(1)

    print(f"Creating key pair {kid}...")
    pair = generate_key_pair(kid)
    record = pair.to_dict()

    did_doc = create_did_doc(did, args.display_name or args.name, pair.public.export_jwk())
    config = {
        "name": args.name,
        "identity": {
            "did": did,
            "didDoc": did_doc,
            "keyPairs": [record],
        },
        "network": {},
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config, indent=2))
    os.chmod(config_path, 0o600)  # Owner read/write only
    print(f"Config saved: {config_path}")
    print(f"  Mode: 600 (owner read/write only)")
    print(f"  Contains the private key. BACK THIS UP!")

    doc_path = Path(f"{args.name}.did.json")
    doc_path.write_text(json.dumps(did_doc, indent=2))
    print(f"\nIdentity document saved: {doc_path}")
    print(f"Publish it at: {parse_did_url(did)}")
    print(f"Then run: ology import-config {config_path}")


if __name__ == "__main__":
    main()
