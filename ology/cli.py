#!/usr/bin/env python3
"""
ology CLI

Command-line access to identity resolution, article verification,
threading, and the local identity and list stores.

Usage:
  ology resolve <did> [--refresh]
  ology verify <article.json>
  ology thread <feed.json> <infoHash>
  ology import-config <config.json>
  ology keys list | delete <kid> | generate <kid> [--add]
  ology sign <kid> <text>
  ology lists list | show <name> | import <name> <url> [file] | delete <name>
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config import Settings, load_settings
from .errors import KeyPairError, RecordError
from .identity import CONFIG_NAMESPACE, IdentityManager
from .keys import generate_key_pair
from .lists import LIST_NAMESPACE, ListManager
from .models import Article, Feed
from .provenance import ProvenanceVerifier
from .resolver import IdentityResolver
from .store import Store
from .thread import ThreadBuilder, to_thread_array


def _settings(args) -> Settings:
    settings = load_settings(args.config)
    if args.store_dir:
        settings.store_dir = Path(args.store_dir).expanduser()
    return settings


def _read_json(path: str) -> Any:
    with open(path) as f:
        return json.load(f)


def _print_json(data: Any):
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _identities(settings: Settings) -> IdentityManager:
    return IdentityManager(Store(settings.store_dir, CONFIG_NAMESPACE))


def _lists(settings: Settings) -> ListManager:
    return ListManager(Store(settings.store_dir, LIST_NAMESPACE))


def cmd_resolve(args) -> int:
    """Resolve a DID and print its document."""
    resolver = IdentityResolver.from_settings(args.settings)
    result = resolver.resolve(args.did, use_cache=not args.refresh)
    if not result.success:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return 1
    _print_json(result.did_doc.to_dict())
    return 0


def cmd_verify(args) -> int:
    """Verify an article's provenance."""
    try:
        article = Article.from_dict(_read_json(args.article))
    except (OSError, json.JSONDecodeError, RecordError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    verifier = ProvenanceVerifier(IdentityResolver.from_settings(args.settings))
    result = verifier.verify(article)
    print(f"{article.info_hash}: {result.status.value}")
    if result.reason:
        print(f"  {result.reason}")
    return 0 if result else 2


def cmd_thread(args) -> int:
    """Build and print the reply thread of one article in a feed."""
    try:
        data = _read_json(args.feed)
        if isinstance(data, list):
            data = {"allArticles": data}
        feed = Feed.from_dict(data)
    except (OSError, json.JSONDecodeError, RecordError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    article = feed.get(args.info_hash)
    if article is None:
        print(f"ERROR: {args.info_hash} not in feed", file=sys.stderr)
        return 1

    settings = args.settings
    verifier = ProvenanceVerifier(IdentityResolver.from_settings(settings))
    builder = ThreadBuilder(verifier, max_depth=settings.max_thread_depth)
    builder.build_thread(feed, article)

    for i, item in enumerate(to_thread_array(article)):
        title = item.package.get("title", "")
        print(f"{i:3d}  {item.info_hash}  {title}")
    if article.thread_truncated:
        print("(thread truncated)")
    return 0


def cmd_import_config(args) -> int:
    """Import an identity config."""
    try:
        data = _read_json(args.config_file)
    except (OSError, json.JSONDecodeError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    response = _identities(args.settings).import_config(data)
    print(response.message)
    return 0 if response.success else 1


def cmd_keys(args) -> int:
    """List, delete or generate key pairs."""
    settings = args.settings
    identities = _identities(settings)

    if args.keys_command == "list":
        for pair in identities.get_all_key_pairs():
            print(pair.kid)
        return 0

    if args.keys_command == "delete":
        if not identities.delete_key_pair(args.kid):
            print(f"ERROR: No key pair {args.kid}", file=sys.stderr)
            return 1
        print(f"Deleted {args.kid}")
        return 0

    if args.keys_command == "generate":
        try:
            pair = generate_key_pair(args.kid)
        except KeyPairError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        if args.add:
            response = identities.add_key_pair(pair.to_dict())
            print(response.message)
            return 0 if response.success else 1
        _print_json(pair.to_dict())
        return 0

    return 1


def cmd_sign(args) -> int:
    """Sign text with a stored key pair."""
    token = _identities(args.settings).sign_text(args.kid, args.text)
    if token is False:
        print(f"ERROR: Unable to sign with {args.kid}", file=sys.stderr)
        return 1
    print(token)
    return 0


def cmd_lists(args) -> int:
    """List, show, import or delete article lists."""
    lists = _lists(args.settings)

    if args.lists_command == "list":
        for article_list in lists.get_all_lists():
            print(f"{article_list.key}  {article_list.name}  ({len(article_list.articles)} articles)")
        return 0

    if args.lists_command == "show":
        article_list = lists.get_list(args.name)
        if article_list is None:
            print(f"ERROR: No list named {args.name!r}", file=sys.stderr)
            return 1
        _print_json(article_list.to_dict())
        return 0

    if args.lists_command == "import":
        items = ""
        if args.file:
            try:
                items = Path(args.file).read_text()
            except OSError as e:
                print(f"ERROR: {e}", file=sys.stderr)
                return 1
        response = lists.import_list(args.name, args.url, items)
        print(response.message)
        return 0 if response.success else 1

    if args.lists_command == "delete":
        lists.delete_list(args.name)
        print(f"Deleted {args.name}")
        return 0

    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ology",
        description="ology - Article provenance over decentralized identities",
    )
    parser.add_argument("--config", help="Settings YAML file (default: ~/.ology/config.yaml)")
    parser.add_argument("--store-dir", help="Store directory (overrides settings)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a DID document")
    resolve_parser.add_argument("did", help="DID or KID")
    resolve_parser.add_argument("--refresh", action="store_true", help="Ignore the document cache")

    verify_parser = subparsers.add_parser("verify", help="Verify an article's provenance")
    verify_parser.add_argument("article", help="Article JSON file")

    thread_parser = subparsers.add_parser("thread", help="Show an article's reply thread")
    thread_parser.add_argument("feed", help="Feed JSON file (list of articles or {allArticles: [...]})")
    thread_parser.add_argument("info_hash", help="infoHash of the article")

    import_parser = subparsers.add_parser("import-config", help="Import an identity config")
    import_parser.add_argument("config_file", help="Config JSON file")

    keys_parser = subparsers.add_parser("keys", help="Manage key pairs")
    keys_sub = keys_parser.add_subparsers(dest="keys_command", required=True)
    keys_sub.add_parser("list", help="List key pairs")
    keys_delete = keys_sub.add_parser("delete", help="Delete a key pair")
    keys_delete.add_argument("kid")
    keys_generate = keys_sub.add_parser("generate", help="Generate a P-384 key pair")
    keys_generate.add_argument("kid")
    keys_generate.add_argument("--add", action="store_true",
                               help="Add to the identity the kid names instead of printing")

    sign_parser = subparsers.add_parser("sign", help="Sign text with a key pair")
    sign_parser.add_argument("kid")
    sign_parser.add_argument("text")

    lists_parser = subparsers.add_parser("lists", help="Manage article lists")
    lists_sub = lists_parser.add_subparsers(dest="lists_command", required=True)
    lists_sub.add_parser("list", help="List all lists")
    lists_show = lists_sub.add_parser("show", help="Show a list")
    lists_show.add_argument("name")
    lists_import = lists_sub.add_parser("import", help="Import a list")
    lists_import.add_argument("name")
    lists_import.add_argument("url")
    lists_import.add_argument("file", nargs="?", help="Newline-delimited JSON articles")
    lists_delete = lists_sub.add_parser("delete", help="Delete a list")
    lists_delete.add_argument("name")

    return parser


COMMANDS = {
    "resolve": cmd_resolve,
    "verify": cmd_verify,
    "thread": cmd_thread,
    "import-config": cmd_import_config,
    "keys": cmd_keys,
    "sign": cmd_sign,
    "lists": cmd_lists,
}


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    command = COMMANDS.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.settings = _settings(args)
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(command(args))


if __name__ == "__main__":
    main()
