# tests/test_cli.py
"""Tests for the ology command line."""

import json

import pytest

from ology.cli import main
from ology.keys import verify_text

from conftest import ALICE, ALICE_KID, make_article, make_did_doc


@pytest.fixture
def run(temp_dir, fetch, monkeypatch, capsys):
    """Run the CLI against a temporary store and the fake fetch."""
    monkeypatch.setattr("ology.resolver.make_fetch", lambda **kwargs: fetch)
    monkeypatch.delenv("OLOGY_STORE_DIR", raising=False)
    store_dir = temp_dir / "store"

    def _run(*argv):
        with pytest.raises(SystemExit) as exc:
            main(["--config", str(temp_dir / "absent.yaml"), "--store-dir", str(store_dir), *argv])
        out, err = capsys.readouterr()
        return exc.value.code, out, err

    return _run


def write_json(path, data):
    path.write_text(json.dumps(data))
    return str(path)


@pytest.fixture
def config_file(temp_dir, alice_pair):
    return write_json(temp_dir / "alice.json", {
        "name": "alice",
        "identity": {
            "did": ALICE,
            "didDoc": make_did_doc(ALICE, alice_pair),
            "keyPairs": [alice_pair.to_dict()],
        },
    })


class TestIdentityCommands:
    """Test import-config, keys and sign."""

    def test_import_config(self, run, config_file):
        code, out, _ = run("import-config", config_file)

        assert code == 0
        assert "Successfully put config" in out

    def test_import_missing_file(self, run, temp_dir):
        code, _, err = run("import-config", str(temp_dir / "missing.json"))

        assert code == 1
        assert "ERROR" in err

    def test_keys_list(self, run, config_file):
        run("import-config", config_file)

        code, out, _ = run("keys", "list")

        assert code == 0
        assert out.split() == [ALICE_KID]

    def test_keys_generate_prints_record(self, run):
        code, out, _ = run("keys", "generate", f"{ALICE}#fresh")

        assert code == 0
        record = json.loads(out)
        assert record["kid"] == f"{ALICE}#fresh"
        assert record["private"]["crv"] == "P-384"

    def test_keys_generate_add(self, run, config_file):
        run("import-config", config_file)

        code, _, _ = run("keys", "generate", f"{ALICE}#fresh", "--add")
        _, out, _ = run("keys", "list")

        assert code == 0
        assert out.split() == [ALICE_KID, f"{ALICE}#fresh"]

    def test_keys_generate_bad_kid(self, run):
        code, _, err = run("keys", "generate", "nonsense")

        assert code == 1
        assert "ERROR" in err

    def test_keys_delete(self, run, config_file):
        run("import-config", config_file)

        assert run("keys", "delete", ALICE_KID)[0] == 0
        assert run("keys", "delete", ALICE_KID)[0] == 1

    def test_sign(self, run, config_file, alice_pair):
        run("import-config", config_file)

        code, out, _ = run("sign", ALICE_KID, "hello")

        assert code == 0
        assert verify_text(out.strip(), alice_pair) == "hello"

    def test_sign_unknown_kid(self, run):
        assert run("sign", ALICE_KID, "hello")[0] == 1


class TestNetworkCommands:
    """Test resolve, verify and thread."""

    def test_resolve(self, run):
        code, out, _ = run("resolve", ALICE_KID)

        assert code == 0
        assert json.loads(out)["id"] == ALICE

    def test_resolve_failure(self, run):
        code, _, err = run("resolve", "did:psqr:example.com/nobody")

        assert code == 1
        assert "ERROR" in err

    def test_verify(self, run, temp_dir, alice_pair):
        path = write_json(temp_dir / "article.json", make_article(alice_pair, "hash-a").to_dict())

        code, out, _ = run("verify", path)

        assert code == 0
        assert "hash-a: verified" in out

    def test_verify_tampered(self, run, temp_dir, alice_pair):
        article = make_article(alice_pair, "hash-a").to_dict()
        article["info"]["publicSquare"]["package"]["title"] = "Edited"
        path = write_json(temp_dir / "article.json", article)

        code, out, _ = run("verify", path)

        assert code == 2
        assert "hash-a: rejected" in out

    def test_verify_malformed(self, run, temp_dir):
        path = write_json(temp_dir / "article.json", {"name": "no hash"})
        assert run("verify", path)[0] == 1

    def test_thread(self, run, temp_dir, alice_pair):
        articles = [
            make_article(alice_pair, "A").to_dict(),
            make_article(alice_pair, "B", reply="psqr:A").to_dict(),
        ]
        path = write_json(temp_dir / "feed.json", {"feedUrl": "https://example.com/feed", "allArticles": articles})

        code, out, _ = run("thread", path, "B")

        assert code == 0
        lines = out.strip().splitlines()
        assert [line.split()[1] for line in lines] == ["A", "B"]

    def test_thread_accepts_article_list(self, run, temp_dir, alice_pair):
        path = write_json(temp_dir / "feed.json", [make_article(alice_pair, "A").to_dict()])

        code, out, _ = run("thread", path, "A")

        assert code == 0
        assert "A" in out

    def test_thread_unknown_article(self, run, temp_dir, alice_pair):
        path = write_json(temp_dir / "feed.json", [make_article(alice_pair, "A").to_dict()])
        assert run("thread", path, "Z")[0] == 1


class TestListCommands:
    """Test the lists subcommands."""

    def test_import_show_delete(self, run, temp_dir):
        items = temp_dir / "items.ndjson"
        items.write_text('{"infoHash": "a"}\n{"infoHash": "b"}\n')

        code, out, _ = run("lists", "import", "Morning Reads", "https://example.com/l", str(items))
        assert code == 0
        assert "Successfully imported list" in out

        _, out, _ = run("lists", "list")
        assert "morning-reads" in out

        code, out, _ = run("lists", "show", "morning reads")
        assert code == 0
        assert [a["infoHash"] for a in json.loads(out)["articles"]] == ["a", "b"]

        assert run("lists", "delete", "Morning Reads")[0] == 0
        assert run("lists", "show", "Morning Reads")[0] == 1

    def test_import_missing_items_file(self, run, temp_dir):
        code, _, err = run("lists", "import", "Reads", "https://example.com/l", str(temp_dir / "missing"))

        assert code == 1
        assert "ERROR" in err


def test_no_command(run):
    code, out, _ = run()
    assert code == 1


def test_invalid_settings_file(temp_dir, capsys):
    config = temp_dir / "config.yaml"
    config.write_text("- not\n- a mapping\n")

    with pytest.raises(SystemExit) as exc:
        main(["--config", str(config), "--store-dir", str(temp_dir), "lists", "list"])

    assert exc.value.code == 1
    assert "ERROR" in capsys.readouterr().err
