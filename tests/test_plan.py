"""
tests/test_plan.py — Plan assembly tests.

Ordering, vendor config merge, trailing config file, serialization.
"""

import os
import sys
import json
import tomllib
import yaml
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from flatcargo.config import PlanConfig
from flatcargo.errors import PlanError
from flatcargo.lock import LockEntry, RegistrySource
from flatcargo.plan import assemble, dump_plan, generate_plan, render_vendor_config
from flatcargo.sources import (
    Archive, GitCheckout, Inline, MissingChecksum, Resolution, ShellCommand,
    SourceResolver,
)


CRATES_IO_INDEX = "registry+https://github.com/rust-lang/crates.io-index"


class NoGit:
    def fetch(self, url, commit):
        raise AssertionError("git should not be fetched")


def _entry(name, version="1.0.0", checksum="00ff", source=CRATES_IO_INDEX):
    return LockEntry(
        name=name, version=version,
        source=RegistrySource(source) if source else None,
        checksum=checksum,
    )


def _config_of(descriptors):
    last = descriptors[-1]
    assert isinstance(last, Inline)
    return tomllib.loads(last.contents)


# ─────────────────────────────────────────────
# ASSEMBLE
# ─────────────────────────────────────────────
class TestAssemble:
    def test_empty(self):
        descriptors = assemble([], PlanConfig())
        assert len(descriptors) == 1
        assert descriptors[0].dest == "cargo"
        assert descriptors[0].dest_filename == "config"
        assert _config_of(descriptors) == {
            "source": {"vendored-sources": {"directory": "cargo/vendor"}},
        }

    def test_order_kept(self):
        a = Archive(url="u1", sha256="s1", dest="d1")
        b = Inline(contents="c", dest="d1", dest_filename="f")
        c = GitCheckout(url="u2", commit="c2", dest="d2")
        d = ShellCommand(commands=("true",))
        descriptors = assemble([
            Resolution((a, b)),
            Resolution((c, d)),
        ], PlanConfig())
        assert descriptors[:4] == [a, b, c, d]
        assert len(descriptors) == 5

    def test_merge_and_overwrite(self):
        descriptors = assemble([
            Resolution((), {"crates-io": {"replace-with": "vendored-sources"}}),
            Resolution((), {"https://x/r": {"git": "https://x/r", "rev": "1"}}),
            Resolution((), {"https://x/r": {"git": "https://x/r", "rev": "2"}}),
        ], PlanConfig())
        sources = _config_of(descriptors)["source"]
        assert sources["crates-io"] == {"replace-with": "vendored-sources"}
        assert sources["https://x/r"]["rev"] == "2"
        assert list(sources)[0] == "vendored-sources"

    def test_registry_redirect_twice(self):
        redirect = {"crates-io": {"replace-with": "vendored-sources"}}
        with pytest.raises(PlanError, match="more than once"):
            assemble([Resolution((), redirect), Resolution((), redirect)], PlanConfig())

    def test_custom_paths(self):
        config = PlanConfig(cargo_home="home", vendor_dir="home/vendor",
                            config_filename="config.toml")
        last = assemble([], config)[-1]
        assert last.dest == "home"
        assert last.dest_filename == "config.toml"
        assert _config_of([last])["source"]["vendored-sources"] == \
            {"directory": "home/vendor"}

    def test_render_quotes_url_keys(self):
        text = render_vendor_config({"https://github.com/o/r": {"git": "x"}})
        assert '[source."https://github.com/o/r"]' in text


# ─────────────────────────────────────────────
# GENERATE
# ─────────────────────────────────────────────
class TestGeneratePlan:
    def test_registry_only(self):
        entries = [_entry("app", source=None, checksum=None)] + \
            [_entry(f"crate{i}") for i in range(3)]
        config = PlanConfig()
        descriptors = generate_plan(entries, SourceResolver(config, NoGit()), config)

        assert len(descriptors) == 2 * 3 + 1
        assert [d.dest for d in descriptors[:2]] == ["cargo/vendor/crate0-1.0.0"] * 2
        assert _config_of(descriptors)["source"] == {
            "vendored-sources": {"directory": "cargo/vendor"},
            "crates-io": {"replace-with": "vendored-sources"},
        }

    def test_fail_fast(self):
        entries = [_entry("ok"), _entry("bad", checksum=None), _entry("later")]
        config = PlanConfig()
        with pytest.raises(MissingChecksum, match="bad@1.0.0"):
            generate_plan(entries, SourceResolver(config, NoGit()), config)

    def test_deterministic(self):
        entries = [_entry(f"crate{i}") for i in range(4)]
        config = PlanConfig()
        one = generate_plan(entries, SourceResolver(config, NoGit()), config)
        two = generate_plan(entries, SourceResolver(config, NoGit()), config)
        assert dump_plan(one) == dump_plan(two)


# ─────────────────────────────────────────────
# SERIALIZATION
# ─────────────────────────────────────────────
class TestDump:
    DESCRIPTORS = [
        Archive(url="https://x/a.crate", sha256="ab", dest="cargo/vendor/a-1"),
        Inline(contents="{}", dest="cargo/vendor/a-1", dest_filename=".cargo-checksum.json"),
        GitCheckout(url="https://x/r", commit="c0ffee", dest="flatpak-cargo/git/r-c0ffee"),
        ShellCommand(commands=("cp -r a b",)),
    ]

    def test_json(self):
        data = json.loads(dump_plan(self.DESCRIPTORS, "json"))
        assert data[0] == {
            "type": "archive",
            "archive-type": "tar-gzip",
            "url": "https://x/a.crate",
            "sha256": "ab",
            "dest": "cargo/vendor/a-1",
        }
        assert data[1]["dest-filename"] == ".cargo-checksum.json"
        assert data[2] == {
            "type": "git", "url": "https://x/r", "commit": "c0ffee",
            "dest": "flatpak-cargo/git/r-c0ffee",
        }
        assert data[3] == {"type": "shell", "commands": ["cp -r a b"]}

    def test_yaml(self):
        data = yaml.safe_load(dump_plan(self.DESCRIPTORS, "yaml"))
        assert [d["type"] for d in data] == ["archive", "inline", "git", "shell"]

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            dump_plan(self.DESCRIPTORS, "xml")
