"""锁文件解析 / 写回测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from depfetch.core.exceptions import LockfileError
from depfetch.core.lockfile import (
    dump_lock,
    format_lock,
    load_lock,
    parse_lock,
    parse_lock_variant,
    read_lock_data,
)
from depfetch.core.models import LegacyVersion, Named


class TestParseLockVariant:
    def test_named(self) -> None:
        assert parse_lock_variant({"hex": "plug", "version": "1.4.3"}) == Named("plug", "1.4.3")

    def test_legacy(self) -> None:
        assert parse_lock_variant({"package": "1.0.0"}) == LegacyVersion("1.0.0")

    def test_numeric_version_stringified(self) -> None:
        assert parse_lock_variant({"package": 2}) == LegacyVersion("2")

    @pytest.mark.parametrize("raw", [
        None,
        "1.0.0",
        ["plug", "1.0.0"],
        {},
        {"hex": "plug"},
        {"git": "https://example.com/plug.git"},
    ])
    def test_unrecognized(self, raw: object) -> None:
        assert parse_lock_variant(raw) is None


class TestParseLock:
    def test_entries_keep_order_and_dest(self, tmp_path: Path) -> None:
        data = {
            "plug": {"hex": "plug", "version": "1.4.3"},
            "cowboy": {"package": "1.0.0"},
            "local": {"path": "../local"},
        }
        entries = parse_lock(data, tmp_path / "deps")
        assert [e.app for e in entries] == ["plug", "cowboy"]
        assert entries[0].dest == tmp_path / "deps" / "plug"
        assert entries[1].lock == LegacyVersion("1.0.0")
        assert entries[1].package.name == "cowboy"


class TestLoadLock:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_lock(tmp_path / "deps.lock", tmp_path / "deps") == []

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "deps.lock"
        path.write_text("plug: {hex: plug, version: [\n", encoding="utf-8")
        with pytest.raises(LockfileError):
            load_lock(path, tmp_path / "deps")

    def test_non_mapping_document_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "deps.lock"
        path.write_text("- plug\n- cowboy\n", encoding="utf-8")
        assert load_lock(path, tmp_path / "deps") == []

    def test_dump_then_load(self, tmp_path: Path) -> None:
        path = tmp_path / "deps.lock"
        path.write_text(
            "plug:\n  hex: plug\n  version: '1.10'\ncowboy:\n  package: 1.0.0\n",
            encoding="utf-8",
        )
        entries = load_lock(path, tmp_path / "deps")

        out = dump_lock(tmp_path / "copy.lock", entries)
        again = load_lock(out, tmp_path / "deps")

        assert again == entries
        assert again[0].lock == Named("plug", "1.10")


class TestFormatLock:
    def test_named(self) -> None:
        assert format_lock(Named("plug", "1.4.3")) == "1.4.3 (plug)"

    def test_legacy(self) -> None:
        assert format_lock(LegacyVersion("1.0.0")) == "1.0.0"

    def test_other(self) -> None:
        assert format_lock({"git": "x"}) is None


class TestSeparatorRejected:
    @pytest.mark.parametrize("raw", [
        {"hex": "plug,extra", "version": "1.4.3"},
        {"hex": "plug", "version": "1.4,3"},
        {"package": "1.0,0"},
    ])
    def test_variant_with_comma(self, raw: dict) -> None:
        with pytest.raises(LockfileError, match="','"):
            parse_lock_variant(raw)

    def test_app_name_with_comma(self, tmp_path: Path) -> None:
        with pytest.raises(LockfileError, match="应用名"):
            parse_lock({"a,b": {"package": "1.0.0"}}, tmp_path / "deps")

    def test_load_lock_rejects_comma(self, tmp_path: Path) -> None:
        path = tmp_path / "deps.lock"
        path.write_text("plug:\n  hex: 'plug,x'\n  version: 1.4.3\n", encoding="utf-8")
        with pytest.raises(LockfileError):
            load_lock(path, tmp_path / "deps")


class TestReadLockData:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert read_lock_data(tmp_path / "none.lock") == {}

    def test_malformed(self, tmp_path: Path) -> None:
        path = tmp_path / "deps.lock"
        path.write_text("plug: [\n", encoding="utf-8")
        with pytest.raises(LockfileError, match="格式错误"):
            read_lock_data(path)
