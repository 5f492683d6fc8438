"""Unit tests for change-set diff, path helpers and report export."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import polars as pl

from scm_change_tracker.core.changeset import (
    REPORT_COLUMNS,
    diff_modifications,
    export_modifications_report,
    latest_revisions,
    modifications_to_frame,
    version_key,
)
from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.paths import split_path, strip_folder_root, strip_prefix, to_forward_slashes
from scm_change_tracker.core.timeutil import UTC


def _rev(file_name: str, version: str, folder: str = "src") -> Modification:
    return Modification(type=ModificationType.MODIFIED, file_name=file_name, folder_name=folder, version=version)


class TestDiffModifications:
    def test_version_key_is_numeric(self) -> None:
        assert version_key("1.10") > version_key("1.9")
        assert version_key("") == ()

    def test_latest_revisions_keeps_max_per_file(self) -> None:
        latest = latest_revisions([_rev("a", "1.2"), _rev("b", "1.1"), _rev("a", "1.10")])
        assert [(m.file_name, m.version) for m in latest] == [("a", "1.10"), ("b", "1.1")]

    def test_only_new_revisions_need_the_label(self) -> None:
        baseline = [_rev("a", "1.2"), _rev("b", "1.4")]
        current = [_rev("a", "1.3"), _rev("c", "1.0")]
        diff = diff_modifications(baseline, current)
        assert [(m.file_name, m.version) for m in diff] == [("a", "1.3"), ("c", "1.0")]

    def test_older_current_revision_is_ignored(self) -> None:
        assert diff_modifications([_rev("a", "1.5")], [_rev("a", "1.3")]) == []

    def test_same_name_in_other_folder_is_distinct(self) -> None:
        diff = diff_modifications([_rev("a", "1.5", "x")], [_rev("a", "1.1", "y")])
        assert [(m.folder_name, m.version) for m in diff] == [("y", "1.1")]


class TestPaths:
    def test_to_forward_slashes(self) -> None:
        assert to_forward_slashes(r"c:\views\main\src") == "c:/views/main/src"

    def test_split_path(self) -> None:
        assert split_path(r"\src\Foo.cs") == ("/src", "Foo.cs")
        assert split_path("Foo.cs") == ("", "Foo.cs")

    def test_strip_prefix(self) -> None:
        assert strip_prefix("/cvsroot/mod/src", "/cvsroot/mod/") == "src"
        assert strip_prefix("/cvsroot/mod", "/cvsroot/mod/") == ""
        assert strip_prefix("/other/src", "/cvsroot/mod/") == "/other/src"
        assert strip_prefix("/cvsroot/mod/src", "") == "/cvsroot/mod/src"

    def test_strip_folder_root_in_place(self) -> None:
        mods = [Modification(folder_name="/root/a"), Modification(folder_name="/elsewhere")]
        strip_folder_root(mods, "/root/")
        assert [m.folder_name for m in mods] == ["a", "/elsewhere"]


class TestModificationsReport:
    def test_frame_is_sorted_by_time(self) -> None:
        mods = [
            Modification(file_name="b", modified_time=datetime(2020, 1, 3, tzinfo=UTC), user_name="bob"),
            Modification(file_name="a", modified_time=datetime(2020, 1, 2, tzinfo=UTC), user_name="alice"),
        ]
        df = modifications_to_frame(mods)
        assert df.columns == REPORT_COLUMNS
        assert df["file_name"].to_list() == ["a", "b"]

    def test_empty_frame_keeps_schema(self) -> None:
        df = modifications_to_frame([])
        assert len(df) == 0
        assert df.columns == REPORT_COLUMNS

    def test_export_writes_csv(self, tmp_path: Path) -> None:
        mods = [
            Modification(
                type=ModificationType.ADDED,
                file_name="Foo.cs",
                change_number="7",
                modified_time=datetime(2020, 1, 2, tzinfo=UTC),
            )
        ]
        out_path = export_modifications_report(mods, tmp_path / "reports", "cvs")
        assert out_path == tmp_path / "reports" / "cvs.csv"
        df = pl.read_csv(out_path)
        assert df["type"].to_list() == ["added"]
        assert df["file_name"].to_list() == ["Foo.cs"]

    def test_export_without_modifications(self, tmp_path: Path) -> None:
        assert export_modifications_report([], tmp_path) is None
        assert not (tmp_path / "modifications.csv").exists()
