"""Unit tests for the pipe-delimited parsers (PVCS, Alienbrain)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from scm_change_tracker.connectors.alienbrain import to_filetime
from scm_change_tracker.core.exceptions import HistoryParseError
from scm_change_tracker.core.modification import ModificationType
from scm_change_tracker.core.timeutil import MIN_TIME, UTC
from scm_change_tracker.parsers.alienbrain_parser import Alienbrain_HistoryParser, from_filetime
from scm_change_tracker.parsers.pvcs_parser import PVCS_HistoryParser

NOW = datetime(2030, 1, 1, tzinfo=UTC)


class TestPVCSHistoryParser:
    def test_parse(self) -> None:
        history = "\n".join(
            [
                "/pvcs/proj/archives/src/Foo.java-arc|1.3|Jan 02 2020 10:00:00|alice|Fixed the build",
                "/pvcs/proj/archives/src/Foo.java-arc|1.2|Jan 01 2020 09:00:00|alice|older",
                "/pvcs/proj/archives/src/New.java-arc|1.0|01/03/2020 11:30:00|bob|",
                "",
            ]
        )
        mods = PVCS_HistoryParser().parse(history, MIN_TIME, NOW)

        assert len(mods) == 2
        foo, new = mods
        assert foo.type == ModificationType.MODIFIED
        assert foo.file_name == "Foo.java"
        assert foo.folder_name == "/pvcs/proj/archives/src"
        assert foo.version == "1.3"
        assert foo.user_name == "alice"
        assert foo.comment == "Fixed the build"
        assert foo.modified_time == datetime(2020, 1, 2, 10, 0, tzinfo=UTC)
        assert new.type == ModificationType.ADDED
        assert new.comment is None

    def test_comment_may_contain_delimiter(self) -> None:
        (mod,) = PVCS_HistoryParser().parse("a.c|1.1|01/03/2020 11:30|x|a | b", MIN_TIME, NOW)
        assert mod.comment == "a | b"

    def test_local_timezone(self) -> None:
        parser = PVCS_HistoryParser(timezone(timedelta(hours=1)))
        (mod,) = parser.parse("a.c|1.1|01/03/2020 11:30|x|c", MIN_TIME, NOW)
        assert mod.modified_time == datetime(2020, 1, 3, 10, 30, tzinfo=UTC)

    def test_too_few_fields(self) -> None:
        with pytest.raises(HistoryParseError):
            PVCS_HistoryParser().parse("a.c|1.1|01/03/2020", MIN_TIME, NOW)

    def test_bad_date(self) -> None:
        with pytest.raises(HistoryParseError) as exc_info:
            PVCS_HistoryParser().parse("a.c|1.1|whenever|x|c", MIN_TIME, NOW)
        assert "Unable to parse: whenever" in str(exc_info.value)


def ab_record(name: str, db_path: str, scit: int | str, user: str = "alice", version: str = "3") -> str:
    return f"fixed | {name} | {db_path} | {scit} | text/plain | C:\\work\\{name} | {user} | {version}"


class TestAlienbrainHistoryParser:
    def test_filetime_round_trip_point(self) -> None:
        moment = datetime(2020, 1, 2, 10, 0, tzinfo=UTC)
        assert from_filetime(str(to_filetime(moment))) == moment
        assert from_filetime("0") == datetime(1601, 1, 1, tzinfo=UTC)

    def test_parse(self) -> None:
        moment = datetime(2020, 1, 2, 10, 0, tzinfo=UTC)
        history = "\n".join(
            [
                ab_record("Foo.cs", "/proj/src/Foo.cs", to_filetime(moment)),
                ab_record("Foo.cs", "/proj/src/Foo.cs", to_filetime(moment - timedelta(days=1)), version="2"),
                ab_record("Bar.cs", "/proj/Bar.cs", to_filetime(moment), user="bob"),
                "",
            ]
        )
        mods = Alienbrain_HistoryParser().parse(history, MIN_TIME, NOW)

        assert [m.file_name for m in mods] == ["Foo.cs", "Bar.cs"]
        foo = mods[0]
        assert foo.type == ModificationType.MODIFIED
        assert foo.folder_name == "ab://proj/src"
        assert foo.modified_time == moment
        assert foo.version == "3"
        assert foo.comment == "fixed"
        assert foo.url == "C:\\work\\Foo.cs"
        assert mods[1].user_name == "bob"

    def test_no_files_found(self) -> None:
        assert Alienbrain_HistoryParser().parse("No files found.", MIN_TIME, NOW) == []

    def test_short_record(self) -> None:
        with pytest.raises(HistoryParseError):
            Alienbrain_HistoryParser().parse("comment|Foo.cs|/proj", MIN_TIME, NOW)

    def test_bad_scit(self) -> None:
        with pytest.raises(HistoryParseError):
            Alienbrain_HistoryParser().parse(ab_record("a", "/p/a", "yesterday"), MIN_TIME, NOW)
