"""Unit tests for VSS_HistoryParser and VssKeywords."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from scm_change_tracker.core.exceptions import HistoryParseError
from scm_change_tracker.core.modification import ModificationType
from scm_change_tracker.core.timeutil import MIN_TIME, UTC
from scm_change_tracker.parsers.vss_parser import (
    ENGLISH_KEYWORDS,
    VSS_HistoryParser,
    VssKeywords,
    is_entry_delimiter,
    read_entries,
)

NOW = datetime(2030, 1, 1, tzinfo=UTC)

HISTORY = """Building list for $/you/want/folders.......
*****  happyTheFile.txt  *****
Version 3
User: Admin        Date:  9/16/02   Time:  5:01p
Checked in $/you/want/folders/i/got/em
Comment: added fir to tree file, checked in recursively from project root

*****************  Version 2   *****************
User: Admin        Date:  9/16/02   Time:  2:40p
jam.txt added

*****************  Version 3   *****************
User: Bob          Date:  9/17/02   Time: 10:15a
old.txt deleted

*****  Project  *****
Version 4
User: Carol        Date:  9/18/02   Time:  1:00p
$subproject added
"""


class TestVSSHistoryParser:
    def test_read_entries(self) -> None:
        entries = read_entries(HISTORY)
        assert len(entries) == 4
        assert entries[0].startswith("*****  happyTheFile.txt  *****")

    def test_delimiters(self) -> None:
        assert is_entry_delimiter("*****  foo.txt  *****")
        assert is_entry_delimiter("*****************  Version 2   *****************")
        assert not is_entry_delimiter("Version 2")

    def test_parse(self) -> None:
        mods = VSS_HistoryParser().parse(HISTORY, MIN_TIME, NOW)

        assert len(mods) == 3
        checked_in, added, deleted = mods

        assert checked_in.type == ModificationType.MODIFIED
        assert checked_in.file_name == "happyTheFile.txt"
        assert checked_in.folder_name == "$/you/want/folders/i/got/em"
        assert checked_in.user_name == "Admin"
        assert checked_in.modified_time == datetime(2002, 9, 16, 17, 1, tzinfo=UTC)
        assert checked_in.comment == "added fir to tree file, checked in recursively from project root"

        assert added.type == ModificationType.ADDED
        assert added.file_name == "jam.txt"
        assert added.folder_name == "[projectRoot]"
        assert added.modified_time == datetime(2002, 9, 16, 14, 40, tzinfo=UTC)

        assert deleted.type == ModificationType.DELETED
        assert deleted.file_name == "old.txt"
        assert deleted.user_name == "Bob"
        assert deleted.modified_time == datetime(2002, 9, 17, 10, 15, tzinfo=UTC)

    def test_sub_project_add_is_dropped(self) -> None:
        mods = VSS_HistoryParser().parse(HISTORY, MIN_TIME, NOW)
        assert all(not m.file_name.startswith("$") for m in mods)

    def test_destroyed_is_deleted(self) -> None:
        history = "*****  Project  *****\nVersion 9\nUser: Admin        Date:  9/16/02   Time:  5:01p\ngone.txt destroyed\n"
        (mod,) = VSS_HistoryParser().parse(history, MIN_TIME, NOW)
        assert mod.type == ModificationType.DELETED
        assert mod.file_name == "gone.txt"
        assert mod.folder_name == "Project"

    def test_non_breaking_spaces_are_removed(self) -> None:
        history = HISTORY.replace("Time:  5:01p", "Time:\u00a0 5:01p")
        mods = VSS_HistoryParser().parse(history, MIN_TIME, NOW)
        assert mods[0].modified_time == datetime(2002, 9, 16, 17, 1, tzinfo=UTC)

    def test_local_timezone(self) -> None:
        parser = VSS_HistoryParser(local_timezone=timezone(timedelta(hours=2)))
        mods = parser.parse(HISTORY, MIN_TIME, NOW)
        assert mods[0].modified_time == datetime(2002, 9, 16, 15, 1, tzinfo=UTC)

    def test_injected_keywords(self) -> None:
        german = VssKeywords(
            comment="Kommentar",
            checked_in="Eingecheckt in",
            added="hinzugefügt",
            deleted="gelöscht",
            destroyed="zerstört",
            user="Benutzer",
            date="Datum",
            time="Zeit",
            date_formats=("%d.%m.%y %H:%M",),
        )
        history = (
            "*****  datei.txt  *****\nVersion 2\n"
            "Benutzer: Hans       Datum: 16.09.02   Zeit: 17:01\n"
            "Eingecheckt in $/projekt\nKommentar: Fehler behoben\n"
        )
        (mod,) = VSS_HistoryParser(german).parse(history, MIN_TIME, NOW)
        assert mod.type == ModificationType.MODIFIED
        assert mod.user_name == "Hans"
        assert mod.folder_name == "$/projekt"
        assert mod.comment == "Fehler behoben"
        assert mod.modified_time == datetime(2002, 9, 16, 17, 1, tzinfo=UTC)

    def test_missing_user_line_fails(self) -> None:
        history = "*****  a.txt  *****\nVersion 2\nsomething\nChecked in $/x\n"
        with pytest.raises(HistoryParseError):
            VSS_HistoryParser().parse(history, MIN_TIME, NOW)

    def test_bad_date_fails(self) -> None:
        history = HISTORY.replace("9/16/02   Time:  5:01p", "someday   Time:  5:01p")
        with pytest.raises(HistoryParseError):
            VSS_HistoryParser().parse(history, MIN_TIME, NOW)


class TestVssKeywords:
    def test_format_command_date(self) -> None:
        assert ENGLISH_KEYWORDS.format_command_date(datetime(2002, 2, 22, 15, 1)) == "2/22/2002;3:01p"
        assert ENGLISH_KEYWORDS.format_command_date(datetime(2002, 12, 1, 9, 30)) == "12/1/2002;9:30a"

    def test_parse_date_time(self) -> None:
        assert ENGLISH_KEYWORDS.parse_date_time("9/16/02", "5:01p") == datetime(2002, 9, 16, 17, 1, tzinfo=UTC)
        assert ENGLISH_KEYWORDS.parse_date_time("bad", "5:01p") is None
