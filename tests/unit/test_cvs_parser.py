"""Unit tests for CVS_HistoryParser."""

from __future__ import annotations

from datetime import datetime

import pytest

from scm_change_tracker.core.exceptions import HistoryParseError
from scm_change_tracker.core.modification import ModificationType
from scm_change_tracker.core.timeutil import MIN_TIME, UTC
from scm_change_tracker.parsers.cvs_parser import FILE_DELIMITER, REVISION_DELIMITER, CVS_HistoryParser

NOW = datetime(2030, 1, 1, tzinfo=UTC)


def rlog_entry(rcs_file: str, *revisions: str) -> str:
    header = [
        f"RCS file: {rcs_file},v",
        "head: 1.2",
        "branch:",
        "locks: strict",
        "access list:",
        "keyword substitution: kv",
        "total revisions: 2;\tselected revisions: 2",
        "description:",
    ]
    body: list[str] = []
    for revision in revisions:
        body.append(REVISION_DELIMITER)
        body.extend(revision.splitlines())
    return "\n".join([*header, *body, FILE_DELIMITER])


class TestCVSHistoryParser:
    def setup_method(self) -> None:
        self.parser = CVS_HistoryParser()

    def test_two_revisions(self) -> None:
        log = rlog_entry(
            "/cvsroot/project/src/Foo.cs",
            "revision 1.2\ndate: 2020/01/03 10:00:00;  author: bob;  state: Exp;  lines: +3 -1\nFixed the bug",
            "revision 1.1\ndate: 2020/01/02 09:30:00;  author: alice;  state: Exp;\nInitial import\nsecond line",
        )

        mods = self.parser.parse(log, MIN_TIME, NOW)

        assert len(mods) == 2
        bob, alice = mods
        assert bob.type == ModificationType.MODIFIED
        assert bob.version == "1.2"
        assert bob.user_name == "bob"
        assert bob.modified_time == datetime(2020, 1, 3, 10, 0, tzinfo=UTC)
        assert bob.comment == "Fixed the bug"
        assert alice.type == ModificationType.ADDED
        assert alice.comment == "Initial import\nsecond line"
        assert alice.file_name == "Foo.cs"
        assert alice.folder_name == "/cvsroot/project/src"

    def test_dead_state_is_deleted_and_attic_is_stripped(self) -> None:
        log = rlog_entry(
            "/cvsroot/project/src/Attic/Old.cs",
            "revision 1.3\ndate: 2020/01/04 08:00:00;  author: carol;  state: dead;  lines: +0 -0\nremoved",
        )
        (mod,) = self.parser.parse(log, MIN_TIME, NOW)
        assert mod.type == ModificationType.DELETED
        assert mod.folder_name == "/cvsroot/project/src"

    def test_branch_add_artifact_is_dropped(self) -> None:
        log = rlog_entry(
            "/cvsroot/project/src/Attic/Branch.cs",
            "revision 1.1\ndate: 2020/01/04 08:00:00;  author: carol;  state: dead;\n"
            "file Branch.cs was initially added on branch feature.",
        )
        assert self.parser.parse(log, MIN_TIME, NOW) == []

    def test_iso_date_with_offset(self) -> None:
        log = rlog_entry(
            "/cvsroot/project/Bar.cs",
            "revision 1.5\ndate: 2020-01-03 19:00:00 +0900;  author: dave;  state: Exp;  lines: +1 -1\nmsg",
        )
        (mod,) = self.parser.parse(log, MIN_TIME, NOW)
        assert mod.modified_time == datetime(2020, 1, 3, 10, 0, tzinfo=UTC)

    def test_multiple_files(self) -> None:
        log = "\n".join(
            [
                rlog_entry("/r/m/a.txt", "revision 1.2\ndate: 2020/01/03 10:00:00;  author: x;  state: Exp;  lines: +1 -1\nA"),
                rlog_entry("/r/m/b.txt", "revision 1.4\ndate: 2020/01/03 11:00:00;  author: y;  state: Exp;  lines: +2 -0\nB"),
            ]
        )
        mods = self.parser.parse(log, MIN_TIME, NOW)
        assert [m.file_name for m in mods] == ["a.txt", "b.txt"]

    def test_file_without_selected_revisions(self) -> None:
        log = "RCS file: /r/m/a.txt,v\nhead: 1.1\ndescription:\n" + FILE_DELIMITER
        assert self.parser.parse(log, MIN_TIME, NOW) == []

    def test_empty_log(self) -> None:
        assert self.parser.parse("", MIN_TIME, NOW) == []

    def test_bad_date_line_fails_the_fetch(self) -> None:
        log = rlog_entry("/r/m/a.txt", "revision 1.2\ndate: yesterday;  author: x;  state: Exp;\nA")
        with pytest.raises(HistoryParseError) as exc_info:
            self.parser.parse(log, MIN_TIME, NOW)
        assert exc_info.value.backend == "cvs"
        assert "yesterday" in exc_info.value.raw
