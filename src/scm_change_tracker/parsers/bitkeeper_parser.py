"""BitKeeper `bk changes` 出力のパーサ.

3種類の出力形式に対応する（最初の ChangeSet 行から判定）:
    - 4.0 より前・verbose:   ``ChangeSet`` / ``1.201 05/09/08 14:52:49 user@host. +1 -0``
    - 4.0 より前・非verbose: ``ChangeSet@1.6, 2005-10-06 12:58:40-07:00, user@host.(none)``
    - 4.0 以降・verbose:     ``src/foo.c@1.3, 2007-01-01 10:00:00+09:00, user@host +2 -1``

エントリは空行で区切られ、コメントは次の空行までの全行（インデントのある空行はコメントの一部）。
"""

from __future__ import annotations

import re
from datetime import datetime, tzinfo
from enum import Enum

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.paths import split_path
from scm_change_tracker.core.timeutil import UTC, parse_datetime

from .base_parser import BaseHistoryParser

CHANGESET = "ChangeSet"

_PRE40_VERBOSE = re.compile(
    r"(?P<version>[\d.]+)\s+(?P<datetime>\d{2,4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2})\s+(?P<username>\S+).*"
)
_PRE40_NON_VERBOSE = re.compile(
    r"ChangeSet@(?P<version>[\d.]+),\s+(?P<datetime>\d{2,4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}[-+]\d{2}:\d{2}),\s+(?P<username>\S+).*"
)
_POST40_VERBOSE = re.compile(
    r"(?P<filename>.+)@(?P<version>[\d.]+),\s+(?P<datetime>\d{2,4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}[-+]\d{2}:\d{2}),\s+(?P<username>\S+).*"
)


class HistoryFormat(Enum):
    PRE40_VERBOSE = "pre40_verbose"
    PRE40_NON_VERBOSE = "pre40_non_verbose"
    POST40_VERBOSE = "post40_verbose"


def detect_format(first_line: str) -> HistoryFormat:
    if first_line.startswith(f"{CHANGESET}@") and "+" in first_line:
        return HistoryFormat.POST40_VERBOSE
    if first_line.startswith(f"{CHANGESET}@"):
        return HistoryFormat.PRE40_NON_VERBOSE
    return HistoryFormat.PRE40_VERBOSE


class BitKeeper_HistoryParser(BaseHistoryParser):
    """bk changes パーサ.

    ChangeSet 自体のレコードは MODIFIED、Rename: コメントのレコードは REPLACED として扱う。
    """

    backend = "bitkeeper"

    def __init__(self, local_timezone: tzinfo = UTC) -> None:
        self.local_timezone = local_timezone

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        lines = history.splitlines()
        index = next((i for i, line in enumerate(lines) if line.startswith(CHANGESET)), None)
        if index is None:
            return []

        history_format = detect_format(lines[index])
        mods: list[Modification] = []
        while index < len(lines):
            mod, index = self._parse_entry(lines, index, history_format)
            mods.append(mod)
            while index < len(lines) and not lines[index].strip():
                index += 1
        return mods

    def _parse_entry(
        self, lines: list[str], index: int, history_format: HistoryFormat
    ) -> tuple[Modification, int]:
        line = lines[index]
        if history_format == HistoryFormat.PRE40_NON_VERBOSE:
            regex = _PRE40_NON_VERBOSE
            path = CHANGESET
        elif history_format == HistoryFormat.POST40_VERBOSE:
            regex = _POST40_VERBOSE
            line = line.lstrip(" \t")
            match = regex.match(line)
            if not match:
                raise self.error("Unable to parse line", line)
            path = match.group("filename")
        else:
            regex = _PRE40_VERBOSE
            path = line.lstrip(" \t")
            index += 1
            line = lines[index] if index < len(lines) else ""

        match = regex.match(line.lstrip(" \t"))
        if not match:
            raise self.error("Unable to parse line", line)

        comment, index = _read_comment(lines, index + 1)
        folder, file_name = split_path(path)
        mod = Modification(
            type=ModificationType.MODIFIED,
            file_name=file_name,
            folder_name=folder,
            modified_time=self._parse_date(match.group("datetime"), history_format, line),
            user_name=match.group("username"),
            version=match.group("version"),
            comment=comment,
        )
        _classify(mod)
        return mod, index

    def _parse_date(self, text: str, history_format: HistoryFormat, line: str) -> datetime:
        if history_format == HistoryFormat.PRE40_VERBOSE:
            formats: tuple[str, ...] = ("%Y/%m/%d %H:%M:%S", "%y/%m/%d %H:%M:%S")
        else:
            formats = ("%Y-%m-%d %H:%M:%S%z", "%y-%m-%d %H:%M:%S%z")
        parsed = parse_datetime(text, formats, assume=self.local_timezone, allow_iso=False)
        if parsed.defaulted:
            raise self.error(f"Unable to parse date {text!r}", line)
        return parsed.value


def _read_comment(lines: list[str], index: int) -> tuple[str, int]:
    """次の空行（インデントの無い空行）までをコメントとして読む."""
    comment: list[str] = []
    while index < len(lines) and len(lines[index]) != 0:
        comment.append(lines[index])
        index += 1
    return "\n".join(comment), index


def _classify(mod: Modification) -> None:
    if mod.file_name == CHANGESET:
        return
    delete_index = mod.comment.find("Delete: ") if mod.comment else -1
    if delete_index != -1 and mod.folder_name.startswith("BitKeeper/deleted"):
        # BitKeeper/deleted 配下の名前ではなく、削除された元のパスを使う
        original = mod.comment[delete_index + len("Delete: ") :]
        mod.type = ModificationType.DELETED
        mod.folder_name, mod.file_name = split_path(original.strip())
    elif (mod.comment and "BitKeeper file" in mod.comment) or mod.version == "1.0":
        mod.type = ModificationType.ADDED
    elif mod.comment and "Rename: " in mod.comment:
        mod.type = ModificationType.REPLACED
