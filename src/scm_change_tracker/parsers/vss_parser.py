"""Visual SourceSafe `ss history` 出力のパーサ.

エントリ区切り:
    - バージョン付き:   ``*****************  Version 3   *****************``
    - バージョンなし:   ``*****  foo.txt  *****``

キーワード（Checked in / added / deleted / destroyed / User / Date / Time / Comment）は
サーバのロケールで出力されるため、VssKeywords としてパーサに注入する。
日時はクライアントのロケールの書式で出力され、オフセットを持たないので
local_timezone のローカル時刻として解釈する。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, tzinfo

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.timeutil import UTC, parse_datetime

from .base_parser import BaseHistoryParser

DELIMITER_VERSIONED_START = "*****************  "
DELIMITER_VERSIONED_END = "  *****************"
DELIMITER_UNVERSIONED_START = "*****  "
DELIMITER_UNVERSIONED_END = "  *****"
PROJECT_ROOT_FOLDER = "[projectRoot]"
PROJECT_SIGIL = "$"

_FILE_NAME = re.compile(r"\*+([\w\s\.-]+)", re.MULTILINE)
_NBSP = chr(160)


@dataclass(frozen=True)
class VssKeywords:
    """VSS の出力キーワードと日時書式の対応表.

    Attributes:
        date_formats: ``date time`` 文字列を解釈する strptime 書式（a/p には m を補ってから適用）
        command_date_format: ss history の -V~ 引数に渡す日時書式（空白を含めないこと）
    """

    comment: str = "Comment"
    checked_in: str = "Checked in"
    added: str = "added"
    deleted: str = "deleted"
    destroyed: str = "destroyed"
    user: str = "User"
    date: str = "Date"
    time: str = "Time"
    date_formats: tuple[str, ...] = (
        "%m/%d/%y %I:%M%p",
        "%m/%d/%Y %I:%M%p",
        "%m/%d/%y %H:%M",
        "%m/%d/%Y %H:%M",
    )
    command_date_format: str = "%m/%d/%Y;%I:%M%p"

    def parse_date_time(self, date: str, time: str, assume: tzinfo = UTC) -> datetime | None:
        suffix = "m" if time.endswith(("a", "p")) else ""
        parsed = parse_datetime(f"{date} {time}{suffix}", self.date_formats, assume=assume, allow_iso=False)
        return None if parsed.defaulted else parsed.value

    def format_command_date(self, value: datetime) -> str:
        """コマンドライン用の日時（例: ``2/22/2002;3:01p``）."""
        text = value.strftime(self.command_date_format)
        # ss は先頭ゼロと "m" を付けない書式を期待する
        text = re.sub(r"(^|[/;])0(\d)", r"\1\2", text)
        return re.sub(r"([AaPp])[Mm]$", lambda m: m.group(1).lower(), text)


ENGLISH_KEYWORDS = VssKeywords()


class VSS_HistoryParser(BaseHistoryParser):
    """ss history パーサ.

    Args:
        keywords: サーバロケールのキーワード表
        local_timezone: クライアントの出力時刻を解釈するタイムゾーン
    """

    backend = "vss"

    def __init__(self, keywords: VssKeywords = ENGLISH_KEYWORDS, local_timezone: tzinfo = UTC) -> None:
        self.keywords = keywords
        self.local_timezone = local_timezone
        self._user_date_line = re.compile(
            rf"{re.escape(keywords.user)}:(.+){re.escape(keywords.date)}:(.+){re.escape(keywords.time)}:(.+)$",
            re.MULTILINE,
        )

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        mods: list[Modification] = []
        for entry in read_entries(history):
            mod = self.parse_entry(entry)
            if mod is not None:
                mods.append(mod)
        return mods

    def parse_entry(self, entry: str) -> Modification | None:
        entry = entry.replace(_NBSP, "")
        kind = self._entry_kind(entry)
        if kind is None:
            return None
        keyword, mod_type = kind

        mod = Modification(type=mod_type)
        self._parse_user_and_date(mod, entry)
        mod.comment = self._parse_comment(entry)
        if mod_type == ModificationType.MODIFIED:
            mod.file_name = _first_line_name(entry)
            mod.folder_name = self._checked_in_folder(entry)
        else:
            mod.file_name = self._file_name_after_time(entry, keyword)
            mod.folder_name = (
                PROJECT_ROOT_FOLDER if entry.startswith(DELIMITER_VERSIONED_START) else _first_line_name(entry)
            )

        # "$" で始まる追加はサブプロジェクトの作成であり、ファイルではない
        if mod_type == ModificationType.ADDED and mod.file_name.startswith(PROJECT_SIGIL):
            return None
        return mod

    def _entry_kind(self, entry: str) -> tuple[str, ModificationType] | None:
        lines = entry.split("\n")
        keyword_line = "\n".join(lines[2:4])
        for keyword, mod_type in (
            (self.keywords.checked_in, ModificationType.MODIFIED),
            (self.keywords.added, ModificationType.ADDED),
            (self.keywords.deleted, ModificationType.DELETED),
            (self.keywords.destroyed, ModificationType.DELETED),
        ):
            if keyword in keyword_line:
                return keyword, mod_type
        return None

    def _parse_user_and_date(self, mod: Modification, entry: str) -> None:
        match = self._user_date_line.search(entry)
        if not match:
            raise self.error("Invalid data retrieved from VSS. Unable to parse username and date from text", entry)

        mod.user_name = match.group(1).strip()
        date, time = match.group(2).strip(), match.group(3).strip()
        modified = self.keywords.parse_date_time(date, time, self.local_timezone)
        if modified is None:
            raise self.error(f"Unable to parse vss date: {date} {time}", entry)
        mod.modified_time = modified

    def _parse_comment(self, entry: str) -> str | None:
        marker = f"{self.keywords.comment}:"
        index = entry.find(marker)
        if index == -1:
            return None
        return entry[index + len(marker) :].strip()

    def _checked_in_folder(self, entry: str) -> str:
        keyword = self.keywords.checked_in
        start = entry.find(keyword)
        if start == -1:
            return ""
        start += len(keyword)
        end = entry.find(f"{self.keywords.comment}:")
        return entry[start : end if end > 0 else len(entry)].strip()

    def _file_name_after_time(self, entry: str, keyword: str) -> str:
        time_index = entry.find(f"{self.keywords.time}:")
        newline_index = entry.find("\n", time_index) if time_index != -1 else -1
        keyword_index = entry.find(keyword, newline_index) if newline_index != -1 else -1
        if keyword_index == -1:
            raise self.error(f"Unable to find file name for '{keyword}' entry", entry)
        return entry[newline_index:keyword_index].strip()


def is_entry_delimiter(line: str) -> bool:
    return (line.startswith(DELIMITER_UNVERSIONED_START) and line.endswith(DELIMITER_UNVERSIONED_END)) or (
        line.startswith(DELIMITER_VERSIONED_START) and line.endswith(DELIMITER_VERSIONED_END)
    )


def read_entries(history: str) -> list[str]:
    """区切り行から次の区切り行の手前までを1エントリとして切り出す."""
    entries: list[str] = []
    current: list[str] | None = None
    for line in history.splitlines():
        if is_entry_delimiter(line):
            if current is not None:
                entries.append("\n".join(current) + "\n")
            current = [line]
        elif current is not None:
            current.append(line)
    if current is not None:
        entries.append("\n".join(current) + "\n")
    return entries


def _first_line_name(entry: str) -> str:
    match = _FILE_NAME.search(entry)
    return match.group(1).strip() if match else ""
