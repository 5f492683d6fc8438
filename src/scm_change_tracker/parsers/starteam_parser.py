"""StarTeam `stcmd hist` 出力のパーサ.

3段階の正規表現で切り出す:
    1. フォルダ単位（``Folder: name  (working dir: path)``）
    2. ファイル単位（``History for: ...`` から ``=====...`` まで）
    3. リビジョン単位（``Revision: ... Author: ... Date: ...`` から ``-----...`` まで）

どれにもマッチしないのは「対象に履歴が無い」ことを意味するので、空リストを返す。
日時はオフセットを持たないため local_timezone のローカル時刻として解釈し、
[from, to] の外にあるリビジョンは出力しない。
"""

from __future__ import annotations

import re
from datetime import datetime, tzinfo

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.timeutil import UTC, in_window, parse_datetime

from .base_parser import BaseHistoryParser

FOLDER_PATTERN = r"^Folder: (?P<folder_name>.+)  \(working dir: (?P<working_directory>.+)\)(?s:.*?)(?=^Folder: )"

FILE_PATTERN = r"""History for: (?P<file_name>.+)
Description:(?P<file_description>.*)
Locked by:(?P<locked_by>.*)
Status:(?P<file_status>.+)
-{28}(?# file history separator)
(?s:(?P<file_history>.*?))
={77}(?# file info separator)"""

FILE_HISTORY_PATTERN = r"""Revision: (?P<file_revision>\S+) View: (?P<view_name>.+) Branch Revision: (?P<branch_revision>\S+)
Author: (?P<author_name>.*?) Date: (?P<date_string>\d{1,2}/\d{1,2}/\d\d \d{1,2}:\d\d:\d\d (A|P)M).*\n(?s:(?P<change_comment>.*?))-{28}"""

# 最後のフォルダの先読みを成立させるための番兵
_FOLDER_SENTINEL = "\nFolder: "
_DATE_FORMATS = ("%m/%d/%y %I:%M:%S %p",)


class StarTeam_HistoryParser(BaseHistoryParser):
    """stcmd hist パーサ.

    正規表現は StarTeam のバージョンや出力ロケールに合わせて差し替えられる。
    """

    backend = "starteam"

    def __init__(
        self,
        folder_pattern: str = FOLDER_PATTERN,
        file_pattern: str = FILE_PATTERN,
        file_history_pattern: str = FILE_HISTORY_PATTERN,
        local_timezone: tzinfo = UTC,
    ) -> None:
        self.folder_regex = re.compile(folder_pattern, re.MULTILINE)
        self.file_regex = re.compile(file_pattern, re.MULTILINE)
        self.file_history_regex = re.compile(file_history_pattern, re.MULTILINE)
        self.local_timezone = local_timezone

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        text = history.replace("\r\n", "\n") + _FOLDER_SENTINEL
        mods: list[Modification] = []
        for folder in self.folder_regex.finditer(text):
            folder_name = folder.group("folder_name").strip()
            for file in self.file_regex.finditer(folder.group(0)):
                file_name = file.group("file_name").strip()
                for revision in self.file_history_regex.finditer(file.group("file_history") + "-" * 28):
                    mod = self._create_modification(folder_name, file_name, revision)
                    if in_window(mod.modified_time, from_time, to_time):
                        mods.append(mod)
        return mods

    def _create_modification(self, folder_name: str, file_name: str, revision: re.Match[str]) -> Modification:
        date_text = revision.group("date_string")
        parsed = parse_datetime(date_text, _DATE_FORMATS, assume=self.local_timezone, allow_iso=False)
        if parsed.defaulted:
            raise self.error(f"Unable to parse StarTeam date {date_text!r}", revision.group(0))

        return Modification(
            type=ModificationType.MODIFIED,
            file_name=file_name,
            folder_name=folder_name.replace("\\", "/"),
            modified_time=parsed.value,
            user_name=revision.group("author_name").strip(),
            version=revision.group("file_revision"),
            change_number=revision.group("file_revision"),
            comment=revision.group("change_comment").strip(),
        )
