"""CVS rlog 出力のパーサ.

rlog 出力の構造:
    - ファイルごとのエントリは `RCS file: ...` 行で始まり、`=====...` 行（77文字）で終わる
    - ファイル内のリビジョンは `----------------------------` 行（28文字）で区切られる
    - 各リビジョンは `revision x.y` 行、`date: ...; author: ...; state: ...;` 行、コメント行が続く

時刻: date 行のオフセット（無ければ +0000）を使って UTC に変換する。
壊れた date 行はフェッチ全体を失敗させる（HistoryParseError）。
"""

from __future__ import annotations

import re
from datetime import datetime

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.timeutil import parse_datetime

from .base_parser import BaseHistoryParser

FILE_DELIMITER = "=" * 77
REVISION_DELIMITER = "-" * 28
RCS_FILE_LINE = "RCS file: "
REVISION_DATE = "date:"
DEAD_STATE = "dead"

_RCS_FILE = re.compile(r"^RCS file:\s+(.+),v\s*$")
_DATE_LINE = re.compile(
    r"date:\s+(?P<date>\S+)\s+(?P<time>\S+)\s*(?P<timezone>\S*);\s+author:\s+(?P<author>.*?);\s+state:\s+(?P<state>\S*);"
    r"(\s+lines:\s+\+(?P<added>\d+)\s+-(?P<removed>\d+))?"
)
_DATE_FORMATS = (
    "%Y/%m/%d %H:%M:%S %z",
    "%Y-%m-%d %H:%M:%S %z",
)


class CVS_HistoryParser(BaseHistoryParser):
    """CVS rlog パーサ.

    Note:
        ブランチ上で追加されたファイルは HEAD 側に state=dead のリビジョン 1.1 を持つ。
        これは削除ではないので出力しない。
    """

    backend = "cvs"

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        lines = history.splitlines()
        mods: list[Modification] = []
        index = 0
        while index < len(lines):
            if not lines[index].startswith(RCS_FILE_LINE):
                index += 1
                continue
            entry_mods, index = self._parse_file_entry(lines, index)
            mods.extend(entry_mods)
        return mods

    def _parse_file_entry(self, lines: list[str], index: int) -> tuple[list[Modification], int]:
        match = _RCS_FILE.match(lines[index])
        if not match:
            raise self.error("Unable to parse RCS file line", lines[index])
        rcs_file = match.group(1)
        file_name = rcs_file[rcs_file.rfind("/") + 1 :]
        folder_name = _strip_attic(_strip_file_name(rcs_file))

        # 最初のリビジョン区切りまで読み飛ばす（ファイル区切りを越えない）
        index += 1
        while index < len(lines) and not lines[index].startswith(REVISION_DELIMITER):
            if lines[index].startswith(FILE_DELIMITER):
                return [], index + 1
            index += 1

        mods: list[Modification] = []
        while index < len(lines) and lines[index].startswith(REVISION_DELIMITER):
            mod, index = self._parse_revision(lines, index + 1, folder_name, file_name)
            if mod is not None and not _is_file_added_on_branch(mod):
                mods.append(mod)

        if index < len(lines) and lines[index].startswith(FILE_DELIMITER):
            index += 1
        return mods, index

    def _parse_revision(
        self, lines: list[str], index: int, folder_name: str, file_name: str
    ) -> tuple[Modification | None, int]:
        mod = Modification()
        if index < len(lines) and lines[index].startswith("revision"):
            mod.version = lines[index][len("revision") :].strip()
            index += 1
        if index >= len(lines) or not lines[index].startswith(REVISION_DATE):
            # date 行の無いリビジョンブロックは次の区切りまで読み飛ばす
            while index < len(lines) and not _is_delimiter(lines[index]):
                index += 1
            return None, index

        self._parse_date_line(mod, lines[index])
        mod.file_name = file_name
        mod.folder_name = folder_name
        index += 1

        comment: list[str] = []
        while index < len(lines) and not _is_delimiter(lines[index]):
            comment.append(lines[index])
            index += 1
        mod.comment = "\n".join(comment)
        return mod, index

    def _parse_date_line(self, mod: Modification, line: str) -> None:
        match = _DATE_LINE.search(line)
        if not match:
            raise self.error("Unable to parse CVS date line", line)

        timezone_text = match.group("timezone") or "+0000"
        parsed = parse_datetime(
            f"{match.group('date')} {match.group('time')} {_normalize_offset(timezone_text)}",
            _DATE_FORMATS,
            allow_iso=False,
        )
        if parsed.defaulted:
            raise self.error("Unable to parse CVS date line", line)

        mod.modified_time = parsed.value
        mod.user_name = match.group("author")
        mod.type = _parse_type(match.group("state"), match.group("added"))


def _is_delimiter(line: str) -> bool:
    return line.startswith(FILE_DELIMITER) or line.startswith(REVISION_DELIMITER)


def _normalize_offset(value: str) -> str:
    """"+0", "+0900", "+09:00" などを strptime の %z が受け付ける形に揃える."""
    sign = "-" if value.startswith("-") else "+"
    digits = value.lstrip("+-").replace(":", "")
    if len(digits) <= 2:
        digits = digits.zfill(2) + "00"
    return sign + digits.zfill(4)


def _parse_type(state: str, added_lines: str | None) -> ModificationType:
    if state.lower() == DEAD_STATE:
        return ModificationType.DELETED
    if not added_lines or int(added_lines) == 0:
        return ModificationType.ADDED
    return ModificationType.MODIFIED


def _is_file_added_on_branch(mod: Modification) -> bool:
    return mod.type == ModificationType.DELETED and mod.version == "1.1"


def _strip_file_name(rcs_file: str) -> str:
    index = rcs_file.rfind("/")
    return rcs_file[:index] if index != -1 else ""


def _strip_attic(folder: str) -> str:
    """削除済みファイルは Attic フォルダに移るので、その1階層を取り除く."""
    if folder.endswith("Attic"):
        return folder[: folder.rfind("/")] if "/" in folder else ""
    return folder
