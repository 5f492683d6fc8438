"""PVCS Version Manager vlog レポートのパーサ.

コネクタは vlog の出力を1リビジョン1行のパイプ区切りレコードとしてログファイルに書かせる:

    <archive path>|<revision>|<checked in>|<author>|<comment>

- アーカイブ名の末尾の ``-arc`` は取り除く
- 同じファイルのレコードが連続した場合は最初（最新リビジョン）の1件だけを残す
- リビジョン 1.0 は追加、それ以外は変更とみなす

日時はオフセットを持たないため local_timezone のローカル時刻として解釈する。
"""

from __future__ import annotations

from datetime import datetime, tzinfo

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.paths import split_path
from scm_change_tracker.core.timeutil import UTC, parse_datetime

from .base_parser import BaseHistoryParser

DELIMITER = "|"
FIELD_COUNT = 5
ARCHIVE_SUFFIX = "-arc"
INITIAL_REVISION = "1.0"

_DATE_FORMATS = (
    "%b %d %Y %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M",
)


class PVCS_HistoryParser(BaseHistoryParser):
    backend = "pvcs"

    def __init__(self, local_timezone: tzinfo = UTC) -> None:
        self.local_timezone = local_timezone

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        mods: list[Modification] = []
        previous_path: str | None = None
        for line in history.splitlines():
            if not line.strip():
                continue
            fields = [f.strip() for f in line.split(DELIMITER, FIELD_COUNT - 1)]
            if len(fields) < FIELD_COUNT:
                raise self.error(f"Expected {FIELD_COUNT} fields in PVCS record", line)

            archive = fields[0]
            if archive.lower().endswith(ARCHIVE_SUFFIX):
                archive = archive[: -len(ARCHIVE_SUFFIX)]
            if archive == previous_path:
                continue
            previous_path = archive
            mods.append(self._create_modification(archive, fields, line))
        return mods

    def _create_modification(self, archive: str, fields: list[str], line: str) -> Modification:
        revision, checked_in, author, comment = fields[1:]
        parsed = parse_datetime(checked_in, _DATE_FORMATS, assume=self.local_timezone)
        if parsed.defaulted:
            raise self.error(f"Unable to parse: {checked_in}", line)

        folder, file_name = split_path(archive)
        return Modification(
            type=ModificationType.ADDED if revision == INITIAL_REVISION else ModificationType.MODIFIED,
            file_name=file_name,
            folder_name=folder,
            modified_time=parsed.value,
            user_name=author,
            version=revision,
            comment=comment or None,
        )
