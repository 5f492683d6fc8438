"""Alienbrain `ab find` 出力のパーサ.

1行1ファイルのパイプ区切りレコード:

    #CheckInComment#|#Name#|#DbPath#|#SCIT#|#Mime Type#|#LocalPath#|#Changed By#|#NxN_VersionNumber#

SCIT は Windows FILETIME（1601-01-01 UTC からの 100ns 単位）なので、そのまま UTC に変換できる。
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.timeutil import UTC

from .base_parser import BaseHistoryParser

DELIMITER = "|"
FIELD_COUNT = 8
NO_CHANGE = re.compile(r"No files found")
FOLDER_PREFIX = "ab:/"

FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=UTC)


def from_filetime(value: str) -> datetime:
    return FILETIME_EPOCH + timedelta(microseconds=int(value) // 10)


class Alienbrain_HistoryParser(BaseHistoryParser):
    backend = "alienbrain"

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        if NO_CHANGE.search(history):
            return []

        mods: list[Modification] = []
        previous_file: str | None = None
        for line in history.splitlines():
            fields = [f.strip(" ") for f in line.replace("\r", "").split(DELIMITER)]
            if len(fields) <= 1:
                continue
            file_name = fields[1]
            if file_name == previous_file:
                continue
            previous_file = file_name
            mods.append(self._create_modification(fields, line))
        return mods

    def _create_modification(self, fields: list[str], line: str) -> Modification:
        if len(fields) < FIELD_COUNT:
            raise self.error(f"Expected {FIELD_COUNT} fields in Alienbrain record", line)

        comment, name, db_path, scit, _mime, local_path, changed_by, version = fields[:FIELD_COUNT]
        try:
            modified = from_filetime(scit)
        except (ValueError, OverflowError) as e:
            raise self.error(f"Invalid SCIT value {scit!r}", line) from e

        return Modification(
            type=ModificationType.MODIFIED,
            file_name=name,
            folder_name=FOLDER_PREFIX + db_path.replace(f"/{name}", ""),
            modified_time=modified,
            user_name=changed_by,
            version=version,
            comment=comment,
            url=local_path,
        )
