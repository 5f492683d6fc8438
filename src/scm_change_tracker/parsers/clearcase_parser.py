"""ClearCase `cleartool lshist -fmt` 出力のパーサ.

lshist はコネクタ側で以下の書式を指定して呼び出す:
    %u#~#%Nd#~#%En#~#%Vn#~#%o#~#!%l#~#!%a#~#%Nc@#@#@#@#@#@#@#@#@#@#@#@

コメントには改行が含まれ得るため、レコード終端は改行ではなく END_OF_RECORD で判定する。

レコード単位のエラー方針:
    - トークン数が8でないレコードはスキップする
    - mkbranch / rmbranch はブランチ操作なので出力しない
    - 日時が解釈できない場合は MIN_TIME を割り当て、警告を出す（ParsedTime.defaulted）
"""

from __future__ import annotations

from datetime import datetime, tzinfo

from loguru import logger

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.paths import split_path
from scm_change_tracker.core.timeutil import UTC, parse_datetime

from .base_parser import BaseHistoryParser

DELIMITER = "#~#"
END_OF_RECORD = "@#@#@#@#@#@#@#@#@#@#@#@"
TOKEN_COUNT = 8
BRANCH_EVENTS = frozenset({"mkbranch", "rmbranch"})

_DATE_FORMATS = ("%Y%m%d.%H%M%S", "%Y-%m-%d %H:%M:%S")

_TYPE_MAP = {
    "checkin": ModificationType.MODIFIED,
    "mkelem": ModificationType.ADDED,
    "rmelem": ModificationType.DELETED,
    "rmname": ModificationType.DELETED,
}


class ClearCase_HistoryParser(BaseHistoryParser):
    """ClearCase lshist パーサ.

    Args:
        local_timezone: cleartool の出力時刻を解釈するタイムゾーン
    """

    backend = "clearcase"

    def __init__(self, local_timezone: tzinfo = UTC) -> None:
        self.local_timezone = local_timezone

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        mods: list[Modification] = []
        for record in self._records(history):
            mod = self.parse_entry(record)
            if mod is not None:
                mods.append(mod)
        return mods

    def _records(self, history: str) -> list[str]:
        """物理行を連結して END_OF_RECORD 単位のレコードに分割する."""
        records: list[str] = []
        pending = ""
        for line in history.splitlines():
            pending += line
            if END_OF_RECORD in pending:
                records.append(pending[: pending.index(END_OF_RECORD)])
                pending = ""
        if pending.strip():
            logger.debug(f"Ignoring unterminated ClearCase record: {pending!r}")
        return records

    def parse_entry(self, record: str) -> Modification | None:
        tokens = record.split(DELIMITER)
        if len(tokens) != TOKEN_COUNT:
            logger.debug(f"Skipping ClearCase record with {len(tokens)} fields: {record!r}")
            return None

        operation = tokens[4].strip().lower()
        if operation in BRANCH_EVENTS:
            return None

        user, time_text, element, version = (t.strip() for t in tokens[:4])
        change = tokens[5].strip()
        comment = tokens[7].strip()

        folder, file_name = split_path(element)
        mod = Modification(
            type=ModificationType.from_code(operation, _TYPE_MAP),
            file_name=file_name,
            folder_name=folder,
            user_name=user,
            change_number=change,
            version=version,
            comment=comment or None,
        )

        parsed = parse_datetime(time_text, _DATE_FORMATS, assume=self.local_timezone)
        if parsed.defaulted:
            logger.warning(f"Unparseable ClearCase date {time_text!r} for {element}; using minimum time")
        mod.modified_time = parsed.value
        return mod
