"""MKS Integrity (si) の --xmlapi 出力のパーサ.

- parse(): ``si viewsandbox --filter=changed:all --xmlapi`` の WorkItem ごとに1件
- parse_member_info(): ``si memberinfo --xmlapi`` の結果で作者・日時・コメントを補う

viewsandbox の出力には日時が含まれないため、期間フィルタはメンバ情報を補った後に
コネクタ側で行う。
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, tzinfo

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.paths import split_path
from scm_change_tracker.core.timeutil import UTC, parse_datetime

from .base_parser import BaseHistoryParser

_DELTA_TYPES = {
    "newrevision": ModificationType.MODIFIED,
    "newmember": ModificationType.ADDED,
    "dropped": ModificationType.DELETED,
}


def _field_value(work_item: ET.Element, name: str) -> str | None:
    """<Field name=...> の <Value> テキスト、または <Item id=...> を返す."""
    for field in work_item.findall("Field"):
        if field.get("name") != name:
            continue
        value = field.find("Value")
        if value is not None:
            return value.text or ""
        item = field.find("Item")
        if item is not None:
            return item.get("id", "")
        return ""
    return None


class MKS_HistoryParser(BaseHistoryParser):
    """si --xmlapi パーサ."""

    backend = "mks"

    def __init__(self, local_timezone: tzinfo = UTC) -> None:
        self.local_timezone = local_timezone

    def _load(self, output: str) -> ET.Element:
        try:
            return ET.fromstring(output)
        except ET.ParseError as e:
            raise self.error(f"Invalid XML from si: {e}", output) from e

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        root = self._load(history)
        mods: list[Modification] = []
        for work_item in root.iter("WorkItem"):
            name = _field_value(work_item, "name") or work_item.get("id", "")
            if not name:
                continue
            folder, file_name = split_path(name)
            mods.append(
                Modification(
                    type=ModificationType.from_code(_field_value(work_item, "deltaType"), _DELTA_TYPES),
                    file_name=file_name,
                    folder_name=folder,
                    version=_field_value(work_item, "memberrev") or "",
                )
            )
        return mods

    def parse_member_info(self, output: str, modification: Modification) -> None:
        """memberinfo の結果で modification を補う（インプレース）."""
        root = self._load(output)
        work_item = next(root.iter("WorkItem"), None)
        if work_item is None:
            raise self.error("No <WorkItem> in si memberinfo output", output)

        author = _field_value(work_item, "author")
        if author is not None:
            modification.user_name = author
        description = _field_value(work_item, "description")
        if description is not None:
            modification.comment = description
        revision = _field_value(work_item, "revision")
        if revision:
            modification.version = revision

        timestamp = _field_value(work_item, "timestamp")
        if timestamp:
            parsed = parse_datetime(
                timestamp, ("%Y-%m-%dT%H:%M:%S", "%b %d, %Y %I:%M:%S %p"), assume=self.local_timezone
            )
            if parsed.defaulted:
                raise self.error(f"Unable to parse si timestamp {timestamp!r}", output)
            modification.modified_time = parsed.value
