"""Subversion `svn log --xml --verbose` 出力のパーサ.

1つの <logentry> は、子要素 <paths>/<path> ごとに1件の Modification になる。
revision / author / date / msg はエントリ内で共有する。

期間フィルタ:
    日付が無い、または [from, to] の外にあるエントリは捨てる（svn log -r の境界で
    1件余分に返る挙動への対策）。integration_status_unknown=True の場合に限り、
    最初のエントリだけは期間判定を行わない。
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime

from loguru import logger

from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.paths import split_path
from scm_change_tracker.core.timeutil import in_window, parse_datetime

from .base_parser import BaseHistoryParser

_ACTIONS = {
    "a": ModificationType.ADDED,
    "d": ModificationType.DELETED,
    "m": ModificationType.MODIFIED,
    "r": ModificationType.REPLACED,
}


class SVN_HistoryParser(BaseHistoryParser):
    """svn log --xml パーサ.

    Args:
        integration_status_unknown: 前回ビルドの状態が不明（初回ビルド等）の場合 True
    """

    backend = "svn"

    def __init__(self, integration_status_unknown: bool = False) -> None:
        self.integration_status_unknown = integration_status_unknown

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        try:
            root = ET.fromstring(history)
        except ET.ParseError as e:
            raise self.error(f"Unable to load the output from svn: {e}", history) from e

        entries = root.findall("logentry") if root.tag == "log" else []
        if not entries:
            logger.debug("No <logentry>s found under <log>")
            return []

        # 1回の呼び出しの中だけで消費するフラグ
        bypass_window = self.integration_status_unknown
        mods: list[Modification] = []
        for entry in entries:
            changed_at = self._parse_date(entry)
            if bypass_window:
                bypass_window = False
            elif changed_at is None or not in_window(changed_at, from_time, to_time):
                continue
            mods.extend(self._parse_entry(entry, changed_at))
        return mods

    def _parse_entry(self, entry: ET.Element, changed_at: datetime | None) -> list[Modification]:
        revision = entry.get("revision", "")
        try:
            change_number = str(int(revision))
        except ValueError as e:
            raise self.error(f"Invalid revision {revision!r} in svn log", ET.tostring(entry, encoding="unicode")) from e

        author = entry.findtext("author", default="")
        message = entry.findtext("msg", default="")

        mods: list[Modification] = []
        for path in entry.findall("paths/path"):
            folder, file_name = split_path(path.text or "")
            mod = Modification(
                type=ModificationType.from_code(path.get("action"), _ACTIONS),
                file_name=file_name,
                folder_name=folder,
                user_name=author,
                change_number=change_number,
                comment=message,
            )
            if changed_at is not None:
                mod.modified_time = changed_at
            mods.append(mod)
        return mods

    def _parse_date(self, entry: ET.Element) -> datetime | None:
        text = entry.findtext("date")
        if not text:
            return None
        parsed = parse_datetime(text, ("%Y-%m-%dT%H:%M:%S.%fZ",))
        return None if parsed.defaulted else parsed.value
