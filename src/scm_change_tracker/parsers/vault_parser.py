"""SourceGear Vault コマンドラインクライアント出力のパーサ.

vault.exe の出力は <vault>...</vault> の前後に XML 以外のテキストが混ざることがある。
extract_vault_xml() で最も外側の <vault> 要素だけを切り出してから解釈する。
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import datetime, tzinfo

from scm_change_tracker.core.exceptions import BackendError
from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.paths import split_path
from scm_change_tracker.core.timeutil import UTC, in_window, parse_datetime

from .base_parser import BaseHistoryParser

_VAULT_ELEMENT = re.compile(r"<vault>(?:.|\n)*</vault>", re.IGNORECASE)
_DATE_FORMATS = ("%m/%d/%Y %I:%M:%S %p", "%Y-%m-%dT%H:%M:%S")

_TYPE_MAP = {
    "added": ModificationType.ADDED,
    "created": ModificationType.ADDED,
    "checkin": ModificationType.MODIFIED,
    "deleted": ModificationType.DELETED,
    "renamed": ModificationType.REPLACED,
}


def extract_vault_xml(output: str) -> str:
    """出力から <vault>...</vault> を切り出す.

    Raises:
        BackendError: <vault> 要素が見つからない場合（出力全体をメッセージに含める）
    """
    match = _VAULT_ELEMENT.search(output)
    if not match:
        raise BackendError("vault", f"The output does not contain the expected <vault> element: {output}")
    return match.group(0)


def load_vault_response(output: str, command: str = "") -> ET.Element:
    xml_text = extract_vault_xml(output)
    try:
        return ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise BackendError(
            "vault", f"Unable to parse vault XML output for vault command: [{command}]. Vault Output: [{output}]"
        ) from e


def find_working_folder(output: str, repository_folder: str) -> str | None:
    """listworkingfolders の出力から、リポジトリフォルダに対応するローカルフォルダを探す."""
    root = load_vault_response(output, "listworkingfolders")
    for node in root.findall("listworkingfolders/workingfolder"):
        if node.get("reposfolder") == repository_folder and node.get("localfolder") is not None:
            return node.get("localfolder")
    return None


class Vault_HistoryParser(BaseHistoryParser):
    """vault history パーサ.

    Args:
        local_timezone: Vault クライアントの出力時刻を解釈するタイムゾーン
    """

    backend = "vault"

    def __init__(self, local_timezone: tzinfo = UTC) -> None:
        self.local_timezone = local_timezone

    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        xml_text = extract_vault_xml(history)
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise self.error(f"Invalid XML from vault history: {e}", xml_text) from e

        mods: list[Modification] = []
        for item in root.findall("history/item"):
            mod = self._parse_item(item)
            if in_window(mod.modified_time, from_time, to_time):
                mods.append(mod)
        return mods

    def _parse_item(self, item: ET.Element) -> Modification:
        date_text = item.get("date", "")
        parsed = parse_datetime(date_text, _DATE_FORMATS, assume=self.local_timezone)
        if parsed.defaulted:
            raise self.error(f"Unable to parse vault date {date_text!r}", ET.tostring(item, encoding="unicode"))

        folder, file_name = split_path(item.get("name", ""))
        comment = item.get("comment")
        return Modification(
            type=ModificationType.from_code(item.get("typeName"), _TYPE_MAP),
            file_name=file_name,
            folder_name=folder,
            modified_time=parsed.value,
            user_name=item.get("user", ""),
            change_number=item.get("txid"),
            version=item.get("version", ""),
            comment=comment or None,
        )
