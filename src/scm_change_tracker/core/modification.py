"""正規化済み変更レコード（Modification）.

全てのバックエンドのパーサが出力する唯一のレコード型です。

不変条件:
    - file_name / folder_name はスラッシュ区切りの相対パス
    - 2つの Modification は全フィールドが等しい場合にのみ等しい
    - change_number は不透明な文字列（数値とは限らない）。順序付けには使わない
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .timeutil import MIN_TIME


class ModificationType(str, Enum):
    """変更種別（バックエンド固有コードはこの集合に寄せる）."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    REPLACED = "replaced"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: str | None, mapping: dict[str, ModificationType]) -> ModificationType:
        """バックエンド固有コードを変換する（未知のコードは UNKNOWN）."""
        if code is None:
            return cls.UNKNOWN
        return mapping.get(code.strip().lower(), cls.UNKNOWN)


@dataclass
class Modification:
    """1ファイル分の変更レコード.

    パーサから出た後に書き換えてよいのはポストプロセッサ（URL付与、フォルダ接頭辞除去）のみ。
    """

    type: ModificationType = ModificationType.UNKNOWN
    file_name: str = ""
    folder_name: str = ""
    modified_time: datetime = MIN_TIME
    user_name: str = ""
    change_number: str | None = None
    version: str = ""
    comment: str | None = None
    url: str | None = None
    issue_url: str | None = None
    email_address: str | None = None

    def __lt__(self, other: Modification) -> bool:
        return self.modified_time < other.modified_time

    @property
    def path(self) -> str:
        """folder_name と file_name を結合したパス."""
        if not self.folder_name:
            return self.file_name
        return f"{self.folder_name}/{self.file_name}"

    def to_xml_element(self) -> ET.Element:
        """パブリッシャ向けの <modification> 要素に変換する."""
        element = ET.Element("modification", {"type": self.type.value})
        ET.SubElement(element, "filename").text = self.file_name
        ET.SubElement(element, "project").text = self.folder_name
        ET.SubElement(element, "date").text = self.modified_time.strftime("%Y-%m-%d %H:%M:%S")
        ET.SubElement(element, "user").text = self.user_name
        ET.SubElement(element, "comment").text = self.comment
        ET.SubElement(element, "changeNumber").text = self.change_number
        if self.version:
            ET.SubElement(element, "version").text = self.version
        for tag, value in (("url", self.url), ("issueUrl", self.issue_url), ("email", self.email_address)):
            if value is not None:
                ET.SubElement(element, tag).text = value
        return element

    def to_xml(self) -> str:
        return ET.tostring(self.to_xml_element(), encoding="unicode")


def get_last_change_number(modifications: Iterable[Modification]) -> str | None:
    """modified_time が最大のレコードの change_number を返す.

    同時刻のレコードが複数ある場合は最初に現れたものを採用する。
    空集合の場合は None。
    """
    last: Modification | None = None
    for modification in modifications:
        if last is None or modification.modified_time > last.modified_time:
            last = modification
    return last.change_number if last is not None else None
