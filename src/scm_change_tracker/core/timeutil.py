"""時刻の正規化ユーティリティ.

設計方針:
    - Modification.modified_time はすべて UTC の aware datetime に揃える
    - オフセットを持たないツール出力（VSS/StarTeam/ClearCase 等）は、パーサに渡された
      タイムゾーン（既定 UTC）のローカル時刻として解釈してから UTC に変換する
    - 書式エラーを例外で握りつぶして最小値に置き換える代わりに、ParsedTime で
      「パースできた」か「既定値に落ちた」かを呼び出し側が判別できるようにする
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo

UTC = timezone.utc

# 日時が得られなかったレコードに割り当てる下限値
MIN_TIME = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class ParsedTime:
    """日時パース結果.

    Attributes:
        value: UTC の aware datetime（defaulted の場合は MIN_TIME）
        defaulted: パースに失敗して既定値を使った場合 True
    """

    value: datetime
    defaulted: bool = False

    @classmethod
    def fallback(cls) -> ParsedTime:
        return cls(MIN_TIME, True)


def ensure_utc(value: datetime, assume: tzinfo = UTC) -> datetime:
    """datetime を UTC の aware datetime に変換する.

    naive な値は `assume` のローカル時刻とみなす。
    """
    if value.tzinfo is None:
        if value == datetime.min:
            return MIN_TIME
        value = value.replace(tzinfo=assume)
    return value.astimezone(UTC)


def parse_datetime(
    text: str,
    formats: Iterable[str],
    assume: tzinfo = UTC,
    allow_iso: bool = True,
) -> ParsedTime:
    """候補書式を順に試して日時をパースする.

    Args:
        text: 日時文字列
        formats: strptime 書式の候補
        assume: オフセットが無い場合に仮定するタイムゾーン
        allow_iso: 候補書式が全滅した場合に ISO 8601 も試すか

    Returns:
        ParsedTime（全て失敗した場合は defaulted=True）
    """
    s = text.strip()
    if not s:
        return ParsedTime.fallback()

    for fmt in formats:
        try:
            return ParsedTime(ensure_utc(datetime.strptime(s, fmt), assume))
        except ValueError:
            continue

    if allow_iso:
        try:
            return ParsedTime(ensure_utc(datetime.fromisoformat(s.replace("Z", "+00:00")), assume))
        except ValueError:
            pass

    return ParsedTime.fallback()


def in_window(value: datetime, from_time: datetime, to_time: datetime) -> bool:
    """from <= value <= to を判定する（naive な境界は UTC とみなす）."""
    return ensure_utc(from_time) <= ensure_utc(value) <= ensure_utc(to_time)
