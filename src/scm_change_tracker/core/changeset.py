"""変更セットの差分計算とレポート出力.

- diff_modifications: 旧ラベル（ベースライン）と今回の変更をマージし、
  新しいラベルを付けるべきリビジョンだけを求める
- modifications_to_frame / export_modifications_report: Polars DataFrame 化と CSV 出力
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path

import polars as pl

from .modification import Modification

_VERSION_PART = re.compile(r"\d+")

REPORT_COLUMNS = [
    "type",
    "folder_name",
    "file_name",
    "version",
    "change_number",
    "user_name",
    "modified_time",
    "comment",
    "url",
    "issue_url",
]


def version_key(version: str) -> tuple[int, ...]:
    """ドット区切りリビジョンを数値タプルに変換する（"1.10" > "1.9"）."""
    return tuple(int(part) for part in _VERSION_PART.findall(version or ""))


def latest_revisions(modifications: Iterable[Modification]) -> list[Modification]:
    """ファイルごとに最大リビジョンのレコードだけを残す.

    同じリビジョンが複数ある場合は最初に現れたものを採用する。出力順は最初の出現順。
    """
    latest: dict[tuple[str, str], Modification] = {}
    for modification in modifications:
        key = (modification.folder_name, modification.file_name)
        current = latest.get(key)
        if current is None or version_key(modification.version) > version_key(current.version):
            latest[key] = modification
    return list(latest.values())


def diff_modifications(
    baseline: Iterable[Modification],
    current: Iterable[Modification],
) -> list[Modification]:
    """ベースラインに無い最新リビジョンだけを返す.

    Args:
        baseline: 旧ラベル時点の履歴
        current: 今回サイクルで検出した変更

    Returns:
        ベースラインと今回をマージした上で、ファイルごとの最大リビジョンのうち
        ベースラインに同じ (フォルダ, ファイル, リビジョン) が存在しないもの
    """
    baseline = list(baseline)
    known = {(m.folder_name, m.file_name, m.version) for m in baseline}
    merged = latest_revisions([*baseline, *current])
    return [m for m in merged if (m.folder_name, m.file_name, m.version) not in known]


def modifications_to_frame(modifications: Iterable[Modification]) -> pl.DataFrame:
    """Modification のリストを Polars DataFrame に変換する."""
    rows = [
        {
            "type": m.type.value,
            "folder_name": m.folder_name,
            "file_name": m.file_name,
            "version": m.version,
            "change_number": m.change_number,
            "user_name": m.user_name,
            "modified_time": m.modified_time,
            "comment": m.comment,
            "url": m.url,
            "issue_url": m.issue_url,
        }
        for m in modifications
    ]
    if not rows:
        return pl.DataFrame(
            schema={
                "type": pl.String,
                "folder_name": pl.String,
                "file_name": pl.String,
                "version": pl.String,
                "change_number": pl.String,
                "user_name": pl.String,
                "modified_time": pl.Datetime(time_zone="UTC"),
                "comment": pl.String,
                "url": pl.String,
                "issue_url": pl.String,
            }
        )
    return pl.DataFrame(rows).select(REPORT_COLUMNS).sort("modified_time")


def export_modifications_report(
    modifications: Iterable[Modification],
    output_dir: Path | str,
    name: str = "modifications",
) -> Path | None:
    """変更レポートを CSV として出力する.

    Returns:
        出力した CSV のパス（変更が無ければ None）
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    df = modifications_to_frame(modifications)
    if len(df) == 0:
        return None

    out_path = output_dir / f"{name}.csv"
    df.write_csv(out_path)
    return out_path
