"""取得前ラベル付与とロールバックの追跡.

ソース取得の前にラベルを付けるバックエンド（Vault）で使う。
ビルド失敗時に削除してよいのは「この統合サイクルで自分が付けたラベル」だけ。
"""

from __future__ import annotations

from loguru import logger

from .integration import IntegrationResult


class LabelTracker:
    """このサイクルでラベルを付けたかどうかを保持する.

    reset() は detect_changes の先頭（新しい統合サイクルの開始）で呼ぶ。
    """

    def __init__(self) -> None:
        self._applied = False

    @property
    def applied(self) -> bool:
        return self._applied

    def reset(self) -> None:
        self._applied = False

    def mark_applied(self) -> None:
        self._applied = True

    def should_remove(self, result: IntegrationResult) -> bool:
        """失敗したビルドで、かつ自分が付けたラベルの場合のみ True."""
        if result.succeeded:
            return False
        if not self._applied:
            logger.debug(
                f"Integration failed for {result.project_name}, but no label was applied in this cycle; skipping removal"
            )
            return False
        return True
