"""コネクタ（基底クラス）.

スケジューラから見たバージョン管理システムの共通インターフェースを定義します。

各コネクタは継承でプロセス実行を受け取るのではなく、ProcessRunner を注入されて使う。
パース後のポストプロセス（URL付与・課題管理リンク付与）はこのクラスの enrich() に集約する。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime

from loguru import logger

from scm_change_tracker.core.filters import ModificationFilter, apply_filters
from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification
from scm_change_tracker.core.process import ProcessInfo, ProcessRunner
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.base_parser import BaseHistoryParser


class SourceControl(ABC):
    """バージョン管理コネクタの基底クラス.

    Args:
        runner: 外部プロセス実行ヘルパー
        url_builder: Web ビューアへのリンクを付与するビルダー
        issue_url_builder: 課題管理システムへのリンクを付与するビルダー

    Note:
        スケジューラは1プロジェクトの操作を直列化する。同じインスタンスに対して
        detect_changes / materialize_working_copy / label が並行して呼ばれることはない。
    """

    backend: str = "unknown"

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
    ) -> None:
        self.runner = runner or ProcessRunner()
        self.url_builder = url_builder
        self.issue_url_builder = issue_url_builder

    @abstractmethod
    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        """前回ビルド開始時刻から今回ビルド開始時刻までの変更を返す."""
        ...

    @abstractmethod
    def materialize_working_copy(self, result: IntegrationResult) -> None:
        """作業コピーを取得/更新する."""
        ...

    @abstractmethod
    def label(self, result: IntegrationResult) -> None:
        """ビルド結果に応じてラベル/チェックポイントを付ける（成功判定は自分で行う）."""
        ...

    def initialize(self, project: str) -> None:
        pass

    def purge(self, project: str) -> None:
        pass

    def enrich(self, modifications: Sequence[Modification]) -> list[Modification]:
        """URL ビルダーと課題管理ビルダーをこの順に適用する."""
        if self.url_builder is not None:
            self.url_builder.setup_modification(modifications)
        if self.issue_url_builder is not None:
            self.issue_url_builder.setup_modification(modifications)
        return list(modifications)

    def parse_history(
        self,
        info: ProcessInfo,
        parser: BaseHistoryParser,
        from_time: datetime,
        to_time: datetime,
        retry: bool = False,
    ) -> list[Modification]:
        """履歴コマンドを実行してパースする."""
        result = self.runner.run_with_retries(info) if retry else self.runner.run(info)
        modifications = parser.parse(result.stdout, from_time, to_time)
        logger.debug(f"{self.backend}: parsed {len(modifications)} modification(s)")
        return modifications


class FilteredSourceControl(SourceControl):
    """任意のコネクタを包み、検出結果に包含/除外フィルタを適用する.

    materialize_working_copy / label / initialize / purge はそのまま委譲する。
    """

    def __init__(
        self,
        source_control: SourceControl,
        inclusion_filters: Sequence[ModificationFilter] = (),
        exclusion_filters: Sequence[ModificationFilter] = (),
    ) -> None:
        super().__init__(source_control.runner)
        self.source_control = source_control
        self.inclusion_filters = list(inclusion_filters)
        self.exclusion_filters = list(exclusion_filters)
        self.backend = source_control.backend

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        modifications = self.source_control.detect_changes(from_result, to_result)
        accepted = apply_filters(modifications, self.inclusion_filters, self.exclusion_filters)
        if len(accepted) != len(modifications):
            logger.info(f"Filtered out {len(modifications) - len(accepted)} modification(s) from {self.backend}")
        return accepted

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        self.source_control.materialize_working_copy(result)

    def label(self, result: IntegrationResult) -> None:
        self.source_control.label(result)

    def initialize(self, project: str) -> None:
        self.source_control.initialize(project)

    def purge(self, project: str) -> None:
        self.source_control.purge(project)
