"""MKS Integrity (si) コネクタ.

si はライセンス/接続指向のクライアントなので、同じバックエンド種別の全プロジェクトで
SharedSessionRegistry を共有し、最後の利用者の操作が終わった時だけ disconnect を発行する。

変更検出の流れ:
    1. ``si viewsandbox --filter=changed:all --xmlapi`` で変更メンバ（追加・削除を含む）を列挙
    2. 削除以外のメンバについて ``si memberinfo --xmlapi`` で作者・日時・コメントを補う
    3. checkpoint_on_success でなければ期間でフィルタ（削除メンバは日時が無いので常に残す）
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path

from loguru import logger

from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.paths import strip_folder_root, to_forward_slashes
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.session import SharedSessionRegistry
from scm_change_tracker.core.timeutil import UTC, in_window
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.mks_parser import MKS_HistoryParser

from .base_connector import SourceControl


@dataclass(frozen=True)
class MksSettings:
    executable: str = "si.exe"
    user: str = ""
    password: str = ""
    hostname: str = ""
    port: int = 8722
    sandbox_root: str = ""
    sandbox_file: str = "project.pj"
    checkpoint_on_success: bool = False
    auto_get_source: bool = True
    auto_disconnect: bool = False
    timeout: float = DEFAULT_TIMEOUT


class MksSourceControl(SourceControl):
    """MKS コネクタ.

    Args:
        registry: 同じバックエンド種別で共有する参照カウンタ（プロセス全体で1つ）
    """

    backend = "mks"

    def __init__(
        self,
        settings: MksSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
        registry: SharedSessionRegistry | None = None,
        local_timezone: tzinfo = UTC,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        self.settings = settings
        self.registry = registry or SharedSessionRegistry(self.backend)
        self.parser = MKS_HistoryParser(local_timezone)

    @property
    def sandbox(self) -> str:
        return str(Path(self.settings.sandbox_root) / self.settings.sandbox_file)

    def _session(self):
        return self.registry.session(self.disconnect if self.settings.auto_disconnect else None)

    # ------------------------------------------------------------------
    # 変更検出
    # ------------------------------------------------------------------
    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        with self._session():
            arguments = ["viewsandbox", "--nopersist", "--filter=changed:all", "--xmlapi", *self._common(recurse=True)]
            info = self._process_info(arguments)
            logger.info(f"Getting modifications from MKS sandbox: {info.command_line}")
            modifications = self.parse_history(info, self.parser, from_result.start_time, to_result.start_time)
            strip_folder_root(modifications, to_forward_slashes(self.settings.sandbox_root).rstrip("/") + "/")

            for modification in modifications:
                if modification.type != ModificationType.DELETED:
                    self.add_member_info(modification)

            if not self.settings.checkpoint_on_success:
                modifications = self.filter_on_timeframe(modifications, from_result.start_time, to_result.start_time)
        return self.enrich(modifications)

    def add_member_info(self, modification: Modification) -> None:
        member = Path(self.settings.sandbox_root)
        if modification.folder_name:
            member = member / modification.folder_name
        arguments = ["memberinfo", "--xmlapi", *self._common(recurse=False, omit_sandbox=True), str(member / modification.file_name)]
        output = self.runner.run(self._process_info(arguments)).stdout
        self.parser.parse_member_info(output, modification)

    @staticmethod
    def filter_on_timeframe(
        modifications: list[Modification], from_time: datetime, to_time: datetime
    ) -> list[Modification]:
        return [
            m
            for m in modifications
            if m.type == ModificationType.DELETED or in_window(m.modified_time, from_time, to_time)
        ]

    # ------------------------------------------------------------------
    # 取得・チェックポイント
    # ------------------------------------------------------------------
    def materialize_working_copy(self, result: IntegrationResult) -> None:
        with self._session():
            if not self.settings.auto_get_source:
                return
            arguments = [
                "resync",
                "--overwriteChanged",
                "--restoreTimestamp",
                "--forceConfirm=yes",
                "--includeDropped",
                *self._common(recurse=True),
            ]
            info = self._process_info(arguments)
            logger.info(f"Resynchronizing source: {info.command_line}")
            self.runner.run(info)
            self.remove_read_only_attribute()

    def remove_read_only_attribute(self) -> None:
        """サンドボックス配下のファイルを書き込み可能にする."""
        root = Path(self.settings.sandbox_root)
        if not root.is_dir():
            return
        for path in root.rglob("*"):
            if path.is_file():
                os.chmod(path, path.stat().st_mode | stat.S_IWRITE)

    def label(self, result: IntegrationResult) -> None:
        with self._session():
            if not (self.settings.checkpoint_on_success and result.succeeded):
                return
            arguments = [
                "checkpoint",
                "-d",
                f"Build - {result.label}",
                "-L",
                f"Build - {result.label}",
                *self._common(recurse=True),
            ]
            info = self._process_info(arguments)
            logger.info(f"Adding checkpoint: {info.command_line}")
            self.runner.run(info)

    def disconnect(self) -> None:
        arguments = [
            "disconnect",
            f"--user={self.settings.user}",
            f"--password={self.settings.password}",
            "--quiet",
            "--forceConfirm=yes",
        ]
        info = self._process_info(arguments)
        logger.info(f"Disconnecting from server: {info.command_line}")
        self.runner.run(info)

    def _common(self, recurse: bool, omit_sandbox: bool = False) -> list[str]:
        arguments: list[str] = []
        if recurse:
            arguments.append("-R")
        if not omit_sandbox:
            arguments += ["-S", self.sandbox]
        arguments += [f"--user={self.settings.user}", f"--password={self.settings.password}", "--quiet"]
        return arguments

    def _process_info(self, arguments: list[str]) -> ProcessInfo:
        return ProcessInfo(
            self.settings.executable,
            arguments,
            timeout=self.settings.timeout,
            secrets=[self.settings.password],
        )
