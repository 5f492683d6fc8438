"""Visual SourceSafe コネクタ.

変更検出:  ss history <project> -R -Vd<to>~<from> -Y<user>,<password> -I-Y
取得:      ss get <project> -R -Vd<to> -Y... -I-N -W -GF- -GTM -GL<working dir>
ラベル:    ss label <project> -L<label> -Y... -I-Y

SSDIR 環境変数でデータベース（srcsafe.ini のあるフォルダ）を指定する。
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import datetime, tzinfo

from loguru import logger

from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.timeutil import UTC, ensure_utc
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.vss_parser import ENGLISH_KEYWORDS, VSS_HistoryParser, VssKeywords

from .base_connector import SourceControl


@dataclass(frozen=True)
class VssSettings:
    project: str = ""
    executable: str = "ss.exe"
    username: str = ""
    password: str = ""
    ssdir: str = ""
    working_directory: str = ""
    auto_get_source: bool = True
    apply_label: bool = False
    clean_copy: bool = False
    timeout: float = DEFAULT_TIMEOUT


class VssSourceControl(SourceControl):
    """VSS コネクタ.

    Args:
        keywords: サーバロケールのキーワード表
        local_timezone: クライアントのローカルタイムゾーン
    """

    backend = "vss"

    def __init__(
        self,
        settings: VssSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
        keywords: VssKeywords = ENGLISH_KEYWORDS,
        local_timezone: tzinfo = UTC,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        self.settings = settings
        self.keywords = keywords
        self.local_timezone = local_timezone
        self.parser = VSS_HistoryParser(keywords, local_timezone)

    def format_command_date(self, value: datetime) -> str:
        return self.keywords.format_command_date(ensure_utc(value).astimezone(self.local_timezone))

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        logger.info(f"Checking for modifications to VSS project {self.settings.project}")
        arguments = [
            "history",
            self.settings.project,
            "-R",
            f"-Vd{self.format_command_date(to_result.start_time)}~{self.format_command_date(from_result.start_time)}",
            *self._credentials(),
            "-I-Y",
        ]
        modifications = self.parse_history(
            self._process_info(to_result, arguments), self.parser, from_result.start_time, to_result.start_time
        )
        return self.enrich(modifications)

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        if not self.settings.auto_get_source:
            return

        working_dir = result.base_from_working_directory(self.settings.working_directory)
        if self.settings.clean_copy and working_dir.exists():
            logger.debug(f"Cleaning out source folder: {working_dir}")
            shutil.rmtree(working_dir)
        working_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Getting source from VSS project {self.settings.project}")
        arguments = [
            "get",
            self.settings.project,
            "-R",
            f"-Vd{self.format_command_date(result.start_time)}",
            *self._credentials(),
            "-I-N",
            "-W",
            "-GF-",
            "-GTM",
            f"-GL{working_dir}",
        ]
        self.runner.run(self._process_info(result, arguments))

    def label(self, result: IntegrationResult) -> None:
        if not (self.settings.apply_label and result.succeeded):
            return
        logger.info(f"Applying VSS label {result.label} to {self.settings.project}")
        arguments = ["label", self.settings.project, f"-L{result.label}", *self._credentials(), "-I-Y"]
        self.runner.run(self._process_info(result, arguments))

    def _credentials(self) -> list[str]:
        if not self.settings.username:
            return []
        return [f"-Y{self.settings.username},{self.settings.password}"]

    def _process_info(self, result: IntegrationResult, arguments: list[str]) -> ProcessInfo:
        environment = {"SSDIR": self.settings.ssdir} if self.settings.ssdir else {}
        working_dir = result.base_from_working_directory(self.settings.working_directory)
        return ProcessInfo(
            self.settings.executable,
            arguments,
            working_directory=working_dir if working_dir.is_dir() else None,
            environment=environment,
            timeout=self.settings.timeout,
            secrets=[self.settings.password],
        )
