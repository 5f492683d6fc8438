"""ClearCase コネクタ.

変更検出:  cleartool lshist -r -nco [-branch <b>] -since <date> -fmt <format> <view path>
取得:      cleartool update -force -overwrite <view path>（スナップショットビュー）
ラベル:    cleartool mklbtype -c <comment> <label> → cleartool mklabel -recurse <label> <view path>
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path

from loguru import logger

from scm_change_tracker.core.exceptions import ConfigurationError
from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification
from scm_change_tracker.core.paths import strip_folder_root, to_forward_slashes
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.timeutil import UTC, ensure_utc
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.clearcase_parser import DELIMITER, END_OF_RECORD, ClearCase_HistoryParser

from .base_connector import SourceControl

HISTORY_FORMAT = DELIMITER.join(["%u", "%Nd", "%En", "%Vn", "%o", "!%l", "!%a", "%Nc"]) + END_OF_RECORD + "\\n"
COMMAND_DATE_FORMAT = "%d-%b-%Y.%H:%M:%S"


@dataclass(frozen=True)
class ClearCaseSettings:
    view_path: str = ""
    executable: str = "cleartool.exe"
    branch: str = ""
    auto_get_source: bool = False
    use_label: bool = True
    label_comment: str = "CRUISECONTROL Comment"
    timeout: float = DEFAULT_TIMEOUT


class ClearCaseSourceControl(SourceControl):
    """ClearCase コネクタ.

    Args:
        local_timezone: cleartool が入出力に使うローカルタイムゾーン
    """

    backend = "clearcase"

    def __init__(
        self,
        settings: ClearCaseSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
        local_timezone: tzinfo = UTC,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        if not settings.view_path:
            raise ConfigurationError("view_path must be specified for ClearCase")
        self.settings = settings
        self.local_timezone = local_timezone
        self.parser = ClearCase_HistoryParser(local_timezone)

    def format_command_date(self, value: datetime) -> str:
        return ensure_utc(value).astimezone(self.local_timezone).strftime(COMMAND_DATE_FORMAT).lower()

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        logger.info(f"Checking for modifications in ClearCase view {self.settings.view_path}")
        arguments = ["lshist", "-r", "-nco"]
        if self.settings.branch:
            arguments.extend(["-branch", self.settings.branch])
        arguments.extend(
            ["-since", self.format_command_date(from_result.start_time), "-fmt", HISTORY_FORMAT, self.settings.view_path]
        )
        modifications = self.parse_history(
            self._process_info(arguments), self.parser, from_result.start_time, to_result.start_time
        )
        strip_folder_root(modifications, to_forward_slashes(self.settings.view_path).rstrip("/") + "/")
        return self.enrich(modifications)

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        if not self.settings.auto_get_source:
            return
        logger.info(f"Updating ClearCase snapshot view {self.settings.view_path}")
        self.runner.run(self._process_info(["update", "-force", "-overwrite", self.settings.view_path]))

    def label(self, result: IntegrationResult) -> None:
        if not (self.settings.use_label and result.succeeded):
            return
        logger.info(f"Applying ClearCase label {result.label}")
        self.runner.run(self._process_info(["mklbtype", "-c", self.settings.label_comment, result.label]))
        self.runner.run(self._process_info(["mklabel", "-recurse", result.label, self.settings.view_path]))

    def _process_info(self, arguments: list[str]) -> ProcessInfo:
        view = Path(self.settings.view_path)
        return ProcessInfo(
            self.settings.executable,
            arguments,
            working_directory=view if view.is_dir() else None,
            timeout=self.settings.timeout,
        )
