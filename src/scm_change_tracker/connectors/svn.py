"""Subversion コネクタ.

変更検出:  svn log <url> -r "{from}:{to}" --verbose --xml --non-interactive --no-auth-cache
取得:      .svn があれば update、無ければ checkout
ラベル:    svn copy <url>@<rev> <tag_base_url>/<label>
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from scm_change_tracker.core.exceptions import ConfigurationError
from scm_change_tracker.core.integration import IntegrationResult, IntegrationStatus
from scm_change_tracker.core.modification import Modification, get_last_change_number
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.timeutil import ensure_utc
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.svn_parser import SVN_HistoryParser

from .base_connector import SourceControl

WORKING_COPY_MARKER = ".svn"


@dataclass(frozen=True)
class SvnSettings:
    trunk_url: str = ""
    executable: str = "svn"
    working_directory: str = ""
    username: str = ""
    password: str = ""
    auto_get_source: bool = True
    force_checkout: bool = False
    tag_on_success: bool = False
    tag_base_url: str = ""
    timeout: float = DEFAULT_TIMEOUT


def format_command_date(value: datetime) -> str:
    return "{" + ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ") + "}"


class SvnSourceControl(SourceControl):
    backend = "svn"

    def __init__(
        self,
        settings: SvnSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        self.settings = settings

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        logger.info(f"Checking for modifications to {self.settings.trunk_url}")
        arguments = [
            "log",
            self.settings.trunk_url,
            "-r",
            f"{format_command_date(from_result.start_time)}:{format_command_date(to_result.start_time)}",
            "--verbose",
            "--xml",
            *self._common_arguments(),
        ]
        # 前回の結果が不明な場合、svn log -r の境界エントリを1件だけ期間判定なしで受け入れる
        parser = SVN_HistoryParser(integration_status_unknown=from_result.status == IntegrationStatus.UNKNOWN)
        modifications = self.parse_history(
            self._process_info(to_result, arguments), parser, from_result.start_time, to_result.start_time
        )
        return self.enrich(modifications)

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        if not self.settings.auto_get_source:
            return

        working_dir = result.base_from_working_directory(self.settings.working_directory)
        if not self.settings.force_checkout and (working_dir / WORKING_COPY_MARKER).is_dir():
            logger.info(f"Updating Subversion working copy in {working_dir}")
            arguments = ["update", *self._common_arguments()]
        else:
            if not self.settings.trunk_url:
                raise ConfigurationError("trunk_url must be specified in order to checkout source from Subversion")
            logger.info(f"Checking out {self.settings.trunk_url} into {working_dir}")
            arguments = ["checkout", self.settings.trunk_url, str(working_dir), *self._common_arguments()]
        working_dir.mkdir(parents=True, exist_ok=True)
        self.runner.run(self._process_info(result, arguments))

    def label(self, result: IntegrationResult) -> None:
        if not (self.settings.tag_on_success and result.succeeded):
            return
        if not self.settings.tag_base_url:
            raise ConfigurationError("tag_base_url must be specified when tag_on_success is enabled")

        source = self.settings.trunk_url
        revision = get_last_change_number(result.modifications)
        if revision is not None:
            source = f"{source}@{revision}"
        destination = f"{self.settings.tag_base_url.rstrip('/')}/{result.label}"
        logger.info(f"Tagging {source} as {destination}")
        arguments = ["copy", "-m", f"Build {result.label}", source, destination, *self._common_arguments()]
        self.runner.run(self._process_info(result, arguments))

    def _common_arguments(self) -> list[str]:
        arguments = ["--non-interactive", "--no-auth-cache"]
        if self.settings.username:
            arguments.extend(["--username", self.settings.username])
        if self.settings.password:
            arguments.extend(["--password", self.settings.password])
        return arguments

    def _process_info(self, result: IntegrationResult, arguments: list[str]) -> ProcessInfo:
        working_dir = result.base_from_working_directory(self.settings.working_directory)
        return ProcessInfo(
            self.settings.executable,
            arguments,
            working_directory=working_dir if working_dir.is_dir() else None,
            timeout=self.settings.timeout,
            secrets=[self.settings.password],
        )
