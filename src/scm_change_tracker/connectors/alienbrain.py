"""Alienbrain コネクタ.

変更検出:  ab find <project> -regex "SCIT > <from> AND SCIT < <to>" -format "<fields>"
取得:      ab getlatest <project> -localpath <working dir> -overwritewritable replace -overwritecheckedout replace
ラベル:    ab setlabel <project> -name <label>

SCIT（チェックイン時刻）は Windows FILETIME の整数で比較する。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.timeutil import ensure_utc
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.alienbrain_parser import DELIMITER, FILETIME_EPOCH, Alienbrain_HistoryParser

from .base_connector import SourceControl

FIND_FORMAT = DELIMITER.join(
    [
        "#CheckInComment#",
        "#Name#",
        "#DbPath#",
        "#SCIT#",
        "#Mime Type#",
        "#LocalPath#",
        "#Changed By#",
        "#NxN_VersionNumber#",
    ]
)


def to_filetime(value: datetime) -> int:
    """datetime を Windows FILETIME（1601-01-01 UTC からの 100ns 単位）に変換する."""
    delta = ensure_utc(value) - FILETIME_EPOCH
    return (delta.days * 86_400 + delta.seconds) * 10_000_000 + delta.microseconds * 10


@dataclass(frozen=True)
class AlienbrainSettings:
    project: str = ""
    executable: str = "ab.exe"
    server: str = ""
    database: str = ""
    username: str = ""
    password: str = ""
    branch: str = ""
    working_directory: str = ""
    auto_get_source: bool = True
    label_on_success: bool = False
    timeout: float = DEFAULT_TIMEOUT


class AlienbrainSourceControl(SourceControl):
    backend = "alienbrain"

    def __init__(
        self,
        settings: AlienbrainSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        self.settings = settings
        self.parser = Alienbrain_HistoryParser()

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        logger.info(f"Checking for modifications to Alienbrain project {self.settings.project}")
        window = f"SCIT > {to_filetime(from_result.start_time)} AND SCIT < {to_filetime(to_result.start_time)}"
        arguments = ["find", self.settings.project, "-regex", window, "-format", FIND_FORMAT, *self._credentials()]
        modifications = self.parse_history(
            self._process_info(arguments), self.parser, from_result.start_time, to_result.start_time
        )
        return self.enrich(modifications)

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        if not self.settings.auto_get_source:
            return
        working_dir = result.base_from_working_directory(self.settings.working_directory)
        logger.info(f"Getting latest Alienbrain source into {working_dir}")
        arguments = [
            "getlatest",
            self.settings.project,
            "-localpath",
            str(working_dir),
            "-overwritewritable",
            "replace",
            "-overwritecheckedout",
            "replace",
            *self._credentials(),
        ]
        self.runner.run(self._process_info(arguments))

    def label(self, result: IntegrationResult) -> None:
        if not (self.settings.label_on_success and result.succeeded):
            return
        logger.info(f"Applying Alienbrain label {result.label}")
        arguments = ["setlabel", self.settings.project, "-name", result.label, *self._credentials()]
        self.runner.run(self._process_info(arguments))

    def _credentials(self) -> list[str]:
        s = self.settings
        arguments: list[str] = []
        for flag, value in (("-s", s.server), ("-d", s.database), ("-u", s.username), ("-pw", s.password)):
            if value:
                arguments += [flag, value]
        if s.branch:
            arguments += ["-branch", s.branch]
        return arguments

    def _process_info(self, arguments: list[str]) -> ProcessInfo:
        return ProcessInfo(
            self.settings.executable,
            arguments,
            timeout=self.settings.timeout,
            secrets=[self.settings.password],
        )
