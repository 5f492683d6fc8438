"""StarTeam コネクタ.

変更検出:  stcmd hist -nologo -x -is -filter IO -p "user:pwd@host:port/project/path" [-rp|-fp dir] "*"
取得:      stcmd co -nologo -ts -x -is -q -f NCO -p "..." [-rp|-fp dir] "*"
ラベル:    なし
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo

from loguru import logger

from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.timeutil import UTC
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.starteam_parser import (
    FILE_HISTORY_PATTERN,
    FILE_PATTERN,
    FOLDER_PATTERN,
    StarTeam_HistoryParser,
)

from .base_connector import SourceControl


@dataclass(frozen=True)
class StarTeamSettings:
    project: str = ""
    executable: str = "stcmd.exe"
    username: str = ""
    password: str = ""
    host: str = "127.0.0.1"
    port: int = 49201
    path: str = ""
    auto_get_source: bool = False
    override_view_working_dir: str = ""
    override_folder_working_dir: str = ""
    folder_regex: str = FOLDER_PATTERN
    file_regex: str = FILE_PATTERN
    file_history_regex: str = FILE_HISTORY_PATTERN
    timeout: float = DEFAULT_TIMEOUT


class StarTeamSourceControl(SourceControl):
    backend = "starteam"

    def __init__(
        self,
        settings: StarTeamSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
        local_timezone: tzinfo = UTC,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        self.settings = settings
        self.parser = StarTeam_HistoryParser(
            settings.folder_regex, settings.file_regex, settings.file_history_regex, local_timezone
        )

    @property
    def location(self) -> str:
        s = self.settings
        return f"{s.username}:{s.password}@{s.host}:{s.port}/{s.project}/{s.path}"

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        logger.info(f"Checking for modifications to StarTeam project {self.settings.project}")
        arguments = ["hist", "-nologo", "-x", "-is", "-filter", "IO", "-p", self.location, *self._path_overrides(), "*"]
        modifications = self.parse_history(
            self._process_info(arguments), self.parser, from_result.start_time, to_result.start_time
        )
        return self.enrich(modifications)

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        if not self.settings.auto_get_source:
            return
        logger.info("Getting source from StarTeam")
        arguments = [
            "co",
            "-nologo",
            "-ts",
            "-x",
            "-is",
            "-q",
            "-f",
            "NCO",
            "-p",
            self.location,
            *self._path_overrides(),
            "*",
        ]
        self.runner.run(self._process_info(arguments))

    def label(self, result: IntegrationResult) -> None:
        pass

    def _path_overrides(self) -> list[str]:
        if self.settings.override_view_working_dir:
            return ["-rp", self.settings.override_view_working_dir]
        if self.settings.override_folder_working_dir:
            return ["-fp", self.settings.override_folder_working_dir]
        return []

    def _process_info(self, arguments: list[str]) -> ProcessInfo:
        return ProcessInfo(
            self.settings.executable,
            arguments,
            timeout=self.settings.timeout,
            secrets=[self.settings.password],
        )
