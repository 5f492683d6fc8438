"""CVS コネクタ.

変更検出:  cvs -d <root> -q rlog -N [-S] (-b | -r<branch>) "-d><from> GMT" [-w<login>...] <module>
取得:      作業コピーに CVS ディレクトリがあれば update、無ければ親ディレクトリから checkout
ラベル:    cvs -d <root> tag <prefix><label の '.' を '_' に置換>
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from loguru import logger

from scm_change_tracker.core.exceptions import ConfigurationError
from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification
from scm_change_tracker.core.paths import strip_folder_root
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.timeutil import ensure_utc
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.cvs_parser import CVS_HistoryParser

from .base_connector import SourceControl

COMMAND_DATE_FORMAT = "%Y-%m-%d %H:%M:%S GMT"
LOCAL_PROTOCOL = ":local:"
WORKING_COPY_MARKER = "CVS"


@dataclass(frozen=True)
class CvsSettings:
    cvsroot: str = ""
    module: str = ""
    executable: str = "cvs"
    working_directory: str = ""
    label_on_success: bool = False
    restrict_logins: str = ""
    auto_get_source: bool = True
    clean_copy: bool = True
    force_checkout: bool = False
    branch: str = ""
    tag_prefix: str = "ver-"
    suppress_revision_header: bool = False
    timeout: float = DEFAULT_TIMEOUT


def format_command_date(value: datetime) -> str:
    return ensure_utc(value).strftime(COMMAND_DATE_FORMAT)


class CvsSourceControl(SourceControl):
    """CVS コネクタ.

    Args:
        settings: CVS の設定
        is_windows: Windows 上で動かす場合 True（HOME と .cvspass を用意する）
    """

    backend = "cvs"

    def __init__(
        self,
        settings: CvsSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
        parser: CVS_HistoryParser | None = None,
        is_windows: bool | None = None,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        self.settings = settings
        self.parser = parser or CVS_HistoryParser()
        self.is_windows = os.name == "nt" if is_windows is None else is_windows

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        logger.info(f"Checking for modifications to CVS module {self.settings.module} since {from_result.start_time}")
        info = self._process_info(from_result, self.build_log_arguments(from_result.start_time))
        modifications = self.parse_history(info, self.parser, from_result.start_time, to_result.start_time)
        self.strip_repository_root(modifications)
        return self.enrich(modifications)

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        if not self.settings.auto_get_source:
            return

        working_dir = result.base_from_working_directory(self.settings.working_directory)
        if not self.settings.force_checkout and (working_dir / WORKING_COPY_MARKER).is_dir():
            logger.info(f"Updating CVS working copy in {working_dir}")
            self.runner.run(self._process_info(result, self.build_update_arguments()))
        else:
            self._checkout(result, working_dir)

    def label(self, result: IntegrationResult) -> None:
        if not (self.settings.label_on_success and result.succeeded):
            return
        tag = f"{self.settings.tag_prefix}{result.label.replace('.', '_')}"
        logger.info(f"Applying CVS tag {tag}")
        self.runner.run(self._process_info(result, [*self._root_arguments(), "tag", tag]))

    def _checkout(self, result: IntegrationResult, working_dir: Path) -> None:
        if not self.settings.cvsroot:
            raise ConfigurationError("cvsroot must be specified in order to automatically checkout source from CVS")

        # cvs checkout -d は単純な相対名しか受け付けないので、親ディレクトリから実行する
        working_dir = working_dir.resolve()
        if working_dir.parent == working_dir:
            raise ConfigurationError(f"Cannot checkout into a working directory that denotes a root: {working_dir}")

        logger.info(f"Checking out CVS module {self.settings.module} into {working_dir}")
        arguments = [
            *self._root_arguments(),
            "-q",
            "checkout",
            "-R",
            "-P",
            *self._branch_arguments(),
            "-d",
            working_dir.name,
            self.settings.module,
        ]
        info = self._process_info(result, arguments)
        info.working_directory = working_dir.parent
        self.runner.run(info)

    def build_log_arguments(self, from_time: datetime) -> list[str]:
        arguments = [*self._root_arguments(), "-q", "rlog", "-N"]
        if self.settings.suppress_revision_header:
            arguments.append("-S")
        if self.settings.branch:
            arguments.append(f"-r{self.settings.branch}")
        else:
            arguments.append("-b")
        arguments.append(f"-d>{format_command_date(from_time)}")
        if self.settings.restrict_logins:
            arguments.extend(f"-w{login.strip()}" for login in self.settings.restrict_logins.split(","))
        arguments.append(self.settings.module)
        return arguments

    def build_update_arguments(self) -> list[str]:
        arguments = [*self._root_arguments(), "-q", "update", "-d", "-P"]
        if self.settings.clean_copy:
            arguments.append("-C")
        arguments.extend(self._branch_arguments())
        return arguments

    def _root_arguments(self) -> list[str]:
        return ["-d", self.settings.cvsroot] if self.settings.cvsroot else []

    def _branch_arguments(self) -> list[str]:
        return ["-r", self.settings.branch] if self.settings.branch else []

    def repository_folder(self) -> str:
        """rlog の RCS パスから取り除く接頭辞（リポジトリルート + /module/）."""
        root = self.settings.cvsroot
        if root.startswith(LOCAL_PROTOCOL):
            root = root[len(LOCAL_PROTOCOL) :]
        else:
            root = root[root.rfind(":") + 1 :]
        return f"{root}/{self.settings.module}/"

    def strip_repository_root(self, modifications: list[Modification]) -> None:
        strip_folder_root(modifications, self.repository_folder())

    def _process_info(self, result: IntegrationResult, arguments: list[str]) -> ProcessInfo:
        working_dir = result.base_from_working_directory(self.settings.working_directory)
        working_dir.mkdir(parents=True, exist_ok=True)

        info = ProcessInfo(
            self.settings.executable,
            arguments,
            working_directory=working_dir,
            timeout=self.settings.timeout,
        )
        if self.is_windows:
            # CVS クライアントは %HOME%\.cvspass を必要とする
            home = Path(result.artifact_directory)
            home.mkdir(parents=True, exist_ok=True)
            (home / ".cvspass").touch(exist_ok=True)
            info.environment["HOME"] = str(home)
            logger.debug(f"Set HOME environment variable to {home}")
        return info
