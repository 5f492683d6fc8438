"""SourceGear Vault コネクタ.

- 変更検出はネットワーク越しのサーバ呼び出しなので、poll_retry_attempts / poll_retry_wait に従ってリトライする
- apply_label かつ auto_get_source の場合、取得の「前」にラベルを付け、そのラベルで取得する。
  ビルドが失敗したら、このサイクルで自分が付けたラベルだけを削除する
- ラベル付き取得にはローカルの作業フォルダが必要なので、未指定なら listworkingfolders で調べる
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path

from loguru import logger

from scm_change_tracker.core.exceptions import BackendError
from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.labels import LabelTracker
from scm_change_tracker.core.modification import Modification
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.retry import RetryPolicy
from scm_change_tracker.core.timeutil import UTC, ensure_utc
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.vault_parser import Vault_HistoryParser, find_working_folder

from .base_connector import SourceControl

COMMAND_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


@dataclass(frozen=True)
class VaultSettings:
    folder: str = "$"
    repository: str = ""
    executable: str = "vault.exe"
    host: str = ""
    username: str = ""
    password: str | None = None
    ssl: bool = False
    working_directory: str = ""
    use_vault_working_directory: bool = True
    auto_get_source: bool = True
    apply_label: bool = False
    clean_copy: bool = False
    set_file_time: str = "current"
    history_args: str = "-excludeactions label,obliterate -rowlimit 0"
    other_arguments: str = ""
    poll_retry_attempts: int = 5
    poll_retry_wait: float = 5.0
    timeout: float = DEFAULT_TIMEOUT


class VaultSourceControl(SourceControl):
    """Vault コネクタ.

    注入された runner にリトライポリシーが無い場合は、設定値からポリシーを作って付け替える。
    """

    backend = "vault"

    def __init__(
        self,
        settings: VaultSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
        local_timezone: tzinfo = UTC,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        if self.runner.retry is None:
            self.runner = ProcessRunner(
                self.runner.executor, RetryPolicy(settings.poll_retry_attempts, settings.poll_retry_wait)
            )
        self.settings = settings
        self.local_timezone = local_timezone
        self.parser = Vault_HistoryParser(local_timezone)
        self.label_tracker = LabelTracker()
        self.working_folder = settings.working_directory

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        # 新しい統合サイクルの開始
        self.label_tracker.reset()
        logger.info(
            f"Checking for modifications to {self.settings.folder} in Vault repository "
            f"{self.settings.repository!r} between {from_result.start_time} and {to_result.start_time}"
        )
        arguments = [
            "history",
            self.settings.folder,
            *self.settings.history_args.split(),
            "-begindate",
            self._format_date(from_result),
            "-enddate",
            self._format_date(to_result),
            *self._common_arguments(),
        ]
        modifications = self.parse_history(
            self._process_info(from_result, arguments),
            self.parser,
            from_result.start_time,
            to_result.start_time,
            retry=True,
        )
        return self.enrich(modifications)

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        s = self.settings
        if not s.auto_get_source:
            return

        needs_local_folder = s.apply_label or not s.use_vault_working_directory or s.clean_copy
        if not self.working_folder and needs_local_folder:
            self.working_folder = self._lookup_working_folder(result) or ""
            if not self.working_folder:
                raise BackendError(
                    self.backend,
                    f"Vault user {s.username} has no working folder set for {s.folder} in repository "
                    f"{s.repository} and no working directory has been specified.",
                )

        if s.apply_label:
            logger.info(f"Applying label {result.label!r} to {s.folder} in repository {s.repository}")
            self.runner.run(self._process_info(result, ["label", s.folder, result.label, *self._common_arguments()]))
            self.label_tracker.mark_applied()

        if s.clean_copy and self.working_folder:
            target = result.base_from_working_directory(self.working_folder)
            logger.debug(f"Cleaning out source folder: {target}")
            if target.exists():
                shutil.rmtree(target)

        logger.info("Getting source from Vault")
        self.runner.run(self._process_info(result, self._get_arguments(result)))

    def label(self, result: IntegrationResult) -> None:
        s = self.settings
        if not s.apply_label:
            return

        if s.auto_get_source:
            # ラベルは取得前に付けてあるので、失敗時のロールバックだけを行う
            if self.label_tracker.should_remove(result):
                logger.info(f"Integration failed. Removing label {result.label!r} from {s.folder}")
                self.runner.run(
                    self._process_info(result, ["deletelabel", s.folder, result.label, *self._common_arguments()])
                )
        elif result.succeeded:
            logger.info(f"Applying label {result.label!r} to {s.folder} in repository {s.repository}")
            self.runner.run(self._process_info(result, ["label", s.folder, result.label, *self._common_arguments()]))

    def _lookup_working_folder(self, result: IntegrationResult) -> str | None:
        info = self._process_info(result, ["listworkingfolders", *self._common_arguments()])
        output = self.runner.run(info).stdout
        return find_working_folder(output, self.settings.folder)

    def _get_arguments(self, result: IntegrationResult) -> list[str]:
        s = self.settings
        destination = str(result.base_from_working_directory(self.working_folder))
        if s.apply_label:
            arguments = ["getlabel", s.folder, result.label]
            arguments += ["-labelworkingfolder" if s.use_vault_working_directory else "-destpath", destination]
        else:
            arguments = ["get", s.folder]
            if s.use_vault_working_directory:
                arguments += ["-performdeletions", "removeworkingcopy"]
            else:
                arguments += ["-destpath", destination]
        arguments += ["-merge", "overwrite", "-makewritable", "-setfiletime", s.set_file_time]
        return arguments + self._common_arguments()

    def _common_arguments(self) -> list[str]:
        s = self.settings
        arguments: list[str] = []
        if s.host:
            arguments += ["-host", s.host]
        if s.username:
            arguments += ["-user", s.username]
        if s.password is not None:
            arguments += ["-password", s.password]
        if s.repository:
            arguments += ["-repository", s.repository]
        if s.ssl:
            arguments.append("-ssl")
        return arguments + s.other_arguments.split()

    def _format_date(self, result: IntegrationResult) -> str:
        return ensure_utc(result.start_time).astimezone(self.local_timezone).strftime(COMMAND_DATE_FORMAT)

    def _process_info(self, result: IntegrationResult, arguments: list[str]) -> ProcessInfo:
        working_dir = result.base_from_working_directory(self.working_folder)
        return ProcessInfo(
            self.settings.executable,
            arguments,
            working_directory=working_dir if Path(working_dir).is_dir() else None,
            timeout=self.settings.timeout,
            secrets=[self.settings.password or ""],
        )
