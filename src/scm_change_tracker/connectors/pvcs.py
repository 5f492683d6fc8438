"""PVCS Version Manager コネクタ.

pcli は結果を標準出力ではなく -xo で指定したログファイルに書き出すため、
コマンド実行後にログファイルを読んでパースする。

ラベル付与は「旧ラベル（またはプロモーショングループ）から新ラベルへのコピー」として行う。
旧ラベル時点の履歴（ベースライン）は1サイクルに1回だけ取得してキャッシュし、
今回の変更とマージした差分（新たにラベルが必要なリビジョン）だけにラベルを付ける。
"""

from __future__ import annotations

import tempfile
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from pathlib import Path
from typing import Callable

from loguru import logger

from scm_change_tracker.core.changeset import diff_modifications
from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification
from scm_change_tracker.core.process import DEFAULT_TIMEOUT, ProcessInfo, ProcessRunner
from scm_change_tracker.core.timeutil import UTC, ensure_utc
from scm_change_tracker.core.urlbuilders import ModificationUrlBuilder
from scm_change_tracker.parsers.pvcs_parser import PVCS_HistoryParser

from .base_connector import SourceControl

COMMAND_DATE_FORMAT = "%m/%d/%Y %I:%M %p"
DEFAULT_REVISION = "1.0"


@dataclass(frozen=True)
class PvcsSettings:
    project: str = ""
    subproject: str = ""
    executable: str = "pcli.exe"
    label_executable: str = "vcs.exe"
    username: str = ""
    password: str = ""
    workspace: str = "/@/RootWorkspace"
    working_directory: str = ""
    recursive: bool = True
    label_or_promotion_name: str = ""
    is_promotion_group: bool = False
    label_on_success: bool = False
    auto_get_source: bool = False
    manually_adjust_for_daylight_savings: bool = False
    timeout: float = DEFAULT_TIMEOUT


def _is_daylight_saving_now() -> bool:
    return time.localtime().tm_isdst > 0


class PvcsSourceControl(SourceControl):
    """PVCS コネクタ.

    Args:
        temp_directory: 指示ファイルとログファイル用の作業ディレクトリを作る場所（None ならシステムの一時ディレクトリ）
        is_daylight_saving: 現在が夏時間かどうかを返す関数（PVCS 7.5.1 の夏時間バグ補正用）
    """

    backend = "pvcs"

    def __init__(
        self,
        settings: PvcsSettings,
        runner: ProcessRunner | None = None,
        url_builder: ModificationUrlBuilder | None = None,
        issue_url_builder: ModificationUrlBuilder | None = None,
        local_timezone: tzinfo = UTC,
        temp_directory: Path | None = None,
        is_daylight_saving: Callable[[], bool] = _is_daylight_saving_now,
    ) -> None:
        super().__init__(runner, url_builder, issue_url_builder)
        self.settings = settings
        self.local_timezone = local_timezone
        self.parser = PVCS_HistoryParser(local_timezone)
        self.is_daylight_saving = is_daylight_saving

        # プロジェクトごとに専用のディレクトリを切り、並行ビルドでファイルを共有しない
        work_dir = Path(tempfile.mkdtemp(prefix="pvcs_", dir=temp_directory))
        self.log_file = work_dir / "vlog.log"
        self.error_file = work_dir / "error.log"
        self.instruction_file = work_dir / "instructions.txt"
        self._baseline: list[Modification] | None = None

    # ------------------------------------------------------------------
    # 変更検出
    # ------------------------------------------------------------------
    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        # ベースラインのキャッシュは1サイクル限り
        self._baseline = None
        from_time, to_time = from_result.start_time, to_result.start_time
        if self.settings.manually_adjust_for_daylight_savings:
            from_time = self.adjust_for_daylight_savings(from_time)
            to_time = self.adjust_for_daylight_savings(to_time)

        logger.info(f"Checking for modifications to PVCS project {self.settings.project}")
        arguments = [
            "run",
            f"-xe{self.error_file}",
            f"-xo{self.log_file}",
            "-q",
            "vlog",
            f"-pr{self.settings.project}",
            *self._login(),
            *self._recursive(),
            f"-ds{self.format_command_date(from_time)}",
            f"-de{self.format_command_date(to_time)}",
            *self._subproject(),
        ]
        self._run_pcli(arguments)
        modifications = self.parser.parse(self._read_log(), from_result.start_time, to_result.start_time)
        return self.enrich(modifications)

    def adjust_for_daylight_savings(self, value: datetime) -> datetime:
        if self.is_daylight_saving():
            return value - timedelta(hours=1)
        return value

    def format_command_date(self, value: datetime) -> str:
        return ensure_utc(value).astimezone(self.local_timezone).strftime(COMMAND_DATE_FORMAT)

    # ------------------------------------------------------------------
    # ソース取得
    # ------------------------------------------------------------------
    def materialize_working_copy(self, result: IntegrationResult) -> None:
        if not result.modifications or not self.settings.auto_get_source:
            return

        working_dir = result.base_from_working_directory(self.settings.working_directory)
        modifications = list(result.modifications)
        if self.settings.label_on_success and self.settings.label_or_promotion_name:
            modifications = self.determine_max_revisions(self.settings.label_or_promotion_name, modifications)

        lines = []
        for modification in modifications:
            location = self.determine_file_location(modification.folder_name, working_dir)
            location.mkdir(parents=True, exist_ok=True)
            lines.append(self.individual_get_line(modification, location))
        self.instruction_file.write_text("\n".join(lines) + "\n", encoding="utf-8")

        logger.info(f"Getting {len(lines)} revision(s) from PVCS")
        get_executable = str(Path(self.settings.executable).parent / "get.exe")
        arguments = ["-W", "-Y", f"-xo{self.log_file}", f"-xe{self.error_file}", f"@{self.instruction_file}"]
        self.runner.run(self._process_info(get_executable, arguments))

    def determine_file_location(self, folder_name: str, working_dir: Path) -> Path:
        """アーカイブフォルダを作業ディレクトリ上の場所に対応付ける."""
        folder = folder_name.lower()
        archive = f"{self.settings.project.lower()}/archives"
        if archive in folder:
            relative = folder.split(archive, 1)[1]
        else:
            relative = folder
        return working_dir / relative.strip("/")

    # ------------------------------------------------------------------
    # ラベル
    # ------------------------------------------------------------------
    def label(self, result: IntegrationResult) -> None:
        if not result.modifications or not self.settings.label_on_success or not result.succeeded:
            return

        promotion = self.settings.label_or_promotion_name
        modifications = list(result.modifications)
        if promotion:
            self._apply_label("", promotion, modifications, result.project_name)
        if result.label != promotion:
            self._apply_label(promotion, result.label, modifications, result.project_name)

    def _apply_label(self, old_label: str, new_label: str, modifications: list[Modification], project: str) -> None:
        if old_label:
            logger.info(f"Copying PVCS label {old_label} to {new_label}")
            modifications = self.determine_max_revisions(old_label, modifications)

        lines = [self.individual_label_line(m, new_label if old_label else "") for m in modifications]
        self.instruction_file.write_text("\n".join(lines) + "\n", encoding="utf-8")

        logger.info(f"Applying PVCS label {new_label} on project {project}")
        arguments = [
            "-q",
            f"-xo{self.log_file}",
            f"-xe{self.error_file}",
            *self._login(),
            f"-v{new_label}",
            f"@{self.instruction_file}",
        ]
        self.runner.run(self._process_info(self.settings.label_executable, arguments))

    def determine_max_revisions(self, old_label: str, modifications: list[Modification]) -> list[Modification]:
        """旧ラベル時点の履歴とマージし、新しいラベルが必要なリビジョンだけを返す.

        旧ラベルの vlog は次の detect_changes までキャッシュし、再取得しない。
        """
        if self._baseline is None:
            logger.info(f"Determine revisions based on promotion group/label: {old_label}")
            arguments = [
                "run",
                f"-xe{self.error_file}",
                f"-xo{self.log_file}",
                "-q",
                "vlog",
                f"-pr{self.settings.project}",
                *self._login(),
                *self._recursive(),
                f"-r{old_label}",
                *self._subproject(),
            ]
            self._run_pcli(arguments)
            now = datetime.now(UTC)
            self._baseline = self.parser.parse(self._read_log(), now, now)
        return diff_modifications(self._baseline, modifications)

    # ------------------------------------------------------------------
    # 指示ファイルの各行
    # ------------------------------------------------------------------
    def label_or_promotion_input(self, label: str) -> str:
        if not label:
            return ""
        return ("-g" if self.settings.is_promotion_group else "-v") + label

    def individual_label_line(self, modification: Modification, label: str) -> str:
        version = self.label_or_promotion_input(label) if label else (modification.version or DEFAULT_REVISION)
        return f'{version} "{_archive_path(modification)}"'

    def individual_get_line(self, modification: Modification, location: Path) -> str:
        version = modification.version or DEFAULT_REVISION
        return f'-r{version} "{_archive_path(modification)}"("{location}")'

    def _login(self) -> list[str]:
        if not self.settings.username:
            return []
        if not self.settings.password:
            return [f"-id{self.settings.username}"]
        return [f"-id{self.settings.username}:{self.settings.password}"]

    def _recursive(self) -> list[str]:
        return ["-z"] if self.settings.recursive else []

    def _subproject(self) -> list[str]:
        return [self.settings.subproject] if self.settings.subproject else []

    def _run_pcli(self, arguments: list[str]) -> None:
        # 前回の出力を読み直さないよう、実行前にログファイルを消す
        self.log_file.unlink(missing_ok=True)
        self.runner.run(self._process_info(self.settings.executable, arguments))

    def _read_log(self) -> str:
        return self.log_file.read_text(encoding="utf-8", errors="replace") if self.log_file.exists() else ""

    def _process_info(self, executable: str, arguments: list[str]) -> ProcessInfo:
        return ProcessInfo(
            executable,
            arguments,
            timeout=self.settings.timeout,
            secrets=[self.settings.password],
        )


def _archive_path(modification: Modification) -> str:
    """PVCS はバックスラッシュ区切りのアーカイブパスを要求する."""
    return f"{modification.folder_name}/{modification.file_name}".replace("/", "\\")
