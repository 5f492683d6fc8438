"""外部プロセス呼び出し.

各コネクタは ProcessRunner を注入され、それ経由でバージョン管理クライアントを起動する。
タイムアウト超過時は subprocess が子プロセスを kill し、ProcessTimeoutError を送出する。
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from .exceptions import ProcessExecutionError, ProcessTimeoutError
from .retry import RetryPolicy

DEFAULT_TIMEOUT = 600.0
MASK = "********"


@dataclass
class ProcessInfo:
    """起動するコマンドの定義.

    Attributes:
        executable: 実行ファイル
        arguments: 引数リスト（シェルを介さず、そのまま渡す）
        working_directory: 作業ディレクトリ（None ならカレント）
        environment: 追加の環境変数（HOME や SSDIR など）
        timeout: 秒単位のハードタイムアウト
        secrets: ログ出力時にマスクする文字列（パスワード等）
        allowed_exit_codes: 成功扱いにする終了コード
    """

    executable: str
    arguments: list[str] = field(default_factory=list)
    working_directory: Path | None = None
    environment: dict[str, str] = field(default_factory=dict)
    timeout: float = DEFAULT_TIMEOUT
    secrets: list[str] = field(default_factory=list)
    allowed_exit_codes: tuple[int, ...] = (0,)

    @property
    def public_arguments(self) -> str:
        """シークレットをマスクした引数文字列."""
        joined = " ".join(self.arguments)
        for secret in self.secrets:
            if secret:
                joined = joined.replace(secret, MASK)
        return joined

    @property
    def command_line(self) -> str:
        return f"{self.executable} {self.public_arguments}".strip()


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    stderr: str = ""
    exit_code: int = 0


class ProcessExecutor:
    """subprocess.run を使ってコマンドを同期実行する."""

    def execute(self, info: ProcessInfo) -> ProcessResult:
        env = None
        if info.environment:
            env = {**os.environ, **info.environment}

        logger.debug(f"Executing: {info.command_line} (cwd={info.working_directory})")
        try:
            completed = subprocess.run(
                [info.executable, *info.arguments],
                cwd=info.working_directory,
                env=env,
                capture_output=True,
                text=True,
                timeout=info.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ProcessTimeoutError(
                info.command_line,
                info.timeout,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr),
            ) from e
        except OSError as e:
            raise ProcessExecutionError(f"Unable to start process: {e}", info.command_line) from e

        if completed.returncode not in info.allowed_exit_codes:
            raise ProcessExecutionError(
                "Process exited with an error",
                info.command_line,
                completed.returncode,
                completed.stdout,
                completed.stderr,
            )
        return ProcessResult(completed.stdout, completed.stderr, completed.returncode)


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class ProcessRunner:
    """コネクタに注入する「プロセス実行 + 任意のリトライ」ヘルパー.

    リトライはネットワーク越しの不安定なサービス向けのオプトインで、
    retry が None の場合 run_with_retries は run と同じ挙動になる。
    """

    def __init__(self, executor: ProcessExecutor | None = None, retry: RetryPolicy | None = None) -> None:
        self.executor = executor or ProcessExecutor()
        self.retry = retry

    def run(self, info: ProcessInfo) -> ProcessResult:
        return self.executor.execute(info)

    def run_with_retries(self, info: ProcessInfo) -> ProcessResult:
        if self.retry is None:
            return self.run(info)
        return self.retry.call(lambda: self.executor.execute(info), description=info.command_line)
