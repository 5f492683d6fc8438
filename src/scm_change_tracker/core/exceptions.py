"""Source control change tracker exceptions.

カスタム例外クラスを定義します。

分類:
    - ConfigurationError: 必須設定の欠落など（致命的、リトライしない）
    - HistoryParseError: ログ全体の構造が解釈できない / レコードが壊れている
    - ProcessExecutionError: 外部プロセスの起動失敗・非ゼロ終了（リトライ対象になり得る）
    - ProcessTimeoutError: タイムアウトで子プロセスを kill した
    - BackendError: バックエンド固有のドメインエラー
"""

from __future__ import annotations


class SourceControlError(Exception):
    """このパッケージが送出する例外の基底クラス."""


class ConfigurationError(SourceControlError):
    """必須設定が欠けている、または設定値が不正."""


class HistoryParseError(SourceControlError):
    """履歴ログのパースに失敗した.

    Attributes:
        backend: バックエンド名（"cvs", "svn" など）
        raw: 解釈できなかった生テキスト（診断用）
    """

    def __init__(self, message: str, raw: str, backend: str | None = None) -> None:
        self.backend = backend
        self.raw = raw
        prefix = f"[{backend}] " if backend else ""
        super().__init__(f"{prefix}{message}: {raw}")


class ProcessExecutionError(SourceControlError):
    """外部プロセスの実行に失敗した.

    Attributes:
        command: 公開用コマンドライン（パスワード等はマスク済み）
        exit_code: 終了コード（起動できなかった場合は None）
        stdout: 標準出力
        stderr: 標準エラー出力
    """

    def __init__(
        self,
        message: str,
        command: str,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        detail = f" (exit_code={exit_code})" if exit_code is not None else ""
        tail = f": {stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"{message}{detail}: {command}{tail}")


class ProcessTimeoutError(ProcessExecutionError):
    """タイムアウトにより子プロセスを終了させた."""

    def __init__(self, command: str, timeout: float, stdout: str = "", stderr: str = "") -> None:
        self.timeout = timeout
        super().__init__(f"Process timed out after {timeout}s", command, None, stdout, stderr)


class BackendError(SourceControlError):
    """バックエンド固有の概念に起因するエラー（例: Vault の作業フォルダ未設定）."""

    def __init__(self, backend: str, message: str) -> None:
        self.backend = backend
        super().__init__(f"[{backend}] {message}")
