"""共通フィクスチャ.

実際のバージョン管理クライアントは起動しない。コネクタには FakeExecutor を注入し、
渡された ProcessInfo を記録して、あらかじめ用意した出力（または例外）を順に返す。
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from scm_change_tracker.core.integration import IntegrationResult, IntegrationStatus
from scm_change_tracker.core.process import ProcessExecutor, ProcessInfo, ProcessResult, ProcessRunner
from scm_change_tracker.core.timeutil import UTC


class FakeExecutor(ProcessExecutor):
    """記録用のフェイク実行器.

    Args:
        outputs: 呼び出し順に返す値。str は標準出力、ProcessResult はそのまま、例外は送出する。
            使い切った後は空の標準出力を返す。
        on_execute: 呼び出しごとに ProcessInfo を受け取るフック（ログファイルを書く等）
    """

    def __init__(
        self,
        outputs: list[str | ProcessResult | Exception] | None = None,
        on_execute: Callable[[ProcessInfo], None] | None = None,
    ) -> None:
        self.outputs = list(outputs or [])
        self.on_execute = on_execute
        self.calls: list[ProcessInfo] = []

    def execute(self, info: ProcessInfo) -> ProcessResult:
        self.calls.append(info)
        if self.on_execute is not None:
            self.on_execute(info)
        output = self.outputs.pop(0) if self.outputs else ""
        if isinstance(output, Exception):
            raise output
        if isinstance(output, ProcessResult):
            return output
        return ProcessResult(output)

    @property
    def commands(self) -> list[list[str]]:
        """呼び出された引数リスト（先頭がサブコマンド）."""
        return [call.arguments for call in self.calls]


@pytest.fixture
def fake_executor() -> Callable[..., FakeExecutor]:
    """FakeExecutor のファクトリ."""
    return FakeExecutor


@pytest.fixture
def make_runner() -> Callable[..., tuple[ProcessRunner, FakeExecutor]]:
    def _make(outputs=None, on_execute=None, retry=None) -> tuple[ProcessRunner, FakeExecutor]:
        executor = FakeExecutor(outputs, on_execute)
        return ProcessRunner(executor, retry), executor

    return _make


@pytest.fixture
def make_result(tmp_path: Path) -> Callable[..., IntegrationResult]:
    """tmp_path 配下に作業/成果物ディレクトリを持つ IntegrationResult のファクトリ."""

    def _make(
        start_time: datetime = datetime(2020, 1, 5, tzinfo=UTC),
        status: IntegrationStatus = IntegrationStatus.UNKNOWN,
        label: str = "1.0.0",
        modifications=None,
    ) -> IntegrationResult:
        return IntegrationResult(
            project_name="sample",
            start_time=start_time,
            status=status,
            label=label,
            working_directory=tmp_path / "work",
            artifact_directory=tmp_path / "artifacts",
            modifications=list(modifications or []),
        )

    return _make
