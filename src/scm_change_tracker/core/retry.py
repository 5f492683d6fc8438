"""外部プロセス呼び出しのリトライ.

attempts 回まで試行し、失敗のたびに delay 秒待つ。最後の失敗は元の例外をそのまま送出する。
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from loguru import logger
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from .exceptions import ConfigurationError, ProcessExecutionError

T = TypeVar("T")


class RetryPolicy:
    """固定間隔のリトライポリシー（tenacity.Retrying の薄いラッパ）.

    Args:
        attempts: 総試行回数（1以上）
        delay: 失敗後に待つ秒数
        retry_on: リトライ対象の例外型
        sleep: 待機関数（テスト用に差し替え可能）
    """

    def __init__(
        self,
        attempts: int,
        delay: float,
        retry_on: tuple[type[BaseException], ...] = (ProcessExecutionError,),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if attempts < 1:
            raise ConfigurationError(f"Retry attempts must be at least 1, got {attempts}")
        if delay < 0:
            raise ConfigurationError(f"Retry delay must not be negative, got {delay}")
        self.attempts = attempts
        self.delay = delay
        self.retry_on = retry_on
        self._sleep = sleep

    def call(self, fn: Callable[[], T], description: str = "operation") -> T:
        def log_retry(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            logger.warning(f"Attempt {state.attempt_number} of {self.attempts} failed for {description}: {error}")
            logger.debug(f"Sleeping {self.delay} seconds")

        retrying = Retrying(
            stop=stop_after_attempt(self.attempts),
            wait=wait_fixed(self.delay),
            retry=retry_if_exception_type(self.retry_on),
            sleep=self._sleep,
            before_sleep=log_retry,
            reraise=True,
        )
        return retrying(fn)
