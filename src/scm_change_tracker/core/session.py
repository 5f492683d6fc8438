"""参照カウント付きの共有セッション.

ライセンス/接続指向のクライアント（MKS など）は、同じバックエンド種別に対する
全プロジェクトで1本の接続を共有する。最後の利用者の処理が終わった時点でのみ
切断コマンドを発行する。

レジストリはバックエンド種別ごとに1つ作り、コネクタのコンストラクタに注入する。
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Callable

from loguru import logger


class SharedSessionRegistry:
    """プロセス全体で共有する参照カウンタ.

    Args:
        backend: バックエンド種別名（ログ用）
    """

    def __init__(self, backend: str) -> None:
        self.backend = backend
        self._lock = threading.Lock()
        self._count = 0

    @property
    def usage_count(self) -> int:
        with self._lock:
            return self._count

    def acquire(self) -> None:
        with self._lock:
            self._count += 1

    def release(self, disconnect: Callable[[], None] | None = None) -> None:
        """カウンタを減らし、0 になったら disconnect を呼ぶ.

        disconnect はロックを保持したまま呼ぶので、切断中に他スレッドが
        新しい操作を開始することはない。
        """
        with self._lock:
            if self._count == 0:
                raise RuntimeError(f"{self.backend} session released more times than acquired")
            self._count -= 1
            if self._count == 0 and disconnect is not None:
                logger.info(f"Last {self.backend} session user finished; disconnecting")
                disconnect()

    @contextmanager
    def session(self, disconnect: Callable[[], None] | None = None) -> Iterator[None]:
        """with ブロックの間だけ参照カウントを保持する."""
        self.acquire()
        try:
            yield
        finally:
            self.release(disconnect)


class SessionRegistries:
    """バックエンド種別 → SharedSessionRegistry の対応を保持する.

    設定ローダ（create_source_control）がプロセス生存期間中これを1つ持ち回す。
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._registries: dict[str, SharedSessionRegistry] = {}

    def for_backend(self, backend: str) -> SharedSessionRegistry:
        with self._lock:
            registry = self._registries.get(backend)
            if registry is None:
                registry = SharedSessionRegistry(backend)
                self._registries[backend] = registry
            return registry
