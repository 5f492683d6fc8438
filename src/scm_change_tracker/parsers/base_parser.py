"""履歴パーサ（基底クラス）.

各バージョン管理クライアントの独自ログ（テキスト/XML）を、共通の Modification リストに
変換するための抽象基底クラスを定義します。

パーサは純粋関数として振る舞う:
    - 同じ入力テキストと期間からは常に同じ結果を返す
    - 1回の parse() 呼び出しを超えて可変状態を持ち越さない
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from scm_change_tracker.core.exceptions import HistoryParseError
from scm_change_tracker.core.modification import Modification


class BaseHistoryParser(ABC):
    """履歴パーサの基底クラス.

    全てのパーサはこのクラスを継承し、parse() を実装します。
    """

    backend: str = "unknown"

    @abstractmethod
    def parse(self, history: str, from_time: datetime, to_time: datetime) -> list[Modification]:
        """ログテキストを Modification のリストに変換する.

        Args:
            history: クライアントの生出力
            from_time: 期間の開始（前回ビルドの開始時刻）
            to_time: 期間の終了（今回ビルドの開始時刻）

        Returns:
            出現順の Modification リスト

        Raises:
            HistoryParseError: ログ全体の構造が解釈できない、または壊れたレコードがある場合
        """
        ...

    def error(self, message: str, raw: str) -> HistoryParseError:
        return HistoryParseError(message, raw, backend=self.backend)
