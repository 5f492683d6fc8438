"""変更検出のコア処理群.

- 正規化済みレコード（Modification）と最終変更番号の算出
- 外部プロセス呼び出しとリトライ
- ラベル付与追跡・共有セッション
- ポストプロセッサ（URL付与、フィルタ、フォルダ接頭辞除去）
"""

from .changeset import diff_modifications, export_modifications_report, modifications_to_frame
from .exceptions import (
    BackendError,
    ConfigurationError,
    HistoryParseError,
    ProcessExecutionError,
    ProcessTimeoutError,
    SourceControlError,
)
from .integration import IntegrationResult, IntegrationStatus
from .modification import Modification, ModificationType, get_last_change_number

__all__ = [
    "Modification",
    "ModificationType",
    "get_last_change_number",
    "IntegrationResult",
    "IntegrationStatus",
    "diff_modifications",
    "modifications_to_frame",
    "export_modifications_report",
    "SourceControlError",
    "ConfigurationError",
    "HistoryParseError",
    "ProcessExecutionError",
    "ProcessTimeoutError",
    "BackendError",
]
