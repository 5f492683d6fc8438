"""スケジューラ側の統合結果モデル（最小限の具象形）.

本来はスケジューラが所有する外部モデル。コネクタが必要とする読み取り項目と
パス解決ヘルパーだけを持つ。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from .modification import Modification


class IntegrationStatus(str, Enum):
    UNKNOWN = "unknown"
    SUCCESS = "success"
    FAILURE = "failure"
    EXCEPTION = "exception"


@dataclass
class IntegrationResult:
    project_name: str
    start_time: datetime
    status: IntegrationStatus = IntegrationStatus.UNKNOWN
    label: str = ""
    working_directory: Path = field(default_factory=Path.cwd)
    artifact_directory: Path = field(default_factory=Path.cwd)
    modifications: list[Modification] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == IntegrationStatus.SUCCESS

    def base_from_working_directory(self, path: str | Path | None) -> Path:
        """相対パスを作業ディレクトリ基準で解決する（空なら作業ディレクトリそのもの）."""
        if not path:
            return Path(self.working_directory)
        return Path(self.working_directory) / path

    def base_from_artifacts_directory(self, path: str | Path | None) -> Path:
        if not path:
            return Path(self.artifact_directory)
        return Path(self.artifact_directory) / path
