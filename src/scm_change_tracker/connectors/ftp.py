"""FTP サイトを「バージョン管理」として扱うコネクタ.

リモートの一覧（MLSD）とローカルフォルダを比較して変更を検出する:
    - ローカルに無いファイル → added
    - リモートの更新時刻がローカルより新しいファイル → modified

取得ではフォルダ単位でダウンロードする。ラベルは無い。
"""

from __future__ import annotations

import ftplib
import posixpath
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from loguru import logger

from scm_change_tracker.core.exceptions import BackendError
from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.timeutil import UTC

from .base_connector import SourceControl

MLSD_TIME_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class FtpSettings:
    server_name: str = ""
    user_name: str = ""
    password: str = ""
    use_active_connection_mode: bool = True
    ftp_folder_name: str = ""
    local_folder_name: str = ""
    recursive_copy: bool = True


@dataclass(frozen=True)
class RemoteFile:
    path: str
    modified_time: datetime


def parse_mlsd_time(value: str) -> datetime:
    # 小数秒（"20200102030405.123"）は切り捨てる
    return datetime.strptime(value.split(".", 1)[0], MLSD_TIME_FORMAT).replace(tzinfo=UTC)


class FtpSourceControl(SourceControl):
    """FTP コネクタ.

    Args:
        ftp_factory: ftplib.FTP 互換オブジェクトを作る関数（テストではフェイクを渡す）
    """

    backend = "ftp"

    def __init__(self, settings: FtpSettings, ftp_factory: Callable[[], ftplib.FTP] = ftplib.FTP) -> None:
        super().__init__()
        self.settings = settings
        self.ftp_factory = ftp_factory

    def detect_changes(self, from_result: IntegrationResult, to_result: IntegrationResult) -> list[Modification]:
        local_root = to_result.base_from_working_directory(self.settings.local_folder_name)
        logger.info(f"Checking for new or updated files on ftp://{self.settings.server_name}")
        with self._session("listing") as ftp:
            remote_root = self._remote_root(ftp)
            modifications = []
            for remote in self.list_remote_files(ftp, remote_root):
                modification = self._compare(remote, remote_root, local_root)
                if modification is not None:
                    modifications.append(modification)
        logger.info(f"Found {len(modifications)} new or updated file(s) on the FTP site")
        return modifications

    def materialize_working_copy(self, result: IntegrationResult) -> None:
        local_root = result.base_from_working_directory(self.settings.local_folder_name)
        with self._session("download") as ftp:
            remote_root = self._remote_root(ftp)
            for remote in self.list_remote_files(ftp, remote_root):
                target = local_root / posixpath.relpath(remote.path, remote_root)
                target.parent.mkdir(parents=True, exist_ok=True)
                logger.debug(f"Downloading {remote.path} to {target}")
                with open(target, "wb") as f:
                    ftp.retrbinary(f"RETR {remote.path}", f.write)

    def label(self, result: IntegrationResult) -> None:
        pass

    def list_remote_files(self, ftp: ftplib.FTP, folder: str) -> Iterator[RemoteFile]:
        """MLSD でファイルを列挙する（recursive_copy ならサブフォルダも）."""
        for name, facts in ftp.mlsd(folder, facts=["type", "modify"]):
            kind = facts.get("type", "")
            path = posixpath.join(folder, name)
            if kind == "file":
                yield RemoteFile(path, parse_mlsd_time(facts["modify"]))
            elif kind == "dir" and self.settings.recursive_copy:
                yield from self.list_remote_files(ftp, path)

    def _compare(self, remote: RemoteFile, remote_root: str, local_root: Path) -> Modification | None:
        relative = posixpath.relpath(remote.path, remote_root)
        folder, file_name = posixpath.split(relative)
        local = local_root / relative
        if not local.exists():
            change = ModificationType.ADDED
        elif remote.modified_time > datetime.fromtimestamp(local.stat().st_mtime, UTC):
            change = ModificationType.MODIFIED
        else:
            return None
        return Modification(
            type=change,
            file_name=file_name,
            folder_name=folder,
            modified_time=remote.modified_time,
        )

    def _remote_root(self, ftp: ftplib.FTP) -> str:
        folder = self.settings.ftp_folder_name
        if folder.startswith("/"):
            return folder
        return posixpath.join(ftp.pwd(), folder)

    def _connect(self) -> ftplib.FTP:
        ftp = self.ftp_factory()
        try:
            ftp.connect(self.settings.server_name)
            ftp.login(self.settings.user_name, self.settings.password)
        except ftplib.all_errors as e:
            ftp.close()
            raise BackendError(self.backend, f"Unable to log in to {self.settings.server_name}: {e}") from e
        ftp.set_pasv(not self.settings.use_active_connection_mode)
        return ftp

    @contextmanager
    def _session(self, action: str) -> Iterator[ftplib.FTP]:
        """ログイン後の FTP 操作の失敗も BackendError として送出する."""
        with self._connect() as ftp:
            try:
                yield ftp
            except ftplib.all_errors as e:
                raise BackendError(self.backend, f"FTP {action} failed on {self.settings.server_name}: {e}") from e
