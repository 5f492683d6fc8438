"""パス正規化とフォルダ接頭辞の除去.

パーサはリポジトリ設定を知らないため、リポジトリルート接頭辞の除去は
パース後にポストプロセッサとして行う（パース中には行わない）。
"""

from __future__ import annotations

from collections.abc import Iterable

from .modification import Modification


def to_forward_slashes(path: str) -> str:
    """バックスラッシュ区切りをスラッシュ区切りに揃える."""
    return path.replace("\\", "/")


def split_path(full_path: str) -> tuple[str, str]:
    """パスを (フォルダ, ファイル名) に分割する.

    Examples:
        >>> split_path("/trunk/src/Foo.cs")
        ('/trunk/src', 'Foo.cs')
        >>> split_path("Foo.cs")
        ('', 'Foo.cs')
    """
    normalized = to_forward_slashes(full_path)
    index = normalized.rfind("/")
    if index == -1:
        return "", normalized
    return normalized[:index], normalized[index + 1 :]


def strip_prefix(folder_name: str, prefix: str) -> str:
    """folder_name が prefix で始まる場合だけ取り除く.

    prefix が "/" で終わり、folder_name がその末尾スラッシュ無しと一致する場合は空文字にする。
    """
    if not prefix:
        return folder_name
    if folder_name.startswith(prefix):
        return folder_name[len(prefix) :]
    if prefix.endswith("/") and folder_name == prefix.rstrip("/"):
        return ""
    return folder_name


def strip_folder_root(modifications: Iterable[Modification], prefix: str) -> None:
    """全レコードの folder_name からリポジトリルート接頭辞を取り除く（インプレース）."""
    if not prefix:
        return
    for modification in modifications:
        modification.folder_name = strip_prefix(modification.folder_name, prefix)
