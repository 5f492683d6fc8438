"""Modification フィルタ.

自動化アカウント（ビルドボット等）による変更でビルドが起動しないよう、
除外フィルタとして使うのが主な用途。
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from .modification import Modification, ModificationType


class ModificationFilter(ABC):
    @abstractmethod
    def accept(self, modification: Modification) -> bool: ...


class UserFilter(ModificationFilter):
    """ユーザー名の完全一致（大文字小文字を区別）."""

    def __init__(self, user_names: Iterable[str]) -> None:
        self.user_names = list(user_names)

    def accept(self, modification: Modification) -> bool:
        return modification.user_name in self.user_names

    def __repr__(self) -> str:
        return f"UserFilter({self.user_names!r})"


class ActionFilter(ModificationFilter):
    """変更種別で判定する."""

    def __init__(self, actions: Iterable[ModificationType | str]) -> None:
        self.actions = {ModificationType(a) for a in actions}

    def accept(self, modification: Modification) -> bool:
        return modification.type in self.actions


class CommentFilter(ModificationFilter):
    """コメントが正規表現にマッチするかで判定する."""

    def __init__(self, pattern: str) -> None:
        self.pattern = re.compile(pattern)

    def accept(self, modification: Modification) -> bool:
        return bool(modification.comment) and self.pattern.search(modification.comment) is not None


def apply_filters(
    modifications: Iterable[Modification],
    inclusion_filters: Sequence[ModificationFilter] = (),
    exclusion_filters: Sequence[ModificationFilter] = (),
) -> list[Modification]:
    """包含フィルタ（どれか1つに合致）→ 除外フィルタ（どれにも合致しない）の順に適用する.

    包含フィルタが空の場合は全件を包含扱いにする。
    """
    accepted: list[Modification] = []
    for mod in modifications:
        if inclusion_filters and not any(f.accept(mod) for f in inclusion_filters):
            continue
        if any(f.accept(mod) for f in exclusion_filters):
            continue
        accepted.append(mod)
    return accepted
