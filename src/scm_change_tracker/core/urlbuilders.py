"""Web ビューア / 課題管理システムへのリンク付与（ポストプロセッサ）.

各ビルダーは Modification のリストを受け取り、url / issue_url をインプレースで書き換える。
MultiIssueTrackerUrlBuilder は登録順に全サブビルダーを同じリストに適用するため、
後のビルダーが前のビルダーの値を上書きし得る（順序は意味を持つ）。
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence

from .exceptions import ConfigurationError
from .modification import Modification


class ModificationUrlBuilder(ABC):
    """URL ビルダーの基底クラス."""

    @abstractmethod
    def setup_modification(self, modifications: Sequence[Modification]) -> None: ...


class ViewCvsUrlBuilder(ModificationUrlBuilder):
    """ViewCVS 形式: `<url>/<folder>/<file>`."""

    def __init__(self, url: str) -> None:
        self.url = url if url.endswith("/") else url + "/"

    def setup_modification(self, modifications: Sequence[Modification]) -> None:
        for mod in modifications:
            mod.url = self.url + mod.path


class WebSvnUrlBuilder(ModificationUrlBuilder):
    """WebSVN 形式: テンプレートの {0} にパス、{1} に change_number を埋める."""

    def __init__(self, url: str) -> None:
        self.url = url

    def setup_modification(self, modifications: Sequence[Modification]) -> None:
        for mod in modifications:
            # テンプレート中の他の波括弧はそのまま残す
            path = f"{mod.folder_name}/{mod.file_name}"
            mod.url = self.url.replace("{0}", path).replace("{1}", mod.change_number or "")


class HgWebUrlBuilder(ModificationUrlBuilder):
    def __init__(self, url: str) -> None:
        self.url = url

    def setup_modification(self, modifications: Sequence[Modification]) -> None:
        for mod in modifications:
            mod.url = f"{self.url}rev/{mod.version}"


class DefaultIssueTrackerUrlBuilder(ModificationUrlBuilder):
    """コメント中で最初にマッチした課題キーをテンプレートの {0} に埋める.

    Args:
        pattern: 課題キーの正規表現（例: ``PROJ-\\d+``）
        url: テンプレート（例: ``http://jira/browse/{0}``）
    """

    def __init__(self, pattern: str, url: str) -> None:
        if "{0}" not in url:
            raise ConfigurationError(f"Issue tracker url must contain '{{0}}': {url}")
        self.pattern = re.compile(pattern)
        self.url = url

    def setup_modification(self, modifications: Sequence[Modification]) -> None:
        for mod in modifications:
            if not mod.comment:
                continue
            match = self.pattern.search(mod.comment)
            if match:
                mod.issue_url = self.url.replace("{0}", match.group(0))


class RegexIssueTrackerUrlBuilder(ModificationUrlBuilder):
    """コメントに find/replace を適用した結果を issue_url にする.

    find がマッチしない場合は issue_url を変更しない。
    """

    def __init__(self, find: str, replace: str) -> None:
        self.find = re.compile(find)
        self.replace = replace

    def setup_modification(self, modifications: Sequence[Modification]) -> None:
        for mod in modifications:
            if not mod.comment:
                continue
            match = self.find.search(mod.comment)
            if match:
                mod.issue_url = match.expand(self.replace)


class MultiIssueTrackerUrlBuilder(ModificationUrlBuilder):
    """複数のビルダーを登録順に適用する."""

    def __init__(self, issue_trackers: Sequence[ModificationUrlBuilder] | None = None) -> None:
        self.issue_trackers = list(issue_trackers or [])

    def setup_modification(self, modifications: Sequence[Modification]) -> None:
        for builder in self.issue_trackers:
            builder.setup_modification(modifications)
