"""Unit tests for URL / issue tracker builders and filters."""

from __future__ import annotations

import pytest

from scm_change_tracker.core.exceptions import ConfigurationError
from scm_change_tracker.core.filters import ActionFilter, CommentFilter, UserFilter, apply_filters
from scm_change_tracker.core.modification import Modification, ModificationType
from scm_change_tracker.core.urlbuilders import (
    DefaultIssueTrackerUrlBuilder,
    HgWebUrlBuilder,
    ModificationUrlBuilder,
    MultiIssueTrackerUrlBuilder,
    RegexIssueTrackerUrlBuilder,
    ViewCvsUrlBuilder,
    WebSvnUrlBuilder,
)


class _FixedUrl(ModificationUrlBuilder):
    def __init__(self, url: str) -> None:
        self.url = url

    def setup_modification(self, modifications) -> None:
        for mod in modifications:
            mod.url = self.url


class TestUrlBuilders:
    def test_viewcvs(self) -> None:
        mods = [Modification(file_name="Foo.cs", folder_name="src")]
        ViewCvsUrlBuilder("http://cvs/viewcvs.cgi").setup_modification(mods)
        assert mods[0].url == "http://cvs/viewcvs.cgi/src/Foo.cs"

    def test_websvn(self) -> None:
        mods = [Modification(file_name="a.py", folder_name="/trunk", change_number="42")]
        WebSvnUrlBuilder("http://websvn/diff.php?path={0}&rev={1}").setup_modification(mods)
        assert mods[0].url == "http://websvn/diff.php?path=/trunk/a.py&rev=42"

    def test_websvn_keeps_other_braces(self) -> None:
        mods = [Modification(file_name="a.py", folder_name="/trunk", change_number="42")]
        WebSvnUrlBuilder("http://websvn/{repo}/log.php?path={0}&rev={1}&q={}").setup_modification(mods)
        assert mods[0].url == "http://websvn/{repo}/log.php?path=/trunk/a.py&rev=42&q={}"

    def test_hgweb(self) -> None:
        mods = [Modification(version="abc123")]
        HgWebUrlBuilder("http://hg/repo/").setup_modification(mods)
        assert mods[0].url == "http://hg/repo/rev/abc123"

    def test_default_issue_tracker_uses_first_match(self) -> None:
        mods = [Modification(comment="PROJ-12 and PROJ-34"), Modification(comment="no issue"), Modification()]
        DefaultIssueTrackerUrlBuilder(r"PROJ-\d+", "http://jira/browse/{0}").setup_modification(mods)
        assert mods[0].issue_url == "http://jira/browse/PROJ-12"
        assert mods[1].issue_url is None
        assert mods[2].issue_url is None

    def test_default_issue_tracker_keeps_other_braces(self) -> None:
        mods = [Modification(comment="PROJ-5 done")]
        DefaultIssueTrackerUrlBuilder(r"PROJ-\d+", "http://jira/browse/{0}?view={mode}").setup_modification(mods)
        assert mods[0].issue_url == "http://jira/browse/PROJ-5?view={mode}"

    def test_default_issue_tracker_requires_placeholder(self) -> None:
        with pytest.raises(ConfigurationError):
            DefaultIssueTrackerUrlBuilder(r"\d+", "http://jira/browse/")

    def test_regex_issue_tracker(self) -> None:
        mods = [Modification(comment="fixes #77 in parser")]
        RegexIssueTrackerUrlBuilder(r"#(\d+)", r"http://tracker/issue/\1").setup_modification(mods)
        assert mods[0].issue_url == "http://tracker/issue/77"

    def test_composite_runs_in_order_and_later_wins(self) -> None:
        mods = [Modification(file_name="a"), Modification(file_name="b")]
        MultiIssueTrackerUrlBuilder([_FixedUrl("http://A"), _FixedUrl("http://B")]).setup_modification(mods)
        assert [m.url for m in mods] == ["http://B", "http://B"]

        MultiIssueTrackerUrlBuilder([_FixedUrl("http://B"), _FixedUrl("http://A")]).setup_modification(mods)
        assert [m.url for m in mods] == ["http://A", "http://A"]

    def test_composite_combines_issue_trackers(self) -> None:
        mods = [Modification(comment="PROJ-1"), Modification(comment="bug 9")]
        MultiIssueTrackerUrlBuilder(
            [
                DefaultIssueTrackerUrlBuilder(r"PROJ-\d+", "http://jira/{0}"),
                RegexIssueTrackerUrlBuilder(r"bug (\d+)", r"http://bugzilla/\1"),
            ]
        ).setup_modification(mods)
        assert mods[0].issue_url == "http://jira/PROJ-1"
        assert mods[1].issue_url == "http://bugzilla/9"


class TestFilters:
    def setup_method(self) -> None:
        self.mods = [
            Modification(user_name="alice", type=ModificationType.ADDED, comment="feature"),
            Modification(user_name="buildbot", type=ModificationType.MODIFIED, comment="[ci] bump version"),
            Modification(user_name="Alice", type=ModificationType.DELETED),
        ]

    def test_user_filter_is_exact(self) -> None:
        f = UserFilter(["alice"])
        assert [f.accept(m) for m in self.mods] == [True, False, False]

    def test_exclusion_drops_automation_accounts(self) -> None:
        accepted = apply_filters(self.mods, exclusion_filters=[UserFilter(["buildbot"])])
        assert [m.user_name for m in accepted] == ["alice", "Alice"]

    def test_inclusion_requires_any_match(self) -> None:
        accepted = apply_filters(self.mods, inclusion_filters=[ActionFilter(["added"]), ActionFilter(["deleted"])])
        assert [m.type for m in accepted] == [ModificationType.ADDED, ModificationType.DELETED]

    def test_comment_filter(self) -> None:
        accepted = apply_filters(self.mods, exclusion_filters=[CommentFilter(r"^\[ci\]")])
        assert len(accepted) == 2
