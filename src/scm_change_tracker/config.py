"""YAML 設定からコネクタを組み立てる.

設定ファイルの形式::

    source_controls:
      - id: core
        type: cvs
        enabled: true
        settings: {cvsroot: ":pserver:me@host:/cvsroot", module: core}
        url_builder: {type: viewcvs, url: "http://cvs/viewcvs.cgi"}
        issue_trackers:
          - {type: default, pattern: "PROJ-\\\\d+", url: "http://jira/browse/{0}"}
        exclude_users: [buildbot]
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from scm_change_tracker.connectors import (
    AlienbrainSettings,
    AlienbrainSourceControl,
    ClearCaseSettings,
    ClearCaseSourceControl,
    CvsSettings,
    CvsSourceControl,
    FilteredSourceControl,
    FtpSettings,
    FtpSourceControl,
    MksSettings,
    MksSourceControl,
    PvcsSettings,
    PvcsSourceControl,
    SourceControl,
    StarTeamSettings,
    StarTeamSourceControl,
    SvnSettings,
    SvnSourceControl,
    VaultSettings,
    VaultSourceControl,
    VssSettings,
    VssSourceControl,
)
from scm_change_tracker.core.exceptions import ConfigurationError
from scm_change_tracker.core.filters import UserFilter
from scm_change_tracker.core.process import ProcessExecutor, ProcessRunner
from scm_change_tracker.core.session import SessionRegistries
from scm_change_tracker.core.urlbuilders import (
    DefaultIssueTrackerUrlBuilder,
    HgWebUrlBuilder,
    ModificationUrlBuilder,
    MultiIssueTrackerUrlBuilder,
    RegexIssueTrackerUrlBuilder,
    ViewCvsUrlBuilder,
    WebSvnUrlBuilder,
)

# type 名 → (設定クラス, コネクタクラス)
CONNECTOR_TYPES: dict[str, tuple[type, type[SourceControl]]] = {
    "alienbrain": (AlienbrainSettings, AlienbrainSourceControl),
    "clearcase": (ClearCaseSettings, ClearCaseSourceControl),
    "cvs": (CvsSettings, CvsSourceControl),
    "ftp": (FtpSettings, FtpSourceControl),
    "mks": (MksSettings, MksSourceControl),
    "pvcs": (PvcsSettings, PvcsSourceControl),
    "starteam": (StarTeamSettings, StarTeamSourceControl),
    "svn": (SvnSettings, SvnSourceControl),
    "vault": (VaultSettings, VaultSourceControl),
    "vss": (VssSettings, VssSourceControl),
}

URL_BUILDER_TYPES: dict[str, type[ModificationUrlBuilder]] = {
    "viewcvs": ViewCvsUrlBuilder,
    "websvn": WebSvnUrlBuilder,
    "hgweb": HgWebUrlBuilder,
}

ISSUE_TRACKER_TYPES: dict[str, type[ModificationUrlBuilder]] = {
    "default": DefaultIssueTrackerUrlBuilder,
    "regex": RegexIssueTrackerUrlBuilder,
}


def load_source_control_config(config_yml: Path) -> list[dict]:
    """設定ファイルを読み込んで有効なコネクタ定義のリストを返す.

    Args:
        config_yml: YAML ファイルのパス

    Returns:
        enabled が偽でないエントリのリスト
    """
    with open(config_yml, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    entries = config.get("source_controls", [])
    enabled = [e for e in entries if e.get("enabled", True)]

    logger.info(f"Loaded {len(enabled)} enabled source controls from {config_yml}")
    return enabled


def build_settings(settings_cls: type, values: dict[str, Any] | None) -> Any:
    """辞書から設定データクラスを作る（未知のキーは ConfigurationError）."""
    values = dict(values or {})
    known = {f.name for f in dataclasses.fields(settings_cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown settings for {settings_cls.__name__}: {', '.join(unknown)}")
    return settings_cls(**values)


def _build_from_table(kind: str, table: dict[str, type], definition: dict[str, Any]) -> ModificationUrlBuilder:
    options = dict(definition)
    type_name = options.pop("type", None)
    builder_cls = table.get(type_name)
    if builder_cls is None:
        raise ConfigurationError(f"Unknown {kind} type: {type_name!r}")
    try:
        return builder_cls(**options)
    except TypeError as e:
        raise ConfigurationError(f"Invalid {kind} options for {type_name!r}: {e}") from e


def build_url_builder(definition: dict[str, Any] | None) -> ModificationUrlBuilder | None:
    if not definition:
        return None
    return _build_from_table("url_builder", URL_BUILDER_TYPES, definition)


def build_issue_url_builder(definitions: list[dict[str, Any]] | None) -> ModificationUrlBuilder | None:
    if not definitions:
        return None
    trackers = [_build_from_table("issue_tracker", ISSUE_TRACKER_TYPES, d) for d in definitions]
    if len(trackers) == 1:
        return trackers[0]
    return MultiIssueTrackerUrlBuilder(trackers)


def create_source_control(
    entry: dict[str, Any],
    executor: ProcessExecutor | None = None,
    registries: SessionRegistries | None = None,
) -> SourceControl:
    """設定エントリ1件からコネクタを組み立てる.

    Args:
        entry: load_source_control_config() が返す辞書1件
        executor: プロセス実行器（テストではフェイクを渡す）
        registries: 共有セッションのレジストリ（プロセス全体で1つを使い回す）

    Raises:
        ConfigurationError: type や設定キーが不正な場合
    """
    type_name = entry.get("type")
    if type_name not in CONNECTOR_TYPES:
        raise ConfigurationError(f"Unknown source control type: {type_name!r}")
    settings_cls, connector_cls = CONNECTOR_TYPES[type_name]
    settings = build_settings(settings_cls, entry.get("settings"))

    if connector_cls is FtpSourceControl:
        connector: SourceControl = FtpSourceControl(settings)
    else:
        runner = ProcessRunner(executor)
        url_builder = build_url_builder(entry.get("url_builder"))
        issue_url_builder = build_issue_url_builder(entry.get("issue_trackers"))
        if connector_cls is MksSourceControl:
            registries = registries or SessionRegistries()
            connector = MksSourceControl(
                settings, runner, url_builder, issue_url_builder, registry=registries.for_backend("mks")
            )
        else:
            connector = connector_cls(settings, runner, url_builder, issue_url_builder)

    exclude_users = entry.get("exclude_users")
    if exclude_users:
        connector = FilteredSourceControl(connector, exclusion_filters=[UserFilter(exclude_users)])

    logger.debug(f"Created {type_name} source control {entry.get('id', '')!r}")
    return connector
