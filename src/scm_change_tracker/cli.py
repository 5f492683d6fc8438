"""コマンドラインエントリポイント.

サブコマンド:
    parse   保存済みの履歴ログをバックエンドのパーサにかけて一覧表示する
    detect  YAML 設定のコネクタ1件で変更検出を実行する
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta
from pathlib import Path

from loguru import logger

from scm_change_tracker.config import create_source_control, load_source_control_config
from scm_change_tracker.core.changeset import export_modifications_report, modifications_to_frame
from scm_change_tracker.core.exceptions import ConfigurationError, SourceControlError
from scm_change_tracker.core.integration import IntegrationResult
from scm_change_tracker.core.modification import Modification, get_last_change_number
from scm_change_tracker.core.timeutil import MIN_TIME, UTC, ensure_utc
from scm_change_tracker.parsers import PARSERS


def _parse_time(value: str) -> datetime:
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid ISO 8601 datetime: {value}") from e


def _report(modifications: list[Modification], output_dir: Path | None, name: str) -> None:
    print(modifications_to_frame(modifications))
    logger.info(f"{len(modifications)} modification(s), last change number: {get_last_change_number(modifications)}")
    if output_dir is not None:
        out_path = export_modifications_report(modifications, output_dir, name)
        if out_path is not None:
            logger.info(f"Report written: {out_path}")


def run_parse(args: argparse.Namespace) -> None:
    parser = PARSERS[args.backend]()
    history = args.log.read_text(encoding="utf-8", errors="replace")
    modifications = parser.parse(history, args.from_time, args.to_time)
    _report(modifications, args.output_dir, f"{args.backend}_modifications")


def run_detect(args: argparse.Namespace) -> None:
    entries = load_source_control_config(args.config)
    entry = next((e for e in entries if e.get("id") == args.id), None)
    if entry is None:
        raise ConfigurationError(f"No enabled source control with id {args.id!r} in {args.config}")

    source_control = create_source_control(entry)
    now = datetime.now(UTC)
    from_result = IntegrationResult(args.id, args.since or now - timedelta(days=1))
    to_result = IntegrationResult(args.id, now)
    modifications = source_control.detect_changes(from_result, to_result)
    _report(modifications, args.output_dir, f"{args.id}_modifications")


def main(argv: list[str] | None = None) -> None:
    """CLI エントリポイント."""
    parser = argparse.ArgumentParser(description="Detect and normalize source control changes")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_parse = subparsers.add_parser("parse", help="Parse a saved history log")
    p_parse.add_argument("--backend", choices=sorted(PARSERS), required=True, help="History format")
    p_parse.add_argument("--log", type=Path, required=True, help="Path to the saved history output")
    p_parse.add_argument("--from", dest="from_time", type=_parse_time, default=MIN_TIME, help="Window start (ISO 8601)")
    p_parse.add_argument(
        "--to", dest="to_time", type=_parse_time, default=datetime.now(UTC), help="Window end (ISO 8601)"
    )
    p_parse.add_argument("--output-dir", type=Path, default=None, help="Write a CSV report to this directory")
    p_parse.set_defaults(handler=run_parse)

    p_detect = subparsers.add_parser("detect", help="Run change detection for one configured source control")
    p_detect.add_argument("--config", type=Path, required=True, help="Path to the source control YAML")
    p_detect.add_argument("--id", required=True, help="Source control id in the YAML")
    p_detect.add_argument("--since", type=_parse_time, default=None, help="Window start (default: 24h ago)")
    p_detect.add_argument("--output-dir", type=Path, default=None, help="Write a CSV report to this directory")
    p_detect.set_defaults(handler=run_detect)

    args = parser.parse_args(argv)
    try:
        args.handler(args)
    except SourceControlError as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
