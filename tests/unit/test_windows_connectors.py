"""Unit tests for the ClearCase, VSS and StarTeam connectors."""

from __future__ import annotations

from datetime import datetime

import pytest

from scm_change_tracker.connectors.clearcase import HISTORY_FORMAT, ClearCaseSettings, ClearCaseSourceControl
from scm_change_tracker.connectors.starteam import StarTeamSettings, StarTeamSourceControl
from scm_change_tracker.connectors.vss import VssSettings, VssSourceControl
from scm_change_tracker.core.exceptions import ConfigurationError
from scm_change_tracker.core.integration import IntegrationStatus
from scm_change_tracker.core.process import MASK
from scm_change_tracker.core.timeutil import UTC
from scm_change_tracker.parsers.clearcase_parser import DELIMITER, END_OF_RECORD

FROM = datetime(2020, 1, 1, 9, 30, tzinfo=UTC)
TO = datetime(2020, 1, 5, 15, 0, tzinfo=UTC)


def lshist_record(element: str, operation: str = "checkin") -> str:
    return DELIMITER.join(["alice", "20200102.093000", element, r"\main\3", operation, "!", "!", "msg"]) + END_OF_RECORD


class TestClearCaseSourceControl:
    def test_view_path_is_required(self) -> None:
        with pytest.raises(ConfigurationError):
            ClearCaseSourceControl(ClearCaseSettings())

    def test_format_command_date(self) -> None:
        clearcase = ClearCaseSourceControl(ClearCaseSettings(view_path="/views/main"))
        assert clearcase.format_command_date(FROM) == "01-jan-2020.09:30:00"

    def test_detect_changes(self, make_runner, make_result) -> None:
        output = "\n".join([lshist_record(r"\views\main\src\Foo.cs"), lshist_record(r"\views\main\Top.cs")])
        runner, executor = make_runner([output])
        clearcase = ClearCaseSourceControl(ClearCaseSettings(view_path="/views/main", branch="dev"), runner)

        mods = clearcase.detect_changes(make_result(start_time=FROM), make_result(start_time=TO))

        assert executor.commands == [
            [
                "lshist",
                "-r",
                "-nco",
                "-branch",
                "dev",
                "-since",
                "01-jan-2020.09:30:00",
                "-fmt",
                HISTORY_FORMAT,
                "/views/main",
            ]
        ]
        assert [(m.folder_name, m.file_name) for m in mods] == [("src", "Foo.cs"), ("", "Top.cs")]

    def test_update_snapshot_view(self, make_runner, make_result) -> None:
        runner, executor = make_runner()
        settings = ClearCaseSettings(view_path="/views/main", auto_get_source=True)
        ClearCaseSourceControl(settings, runner).materialize_working_copy(make_result())
        assert executor.commands == [["update", "-force", "-overwrite", "/views/main"]]

    def test_label_on_success(self, make_runner, make_result) -> None:
        runner, executor = make_runner()
        clearcase = ClearCaseSourceControl(ClearCaseSettings(view_path="/views/main"), runner)

        clearcase.label(make_result(status=IntegrationStatus.FAILURE))
        assert executor.calls == []

        clearcase.label(make_result(status=IntegrationStatus.SUCCESS, label="BUILD_7"))
        assert executor.commands == [
            ["mklbtype", "-c", "CRUISECONTROL Comment", "BUILD_7"],
            ["mklabel", "-recurse", "BUILD_7", "/views/main"],
        ]


class TestVssSourceControl:
    SETTINGS = VssSettings(project="$/proj", username="admin", password="pw", ssdir=r"\\server\vss")

    def test_history_arguments(self, make_runner, make_result) -> None:
        runner, executor = make_runner([""])
        vss = VssSourceControl(self.SETTINGS, runner)

        assert vss.detect_changes(make_result(start_time=FROM), make_result(start_time=TO)) == []

        (call,) = executor.calls
        assert call.executable == "ss.exe"
        assert call.arguments == ["history", "$/proj", "-R", "-Vd1/5/2020;3:00p~1/1/2020;9:30a", "-Yadmin,pw", "-I-Y"]
        assert call.environment == {"SSDIR": r"\\server\vss"}
        assert call.command_line.endswith(f"-Yadmin,{MASK} -I-Y")

    def test_get_cleans_working_directory(self, make_runner, make_result) -> None:
        runner, executor = make_runner()
        result = make_result(start_time=TO)
        stale = result.working_directory / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")
        settings = VssSettings(project="$/proj", clean_copy=True)

        VssSourceControl(settings, runner).materialize_working_copy(result)

        assert not stale.exists()
        assert result.working_directory.is_dir()
        assert executor.commands == [
            ["get", "$/proj", "-R", "-Vd1/5/2020;3:00p", "-I-N", "-W", "-GF-", "-GTM", f"-GL{result.working_directory}"]
        ]

    def test_label(self, make_runner, make_result) -> None:
        runner, executor = make_runner()
        vss = VssSourceControl(VssSettings(project="$/proj", apply_label=True), runner)

        vss.label(make_result(status=IntegrationStatus.FAILURE))
        vss.label(make_result(status=IntegrationStatus.SUCCESS, label="1.2"))

        assert executor.commands == [["label", "$/proj", "-L1.2", "-I-Y"]]


class TestStarTeamSourceControl:
    SETTINGS = StarTeamSettings(project="proj", username="u", password="p", host="st", path="src")

    def test_location(self) -> None:
        assert StarTeamSourceControl(self.SETTINGS).location == "u:p@st:49201/proj/src"

    def test_history_arguments(self, make_runner, make_result) -> None:
        runner, executor = make_runner([""])
        StarTeamSourceControl(self.SETTINGS, runner).detect_changes(make_result(start_time=FROM), make_result())

        (call,) = executor.calls
        assert call.arguments == ["hist", "-nologo", "-x", "-is", "-filter", "IO", "-p", "u:p@st:49201/proj/src", "*"]
        assert "u:p@" not in call.command_line

    def test_checkout_with_view_override(self, make_runner, make_result) -> None:
        runner, executor = make_runner()
        settings = StarTeamSettings(project="proj", auto_get_source=True, override_view_working_dir="C:/build")

        StarTeamSourceControl(settings, runner).materialize_working_copy(make_result())

        (arguments,) = executor.commands
        assert arguments[:8] == ["co", "-nologo", "-ts", "-x", "-is", "-q", "-f", "NCO"]
        assert arguments[-3:] == ["-rp", "C:/build", "*"]

    def test_label_is_noop(self, make_runner, make_result) -> None:
        runner, executor = make_runner()
        StarTeamSourceControl(self.SETTINGS, runner).label(make_result(status=IntegrationStatus.SUCCESS))
        assert executor.calls == []
