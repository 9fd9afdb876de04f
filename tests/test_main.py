"""Tests for the command line: argument handling and the three modes."""

import json

import pytest

import timething.main as cli
from timething.api_client import FetchResult
from timething.errors import ConfigurationError, FetchError


class FakeClient:
    def __init__(self, **results):
        self.results = results
        self.calls = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        pass

    def _answer(self, name, *args):
        self.calls.append((name,) + args)
        return self.results[name]


class FakeForecast(FakeClient):
    def whoami(self):
        return self._answer("whoami")

    def projects(self):
        return self._answer("projects")

    def assignments(self, person_id, start, end):
        return self._answer("assignments", person_id, start, end)


class FakeHarvest(FakeClient):
    def me(self):
        return self._answer("me")

    def project_assignments(self):
        return self._answer("project_assignments")

    def time_entries(self, user_id, start, end):
        return self._answer("time_entries", user_id, start, end)


@pytest.fixture
def forecast(forecast_projects):
    return FakeForecast(
        whoami=FetchResult(data={"id": 77}),
        projects=FetchResult(data=forecast_projects),
        assignments=FetchResult(
            data=[
                {
                    "id": 1,
                    "project_id": 42,
                    "start_date": "2024-05-13",
                    "end_date": "2024-05-17",
                    "allocation": 14400,
                }
            ]
        ),
    )


@pytest.fixture
def harvest(project_assignments, time_entries):
    return FakeHarvest(
        me=FetchResult(data={"id": 88}),
        project_assignments=FetchResult(data=project_assignments),
        time_entries=FetchResult(data=time_entries),
    )


@pytest.fixture
def wired(monkeypatch, settings, forecast, harvest):
    monkeypatch.setattr(cli, "setup_logging", lambda level="INFO": None)
    monkeypatch.setattr(cli, "load_settings", lambda: settings)
    monkeypatch.setattr(cli.ForecastClient, "from_settings", classmethod(lambda cls, s: forecast))
    monkeypatch.setattr(cli.HarvestClient, "from_settings", classmethod(lambda cls, s: harvest))
    return settings


class TestSplitArgs:
    @pytest.mark.parametrize(
        "args, expected",
        [
            ([], ("summary", None, None)),
            (["summary"], ("summary", None, None)),
            (["2024-05-01", "2024-05-31"], ("summary", "2024-05-01", "2024-05-31")),
            (["summary", "2024-05-01", "2024-05-31"], ("summary", "2024-05-01", "2024-05-31")),
            (["summary", "x", "2024-05-01", "2024-05-31"], ("summary", "2024-05-01", "2024-05-31")),
            (["update-projects"], ("update-projects", None, None)),
            (["config", "2024-05-01", "2024-05-31"], ("config", None, None)),
        ],
    )
    def test_modes_and_dates(self, args, expected):
        assert cli.split_args(cli.build_parser(), args) == expected

    @pytest.mark.parametrize("args", [["bogus"], ["summary", "yesterday", "today"]])
    def test_rejects_bad_input(self, args):
        with pytest.raises(SystemExit) as exc:
            cli.split_args(cli.build_parser(), args)
        assert exc.value.code == 2


class TestSummary:
    def test_report_for_explicit_window(self, wired, forecast, harvest, capsys):
        assert cli.main(["summary", "2024-05-13", "2024-05-17"]) == 0

        out = capsys.readouterr().out
        assert "WEB / Website (500)" in out
        assert "Logged: 10.5 hours" in out
        assert "Allocated Daily: 4 hours" in out
        assert "Utilization: 52.5%" in out
        assert "Remaining Hours: 9.5 hours" in out
        assert "Total Hours Logged: 10.5 hours" in out
        # Mobile has logged time but no allocation
        assert "Mobile" not in out

        assert ("assignments", 77, "2024-05-13", "2024-05-17") in forecast.calls
        assert ("time_entries", 88, "2024-05-13", "2024-05-17") in harvest.calls
        # project list got cached on first use
        assert json.loads(wired.cache_file.read_text())["projects"][0]["id"] == 42

    def test_default_window(self, wired, forecast, monkeypatch):
        monkeypatch.setattr(
            cli, "resolve_period", lambda start, end: cli.WeekBounds("2024-05-13", "2024-05-26")
        )

        assert cli.main([]) == 0
        assert ("assignments", 77, "2024-05-13", "2024-05-26") in forecast.calls

    def test_identity_failure_asks_for_config(self, wired, harvest, capsys):
        harvest.results["me"] = FetchResult.failure(FetchError(FetchError.HTTP, "401", status=401))

        assert cli.main([]) == 1
        assert cli.CONFIG_HINT in capsys.readouterr().out

    def test_missing_settings_ask_for_config(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "setup_logging", lambda level="INFO": None)

        def boom():
            raise ConfigurationError("Missing required configuration values: HARVEST_ACCESS_TOKEN")

        monkeypatch.setattr(cli, "load_settings", boom)

        assert cli.main([]) == 1
        assert cli.CONFIG_HINT in capsys.readouterr().out

    def test_failed_stage_degrades_report(self, wired, harvest, capsys):
        harvest.results["time_entries"] = FetchResult.failure(
            FetchError(FetchError.TRANSPORT, "timed out")
        )

        assert cli.main(["2024-05-13", "2024-05-17"]) == 0

        out = capsys.readouterr().out
        assert "Logged: 0 hours" in out
        assert "Utilization: 0%" in out

    def test_truncation_is_reported(self, wired, harvest, time_entries, capsys):
        harvest.results["time_entries"] = FetchResult(data=time_entries, truncated=True)

        cli.main(["2024-05-13", "2024-05-17"])

        assert "page limit" in capsys.readouterr().out


class TestOtherModes:
    def test_update_projects(self, wired, forecast, forecast_projects, capsys):
        wired.cache_file.write_text(json.dumps({"projects": []}))

        assert cli.main(["update-projects"]) == 0

        assert "Forecast projects list updated." in capsys.readouterr().out
        assert json.loads(wired.cache_file.read_text()) == {"projects": forecast_projects}

    def test_update_projects_failure(self, wired, forecast, capsys):
        forecast.results["projects"] = FetchResult.failure(FetchError(FetchError.HTTP, "503", status=503))

        assert cli.main(["update-projects"]) == 1
        assert "updated" not in capsys.readouterr().out

    def test_config(self, monkeypatch, tmp_path):
        monkeypatch.setattr(cli, "setup_logging", lambda level="INFO": None)
        monkeypatch.setenv("TIMETHING_HOME", str(tmp_path))
        answers = iter(["111", "222", "tok"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))

        assert cli.main(["config"]) == 0
        assert (tmp_path / "config").read_text() == (
            "HARVEST_ACCESS_TOKEN=tok\nHARVEST_ACCOUNT_ID=111\nFORECAST_ACCOUNT_ID=222\n"
        )
