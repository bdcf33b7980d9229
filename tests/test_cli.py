"""Tests for CLI."""

import textwrap

import pytest
import yaml

from testrunner.cli.main import cli

REGISTRY_MODULE = textwrap.dedent('''
    from testrunner import Action, Plan, Registry, anonymous_actor

    def _boom(actor, ctx):
        raise RuntimeError("boom")

    registry = Registry()
    registry.register_actor("user", anonymous_actor)
    registry.register_action(Action("echo", operation=lambda actor, ctx: actor.name))
    registry.register_action(Action("boom", operation=_boom))
    registry.register_plan(Plan(name="ok", actors={"alice": "user"}, actions=[["alice", "echo"]]))
    registry.register_plan(Plan(name="bad", actors={"alice": "user"}, actions=[["alice", "boom"]]))

    def build():
        return registry
''')


@pytest.fixture
def scenarios(tmp_path, monkeypatch):
    module = tmp_path / "cli_scenarios.py"
    module.write_text(REGISTRY_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return "cli_scenarios:registry"


class TestCLI:
    def test_version(self, capsys):
        assert cli(["version"]) == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_no_args(self):
        assert cli([]) == 1

    def test_plans(self, capsys, scenarios):
        assert cli(["plans", "--registry", scenarios]) == 0
        output = capsys.readouterr().out
        assert '"ok"' in output
        assert '"bad"' in output

    def test_registry_factory(self, capsys, scenarios):
        assert cli(["plans", "--registry", "cli_scenarios:build"]) == 0

    def test_run_success(self, capsys, scenarios):
        assert cli(["run", "--registry", scenarios, "--plans", "ok", "--seed", "3", "--iterations", "2"]) == 0
        report = yaml.safe_load(capsys.readouterr().out)
        assert report["success"] is True
        assert report["seed"] == 3
        assert report["results"] == ["alice", "alice"]

    def test_run_failure_exit_code(self, capsys, scenarios):
        assert cli(["run", "--registry", scenarios, "--plans", "ok", "bad"]) == 1
        report = yaml.safe_load(capsys.readouterr().out)
        assert report["error_index"] == 1

    def test_continue_on_failure_still_fails_exit(self, capsys, scenarios):
        code = cli(["run", "--registry", scenarios, "--plans", "bad", "ok", "--continue-on-failure"])
        assert code == 1
        report = yaml.safe_load(capsys.readouterr().out)
        assert report["success"] is True
        assert report["results"] == ["FAILED", "alice"]

    def test_run_with_alerter_and_output(self, tmp_path, scenarios):
        out = tmp_path / "report.yaml"
        assert cli(["run", "--registry", scenarios, "--plans", "ok", "--alerter", "log",
                    "--alert-level", "info", "--output", str(out)]) == 0
        assert yaml.safe_load(out.read_text())["all_passed"] is True

    def test_webhook_alerter_quiet_on_passing_run(self, capsys, scenarios, monkeypatch):
        monkeypatch.delenv("TESTRUNNER_WEBHOOK_URL", raising=False)
        assert cli(["run", "--registry", scenarios, "--plans", "ok", "--alerter", "webhook"]) == 0
        assert yaml.safe_load(capsys.readouterr().out)["all_passed"] is True

    def test_malformed_plan_file(self, tmp_path, capsys, scenarios):
        plans = tmp_path / "plans.yaml"
        plans.write_text("plans:\n  - name: broken\n    mode: sideways\n")
        assert cli(["run", "--registry", scenarios, "--plan-file", str(plans), "--plans", "broken"]) == 2
        assert "error:" in capsys.readouterr().err

    def test_plan_file(self, tmp_path, capsys, scenarios):
        plans = tmp_path / "plans.yaml"
        plans.write_text("plans:\n  - name: twice\n    actors: {bob: user}\n    actions: [[bob, echo], [bob, echo]]\n")
        assert cli(["run", "--registry", scenarios, "--plan-file", str(plans), "--plans", "twice"]) == 0
        assert yaml.safe_load(capsys.readouterr().out)["results"] == ["bob", "bob"]

    def test_bad_registry_path(self, capsys):
        assert cli(["plans", "--registry", "no_such_module:registry"]) == 2
        assert "error:" in capsys.readouterr().err

    def test_unknown_alerter(self, capsys, scenarios):
        assert cli(["run", "--registry", scenarios, "--plans", "ok", "--alerter", "pager"]) == 2

    def test_invalid_options(self, capsys, scenarios):
        assert cli(["run", "--registry", scenarios, "--plans", "ok", "--sleep", "-1"]) == 2
