"""Integration tests for CLI commands using Click's CliRunner."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from shellsense.cli.main import cli

SPECS = [
    {
        "name": "jest",
        "args": {"name": "regex", "isOptional": True, "isVariadic": True},
        "options": [
            {"name": ["--bail", "-b"], "description": "Exit after the first failing test"},
            {"name": "--config", "args": {"name": "path", "template": "filepaths"}},
        ],
    },
    {"name": "node", "args": {"name": "script", "template": "filepaths"}},
]


@pytest.fixture
def specs_path(tmp_path, monkeypatch):
    """Write the test specs and point the config at an empty directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    monkeypatch.setenv("SHELLSENSE_CONFIG_DIR", str(config_dir))
    path = tmp_path / "specs.json"
    path.write_text(json.dumps(SPECS))
    return str(path)


@pytest.fixture
def invoke(specs_path):
    runner = CliRunner()

    def _invoke(*args: str, json_mode: bool = True):
        prefix = ["--json"] if json_mode else []
        return runner.invoke(cli, [*prefix, "--specs", specs_path, *args], catch_exceptions=False)

    return _invoke


def _data(result):
    envelope = json.loads(result.output)
    assert envelope["status"] == "success"
    return envelope["data"]


class TestRootCLI:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"], catch_exceptions=False)
        assert result.exit_code == 0
        assert "ShellSense" in result.output
        assert "complete" in result.output
        assert "lint" in result.output
        assert "rename-paths" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"], catch_exceptions=False)
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestComplete:
    def test_json(self, invoke):
        data = _data(invoke("complete", "jest --b"))
        assert [item["label"] for item in data["items"]] == ["--bail, -b"]
        assert data["items"][0]["insert_text"] == "--bail "
        assert data["is_incomplete"] is False

    def test_cursor(self, invoke):
        data = _data(invoke("complete", "je --bail", "--cursor", "2"))
        assert [item["label"] for item in data["items"]] == ["jest"]

    def test_human(self, invoke):
        result = invoke("complete", "jest --b", json_mode=False)
        assert result.exit_code == 0
        assert "--bail" in result.output

    def test_broken_spec_file(self, tmp_path, specs_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{nope")
        result = CliRunner().invoke(cli, ["--json", "--specs", str(broken), "complete", "jest"])
        assert result.exit_code == 1
        assert json.loads(result.output)["status"] == "error"


class TestLint:
    def test_command_json(self, invoke):
        data = _data(invoke("lint", "-c", "jest --bali"))
        (diagnostic,) = data["<command-line>"]
        assert diagnostic["message"] == "Unknown option --bali Did you mean --bail?"
        assert diagnostic["range"] == {"start": [0, 5], "end": [0, 11]}

    def test_problems_exit_non_zero(self, invoke):
        result = invoke("lint", "-c", "jest --bali", json_mode=False)
        assert result.exit_code == 1
        assert "Unknown option" in result.output

    def test_clean_command(self, invoke):
        result = invoke("lint", "-c", "jest --bail", json_mode=False)
        assert result.exit_code == 0
        assert "No problems" in result.output

    def test_files(self, invoke, tmp_path):
        script = tmp_path / "test.sh"
        script.write_text("# run the tests\njest -b --bail\n")
        data = _data(invoke("lint", str(script)))
        (diagnostic,) = data[str(script)]
        assert diagnostic["code"] == "option_reuse"
        assert diagnostic["range"]["start"] == [1, 8]


class TestInspect:
    def test_hover(self, invoke):
        data = _data(invoke("hover", "jest --bail"))
        assert data["contents"] == "(option) Exit after the first failing test"

    def test_signature(self, invoke):
        assert _data(invoke("signature", "jest --config "))["label"] == "path"

    def test_signature_none(self, invoke):
        assert _data(invoke("signature", "jest --bail")) is None

    def test_highlight(self, invoke):
        data = _data(invoke("highlight", "-c", "jest --config a.json"))
        assert [(t["text"], t["tag"]) for t in data] == [
            ("jest", "command"),
            ("--config", "option"),
            ("a.json", "option-arg"),
        ]

    def test_tokens(self, invoke):
        data = _data(invoke("tokens", "yarn && pnpm test > out.txt"))
        assert [segment["operator"] for segment in data] == ["", "&&", ">"]
        assert [t["contents"] for t in data[1]["tokens"]] == ["pnpm", "test"]
        assert data[2]["ignored"] is True


class TestRenamePaths:
    def test_updates_files(self, invoke, tmp_path):
        (tmp_path / "start.mjs").write_text("")
        script = tmp_path / "run.sh"
        script.write_text("node start.mjs\n")
        data = _data(invoke("rename-paths", str(tmp_path / "start.mjs"), str(tmp_path / "app.mjs"), str(script)))
        assert [edit["new_text"] for edit in data] == ["app.mjs"]
        assert script.read_text() == "node app.mjs\n"

    def test_dry_run(self, invoke, tmp_path):
        script = tmp_path / "run.sh"
        script.write_text("node start.mjs\n")
        args = ["rename-paths", "--dry-run", str(tmp_path / "start.mjs"), str(tmp_path / "app.mjs"), str(script)]
        data = _data(invoke(*args))
        assert data[0]["range"] == {"start": [0, 5], "end": [0, 14]}
        assert script.read_text() == "node start.mjs\n"


class TestConfigCLI:
    def test_set_and_show(self, invoke):
        assert _data(invoke("config", "set", "completion.filter_strategy", "fuzzy")) == {
            "completion.filter_strategy": "fuzzy"
        }
        data = _data(invoke("config", "show"))
        assert data["completion"]["filter_strategy"] == "fuzzy"

    def test_set_invalid(self, invoke):
        result = invoke("config", "set", "completion.nope", "x")
        assert result.exit_code == 1
        assert json.loads(result.output)["error"]["message"] == "Unknown setting: completion.nope"
