"""Tests for the top-level app: version flag, help and config loading."""

import dynamic_schema
from dynamic_schema.cli.main import app


def test_version_exits_cleanly(runner):
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"dynamic-schema version: {dynamic_schema.__version__}" in result.output


def test_help_lists_commands(runner):
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("check", "validate", "evaluate", "diff", "migrate"):
        assert command in result.output


def test_config_file_is_used(runner, tmp_path, write_json, broken_schema_file, valid_debt_record):
    """The autouse fixture points the config dir at tmp_path / "config"."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "config.json").write_text('{"strict_integrity": false}')
    records = write_json("records.json", [valid_debt_record])

    result = runner.invoke(app, ["validate", str(broken_schema_file), str(records)])

    assert result.exit_code == 0, result.output
