"""
Tests for the validate and explain commands.
"""

import json
import tempfile
from pathlib import Path

from click.testing import CliRunner

from mdb_permissions.cli.main import cli


def _write_policy(content) -> Path:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
        if isinstance(content, str):
            f.write(content)
        else:
            json.dump(content, f)
        return Path(f.name)


class TestValidateCommand:
    """Test the validate command."""

    def test_valid_policy(self, sample_policy):
        runner = CliRunner()
        policy_path = _write_policy(sample_policy)

        try:
            result = runner.invoke(cli, ["validate", str(policy_path)])
            assert result.exit_code == 0
            assert "is valid" in result.output
        finally:
            policy_path.unlink()

    def test_invalid_policy(self, invalid_policy):
        runner = CliRunner()
        policy_path = _write_policy(invalid_policy)

        try:
            result = runner.invoke(cli, ["validate", str(policy_path)])
            assert result.exit_code == 1
            assert "is invalid" in result.output
            assert "Error paths" not in result.output
        finally:
            policy_path.unlink()

    def test_invalid_policy_verbose(self, invalid_policy):
        runner = CliRunner()
        policy_path = _write_policy(invalid_policy)

        try:
            result = runner.invoke(cli, ["validate", str(policy_path), "--verbose"])
            assert result.exit_code == 1
            assert "Error paths" in result.output
            assert "grants.0" in result.output
        finally:
            policy_path.unlink()

    def test_invalid_json(self):
        runner = CliRunner()
        policy_path = _write_policy("{not json")

        try:
            result = runner.invoke(cli, ["validate", str(policy_path)])
            assert result.exit_code == 1
            assert "Invalid JSON in policy file" in result.output
        finally:
            policy_path.unlink()

    def test_missing_file(self):
        result = CliRunner().invoke(cli, ["validate", "/nonexistent/policy.json"])

        assert result.exit_code == 2


class TestExplainCommand:
    """Test the explain command."""

    def test_explain(self, sample_policy):
        runner = CliRunner()
        policy_path = _write_policy(sample_policy)

        try:
            result = runner.invoke(cli, ["explain", str(policy_path)])
            assert result.exit_code == 0
            explained = json.loads(result.output)
            assert len(explained) == 4
            assert explained[3]["criteria"][0]["where"] == {"id": 42}
        finally:
            policy_path.unlink()

    def test_explain_id_field(self, sample_policy):
        runner = CliRunner()
        policy_path = _write_policy(sample_policy)

        try:
            result = runner.invoke(cli, ["explain", str(policy_path), "--id-field", "_id"])
            assert result.exit_code == 0
            assert json.loads(result.output)[3]["criteria"][0]["where"] == {"_id": 42}
        finally:
            policy_path.unlink()

    def test_explain_invalid_policy(self, invalid_policy):
        runner = CliRunner()
        policy_path = _write_policy(invalid_policy)

        try:
            result = runner.invoke(cli, ["explain", str(policy_path)])
            assert result.exit_code == 1
            assert "Invalid policy document" in result.output
        finally:
            policy_path.unlink()

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "mdb-permissions" in result.output
