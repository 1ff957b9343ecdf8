"""Tests for crm_adapter.cli module."""

import json

import pytest
from unittest.mock import patch

from crm_adapter import operations
from crm_adapter.cli import main, parse_values, parse_where
from crm_adapter.client import CrmResult


@pytest.fixture(autouse=True)
def config_home(tmp_path, monkeypatch):
    monkeypatch.setenv("CRM_ADAPTER_HOME", str(tmp_path))
    monkeypatch.delenv("CRM_AUTHTOKEN", raising=False)
    return tmp_path


@pytest.fixture
def stub_client(monkeypatch):
    """Replace the CRM client used by find with a canned one."""
    calls = []

    class StubClient:
        @classmethod
        def from_connection(cls, connection):
            return cls()

        async def execute(self, domain, resource, operation, record_id=None):
            calls.append((resource, operation, record_id))
            return CrmResult(data={"CONTACTID": record_id} if record_id else [{"CONTACTID": "1"}])

    monkeypatch.setattr(operations, "CrmClient", StubClient)
    return calls


class TestMain:
    """Tests for main CLI entry point."""

    def test_no_args_shows_help(self, capsys):
        """Running without arguments should show help and exit 0."""
        with patch("sys.argv", ["crm-adapter"]):
            result = main()
        assert result == 0
        captured = capsys.readouterr()
        assert "usage:" in captured.out.lower()

    def test_invalid_command_exits_with_error(self, capsys):
        """Running with invalid command should exit with error."""
        with patch("sys.argv", ["crm-adapter", "invalid-command"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 2
        captured = capsys.readouterr()
        assert "invalid choice" in captured.err


class TestInitCommand:
    def test_writes_template(self, config_home, capsys):
        with patch("sys.argv", ["crm-adapter", "init"]):
            result = main()
        assert result == 0
        assert (config_home / "connection.yaml").exists()

    def test_existing_config_kept(self, config_home, capsys):
        (config_home / "connection.yaml").write_text("domain: crm\n")
        with patch("sys.argv", ["crm-adapter", "init"]):
            result = main()
        assert result == 0
        assert "already exists" in capsys.readouterr().out
        assert (config_home / "connection.yaml").read_text() == "domain: crm\n"


class TestHooksCommand:
    def test_lists_hooks(self, config_home, capsys):
        with patch("sys.argv", ["crm-adapter", "init"]):
            main()
        capsys.readouterr()

        with patch("sys.argv", ["crm-adapter", "hooks"]):
            result = main()
        assert result == 0
        out = capsys.readouterr().out
        assert "before:" in out
        assert "  - resolve_endpoint" in out
        assert "  - unwrap_envelope" in out

    def test_missing_config(self, capsys):
        with patch("sys.argv", ["crm-adapter", "hooks"]):
            result = main()
        assert result == 1
        assert "not found" in capsys.readouterr().err.lower()


class TestOperationCommands:
    def test_find_member_by_id(self, config_home, stub_client, capsys):
        (config_home / "connection.yaml").write_text("base_url: http://crm.test\n")
        with patch("sys.argv", ["crm-adapter", "find", "member", "--where", "CONTACTID=42"]):
            result = main()
        assert result == 0
        assert stub_client == [("Contacts", "getRecordById", "42")]
        assert json.loads(capsys.readouterr().out) == [{"CONTACTID": "42"}]

    def test_update_without_remote_operation(self, config_home, capsys):
        (config_home / "connection.yaml").write_text("base_url: http://crm.test\n")
        with patch("sys.argv", ["crm-adapter", "update", "Leads", "-w", "id=1", "-v", '{"a": 1}']):
            result = main()
        assert result == 1
        assert "ConfigurationError" in capsys.readouterr().err

    def test_bad_where(self, config_home, capsys):
        (config_home / "connection.yaml").write_text("base_url: http://crm.test\n")
        with patch("sys.argv", ["crm-adapter", "find", "member", "--where", "novalue"]):
            result = main()
        assert result == 1
        assert "KEY=VALUE" in capsys.readouterr().err


class TestParsing:
    def test_parse_where(self):
        assert parse_where(["a=1", "b=x=y"]) == {"a": "1", "b": "x=y"}

    def test_parse_values_object(self):
        assert parse_values('{"name": "x"}') == [{"name": "x"}]

    def test_parse_values_list(self):
        assert parse_values('[{"a": 1}, {"a": 2}]') == [{"a": 1}, {"a": 2}]

    def test_parse_values_scalar(self):
        with pytest.raises(ValueError):
            parse_values("3")
