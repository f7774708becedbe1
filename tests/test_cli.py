from click.testing import CliRunner

from medledger.cli import cli
from medledger.identity.auth import get_auth_manager

from conftest import ORG_A


def test_issue_token_is_verifiable():
    result = CliRunner().invoke(cli, ["issue-token", ORG_A, "--expires-minutes", "5"])
    assert result.exit_code == 0, result.output
    token = next(line for line in result.stdout.splitlines() if line.startswith("eyJ"))
    claims = get_auth_manager().verify_token(token)
    assert claims["sub"] == ORG_A


def test_init_db_and_bootstrap_admin(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("DEV_MODE", "true")
    monkeypatch.delenv("LEDGER_ADMIN_PRINCIPAL", raising=False)
    runner = CliRunner()

    result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0, result.output
    assert "Schema ready" in result.output

    result = runner.invoke(cli, ["bootstrap-admin", ORG_A])
    assert result.exit_code == 0, result.output
    assert "(already)" not in result.output

    result = runner.invoke(cli, ["bootstrap-admin", ORG_A])
    assert "(already)" in result.output
