import asyncio

import click

from .config import LedgerSettings
from .identity.auth import get_auth_manager
from .ledger import Ledger


def _run_with_ledger(fn):
    async def _main():
        ledger = Ledger(LedgerSettings.from_env())
        try:
            await ledger.start()
            return await fn(ledger)
        finally:
            await ledger.stop()

    return asyncio.run(_main())


@click.group()
def cli():
    """Medledger operator CLI"""


@cli.command("init-db")
def init_db():
    """Create the ledger schema in DATABASE_URL."""

    async def _noop(ledger: Ledger):
        return None

    _run_with_ledger(_noop)
    click.echo("✓ Schema ready")


@cli.command("bootstrap-admin")
@click.argument("principal")
def bootstrap_admin(principal: str):
    """Grant the admin role to PRINCIPAL."""

    async def _grant(ledger: Ledger):
        return await ledger.gateway.bootstrap_admin(principal)

    created = _run_with_ledger(_grant)
    click.echo(f"✓ {principal} is admin" + ("" if created else " (already)"))


@cli.command("issue-token")
@click.argument("principal")
@click.option("--expires-minutes", default=15, show_default=True, type=int)
def issue_token(principal: str, expires_minutes: int):
    """Print a bearer token for PRINCIPAL signed with JWT_SECRET."""
    click.echo(get_auth_manager().generate_token(principal, expires_minutes=expires_minutes))


@cli.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8787, show_default=True, type=int)
def serve(host: str, port: int):
    import uvicorn

    uvicorn.run("medledger.main:app", host=host, port=port)


if __name__ == "__main__":
    cli()
