"""Typer CLI for Vault Sentry."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="vault", help="Vault Sentry: sector access control and incident response")
console = Console()


async def _with_session(fn):
    from vault_sentry.deps import get_db

    db = get_db()
    await db.init()
    await db.create_all()
    try:
        async with db.get_session() as session:
            return await fn(session)
    finally:
        await db.close()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(5000, help="Bind port"),
):
    """Start the Vault Sentry API server."""
    import uvicorn
    from vault_sentry.app import create_app

    console.print(f"[bold green]Starting Vault Sentry on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command("init-db")
def init_db():
    """Create all tables and the firewall settings row."""
    from vault_sentry.deps import get_sector_registry

    async def run(session):
        return await get_sector_registry().get_settings(session)

    row = asyncio.run(_with_session(run))
    console.print(f"[bold green]Database ready[/bold green] (settings v{row.version})")


@app.command("create-admin")
def create_admin(
    username: str = typer.Argument(..., help="Admin username"),
    full_name: str = typer.Option("Administrator", help="Display name"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True,
        help="Admin credential",
    ),
):
    """Create an admin account. Admins cannot self-register."""
    from vault_sentry.common.exceptions import VaultError
    from vault_sentry.deps import get_identity_service

    async def run(session):
        return await get_identity_service().create_admin(session, full_name, username, password)

    try:
        user = asyncio.run(_with_session(run))
    except VaultError as e:
        console.print(f"[bold red]{e.code}[/bold red]: {e.message}")
        raise typer.Exit(1)
    console.print(f"[bold green]Admin created[/bold green]: {user.username} ({user.id})")


@app.command("seed-sectors")
def seed_sectors():
    """Create the stock sectors that do not exist yet."""
    from vault_sentry.deps import get_sector_registry

    async def run(session):
        return [(s.name, s.security_level) for s in await get_sector_registry().seed_defaults(session)]

    created = asyncio.run(_with_session(run))
    if not created:
        console.print("All default sectors already exist")
        return
    for name, level in created:
        console.print(f"  [green]+[/green] {name} ({level})")


@app.command("verify-audit")
def verify_audit():
    """Walk the audit hash chain and report the first broken entry."""
    from vault_sentry.deps import get_audit_service

    async def run(session):
        return await get_audit_service().verify_chain(session)

    result = asyncio.run(_with_session(run))
    table = Table(title="Audit chain")
    table.add_column("Valid")
    table.add_column("Entries checked", justify="right")
    table.add_column("Break at", justify="right")
    table.add_row(
        str(result["valid"]), str(result["entries_checked"]), str(result["break_at"] or "-"),
    )
    console.print(table)
    if not result["valid"]:
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:5000", help="Server URL"),
):
    """Check Vault Sentry server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green]: v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
