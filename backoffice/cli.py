"""StudyBridge back-office CLI tool (backofficectl)."""

import asyncio

import typer
from sqlalchemy.engine import make_url

app = typer.Typer(name="backofficectl", help="StudyBridge back-office CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


def _mysql_server_connection():
    """Connect to the MySQL server named in DATABASE_URL; returns (conn, db_name)."""
    import pymysql
    from backoffice.core.config import settings

    url = make_url(settings.DATABASE_URL)
    if not url.drivername.startswith("mysql"):
        return None, url.database
    conn = pymysql.connect(
        host=url.host or "localhost",
        port=url.port or 3306,
        user=url.username,
        password=url.password or "",
    )
    return conn, url.database


async def _create_tables() -> None:
    from backoffice.db.base import Base
    from backoffice.db.session import engine
    import backoffice.models  # noqa: F401  registers every table on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()


async def _seed() -> None:
    from backoffice.db.session import SessionLocal, engine
    from backoffice.db.seeds.seed_menus import seed_menus, seed_permissions
    from backoffice.db.seeds.seed_roles import seed_roles
    from backoffice.db.seeds.seed_super_admin import seed_super_admin

    async with SessionLocal() as db:
        menus = await seed_menus(db)
        await seed_permissions(db, menus)
        await seed_roles(db)
        await seed_super_admin(db)
        await db.commit()
    await engine.dispose()


@db_app.command("create")
def db_create():
    """Create the MySQL database if it doesn't exist, then its tables."""
    conn, db_name = _mysql_server_connection()
    if conn is not None:
        try:
            cursor = conn.cursor()
            cursor.execute(f"CREATE DATABASE IF NOT EXISTS `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
            conn.commit()
            typer.echo(f"✅ Database '{db_name}' created (or already exists)")
        finally:
            conn.close()

    asyncio.run(_create_tables())
    typer.echo("✅ Tables created")


@db_app.command("seed")
def db_seed():
    """Seed menus, permissions, roles, and the super-admin."""
    asyncio.run(_seed())
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset():
    """Drop and recreate the database (DANGER)."""
    confirm = typer.confirm("⚠️  This will DROP the entire database. Continue?")
    if not confirm:
        raise typer.Abort()

    conn, db_name = _mysql_server_connection()
    if conn is None:
        typer.echo("❌ reset is only supported for MySQL databases")
        raise typer.Exit(code=1)
    try:
        cursor = conn.cursor()
        cursor.execute(f"DROP DATABASE IF EXISTS `{db_name}`")
        cursor.execute(f"CREATE DATABASE `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
        typer.echo(f"✅ Database '{db_name}' reset")
    finally:
        conn.close()

    asyncio.run(_create_tables())
    typer.echo("✅ Tables created")


@app.command("menus")
def show_menus(
    token: str = typer.Option(..., envvar="BACKOFFICE_TOKEN", help="Bearer token"),
    base_url: str = typer.Option("http://localhost:8000", help="API base URL"),
):
    """Print the navigation tree visible to the token's user."""
    import httpx
    resp = httpx.get(
        f"{base_url}/api/menus/me",
        headers={"Authorization": f"Bearer {token}"},
    )
    body = resp.json()
    if resp.status_code != 200:
        typer.echo(f"❌ {resp.status_code}: {body.get('message') or body.get('detail')}")
        raise typer.Exit(code=1)

    def show(nodes, depth=0):
        for node in nodes:
            typer.echo(f"{'  ' * depth}- {node['display_name']} ({node['name']}) {node['permissions']}")
            show(node["children"], depth + 1)

    show(body["data"])


@app.command("check")
def check_permission(
    key: str = typer.Argument(..., help="Permission key, e.g. users.view"),
    token: str = typer.Option(..., envvar="BACKOFFICE_TOKEN", help="Bearer token"),
    base_url: str = typer.Option("http://localhost:8000", help="API base URL"),
):
    """Check whether the token's user holds a permission."""
    import httpx
    resp = httpx.get(
        f"{base_url}/api/permissions/check",
        params={"key": key},
        headers={"Authorization": f"Bearer {token}"},
    )
    typer.echo(resp.json())


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("backoffice.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
