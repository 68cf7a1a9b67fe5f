"""Barangay Portal CLI tool (portalctl)."""

import typer

app = typer.Typer(name="portalctl", help="Barangay Portal CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create all tables that don't exist yet."""
    import portal.models  # noqa: F401  registers the mappers
    from portal.db.base import Base
    from portal.db.session import engine

    Base.metadata.create_all(bind=engine)
    typer.echo(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


@db_app.command("seed")
def db_seed():
    """Seed the bootstrap administrator."""
    from portal.db.session import SessionLocal
    from portal.db.seeds.seed_admin import seed_admin

    db = SessionLocal()
    try:
        admin, created = seed_admin(db)
    finally:
        db.close()
    if created:
        typer.echo(f"Created administrator: {admin.email}")
    else:
        typer.echo(f"Administrator '{admin.email}' already exists, skipping.")


@db_app.command("reset")
def db_reset(yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt")):
    """Drop and recreate every table (DANGER)."""
    if not yes and not typer.confirm("This will DROP every portal table. Continue?"):
        raise typer.Abort()
    import portal.models  # noqa: F401
    from portal.db.base import Base
    from portal.db.session import engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("Database reset")


@app.command("check-permissions")
def check_permissions():
    """Validate the permission matrix against the role hierarchy."""
    from portal.core.exceptions import ConfigurationError
    from portal.core.permissions import default_matrix

    try:
        default_matrix.validate()
    except ConfigurationError as e:
        typer.echo(f"Invalid permission matrix: {e.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Permission matrix OK")


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("portal.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
