"""TechBlog back office CLI tool (techblogctl)."""

import typer

app = typer.Typer(name="techblogctl", help="TechBlog back office CLI")
db_app = typer.Typer(help="Database management commands")
users_app = typer.Typer(help="User management commands")
token_app = typer.Typer(help="Development session tokens")
app.add_typer(db_app, name="db")
app.add_typer(users_app, name="users")
app.add_typer(token_app, name="token")


@db_app.command("create-tables")
def db_create_tables():
    """Create all tables that do not exist yet."""
    import techblog.models  # noqa: F401
    from techblog.db.base import Base
    from techblog.db.session import engine

    Base.metadata.create_all(bind=engine)
    typer.echo("✅ Tables created (or already exist)")


@db_app.command("seed")
def db_seed():
    """Seed the permission catalog, default roles and the super-admin."""
    from techblog.db.session import SessionLocal
    from techblog.db.seeds.seed_roles import seed_roles
    from techblog.db.seeds.seed_super_admin import seed_super_admin

    db = SessionLocal()
    try:
        seed_roles(db)
        seed_super_admin(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@users_app.command("assign-role")
def assign_role(
    email: str = typer.Argument(..., help="User email"),
    role_slug: str = typer.Argument(..., help="Role slug, e.g. super-admin"),
):
    """Assign a role to an existing user."""
    from techblog.core.exceptions import NotFoundError
    from techblog.db.session import SessionLocal
    from techblog.services.role_service import role_service
    from techblog.services.user_service import user_service

    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if user is None:
            typer.echo(f"❌ User '{email}' not found. They must sign in once first.")
            raise typer.Exit(code=1)
        try:
            role = role_service.get_role_by_slug(db, role_slug)
        except NotFoundError:
            typer.echo(f"❌ Role '{role_slug}' not found")
            raise typer.Exit(code=1)
        user_service.assign_role(db, user.id, role.id)
        typer.echo(f"✅ {email} is now {role.name}")
    finally:
        db.close()


@token_app.command("issue")
def issue_token(
    email: str = typer.Argument(..., help="Identity email"),
    name: str = typer.Option(None, help="Display name"),
):
    """Print a session token for local testing."""
    from techblog.core.security import SessionIdentity, create_session_token

    typer.echo(create_session_token(SessionIdentity(email=email, name=name)))


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(True, help="Auto-reload"),
):
    """Start the FastAPI development server."""
    import uvicorn
    uvicorn.run("techblog.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
