"""CLI bootstrap for jam3a."""

import typer
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from jam3a.core.logging import configure_logging
from jam3a.core.settings import get_settings
from jam3a.db.session import SessionFactory
from jam3a.domain.authorization import AuthorizationPolicy
from jam3a.repositories.category_repository import CategoryRepository
from jam3a.repositories.deal_repository import DealRepository
from jam3a.services.catalog_seed_service import CatalogSeedService
from jam3a.services.deal_service import DealService

app = typer.Typer(help="Operational commands for the jam3a deals backend.")


@app.callback()
def bootstrap() -> None:
    """Configure logging before any command runs."""
    configure_logging(get_settings().log_level)


@app.command("healthcheck")
def healthcheck() -> None:
    """Verify that the database answers."""
    try:
        with SessionFactory() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        typer.echo(f"database unavailable: {type(exc).__name__}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo("jam3a is ready")


@app.command("expire-deals")
def expire_deals() -> None:
    """Move every active deal past its expiry date to expired."""
    with SessionFactory() as session:
        service = DealService(
            deal_repository=DealRepository(session),
            category_repository=CategoryRepository(session),
            session=session,
            policy=AuthorizationPolicy(),
        )
        expired = service.expire_overdue_deals()
    typer.echo(f"Expired deals: {expired}")


@app.command("seed-catalog")
def seed_catalog() -> None:
    """Insert the sample categories and products when missing."""
    with SessionFactory() as session:
        result = CatalogSeedService(session).seed()
    typer.echo(
        f"Categories created: {result.categories_created} | "
        f"Products created: {result.products_created}"
    )


@app.command("serve-api")
def serve_api(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8000),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("jam3a.api.app:app", host=host, port=port)


@app.command("serve-mcp")
def serve_mcp() -> None:
    """Run the MCP server over stdio against the configured API."""
    from jam3a.mcp.server import create_mcp_server

    create_mcp_server().run()


def main() -> None:
    """Run the jam3a CLI application."""
    app()


if __name__ == "__main__":
    main()
