import click
import uvicorn

from vcwallet.config import settings


@click.command("serve")
@click.option("--host", default=settings.host, show_default=True,
              help="Host to bind the server to.")
@click.option("--port", default=settings.port, show_default=True,
              help="Port to bind the server to.")
@click.option("--reload/--no-reload", default=settings.reload, show_default=True,
              help="Enable auto-reload (for development).")
def serve(host, port, reload):
    """Starts the credential wallet API server."""
    click.echo(f"Starting server on http://{host}:{port}")
    click.echo(f"API docs at http://{host}:{port}{settings.api_prefix}/docs")
    if settings.issuer_key_file is None:
        click.echo(click.style(
            "No issuer key file configured: a new issuer DID is generated on every start "
            "and previously issued credentials will no longer verify.", fg="yellow"))

    uvicorn.run(
        "vcwallet.server:app",
        host=host,
        port=port,
        reload=reload,
        log_config=None,
        use_colors=False,
    )
