import click

from vcwallet.commands.credential import credential
from vcwallet.commands.keys import keys
from vcwallet.commands.serve import serve
from vcwallet.config import settings
from vcwallet.logging import configure_logging


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=settings.log_level.upper(),
    show_default=True,
    help="Level of the log lines written to stderr.",
)
def cli(log_level):
    """vcwallet - Issue, store and verify W3C Verifiable Credentials"""
    configure_logging(settings.model_copy(update={"log_level": log_level}))


cli.add_command(keys)
cli.add_command(credential)
cli.add_command(serve)


if __name__ == "__main__":
    cli()
