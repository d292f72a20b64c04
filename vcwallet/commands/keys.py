import json
from pathlib import Path
from typing import Optional

import click

from vcwallet.crypto.keys import KeyManager
from vcwallet.exceptions import KeyGenerationError


@click.group("keys")
def keys():
    """Create and inspect the issuer signing key"""
    pass


@keys.command("create")
@click.option(
    "-o",
    "--output",
    "output_file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Output file for the issuer key (JSON). Point VCW_ISSUER_KEY_FILE at it to keep the issuer DID across restarts.",
)
@click.option("--force", is_flag=True, help="Overwrite an existing key file.")
@click.pass_context
def create_key(ctx: click.Context, output_file: Optional[Path], force: bool):
    """Generates a new Ed25519 issuer key and its did:key identifier."""
    if output_file and output_file.exists() and not force:
        click.echo(click.style(f"Error: {output_file} already exists. Use --force to overwrite it.", fg="red"), err=True)
        ctx.exit(1)

    key_manager = KeyManager()
    key_manager.initialize()
    click.echo(click.style(f"Generated issuer DID: {key_manager.issuer_did()}", fg="cyan"))

    if output_file:
        try:
            key_manager.save_key_file(output_file)
        except KeyGenerationError as e:
            click.echo(click.style(f"Error: {e}", fg="red"), err=True)
            ctx.exit(1)
        click.echo(click.style(f"Issuer key saved in JSON format to {output_file}", fg="green"))
        click.echo(click.style("Keep this file secret: it contains the private key.", fg="yellow"))
    else:
        click.echo(json.dumps(key_manager.to_key_file_data(), indent=2))


@keys.command("show")
@click.option(
    "--key-file",
    "key_file",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    required=True,
    help="Path to the issuer key JSON file.",
)
@click.pass_context
def show_key(ctx: click.Context, key_file: Path):
    """Prints the issuer DID and public JWK of a key file."""
    key_manager = KeyManager(key_file=key_file)
    try:
        key_manager.initialize()
    except KeyGenerationError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        ctx.exit(1)

    click.echo(click.style(f"Issuer DID: {key_manager.issuer_did()}", fg="cyan"))
    click.echo(json.dumps({"did": key_manager.issuer_did(), "publicKeyJwk": key_manager.public_jwk()}, indent=2))
