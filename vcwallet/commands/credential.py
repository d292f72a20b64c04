import json
from datetime import timedelta
from pathlib import Path
from typing import Optional, Tuple

import click
import httpx
from pydantic import ValidationError

from vcwallet.config import settings
from vcwallet.credentials.service import CredentialService
from vcwallet.crypto.encoding import SegmentDecodeError, decode_json_segment
from vcwallet.crypto.jwt import CredentialVerifier
from vcwallet.crypto.keys import KeyManager
from vcwallet.exceptions import InvalidInputError, KeyGenerationError, NotFoundError, StorageError
from vcwallet.models import CreateCredentialRequest, VerificationResult
from vcwallet.storage.store import CredentialStore
from vcwallet.utils import parse_claim_options, utc_now

key_file_option = click.option(
    "--key-file",
    "key_file",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    help="Path to the issuer key JSON file (see 'vcwallet keys create').",
)

data_dir_option = click.option(
    "--data-dir",
    "data_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=settings.data_dir,
    show_default=True,
    help="Directory holding the wallet's credentials file.",
)


def _fail(ctx: click.Context, message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    ctx.exit(1)

def _open_store(data_dir: Path) -> CredentialStore:
    store = CredentialStore(Path(data_dir) / settings.credentials_file_name)
    store.load()
    return store

def _load_key_manager(ctx: click.Context, key_file: Optional[Path]) -> KeyManager:
    if key_file is None:
        _fail(ctx, "--key-file is required.")
    key_manager = KeyManager(key_file=key_file)
    try:
        key_manager.initialize()
    except KeyGenerationError as e:
        _fail(ctx, str(e))
    return key_manager

def _read_token(ctx: click.Context, token: Optional[str], token_file: Optional[Path]) -> str:
    if token and token_file:
        _fail(ctx, "Pass either a TOKEN argument or --token-file, not both.")
    if token_file:
        token = token_file.read_text().strip()
    if not token:
        _fail(ctx, "No token given. Pass a TOKEN argument or --token-file.")
    return token

def _echo_result(result: VerificationResult) -> None:
    if result.valid:
        click.echo(click.style("Credential is VALID", fg="green", bold=True))
    else:
        click.echo(click.style(f"Credential is INVALID: {result.error}", fg="red", bold=True))
    click.echo(json.dumps(result.to_json_dict(), indent=2))


@click.group("credential")
def credential():
    """Issue, verify and manage Verifiable Credentials"""
    pass


@credential.command("issue")
@key_file_option
@click.option("--type", "credential_type", required=True, help="Credential type, e.g. GymMembership.")
@click.option("--claim", "claim_options", multiple=True, help="Subject claim as name=value. Repeatable.")
@click.option(
    "--claims-file",
    "claims_file",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    help="JSON file with a claims object. --claim options override its entries.",
)
@click.option("--holder-name", help="Optional name of the credential holder.")
@click.option("--expires-in-days", type=click.IntRange(min=1), help="Number of days until the credential expires.")
@click.option(
    "--output",
    "-o",
    "output_path",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Write the issued record (credential + JWT) to this JSON file.",
)
@click.option("--save", is_flag=True, help="Also store the credential in the local wallet.")
@data_dir_option
@click.option("--token-only", is_flag=True, help="Print only the signed JWT, useful for capturing in variables.")
@click.pass_context
def issue_credential(
    ctx: click.Context,
    key_file: Optional[Path],
    credential_type: str,
    claim_options: Tuple[str, ...],
    claims_file: Optional[Path],
    holder_name: Optional[str],
    expires_in_days: Optional[int],
    output_path: Optional[Path],
    save: bool,
    data_dir: Path,
    token_only: bool,
):
    """Builds and signs a credential with the issuer key."""
    key_manager = _load_key_manager(ctx, key_file)

    claims = {}
    if claims_file:
        try:
            claims = json.loads(claims_file.read_text())
        except json.JSONDecodeError as e:
            _fail(ctx, f"Invalid JSON in claims file {claims_file}: {e}")
        if not isinstance(claims, dict):
            _fail(ctx, f"Claims file {claims_file} must contain a JSON object.")
    try:
        claims.update(parse_claim_options(claim_options))
    except ValueError as e:
        _fail(ctx, str(e))

    expiration_date = utc_now() + timedelta(days=expires_in_days) if expires_in_days else None
    try:
        create_request = CreateCredentialRequest(
            type=credential_type,
            claims=claims,
            holderName=holder_name,
            expirationDate=expiration_date,
        )
    except ValidationError as e:
        _fail(ctx, f"Invalid credential request: {e}")

    store = _open_store(data_dir) if save else CredentialStore(Path(data_dir) / settings.credentials_file_name)
    service = CredentialService(key_manager, store, enforce_expiration=settings.enforce_expiration)
    try:
        record = service.create(create_request) if save else service.issue(create_request)
    except (InvalidInputError, StorageError) as e:
        _fail(ctx, str(e))

    if output_path:
        output_path.write_text(json.dumps(record.to_json_dict(), indent=2))

    if token_only:
        click.echo(record.jwt)
        return

    click.echo(click.style(f"Issued {record.credential.type[-1]} {record.credential.id}", fg="green"))
    click.echo(f"Issuer: {record.credential.issuer}")
    if save:
        click.echo(click.style(f"Stored in wallet as record {record.id}", fg="green"))
    if output_path:
        click.echo(click.style(f"Credential record saved to {output_path}", fg="green"))
    click.echo("\nSigned JWT:")
    click.echo(click.style(record.jwt, fg="cyan"))


@credential.command("verify")
@click.argument("token", required=False)
@click.option(
    "--token-file",
    "token_file",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    help="Read the JWT from this file.",
)
@key_file_option
@click.option(
    "--server",
    "server_url",
    help="Verify against a running wallet server instead of a local key, e.g. http://localhost:3000.",
)
@click.pass_context
def verify_credential(
    ctx: click.Context,
    token: Optional[str],
    token_file: Optional[Path],
    key_file: Optional[Path],
    server_url: Optional[str],
):
    """Verifies a signed credential JWT. Exits with status 1 when it is invalid."""
    token = _read_token(ctx, token, token_file)
    if key_file and server_url:
        _fail(ctx, "--key-file and --server are mutually exclusive.")

    if server_url:
        api_endpoint = f"{server_url.rstrip('/')}{settings.api_prefix}/credentials/verify"
        try:
            response = httpx.post(api_endpoint, json={"jwt": token})
            response.raise_for_status()
            result = VerificationResult.model_validate(response.json())
        except httpx.RequestError as e:
            _fail(ctx, f"HTTP request error while verifying credential at {api_endpoint}: {e}")
        except httpx.HTTPStatusError as e:
            _fail(ctx, f"Server rejected the verification request: {e.response.status_code} - {e.response.text}")
        except (json.JSONDecodeError, ValidationError) as e:
            _fail(ctx, f"Unexpected response from {api_endpoint}: {e}")
    else:
        key_manager = _load_key_manager(ctx, key_file)
        result = CredentialVerifier(key_manager, enforce_expiration=settings.enforce_expiration).verify(token)

    _echo_result(result)
    if not result.valid:
        ctx.exit(1)


@credential.command("decode")
@click.argument("token")
@click.pass_context
def decode_credential(ctx: click.Context, token: str):
    """Prints the header and payload of a JWT WITHOUT verifying it."""
    segments = token.strip().split(".")
    if len(segments) != 3:
        _fail(ctx, f"Expected 3 dot-separated segments, got {len(segments)}.")
    try:
        header = decode_json_segment(segments[0])
        payload = decode_json_segment(segments[1])
    except SegmentDecodeError as e:
        _fail(ctx, f"Could not decode token: {e}")

    click.echo(click.style("Warning: the signature has NOT been checked.", fg="yellow"))
    click.echo(json.dumps({"header": header, "payload": payload}, indent=2, ensure_ascii=False))


@credential.command("list")
@data_dir_option
def list_credentials(data_dir: Path):
    """Lists the credentials stored in the local wallet, newest first."""
    records = _open_store(data_dir).find_all()
    if not records:
        click.echo("No credentials stored.")
        return
    for record in records:
        credential_doc = record.credential
        click.echo(f"{click.style(record.id, fg='cyan')}  {credential_doc.type[-1]:<30} {record.createdAt}")


@credential.command("show")
@click.argument("record_id")
@data_dir_option
@click.pass_context
def show_credential(ctx: click.Context, record_id: str, data_dir: Path):
    """Prints a stored credential record as JSON."""
    record = _open_store(data_dir).find_by_id(record_id)
    if record is None:
        _fail(ctx, f"Credential with ID {record_id} not found")
    click.echo(json.dumps(record.to_json_dict(), indent=2, ensure_ascii=False))


@credential.command("delete")
@click.argument("record_id")
@data_dir_option
@click.confirmation_option(prompt="Delete this credential from the wallet?")
@click.pass_context
def delete_credential(ctx: click.Context, record_id: str, data_dir: Path):
    """Deletes a stored credential record."""
    service = CredentialService(KeyManager(), _open_store(data_dir))
    try:
        response = service.delete(record_id)
    except (NotFoundError, StorageError) as e:
        _fail(ctx, str(e))
    click.echo(click.style(response["message"], fg="green"))
