"""
Command-line interface for TPHL License Tokens.
"""

from __future__ import annotations

import json
import os

import click

from tokenlic.common.config import Config
from tokenlic.common.exceptions import LicenseError
from tokenlic.engine.license_validator import hardware_fingerprint
from tokenlic.engine.services import LicenseService


def _service() -> LicenseService:
    return LicenseService(Config())


@click.group()
@click.option(
    "--keys-dir",
    default=None,
    help="Directory holding key files (default: from TOKENLIC_KEYS_DIR env or ./tokenlic/keys)",
)
@click.option(
    "--data-dir",
    default=None,
    help="Directory holding license and revocation records (default: from TOKENLIC_DATA_DIR env or ./tokenlic/data)",
)
def cli(keys_dir: str | None, data_dir: str | None) -> None:
    """TPHL License Tokens CLI"""
    # Config reads these when each command builds its service
    if keys_dir:
        os.environ["TOKENLIC_KEYS_DIR"] = keys_dir
    if data_dir:
        os.environ["TOKENLIC_DATA_DIR"] = data_dir


@cli.command()
def keygen() -> None:
    """Generate the P-521 signing key pair"""
    _service().generate_key_pair()
    click.echo("Keys generated and saved")


@cli.command("delete-keys")
def delete_keys() -> None:
    """Delete the signing key pair"""
    _service().delete_key_pair()
    click.echo("Keys deleted")


@cli.command()
def symkey() -> None:
    """Generate the AES-256 payload encryption key"""
    _service().generate_symmetric()
    click.echo("Symmetric key generated and saved")


@cli.command("delete-symkey")
def delete_symkey() -> None:
    """Delete the AES payload encryption key"""
    _service().delete_symmetric()
    click.echo("Symmetric key deleted")


@cli.command("show-keys")
def show_keys() -> None:
    """Show which key files exist, with the public key"""
    status = _service().key_status()
    for name in ("private", "public", "symmetric"):
        present = "present" if status[f"{name}_exists"] else "missing"
        click.echo(f"{name}: {present}")
    if status["public_key"]:
        click.echo(status["public_key"].rstrip())


@cli.command()
@click.option("--customer-id", required=True, help="Customer the license is issued to")
@click.option("--days", default=None, type=int, help="Validity in days [default: configured validity]")
@click.option("--hw", default=None, help="Hardware fingerprint to bind the license to")
@click.option("--this-machine", is_flag=True, help="Bind to this machine's fingerprint")
@click.option("--metadata", default=None, help="Metadata as a JSON object")
@click.option("--usage-limit", default=None, type=int, help="Advisory usage limit")
@click.option("--license-version", default=None, help="Payload version [default: configured version]")
@click.option("--encrypt", is_flag=True, help="Encrypt the payload with the AES key")
def issue(  # noqa: PLR0913
    customer_id: str,
    days: int | None,
    hw: str | None,
    this_machine: bool,  # noqa: FBT001
    metadata: str | None,
    usage_limit: int | None,
    license_version: str | None,
    encrypt: bool,  # noqa: FBT001
) -> None:
    """Issue a license token"""
    service = _service()
    if this_machine:
        hw = hardware_fingerprint()
    try:
        token = service.generate_license(
            customer_id,
            days,
            hw,
            service.parse_metadata(metadata),
            usage_limit,
            license_version,
            use_symmetric=encrypt,
        )
    except FileNotFoundError as err:
        msg = f"Key file not found: {err.filename}. Run 'tokenlic keygen' first."
        raise click.ClickException(msg) from err
    except LicenseError as err:
        raise click.ClickException(str(err)) from err
    click.echo(token)


@cli.command()
@click.argument("token")
@click.option("--hw", default=None, help="Hardware fingerprint to check against")
@click.option("--this-machine", is_flag=True, help="Check against this machine's fingerprint")
@click.option("--encrypted", is_flag=True, help="Decrypt with the AES key")
@click.pass_context
def verify(
    ctx: click.Context,
    token: str,
    hw: str | None,
    this_machine: bool,  # noqa: FBT001
    encrypted: bool,  # noqa: FBT001
) -> None:
    """Verify a license token"""
    if this_machine:
        hw = hardware_fingerprint()
    verdict = _service().validate(token.strip(), hw, use_symmetric=encrypted)
    click.echo(
        json.dumps(
            {
                "valid": verdict.valid,
                "revoked": verdict.revoked,
                "reason": verdict.reason,
                "license_data": (
                    verdict.payload.model_dump(mode="json") if verdict.payload else None
                ),
            },
            indent=2,
        )
    )
    if not verdict.valid:
        ctx.exit(1)


@cli.command()
@click.argument("uuid")
def revoke(uuid: str) -> None:
    """Revoke a license by uuid"""
    try:
        revoked = _service().revoke(uuid)
    except LicenseError as err:
        raise click.ClickException(str(err)) from err
    if revoked:
        click.echo(f"License {uuid} revoked")
    else:
        click.echo(f"License {uuid} was already revoked")


@cli.command("list")
def list_licenses() -> None:
    """List issued licenses"""
    for record in _service().list_all():
        click.echo(
            f"{record.uuid}  {record.customer_id}  "
            f"expires {record.expiry_date.isoformat()}"
        )


@cli.command()
def fingerprint() -> None:
    """Print this machine's hardware fingerprint"""
    click.echo(hardware_fingerprint())


if __name__ == "__main__":
    cli()
