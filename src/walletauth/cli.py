from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from pydantic import ValidationError as PydanticValidationError

from walletauth.authorization import generate_authorization_signature
from walletauth.config import get_settings
from walletauth.der import der_to_p1363, p1363_to_der
from walletauth.keys import KeyEncoding, generate_keypair
from walletauth.payload import build_rpc_payload
from walletauth.service_errors import ServiceError
from walletauth.signing import SignatureFormat, get_backend

app = typer.Typer(help="walletauth: wallet authorization keys and signatures")


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Host interface to bind"),
    port: int | None = typer.Option(None, help="Port to bind"),
    reload: bool | None = typer.Option(None, help="Enable auto-reload (development only)"),
    log_level: str | None = typer.Option(None, help="Log level for the server"),
) -> None:
    settings = get_settings()
    uvicorn.run(
        "walletauth.api:create_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload if reload is not None else settings.reload,
        log_level=log_level or settings.log_level,
        factory=True,
    )


@app.command()
def keygen(
    encoding: Optional[KeyEncoding] = typer.Option(
        None, help="Private key encoding (defaults to WALLETAUTH_KEY_ENCODING)"
    ),
) -> None:
    """Generate a P-256 authorization key pair. The private key is printed once; store it."""
    key = generate_keypair(encoding or get_settings().key_encoding)
    typer.echo(key.private_key_pem)
    typer.echo(key.public_key_pem)
    typer.echo(key.private_key_token)


def _read_key(key: str | None, key_file: Path | None) -> str:
    if key_file is not None:
        return key_file.read_text()
    if key:
        return key
    typer.echo("Provide --key or --key-file", err=True)
    raise typer.Exit(2)


@app.command()
def sign(
    payload_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON payload to sign"),
    key: str | None = typer.Option(None, help="Private key (PEM or wallet-auth token)"),
    key_file: Path | None = typer.Option(None, exists=True, dir_okay=False, help="File holding the private key"),
    wallet_id: str | None = typer.Option(
        None, help="Treat the file as a transaction and sign the wallet RPC payload for this wallet"
    ),
    backend: str | None = typer.Option(None, help="Signer backend (cryptography, pycryptodome)"),
) -> None:
    """Print the base64 DER authorization signature for a payload."""
    private_key = _read_key(key, key_file)
    try:
        document = json.loads(payload_file.read_text())
    except json.JSONDecodeError as e:
        typer.echo(f"Invalid JSON in {payload_file}: {e}", err=True)
        raise typer.Exit(1)

    try:
        payload = document
        if wallet_id:
            settings = get_settings()
            payload = build_rpc_payload(
                wallet_id,
                document,
                app_id=settings.privy_app_id,
                caip2=settings.default_caip2,
                api_url=settings.privy_api_url,
            )
        typer.echo(generate_authorization_signature(payload, private_key, get_backend(backend)))
    except ServiceError as e:
        typer.echo(f"Error: {e.detail}", err=True)
        raise typer.Exit(1)
    except PydanticValidationError as e:
        typer.echo(f"Invalid transaction: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def convert(
    signature: str = typer.Argument(..., help="Base64 signature"),
    from_format: SignatureFormat = typer.Option(SignatureFormat.P1363, "--from", help="Input encoding"),
) -> None:
    """Convert a base64 ECDSA P-256 signature between IEEE P1363 and DER."""
    try:
        raw = base64.b64decode(signature, validate=True)
    except (binascii.Error, ValueError):
        typer.echo("Error: signature must be base64", err=True)
        raise typer.Exit(1)

    try:
        converted = p1363_to_der(raw) if from_format is SignatureFormat.P1363 else der_to_p1363(raw)
    except ServiceError as e:
        typer.echo(f"Error: {e.detail}", err=True)
        raise typer.Exit(1)
    typer.echo(base64.b64encode(converted).decode("ascii"))
