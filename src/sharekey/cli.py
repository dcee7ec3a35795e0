"""
CLI application for threshold sharing key parameters.

Commands:
    keygen         Generate key parameters (threshold, share count, modulus)
    show           Show a stored key
    bind           Bind share fingerprints to a key
    verify         Check whether a share belongs to a key
    list           List stored keys
    export         Export a key to a file
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .core.errors import AlreadyBound, InvalidParameter
from .core.keystore import KeyStore
from .core.params import ALLOWED_SIZES, KeyParameters
from .crypto.share import Share


app = typer.Typer(
    name="sharekey", help="Key parameters and share authentication for N-of-M sharing"
)

# Default keystore directory
DEFAULT_STORE = Path.home() / ".sharekey"

STORE_ENVVAR = "SHAREKEY_STORE"


def get_keystore(store_dir: Optional[Path] = None) -> KeyStore:
    """Get KeyStore instance."""
    if store_dir is None:
        store_dir = DEFAULT_STORE
    return KeyStore(store_dir)


def load_or_exit(keystore: KeyStore, name: str) -> KeyParameters:
    """Load a key or exit with an error."""
    try:
        params = keystore.load_key(name)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if params is None:
        typer.echo(f"Error: Key '{name}' not found.", err=True)
        raise typer.Exit(1)
    return params


def read_share(path: Path) -> Share:
    """Read a share in "x:yhex" form from a file."""
    try:
        return Share.from_hex(path.read_text())
    except (OSError, ValueError) as e:
        typer.echo(f"Error: Cannot read share {path}: {e}", err=True)
        raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Manage public parameters of threshold sharing keys."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def keygen(
    threshold: int = typer.Option(
        ..., "--threshold", "-n", help="Shares needed to reconstruct (N)"
    ),
    shares: int = typer.Option(..., "--shares", "-m", help="Shares to create (M)"),
    size: int = typer.Option(2048, "--size", "-b", help="Modulus size in bits"),
    name: str = typer.Option(..., "--name", help="Key name"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing key"),
    store_dir: Optional[Path] = typer.Option(
        None, "--store", "-s", envvar=STORE_ENVVAR, help="Key storage directory"
    ),
) -> None:
    """
    Generate key parameters.

    Validates N, M and the modulus size, then searches for a
    probable prime of exactly that many bits.
    """
    keystore = get_keystore(store_dir)

    try:
        if keystore.has_key(name) and not force:
            typer.echo(f"Error: Key '{name}' already exists.", err=True)
            raise typer.Exit(1)

        params = KeyParameters.generate(
            threshold=threshold, share_count=shares, size_class=size
        )
        keystore.save_key(name, params)
    except InvalidParameter as e:
        allowed = ", ".join(str(s) for s in sorted(ALLOWED_SIZES))
        typer.echo(f"Error: {e}", err=True)
        if e.parameter == "size_class":
            typer.echo(f"  Allowed sizes: {allowed}", err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Key '{name}' created ({threshold}-of-{shares}, {size}-bit modulus)")
    typer.echo(f"Key store: {keystore.store_dir}")


@app.command()
def show(
    name: str = typer.Argument(..., help="Key name"),
    full: bool = typer.Option(False, "--full", help="Print the whole modulus"),
    store_dir: Optional[Path] = typer.Option(
        None, "--store", "-s", envvar=STORE_ENVVAR
    ),
) -> None:
    """Show a stored key."""
    keystore = get_keystore(store_dir)
    params = load_or_exit(keystore, name)

    modulus_hex = params.modulus.hex()
    if not full:
        modulus_hex = f"{modulus_hex[:32]}..."

    typer.echo(f"Key: {name}")
    typer.echo(f"  Threshold (N): {params.threshold}")
    typer.echo(f"  Shares (M): {params.share_count}")
    typer.echo(f"  Modulus size: {params.size_class} bits")
    typer.echo(f"  Modulus (little-endian): {modulus_hex}")
    if params.is_bound:
        typer.echo(f"  Bound shares: {params.fingerprint_count}")
    else:
        typer.echo("  Bound shares: (none)")


@app.command()
def bind(
    name: str = typer.Argument(..., help="Key name"),
    share_files: List[Path] = typer.Argument(..., help="Share files (x:yhex)"),
    store_dir: Optional[Path] = typer.Option(
        None, "--store", "-s", envvar=STORE_ENVVAR
    ),
) -> None:
    """
    Bind share fingerprints to a key.

    Only the SHA-256 fingerprint of each share is stored.
    A key can be bound once.
    """
    keystore = get_keystore(store_dir)
    params = load_or_exit(keystore, name)

    shares = [read_share(path) for path in share_files]

    try:
        params.bind_shares(shares)
    except AlreadyBound as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    keystore.save_key(name, params)

    typer.echo(f"Bound {len(shares)} shares to key '{name}'")


@app.command()
def verify(
    name: str = typer.Argument(..., help="Key name"),
    share_file: Path = typer.Argument(..., help="Share file (x:yhex)"),
    store_dir: Optional[Path] = typer.Option(
        None, "--store", "-s", envvar=STORE_ENVVAR
    ),
) -> None:
    """
    Check whether a share belongs to a key.

    Exits with status 1 if it does not.
    """
    keystore = get_keystore(store_dir)
    params = load_or_exit(keystore, name)

    if not params.is_bound:
        typer.echo(f"Error: Key '{name}' has no bound shares.", err=True)
        raise typer.Exit(1)

    share = read_share(share_file)

    if params.contains_share(share):
        typer.echo(f"Share {share.x} belongs to key '{name}'")
    else:
        typer.echo(f"Share {share.x} does NOT belong to key '{name}'")
        raise typer.Exit(1)


@app.command("list")
def list_keys(
    store_dir: Optional[Path] = typer.Option(
        None, "--store", "-s", envvar=STORE_ENVVAR
    )
) -> None:
    """List stored keys."""
    keystore = get_keystore(store_dir)
    names = keystore.list_keys()

    typer.echo("Keys:")
    typer.echo("-" * 50)
    for key_name in names:
        try:
            params = keystore.load_key(key_name)
        except ValueError as e:
            typer.echo(f"  {key_name}: unreadable ({e})")
            continue

        bound = "yes" if params.is_bound else "no"
        typer.echo(
            f"  {key_name}: {params.threshold}-of-{params.share_count}, "
            f"{params.size_class} bits, bound={bound}"
        )

    if not names:
        typer.echo("  (none)")


@app.command()
def export(
    name: str = typer.Argument(..., help="Key name"),
    output: Path = typer.Option(..., "--output", "-o", help="Output file"),
    store_dir: Optional[Path] = typer.Option(
        None, "--store", "-s", envvar=STORE_ENVVAR
    ),
) -> None:
    """Export key to file."""
    keystore = get_keystore(store_dir)
    try:
        keystore.export_key(name, output)
        typer.echo(f"Exported: {output}")
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
