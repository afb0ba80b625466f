"""
etcdpki-certs: offline certificate tooling.

Mints combined client and serving certificates from a CA on disk, for bootstrapping a
member before the controller runs, and checks cipher suite lists against what etcd accepts.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import List

import typer
from typing_extensions import Annotated

from etcdpki.certs.ciphers import filter_supported
from etcdpki.certs.combined import create_cert_key
from etcdpki.exceptions import CertificateParseError
from etcdpki.models.certificates import LeafRole

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Offline etcd certificate tooling",
    no_args_is_help=True,
)


class ServingRole(str, Enum):
    """Roles that get a combined client and serving certificate."""

    peer = "peer"
    server = "server"
    metrics = "metrics"


ROLES = {
    ServingRole.peer: LeafRole.PEER,
    ServingRole.server: LeafRole.SERVER,
    ServingRole.metrics: LeafRole.METRICS_SERVER,
}


@app.command()
def generate(
    role: Annotated[ServingRole, typer.Argument(help="Which certificate to mint.")],
    ca_cert: Annotated[Path, typer.Option("--ca-cert", exists=True, dir_okay=False, help="Signer certificate (PEM).")],
    ca_key: Annotated[Path, typer.Option("--ca-key", exists=True, dir_okay=False, help="Signer private key (PEM).")],
    ips: Annotated[List[str], typer.Option("--ip", help="Internal IP address of the node, repeatable.")],
    cert_out: Annotated[Path, typer.Option("--cert-out", dir_okay=False, help="Where to write the certificate.")],
    key_out: Annotated[Path, typer.Option("--key-out", dir_okay=False, help="Where to write the private key.")],
) -> None:
    """Mint a combined client and serving certificate for one node."""
    try:
        cert_buf, key_buf = create_cert_key(ca_cert.read_bytes(), ca_key.read_bytes(), ROLES[role], ips)
    except CertificateParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    cert_out.write_bytes(cert_buf.getvalue())
    key_out.touch(mode=0o600)
    key_out.chmod(0o600)
    key_out.write_bytes(key_buf.getvalue())
    typer.echo(f"Wrote {role.value} certificate to {cert_out} and key to {key_out}")


@app.command()
def ciphers(
    names: Annotated[List[str], typer.Argument(help="Cipher suite names to check.")],
) -> None:
    """Print the cipher suites etcd supports, in the order given."""
    for name in filter_supported(names):
        typer.echo(name)


def main():
    logging.basicConfig(level=logging.WARNING)
    app()
