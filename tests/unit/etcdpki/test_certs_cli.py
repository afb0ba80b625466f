from typer.testing import CliRunner

from etcdpki.certs.authority import new_signing_authority
from etcdpki.certs.cli import app
from etcdpki.certs.issuer import certificate_san_set
from etcdpki.certs.pem import decode_certificate
from etcdpki.certs.pem import decode_private_key
from etcdpki.certs.pem import encode_certificate
from etcdpki.certs.pem import encode_private_key
from tests.data.etcdpki.certs import NOW

runner = CliRunner()


def _write_ca(tmp_path, authority):
    ca_cert = tmp_path / "ca.crt"
    ca_key = tmp_path / "ca.key"
    ca_cert.write_bytes(encode_certificate(authority.certificate))
    ca_key.write_bytes(encode_private_key(authority.private_key))
    return ca_cert, ca_key


def test_generate_serving_certificate(tmp_path, authority):
    ca_cert, ca_key = _write_ca(tmp_path, authority)
    cert_out = tmp_path / "server.crt"
    key_out = tmp_path / "server.key"

    result = runner.invoke(
        app,
        [
            "generate", "server",
            "--ca-cert", str(ca_cert),
            "--ca-key", str(ca_key),
            "--ip", "10.0.0.5",
            "--cert-out", str(cert_out),
            "--key-out", str(key_out),
        ],
    )

    assert result.exit_code == 0, result.output
    certificate = decode_certificate(cert_out.read_bytes())
    decode_private_key(key_out.read_bytes())
    assert "10.0.0.5" in certificate_san_set(certificate)
    assert certificate.issuer == authority.certificate.subject


def test_generate_rejects_mismatched_key(tmp_path, authority):
    other = new_signing_authority("someone-else", NOW)
    ca_cert = tmp_path / "ca.crt"
    ca_key = tmp_path / "ca.key"
    ca_cert.write_bytes(encode_certificate(authority.certificate))
    ca_key.write_bytes(encode_private_key(other.private_key))

    result = runner.invoke(
        app,
        [
            "generate", "peer",
            "--ca-cert", str(ca_cert),
            "--ca-key", str(ca_key),
            "--ip", "10.0.0.5",
            "--cert-out", str(tmp_path / "peer.crt"),
            "--key-out", str(tmp_path / "peer.key"),
        ],
    )

    assert result.exit_code == 1
    assert not (tmp_path / "peer.crt").exists()


def test_ciphers_filters_unsupported():
    result = runner.invoke(
        app, ["ciphers", "TLS_AES_128_GCM_SHA256", "BOGUS_CIPHER", "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256"],
    )

    assert result.exit_code == 0
    assert result.stdout.split() == ["TLS_AES_128_GCM_SHA256", "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256"]


def test_generate_restricts_existing_key_file(tmp_path, authority):
    ca_cert, ca_key = _write_ca(tmp_path, authority)
    key_out = tmp_path / "peer.key"
    key_out.write_bytes(b"stale")
    key_out.chmod(0o644)

    result = runner.invoke(
        app,
        [
            "generate", "peer",
            "--ca-cert", str(ca_cert),
            "--ca-key", str(ca_key),
            "--ip", "10.0.0.5",
            "--cert-out", str(tmp_path / "peer.crt"),
            "--key-out", str(key_out),
        ],
    )

    assert result.exit_code == 0, result.output
    assert key_out.stat().st_mode & 0o777 == 0o600
    decode_private_key(key_out.read_bytes())
