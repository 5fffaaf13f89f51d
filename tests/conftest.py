"""
Shared test fixtures and helpers for the sslchains test suite.

Test material is generated at test time with cryptography — EC P-256 and RSA keys,
CSRs, self-signed and CA-signed certificates — and written under tmp_path,
so no key material is checked into the repository.
"""

from __future__ import annotations

import datetime
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import pytest
import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from sslchains.domain.models import DistinguishedName

# ─────────────────────── PEM Factories ───────────────────────


def make_key() -> ec.EllipticCurvePrivateKey:
    """A fresh EC P-256 private key."""
    return ec.generate_private_key(ec.SECP256R1())


def make_rsa_key() -> rsa.RSAPrivateKey:
    """A fresh 2048-bit RSA private key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def make_name(common_name: str, organization: str | None = None) -> x509.Name:
    attributes = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
    if organization is not None:
        attributes.insert(0, x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization))
    return x509.Name(attributes)


def make_csr(
    key: ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey,
    common_name: str,
    dns_names: Sequence[str] = (),
) -> x509.CertificateSigningRequest:
    builder = x509.CertificateSigningRequestBuilder().subject_name(make_name(common_name))
    if dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in dns_names]), critical=False
        )
    return builder.sign(key, hashes.SHA256())


def make_certificate(
    key: ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey,
    subject: x509.Name | str,
    issuer: x509.Certificate | x509.Name | None = None,
    issuer_key: ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey | None = None,
    dns_names: Sequence[str] = (),
    ca: bool = False,
) -> x509.Certificate:
    """
    Build a certificate for `key`.

    Without `issuer` the certificate is self-signed. `issuer` may be a
    certificate or just a name (to forge name-only links in tests).
    """
    subject_name = make_name(subject) if isinstance(subject, str) else subject
    match issuer:
        case None:
            issuer_name = subject_name
        case x509.Certificate():
            issuer_name = issuer.subject
        case _:
            issuer_name = issuer
    signing_key = issuer_key or key

    now = datetime.datetime.now(datetime.UTC)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject_name)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )
    if dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in dns_names]), critical=False
        )
    return builder.sign(signing_key, hashes.SHA256())


def key_pem(
    key: ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey,
    passphrase: bytes | None = None,
    traditional: bool = False,
) -> bytes:
    """
    PKCS8 PEM by default. With `traditional` the OpenSSL legacy format is used:
    "RSA PRIVATE KEY" / "EC PRIVATE KEY", encrypted through Proc-Type/DEK-Info headers.
    """
    encryption = (
        serialization.BestAvailableEncryption(passphrase)
        if passphrase
        else serialization.NoEncryption()
    )
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL if traditional else serialization.PrivateFormat.PKCS8,
        encryption,
    )


def csr_pem(csr: x509.CertificateSigningRequest) -> bytes:
    return csr.public_bytes(serialization.Encoding.PEM)


def cert_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def write_pem(directory: Path, filename: str, *blocks: bytes) -> str:
    """Write the concatenated PEM blocks to directory/filename and return the path as str."""
    path = directory / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"".join(blocks))
    return str(path)


def dn(common_name: str | None, text: str | None = None) -> DistinguishedName:
    """Hand-made DistinguishedName for domain tests that never touch crypto."""
    rendered = text if text is not None else f"CN={common_name}"
    return DistinguishedName(text=rendered, match_key=rendered.lower(), common_name=common_name)


# ─────────────────────── Logging ───────────────────────


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo configure_structlog after each test; it binds the current (captured) stderr."""
    yield
    structlog.reset_defaults()


# ─────────────────────── PKI Fixture ───────────────────────


@dataclass
class Pki:
    """root (self-signed) → intermediate → leaf, plus the leaf's key and CSR."""

    root_key: ec.EllipticCurvePrivateKey
    root: x509.Certificate
    intermediate_key: ec.EllipticCurvePrivateKey
    intermediate: x509.Certificate
    leaf_key: ec.EllipticCurvePrivateKey
    leaf_csr: x509.CertificateSigningRequest
    leaf: x509.Certificate


def build_pki(leaf_name: str = "example.com", dns_names: Sequence[str] = ()) -> Pki:
    root_key = make_key()
    root = make_certificate(root_key, make_name("Test Root CA", "Test Org"), ca=True)
    intermediate_key = make_key()
    intermediate = make_certificate(
        intermediate_key,
        make_name("Test Intermediate CA", "Test Org"),
        issuer=root,
        issuer_key=root_key,
        ca=True,
    )
    leaf_key = make_key()
    leaf_csr = make_csr(leaf_key, leaf_name, dns_names)
    leaf = make_certificate(
        leaf_key,
        leaf_name,
        issuer=intermediate,
        issuer_key=intermediate_key,
        dns_names=dns_names,
    )
    return Pki(root_key, root, intermediate_key, intermediate, leaf_key, leaf_csr, leaf)


@pytest.fixture()
def pki() -> Pki:
    """A fresh three-level PKI for example.com."""
    return build_pki()
