"""
Generate a sample PEM tree for trying sslchains by hand.

Infrastructure script — writes freshly generated keys, CSRs and certificates
under samples/ (or the directory given as first argument). The tree covers
every shape the scanner reports:

  samples/
  ├── ca/
  │   ├── root.crt            self-signed root
  │   └── intermediate.crt    signed by the root
  ├── www/
  │   ├── www.key             key
  │   ├── www.csr             CSR for the same key
  │   └── www.crt             leaf → intermediate → root
  ├── bundle.pem              key + self-signed certificate in one file
  ├── orphan.crt              leaf whose issuer is absent (incomplete chain)
  ├── encrypted.key           passphrase "sample" (needs SSLCHAINS_ENGINE__KEY_PASSPHRASE)
  └── corrupt.crt             undecodable certificate block

Usage:
  python scripts/generate_samples.py [output_dir]
  sslchains -r samples
"""

from __future__ import annotations

import datetime
import sys
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

DEFAULT_OUTPUT = Path(__file__).parent.parent / "samples"
SAMPLE_PASSPHRASE = b"sample"
VALIDITY = datetime.timedelta(days=365)


def _name(common_name: str) -> x509.Name:
    return x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "sslchains samples"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])


def _certificate(
    key: ec.EllipticCurvePrivateKey,
    subject: x509.Name,
    issuer: x509.Name,
    signing_key: ec.EllipticCurvePrivateKey,
    ca: bool = False,
    dns_names: list[str] | None = None,
) -> x509.Certificate:
    now = datetime.datetime.now(datetime.UTC)
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + VALIDITY)
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
    )
    if dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in dns_names]), critical=False
        )
    return builder.sign(signing_key, hashes.SHA256())


def _key_pem(key: ec.EllipticCurvePrivateKey, passphrase: bytes | None = None) -> bytes:
    encryption = (
        serialization.BestAvailableEncryption(passphrase) if passphrase else serialization.NoEncryption()
    )
    return key.private_bytes(serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8, encryption)


def _pem(obj: x509.Certificate | x509.CertificateSigningRequest) -> bytes:
    return obj.public_bytes(serialization.Encoding.PEM)


def _write(path: Path, *blocks: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"".join(blocks))
    print(f"  ✓ {path}")


def generate(output: Path) -> None:
    root_key = ec.generate_private_key(ec.SECP256R1())
    root_name = _name("Sample Root CA")
    root = _certificate(root_key, root_name, root_name, root_key, ca=True)

    inter_key = ec.generate_private_key(ec.SECP256R1())
    inter_name = _name("Sample Intermediate CA")
    intermediate = _certificate(inter_key, inter_name, root_name, root_key, ca=True)

    www_key = ec.generate_private_key(ec.SECP256R1())
    www_name = _name("www.example.test")
    www_csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(www_name)
        .sign(www_key, hashes.SHA256())
    )
    www = _certificate(
        www_key, www_name, inter_name, inter_key, dns_names=["www.example.test", "example.test"]
    )

    bundle_key = ec.generate_private_key(ec.SECP256R1())
    bundle_name = _name("bundle.example.test")
    bundle = _certificate(bundle_key, bundle_name, bundle_name, bundle_key)

    orphan_key = ec.generate_private_key(ec.SECP256R1())
    orphan = _certificate(
        orphan_key, _name("orphan.example.test"), _name("Missing Issuing CA"), orphan_key
    )

    _write(output / "ca" / "root.crt", _pem(root))
    _write(output / "ca" / "intermediate.crt", _pem(intermediate))
    _write(output / "www" / "www.key", _key_pem(www_key))
    _write(output / "www" / "www.csr", _pem(www_csr))
    _write(output / "www" / "www.crt", _pem(www))
    _write(output / "bundle.pem", _key_pem(bundle_key), _pem(bundle))
    _write(output / "orphan.crt", _pem(orphan))
    _write(output / "encrypted.key", _key_pem(ec.generate_private_key(ec.SECP256R1()), SAMPLE_PASSPHRASE))
    _write(
        output / "corrupt.crt",
        b"-----BEGIN CERTIFICATE-----\nMAA=\n-----END CERTIFICATE-----\n",
    )


def main() -> None:
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_OUTPUT
    print(f"Generating sample PEM files in {output} ...")
    generate(output)


if __name__ == "__main__":
    main()
