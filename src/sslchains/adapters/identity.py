"""
Identity adapter — public-key fingerprints and names for PEM objects.

Adapter layer — implements the IdentityDeriver and SignatureVerifier ports using:
  - cryptography (PyCA): loading keys/CSRs/certificates, normalising public
    keys to DER SubjectPublicKeyInfo, optional signature checks
  - asn1crypto: RFC 5280 name comparison keys, and the raw
    SubjectPublicKeyInfo when cryptography does not support the key algorithm
  - hashlib: SHA-256 fingerprints and certificate content identities

Pipeline:
  PemObject
    → cryptography: load key / CSR / certificate
    → public key → DER SubjectPublicKeyInfo → SHA-256 → Fingerprint
    → (certificates) subject, issuer, SAN DNS names, self-signed flag
    → KeyRecord | RequestRecord | CertificateRecord (domain models)

The fingerprint depends on public-key bytes only. A CSR's subject is kept
for display but never used to match it to a key.

Self-signed means subject == issuer. That is a name comparison, not a
cryptographic check, unless `verify_signatures` is set, in which case the
certificate's signature must also validate against its own key.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable

import structlog
from asn1crypto import csr as asn1_csr
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.x509.extensions import ExtensionNotFound
from cryptography.x509.oid import NameOID
from railway import ErrorCode, ResultFailures
from railway.result import Result

from sslchains.domain.models import (
    CertificateRecord,
    DistinguishedName,
    Fingerprint,
    IdentityRecord,
    KeyRecord,
    PemKind,
    PemObject,
    RequestRecord,
)

log = structlog.get_logger()


# ─────────────────────── Identity Helpers ───────────────────────


def fingerprint_public_key_info(spki_der: bytes) -> Fingerprint:
    """SHA-256 of a DER SubjectPublicKeyInfo, as lowercase hex."""
    return Fingerprint(hashlib.sha256(spki_der).hexdigest())


def certificate_identity(der: bytes) -> str:
    """Content identity of a certificate: SHA-256 of its DER encoding."""
    return hashlib.sha256(der).hexdigest()


def distinguished_name(name: x509.Name) -> DistinguishedName:
    """
    Convert a cryptography Name into a DistinguishedName.

    The match key is asn1crypto's RFC 5280 comparison form, so names that
    differ only in string type, case or spacing compare equal.
    """
    match_key = asn1_x509.Name.load(name.public_bytes()).hashable
    common_names = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    common_name = str(common_names[-1].value) if common_names else None
    return DistinguishedName(
        text=name.rfc4514_string(),
        match_key=match_key,
        common_name=common_name,
    )


def _dns_names(cert: x509.Certificate) -> tuple[str, ...]:
    """Subject Alternative Name DNS entries, or () when the extension is absent."""
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        return tuple(ext.value.get_values_for_type(x509.DNSName))
    except (ExtensionNotFound, ValueError):
        return ()


def _raw_certificate_spki(der: bytes) -> bytes:
    return asn1_x509.Certificate.load(der)["tbs_certificate"]["subject_public_key_info"].dump()


def _raw_request_spki(der: bytes) -> bytes:
    return asn1_csr.CertificationRequest.load(der)["certification_request_info"]["subject_pk_info"].dump()


def signature_validates(certificate: x509.Certificate, issuer: x509.Certificate) -> bool:
    """
    True when `issuer` directly issued `certificate` and its key validates the signature.

    Unsupported key or signature algorithms count as "does not validate".
    """
    try:
        certificate.verify_directly_issued_by(issuer)
    except (InvalidSignature, UnsupportedAlgorithm, ValueError, TypeError):
        return False
    return True


# ─────────────────────── Public Deriver Class ───────────────────────


class CryptographyIdentityDeriver:
    """
    Reduce PEM objects to identity records.

    Implements the IdentityDeriver port. Library exceptions are caught at this
    adapter boundary and returned as UNPARSABLE_OBJECT (the object cannot be
    decoded) or MISSING_PUBLIC_KEY (it decodes but yields no public key).
    """

    def __init__(
        self,
        verify_signatures: bool = False,
        key_passphrase: bytes | None = None,
    ) -> None:
        self._verify_signatures = verify_signatures
        self._key_passphrase = key_passphrase

    def derive(self, obj: PemObject) -> Result[IdentityRecord]:
        """Dispatch on the object kind and build its identity record."""
        match obj.kind:
            case PemKind.KEY:
                return self._derive_key(obj)
            case PemKind.CERTIFICATE_REQUEST:
                return self._derive_request(obj)
            case PemKind.CERTIFICATE:
                return self._derive_certificate(obj)
        return ResultFailures.unparsable_object(obj.source_path, f"Unsupported object kind: {obj.kind}")

    # ─── Keys ───

    def _derive_key(self, obj: PemObject) -> Result[IdentityRecord]:
        encrypted = obj.label == "ENCRYPTED PRIVATE KEY" or obj.is_legacy_encrypted
        if encrypted and self._key_passphrase is None:
            return ResultFailures.missing_public_key(
                obj.source_path,
                "Private key is encrypted and no passphrase is configured",
            )

        password = self._key_passphrase if encrypted else None
        error_code = ErrorCode.MISSING_PUBLIC_KEY if encrypted else ErrorCode.UNPARSABLE_OBJECT
        return (
            Result.from_computation(
                lambda: serialization.load_pem_private_key(obj.raw_block, password=password),
                error_code,
                "Cannot load private key",
                source=obj.source_path,
            )
            .flat_map(
                lambda key: Result.from_computation(
                    lambda: _public_key_info(key.public_key()),
                    ErrorCode.MISSING_PUBLIC_KEY,
                    "Cannot derive public key from private key",
                    source=obj.source_path,
                )
            )
            .map(
                lambda spki: KeyRecord(
                    fingerprint=fingerprint_public_key_info(spki),
                    source_path=obj.source_path,
                    order=obj.order,
                )
            )
        )

    # ─── Certificate signing requests ───

    def _derive_request(self, obj: PemObject) -> Result[IdentityRecord]:
        return Result.from_computation(
            lambda: x509.load_der_x509_csr(obj.der),
            ErrorCode.UNPARSABLE_OBJECT,
            "Cannot decode certificate request",
            source=obj.source_path,
        ).flat_map(
            lambda request: self._subject_key_info(
                obj, request.public_key, lambda: _raw_request_spki(obj.der)
            ).flat_map(
                lambda spki: Result.from_computation(
                    lambda: RequestRecord(
                        fingerprint=fingerprint_public_key_info(spki),
                        subject=distinguished_name(request.subject),
                        source_path=obj.source_path,
                        order=obj.order,
                    ),
                    ErrorCode.UNPARSABLE_OBJECT,
                    "Cannot read certificate request subject",
                    source=obj.source_path,
                )
            )
        )

    # ─── Certificates ───

    def _derive_certificate(self, obj: PemObject) -> Result[IdentityRecord]:
        return Result.from_computation(
            lambda: x509.load_der_x509_certificate(obj.der),
            ErrorCode.UNPARSABLE_OBJECT,
            "Cannot decode certificate",
            source=obj.source_path,
        ).flat_map(
            lambda cert: self._subject_key_info(
                obj, cert.public_key, lambda: _raw_certificate_spki(obj.der)
            ).flat_map(
                lambda spki: Result.from_computation(
                    lambda: self._certificate_record(obj, cert, spki),
                    ErrorCode.UNPARSABLE_OBJECT,
                    "Cannot read certificate names",
                    source=obj.source_path,
                )
            )
        )

    def _certificate_record(
        self,
        obj: PemObject,
        cert: x509.Certificate,
        spki: bytes,
    ) -> CertificateRecord:
        subject = distinguished_name(cert.subject)
        issuer = distinguished_name(cert.issuer)
        self_signed = subject == issuer
        if self_signed and self._verify_signatures:
            self_signed = signature_validates(cert, cert)
            if not self_signed:
                log.warning(
                    "identity.self_signature_invalid",
                    path=obj.source_path,
                    subject=subject.text,
                )

        return CertificateRecord(
            fingerprint=fingerprint_public_key_info(spki),
            subject=subject,
            issuer=issuer,
            self_signed=self_signed,
            source_path=obj.source_path,
            certificate_id=certificate_identity(obj.der),
            order=obj.order,
            explicit=obj.explicit,
            dns_names=_dns_names(cert),
            certificate=cert,
        )

    # ─── Shared ───

    def _subject_key_info(
        self,
        obj: PemObject,
        load_public_key: Callable[[], object],
        raw_spki: Callable[[], bytes],
    ) -> Result[bytes]:
        """
        DER SubjectPublicKeyInfo for a CSR or certificate.

        Normalised through cryptography when it supports the key algorithm,
        otherwise taken verbatim from the ASN.1 structure.
        """
        try:
            return Result.success(_public_key_info(load_public_key()))
        except (UnsupportedAlgorithm, ValueError) as e:
            log.debug("identity.raw_public_key", path=obj.source_path, reason=str(e))

        return Result.from_computation(
            raw_spki,
            ErrorCode.MISSING_PUBLIC_KEY,
            f"No public key in {obj.kind.value.replace('_', ' ')}",
            source=obj.source_path,
        ).ensure(
            lambda spki: len(spki) > 0,
            ErrorCode.MISSING_PUBLIC_KEY,
            f"Empty public key in {obj.kind.value.replace('_', ' ')}",
        ).map_failure(lambda err: err.with_source(obj.source_path))


def _public_key_info(public_key: object) -> bytes:
    return public_key.public_bytes(  # type: ignore[attr-defined]
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


class CryptographySignatureVerifier:
    """
    Check issuer links cryptographically.

    Implements the SignatureVerifier port on top of the certificate objects
    the deriver keeps on each CertificateRecord.
    """

    def is_issued_by(self, certificate: CertificateRecord, issuer: CertificateRecord) -> bool:
        if not isinstance(certificate.certificate, x509.Certificate):
            return False
        if not isinstance(issuer.certificate, x509.Certificate):
            return False
        return signature_validates(certificate.certificate, issuer.certificate)
