"""
Unit tests for the grouping engine.

Works on hand-made records (no cryptography) so every tie-break is explicit.

Test categories:
  - Binding: keys/CSRs/certificates collapse by fingerprint
  - Conflicts: first binding wins, warning names both paths
  - Duplicates: identical certificate content processed once
  - Standalone policy: all / explicit / none
  - Subject index: every certificate is indexed in input order
"""

from __future__ import annotations

from railway import ErrorCode

from sslchains.domain.grouping import group_records
from sslchains.domain.models import (
    CertificateRecord,
    Fingerprint,
    KeyRecord,
    RequestRecord,
    StandaloneCertificates,
)
from tests.conftest import dn


def key(fp: str, path: str, order: tuple[int, int]) -> KeyRecord:
    return KeyRecord(fingerprint=Fingerprint(fp), source_path=path, order=order)


def csr(fp: str, path: str, order: tuple[int, int], cn: str = "example.com") -> RequestRecord:
    return RequestRecord(fingerprint=Fingerprint(fp), subject=dn(cn), source_path=path, order=order)


def cert(
    fp: str,
    path: str,
    order: tuple[int, int],
    subject: str = "leaf",
    issuer: str = "ca",
    cert_id: str | None = None,
    explicit: bool = True,
) -> CertificateRecord:
    return CertificateRecord(
        fingerprint=Fingerprint(fp),
        subject=dn(subject),
        issuer=dn(issuer),
        self_signed=subject == issuer,
        source_path=path,
        certificate_id=cert_id or path,
        order=order,
        explicit=explicit,
    )


class TestBinding:
    """
    GIVEN keys, CSRs and certificates for the same key pair
    WHEN grouped
    THEN they collapse onto one entity draft.
    """

    def test_key_csr_and_certificate_share_one_draft(self) -> None:
        state = group_records(
            [
                key("aa", "site.key", (0, 0)),
                csr("aa", "site.csr", (1, 0)),
                cert("aa", "site.crt", (2, 0)),
            ]
        )

        assert list(state.entities) == ["aa"]
        draft = state.entities[Fingerprint("aa")]
        assert draft.key.source_path == "site.key"
        assert draft.request.source_path == "site.csr"
        assert [leaf.source_path for leaf in draft.leaves] == ["site.crt"]
        assert state.diagnostics == []

    def test_certificate_before_key_still_attaches(self) -> None:
        """
        GIVEN a certificate listed before its key
        WHEN grouped
        THEN it still joins the key's draft, and first_seen is the certificate's position.
        """
        state = group_records([cert("aa", "a.crt", (0, 0)), key("aa", "z.key", (1, 0))])

        draft = state.entities[Fingerprint("aa")]
        assert draft.key.source_path == "z.key"
        assert draft.first_seen == (0, 0)

    def test_records_sorted_by_input_order(self) -> None:
        """
        GIVEN records handed over out of order
        WHEN grouped
        THEN leaves are kept in input order, not arrival order.
        """
        state = group_records(
            [
                cert("aa", "renewed.crt", (2, 0), cert_id="2"),
                key("aa", "site.key", (0, 0)),
                cert("aa", "original.crt", (1, 0), cert_id="1"),
            ]
        )
        draft = state.entities[Fingerprint("aa")]
        assert [leaf.source_path for leaf in draft.leaves] == ["original.crt", "renewed.crt"]


class TestConflicts:
    """Verify first-wins binding and the warning it produces."""

    def test_second_key_keeps_first_binding(self) -> None:
        """
        GIVEN two key files with the same public key
        WHEN grouped
        THEN the first path is kept and CONFLICTING_BINDING names both paths.
        """
        state = group_records([key("aa", "first.key", (0, 0)), key("aa", "second.key", (1, 0))])

        assert state.entities[Fingerprint("aa")].key.source_path == "first.key"
        [diagnostic] = state.diagnostics
        assert diagnostic.code is ErrorCode.CONFLICTING_BINDING
        assert diagnostic.paths == ("second.key", "first.key")

    def test_second_csr_keeps_first_binding(self) -> None:
        """
        GIVEN two CSRs for the same key
        WHEN grouped
        THEN the first CSR is kept and the conflict is reported.
        """
        state = group_records([csr("aa", "b.csr", (1, 0)), csr("aa", "a.csr", (0, 0))])

        assert state.entities[Fingerprint("aa")].request.source_path == "a.csr"
        assert [d.code for d in state.diagnostics] == [ErrorCode.CONFLICTING_BINDING]


class TestDuplicates:
    """Verify content deduplication of certificates."""

    def test_same_certificate_twice_processed_once(self) -> None:
        """
        GIVEN the same certificate content under two paths
        WHEN grouped
        THEN one leaf, one pool entry and a DUPLICATE_CERTIFICATE warning.
        """
        state = group_records(
            [
                key("aa", "site.key", (0, 0)),
                cert("aa", "site.crt", (1, 0), cert_id="same"),
                cert("aa", "copy/site.crt", (2, 0), cert_id="same"),
            ]
        )

        draft = state.entities[Fingerprint("aa")]
        assert [leaf.source_path for leaf in draft.leaves] == ["site.crt"]
        assert [c.source_path for c in state.pool] == ["site.crt"]
        [diagnostic] = state.diagnostics
        assert diagnostic.code is ErrorCode.DUPLICATE_CERTIFICATE
        assert diagnostic.paths == ("copy/site.crt", "site.crt")


class TestStandalonePolicy:
    """Verify which key-less certificates become entities."""

    def _records(self) -> list:
        return [
            key("aa", "site.key", (0, 0)),
            cert("bb", "root.crt", (1, 0), subject="root", issuer="root", explicit=True),
            cert("cc", "dir/inter.crt", (2, 0), subject="inter", issuer="root", explicit=False),
        ]

    def test_all_creates_every_standalone(self) -> None:
        """
        GIVEN certificates without keys, explicit and discovered
        WHEN grouped with ALL
        THEN both become entities.
        """
        state = group_records(self._records(), StandaloneCertificates.ALL)
        assert set(state.entities) == {"aa", "bb", "cc"}

    def test_explicit_only_for_named_inputs(self) -> None:
        """
        GIVEN the same records
        WHEN grouped with EXPLICIT
        THEN only the explicitly named certificate becomes an entity.
        """
        state = group_records(self._records(), StandaloneCertificates.EXPLICIT)
        assert set(state.entities) == {"aa", "bb"}

    def test_none_keeps_only_anchored_entities(self) -> None:
        """
        GIVEN the same records
        WHEN grouped with NONE
        THEN only the key-backed entity exists, but the pool still holds every certificate.
        """
        state = group_records(self._records(), StandaloneCertificates.NONE)
        assert set(state.entities) == {"aa"}
        assert len(state.pool) == 2

    def test_standalone_certificates_join_by_fingerprint(self) -> None:
        """
        GIVEN two key-less certificates with the same public key (a renewal)
        WHEN grouped
        THEN they form one standalone entity with two leaves.
        """
        state = group_records(
            [
                cert("bb", "ca-2023.crt", (0, 0), subject="ca", issuer="ca", cert_id="1"),
                cert("bb", "ca-2024.crt", (1, 0), subject="ca", issuer="ca", cert_id="2"),
            ]
        )
        draft = state.entities[Fingerprint("bb")]
        assert not draft.anchored
        assert len(draft.leaves) == 2


class TestSubjectIndex:
    """Verify issuer lookup support."""

    def test_candidates_in_input_order(self) -> None:
        """
        GIVEN two certificates sharing a subject name
        WHEN a certificate issued by that name looks up candidates
        THEN both are returned in input order.
        """
        leaf = cert("aa", "leaf.crt", (0, 0), issuer="ca")
        state = group_records(
            [
                cert("cc", "ca-b.crt", (2, 0), subject="ca", issuer="root"),
                leaf,
                cert("bb", "ca-a.crt", (1, 0), subject="ca", issuer="root"),
            ]
        )
        assert [c.source_path for c in state.candidate_issuers(leaf)] == ["ca-a.crt", "ca-b.crt"]

    def test_ordered_entities_by_first_seen(self) -> None:
        """
        GIVEN entities first seen at different positions
        WHEN ordered
        THEN earliest first.
        """
        state = group_records([key("zz", "late.key", (3, 0)), key("aa", "early.key", (0, 1))])
        assert [d.fingerprint for d in state.ordered_entities()] == ["aa", "zz"]
