import logging
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ObjectIdentifier
from OpenSSL import crypto

from certchain.crypto.builder import CertificateBuilder
from certchain.crypto.errors import InvalidParameters, VerificationError, VerifyReason
from certchain.crypto.keys import PrivateKey
from certchain.crypto.keystore import KeyStore
from certchain.crypto.pki import Certificate, CertName
from certchain.crypto.usage import CertUsage
from certchain.crypto import verify as verify_mod
from certchain.crypto.verify import CertificateVerifier

from conftest import make_ca, make_entity

NO_SIGN_USAGE = x509.KeyUsage(
    digital_signature=True, content_commitment=False, key_encipherment=False,
    data_encipherment=False, key_agreement=False, key_cert_sign=False,
    crl_sign=False, encipher_only=False, decipher_only=False,
)
CA_USAGE = x509.KeyUsage(
    digital_signature=True, content_commitment=False, key_encipherment=False,
    data_encipherment=False, key_agreement=False, key_cert_sign=True,
    crl_sign=True, encipher_only=False, decipher_only=False,
)


def verifier(*roots):
    return CertificateVerifier(roots, default_paths=False)


def raw_ca(cn, signer, extensions, signing_key=None):
    """CA certificate below `signer` with hand-picked extensions, as a KeyStore."""
    key = PrivateKey.new_ec()
    issuer = signer.leaf.to_cryptography()
    now = datetime.now(timezone.utc)
    builder = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(x509.NameOID.COMMON_NAME, cn)]))
        .issuer_name(issuer.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(
                issuer.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
            ),
            critical=False,
        )
    )
    for ext, critical in extensions:
        builder = builder.add_extension(ext, critical=critical)
    signing_key = signing_key or signer.private_key
    raw = builder.sign(signing_key.to_cryptography(), hashes.SHA256())
    return KeyStore(key, [Certificate(raw)] + list(signer.certs))


def test_root_verifies_itself(root_store):
    path = verifier(root_store.root).verify(root_store.certs)
    assert path == [root_store.leaf]


def test_full_chain(root_store, intermediate_store, leaf_store):
    path = verifier(root_store.root).verify([leaf_store.certs[0], leaf_store.certs[1]])
    assert path == list(leaf_store.certs)


def test_chain_including_root(root_store, leaf_store):
    assert len(verifier(root_store.root).verify(leaf_store.certs)) == 3


def test_intermediates_in_any_order(root_store, leaf_store):
    leaf, inter, root = leaf_store.certs
    assert verifier(root).verify([leaf, root, inter]) == [leaf, inter, root]


def test_missing_intermediate(root_store, leaf_store):
    with pytest.raises(VerificationError) as err:
        verifier(root_store.root).verify([leaf_store.leaf])
    assert err.value.reason in (
        VerifyReason.UNABLE_TO_GET_ISSUER_CERT_LOCALLY, VerifyReason.UNABLE_TO_VERIFY_LEAF_SIGNATURE,
    )
    assert err.value.depth == 0


def test_trusted_intermediate_is_not_an_anchor(intermediate_store, leaf_store):
    # without the root the path cannot end at a self-signed certificate
    with pytest.raises(VerificationError) as err:
        verifier(intermediate_store.leaf).verify([leaf_store.leaf])
    assert err.value.reason == VerifyReason.UNABLE_TO_GET_ISSUER_CERT
    assert err.value.depth == 1


def test_untrusted_root(leaf_store):
    other_root = make_ca("Other Root")
    with pytest.raises(VerificationError) as err:
        verifier(other_root.root).verify(leaf_store.certs)
    assert err.value.reason == VerifyReason.SELF_SIGNED_CERT_IN_CHAIN
    assert err.value.depth == 2
    assert "CN=Root CA" in err.value.subject


def test_untrusted_self_signed_leaf(root_store):
    with pytest.raises(VerificationError) as err:
        verifier().verify(root_store.certs)
    assert err.value.reason == VerifyReason.DEPTH_ZERO_SELF_SIGNED_CERT
    assert err.value.depth == 0


def test_error_carries_code_and_message(leaf_store):
    with pytest.raises(VerificationError) as err:
        verifier().verify(leaf_store.certs)
    assert err.value.code == int(err.value.reason)
    assert err.value.message
    assert err.value.message in str(err.value)


def test_empty_chain_skips_trust_store(monkeypatch):
    def boom(self):
        raise AssertionError("trust store must not be built")
    monkeypatch.setattr(CertificateVerifier, "trust_store", boom)
    with pytest.raises(InvalidParameters):
        CertificateVerifier().verify([])


def test_signature_mismatch(root_store):
    # names and key ids point at the real root, the signature does not
    forged = raw_ca(
        "Forged CA", root_store,
        [(x509.BasicConstraints(ca=True, path_length=None), True), (CA_USAGE, True)],
        signing_key=PrivateKey.new_ec(),
    )
    with pytest.raises(VerificationError) as err:
        verifier(root_store.root).verify(forged.certs)
    assert err.value.reason == VerifyReason.CERT_SIGNATURE_FAILURE
    assert err.value.depth == 0


def test_expired_leaf(root_store):
    now = datetime.now(timezone.utc)
    store = (
        CertificateBuilder()
        .subject(CertName([("CN", "old")]))
        .signer(root_store)
        .not_before(now - timedelta(days=10))
        .not_after(now - timedelta(days=1))
        .private_key(PrivateKey.new_ec())
        .build()
    )
    with pytest.raises(VerificationError) as err:
        verifier(root_store.root).verify(store.certs)
    assert err.value.reason == VerifyReason.CERT_HAS_EXPIRED
    assert err.value.depth == 0


def test_not_yet_valid_at_time(root_store, leaf_store):
    v = verifier(root_store.root).at_time(datetime.now(timezone.utc) - timedelta(days=1))
    with pytest.raises(VerificationError) as err:
        v.verify(leaf_store.certs)
    assert err.value.reason == VerifyReason.CERT_NOT_YET_VALID


def test_expired_at_time(root_store, leaf_store):
    v = verifier(root_store.root).at_time(datetime.now(timezone.utc) + timedelta(days=1000))
    with pytest.raises(VerificationError) as err:
        v.verify(leaf_store.certs)
    assert err.value.reason == VerifyReason.CERT_HAS_EXPIRED
    assert err.value.depth == 0


def test_naive_time_is_utc(root_store, leaf_store):
    when = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=1)
    assert len(verifier(root_store.root).at_time(when).verify(leaf_store.certs)) == 3


def test_entity_cannot_sign(root_store):
    entity = make_entity("server", root_store, usage=CertUsage.SERVER)
    child = make_entity("child", entity)
    with pytest.raises(VerificationError) as err:
        verifier(root_store.root).verify(child.certs)
    assert err.value.reason == VerifyReason.INVALID_CA
    assert err.value.depth == 1


def test_path_length_exceeded(root_store):
    limited = make_ca("Limited CA", root_store, path_len=0)
    sub = make_ca("Sub CA", limited)
    leaf = make_entity("leaf", sub)
    with pytest.raises(VerificationError) as err:
        verifier(root_store.root).verify(leaf.certs)
    assert err.value.reason == VerifyReason.PATH_LENGTH_EXCEEDED
    assert err.value.depth == 2

    # a leaf directly below the limited CA is fine
    direct = make_entity("direct", limited)
    assert len(verifier(root_store.root).verify(direct.certs)) == 3


def test_ca_without_cert_sign(root_store):
    bad_ca = raw_ca(
        "No Sign CA", root_store,
        [(x509.BasicConstraints(ca=True, path_length=None), True), (NO_SIGN_USAGE, True)],
    )
    leaf = make_entity("leaf", bad_ca)
    with pytest.raises(VerificationError) as err:
        verifier(root_store.root).verify(leaf.certs)
    assert err.value.reason == VerifyReason.KEYUSAGE_NO_CERTSIGN
    assert err.value.depth == 1


def test_unknown_critical_extension(root_store):
    odd_ca = raw_ca(
        "Odd CA", root_store,
        [
            (x509.BasicConstraints(ca=True, path_length=None), True),
            (CA_USAGE, True),
            (x509.UnrecognizedExtension(ObjectIdentifier("1.2.3.4.5.6"), b"\x05\x00"), True),
        ],
    )
    leaf = make_entity("leaf", odd_ca)
    with pytest.raises(VerificationError) as err:
        verifier(root_store.root).verify(leaf.certs)
    assert err.value.reason == VerifyReason.UNHANDLED_CRITICAL_EXTENSION
    assert err.value.depth == 1

    # the same extension marked non-critical is ignored
    fine_ca = raw_ca(
        "Fine CA", root_store,
        [
            (x509.BasicConstraints(ca=True, path_length=None), True),
            (CA_USAGE, True),
            (x509.UnrecognizedExtension(ObjectIdentifier("1.2.3.4.5.6"), b"\x05\x00"), False),
        ],
    )
    assert len(verifier(root_store.root).verify(make_entity("leaf", fine_ca).certs)) == 3


def test_default_paths_loads_platform_store(monkeypatch, root_store):
    calls = []
    monkeypatch.setattr(crypto.X509Store, "set_default_paths", lambda self: calls.append("default"))
    monkeypatch.setattr(verify_mod, "platform_roots_available", lambda: True)
    CertificateVerifier().ca_root(root_store.root).verify(root_store.certs)
    assert calls == ["default"]

    calls.clear()
    CertificateVerifier(default_paths=False).ca_root(root_store.root).verify(root_store.certs)
    assert calls == []


def test_default_paths_falls_back_to_certifi(monkeypatch, caplog, root_store):
    loaded = []
    monkeypatch.setattr(crypto.X509Store, "set_default_paths", lambda self: None)
    monkeypatch.setattr(crypto.X509Store, "load_locations", lambda self, cafile, capath=None: loaded.append(cafile))
    monkeypatch.setattr(verify_mod, "platform_roots_available", lambda: False)
    with caplog.at_level(logging.WARNING, logger="certchain.crypto.verify"):
        CertificateVerifier().ca_root(root_store.root).verify(root_store.certs)
    assert loaded == [verify_mod.certifi.where()]
    assert "certifi" in caplog.text
