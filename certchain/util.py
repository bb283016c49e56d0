"""Shortcuts for common chains."""
from datetime import datetime, timezone, timedelta

from certchain import config
from certchain.crypto.builder import CertificateBuilder
from certchain.crypto.keys import PrivateKey
from certchain.crypto.keystore import KeyStore
from certchain.crypto.pki import CertName
from certchain.crypto.usage import CertUsage


def _gen_ca_store() -> KeyStore:
    return (
        CertificateBuilder()
        .subject(CertName([("CN", "Root CA")]))
        .usage(CertUsage.CA)
        .not_after(datetime.now(timezone.utc) + timedelta(days=config.CA_VALIDITY_DAYS))
        .private_key(PrivateKey.new_rsa(config.RSA_KEY_SIZE))
        .build()
    )


def _gen_entity_store(signer: KeyStore, hostname: str) -> KeyStore:
    return (
        CertificateBuilder()
        .subject(CertName([("CN", hostname)]))
        .signer(signer)
        .usage(CertUsage.SERVER)
        .alt_names([hostname])
        .private_key(PrivateKey.new_rsa(config.RSA_KEY_SIZE))
        .build()
    )


def create_easy_server_chain(hostname: str) -> KeyStore:
    """Two-certificate chain for a TLS server: `hostname` leaf signed by a fresh "Root CA"."""
    return _gen_entity_store(_gen_ca_store(), hostname)
