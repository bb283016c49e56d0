"""Password-protected PKCS#12 archive: key + leaf + issuer chain under one alias."""
import logging

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from certchain.crypto.errors import DecodeError, EngineError, InvalidParameters
from certchain.crypto.keys import ENGINE_ERRORS, PrivateKey
from certchain.crypto.keystore import KeyStore
from certchain.crypto.pki import Certificate

logger = logging.getLogger(__name__)


def dump_pkcs12(store: KeyStore, alias: str, password: str) -> bytes:
    """Encode `store` as a PKCS#12 blob protected by `password`."""
    if not password:
        raise InvalidParameters("PKCS#12 archive needs a non-empty password")
    cas = [c.to_cryptography() for c in store.certs[1:]]
    try:
        return pkcs12.serialize_key_and_certificates(
            name=alias.encode("utf-8"),
            key=store.private_key.to_cryptography(),
            cert=store.leaf.to_cryptography(),
            cas=cas or None,
            encryption_algorithm=serialization.BestAvailableEncryption(password.encode("utf-8")),
        )
    except ENGINE_ERRORS as e:
        raise EngineError(f"cannot encode PKCS#12 archive: {e}") from e


def load_pkcs12(data: bytes, password: str) -> KeyStore:
    """Decode a PKCS#12 blob. Wrong password or corrupt data raise DecodeError."""
    if not password:
        raise InvalidParameters("PKCS#12 archive needs a non-empty password")
    try:
        parsed = pkcs12.load_pkcs12(data, password.encode("utf-8"))
    except ENGINE_ERRORS as e:
        raise DecodeError(f"cannot decode PKCS#12 archive: {e}") from e

    if parsed.key is None or parsed.cert is None:
        raise DecodeError("PKCS#12 archive has no private key or certificate")

    leaf = parsed.cert.certificate
    cas = [c.certificate for c in parsed.additional_certs]
    friendly_name = parsed.cert.friendly_name
    logger.debug(
        "loaded PKCS#12 alias=%r with %d issuer certificates",
        friendly_name.decode("utf-8", errors="replace") if friendly_name else None, len(cas),
    )
    return KeyStore(PrivateKey(parsed.key), [Certificate(leaf)] + [Certificate(c) for c in cas])
