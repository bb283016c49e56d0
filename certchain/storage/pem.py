"""Plain PEM key store: PKCS#8 private key followed by the chain, leaf first.

No password and no integrity protection; use certchain.storage.pkcs12 when
the file leaves the machine.
"""
import re
from typing import Iterator, Tuple

from cryptography.hazmat.primitives import serialization

from certchain.crypto.errors import DecodeError, EngineError
from certchain.crypto.keys import ENGINE_ERRORS, PrivateKey
from certchain.crypto.keystore import KeyStore
from certchain.crypto.pki import Certificate

BEGIN_RE = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----")

KEY_LABELS = (b"PRIVATE KEY", b"RSA PRIVATE KEY", b"EC PRIVATE KEY")


def dump_pem(store: KeyStore) -> bytes:
    out = store.private_key.to_pkcs8_pem()
    for cert in store.certs:
        out += cert.to_pem()
    return out


def iter_pem_blocks(data: bytes) -> Iterator[Tuple[bytes, bytes]]:
    """Yield (label, block) for each BEGIN/END block; text between blocks is ignored."""
    pos = 0
    while True:
        m = BEGIN_RE.search(data, pos)
        if m is None:
            return
        label = m.group(1)
        end_marker = b"-----END " + label + b"-----"
        end = data.find(end_marker, m.end())
        if end < 0:
            raise DecodeError(f"truncated PEM block: {label.decode()}")
        end += len(end_marker)
        yield label, data[m.start():end] + b"\n"
        pos = end


def load_pem(data: bytes) -> KeyStore:
    key = None
    certs = []
    for label, block in iter_pem_blocks(data):
        if label == b"CERTIFICATE":
            try:
                certs.append(Certificate.from_pem(block))
            except EngineError as e:
                raise DecodeError(f"bad certificate block #{len(certs) + 1}: {e}") from e
        elif label in KEY_LABELS:
            if key is not None:
                raise DecodeError("more than one private key in PEM key store")
            try:
                key = PrivateKey(serialization.load_pem_private_key(block, password=None))
            except ENGINE_ERRORS as e:
                raise DecodeError(f"bad private key block: {e}") from e
        elif label == b"ENCRYPTED PRIVATE KEY":
            raise DecodeError("encrypted private keys are not supported in PEM key stores")

    if key is None:
        raise DecodeError("no private key found")
    if not certs:
        raise DecodeError("no certificate found")
    return KeyStore(key, certs)
