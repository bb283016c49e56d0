"""KeyStore: one private key plus its certificate chain, leaf first."""
from typing import Iterable, Tuple

from certchain.crypto.errors import InvalidParameters
from certchain.crypto.keys import PrivateKey
from certchain.crypto.pki import Certificate


class KeyStore:
    """
    Private key and an ordered certificate chain.
    certs[0] is the leaf matching the key, certs[i + 1] issued certs[i],
    the last entry is the root.
    """

    def __init__(self, private_key: PrivateKey, certs: Iterable[Certificate]):
        certs = tuple(certs)
        if not certs:
            raise InvalidParameters("key store needs at least one certificate")
        self._private_key = private_key
        self._certs = certs

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def certs(self) -> Tuple[Certificate, ...]:
        return self._certs

    @property
    def leaf(self) -> Certificate:
        return self._certs[0]

    @property
    def root(self) -> Certificate:
        return self._certs[-1]

    # Persistence. The two formats are separate codecs with different
    # protection; see certchain.storage.pkcs12 and certchain.storage.pem.

    @classmethod
    def from_pkcs12(cls, data: bytes, password: str) -> "KeyStore":
        from certchain.storage.pkcs12 import load_pkcs12
        return load_pkcs12(data, password)

    def to_pkcs12(self, alias: str, password: str) -> bytes:
        from certchain.storage.pkcs12 import dump_pkcs12
        return dump_pkcs12(self, alias, password)

    @classmethod
    def from_pkcs8(cls, data: bytes) -> "KeyStore":
        from certchain.storage.pem import load_pem
        return load_pem(data)

    def to_pkcs8(self) -> bytes:
        from certchain.storage.pem import dump_pem
        return dump_pem(self)

    def __len__(self):
        return len(self._certs)

    def __repr__(self):
        return f"<KeyStore {self._private_key!r} chain={len(self._certs)}>"
