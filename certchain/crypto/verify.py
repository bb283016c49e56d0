"""X.509 chain validation through OpenSSL's path validator (pyOpenSSL)."""
import logging
import os
import ssl
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

import certifi
from OpenSSL import crypto

from certchain.crypto.errors import InvalidParameters, VerificationError
from certchain.crypto.pki import Certificate

logger = logging.getLogger(__name__)


def platform_roots_available() -> bool:
    """True when the platform has a CA file or directory OpenSSL can load."""
    paths = ssl.get_default_verify_paths()
    if paths.cafile and os.path.isfile(paths.cafile):
        return True
    return bool(paths.capath and os.path.isdir(paths.capath))


def _unpack_context_error(e: crypto.X509StoreContextError):
    code, depth, message = e.errors
    subject = None
    if e.certificate is not None:
        subject = e.certificate.to_cryptography().subject.rfc4514_string()
    return code, message, depth, subject


class CertificateVerifier:
    """
    Verifies a chain (leaf first, then untrusted intermediates in any order)
    against explicit trusted roots and, optionally, the platform CA store.
    """

    def __init__(self, roots: Iterable[Certificate] = (), default_paths: bool = True):
        self._roots = list(roots)
        self._default_paths = default_paths
        self._time: Optional[datetime] = None

    def ca_root(self, root: Certificate) -> "CertificateVerifier":
        self._roots.append(root)
        return self

    def default_paths(self, flag: bool) -> "CertificateVerifier":
        """Also trust the platform default roots, default is True."""
        self._default_paths = flag
        return self

    def at_time(self, when: Optional[datetime]) -> "CertificateVerifier":
        """Check validity windows at `when` instead of now (naive means UTC)."""
        if when is not None and when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        self._time = when
        return self

    def trust_store(self) -> crypto.X509Store:
        store = crypto.X509Store()
        for root in self._roots:
            store.add_cert(crypto.X509.from_cryptography(root.to_cryptography()))
        if self._default_paths:
            store.set_default_paths()
            if not platform_roots_available():
                logger.warning("no platform CA store found, trusting certifi bundle %s", certifi.where())
                store.load_locations(certifi.where())
        if self._time is not None:
            # set_time reads the datetime's wall clock as UTC
            store.set_time(self._time.astimezone(timezone.utc))
        return store

    def verify(self, chain: Sequence[Certificate]) -> List[Certificate]:
        """
        Validate chain[0] through chain[1:] up to a trusted certificate.
        Returns the validated path, leaf first and trust anchor last.
        Raises VerificationError with the validator's code and message.
        """
        if not chain:
            raise InvalidParameters("cannot verify an empty chain")

        store = self.trust_store()
        leaf = crypto.X509.from_cryptography(chain[0].to_cryptography())
        untrusted = [crypto.X509.from_cryptography(c.to_cryptography()) for c in chain[1:]]
        ctx = crypto.X509StoreContext(store, leaf, chain=untrusted)
        try:
            ctx.verify_certificate()
        except crypto.X509StoreContextError as e:
            raise VerificationError(*_unpack_context_error(e)) from None

        path = [Certificate(c.to_cryptography()) for c in ctx.get_verified_chain()]
        logger.debug("chain verified, path length %d", len(path))
        return path
