"""Create root, intermediate and leaf certificates (RSA/EC + X.509) using cryptography."""

import ipaddress
import logging
import time
from datetime import datetime, timezone, timedelta
from typing import Iterable, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ed448, ed25519

from certchain import config
from certchain.crypto.errors import EngineError, InvalidParameters, TimeError
from certchain.crypto.keys import ENGINE_ERRORS, PrivateKey
from certchain.crypto.keystore import KeyStore
from certchain.crypto.pki import Certificate, CertName
from certchain.crypto.usage import CertUsage

logger = logging.getLogger(__name__)

DEFAULT_CERT_VALIDITY_DAYS = config.CERT_VALIDITY_DAYS
DEFAULT_RSA_KEY_LENGTH = config.RSA_KEY_SIZE
DEFAULT_PATH_LEN = 2 ** 31 - 1

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _epoch_time(value: datetime, label: str) -> datetime:
    # naive datetimes are taken as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    if value < EPOCH:
        raise TimeError(f"{label} {value.isoformat()} is before the Unix epoch")
    return value.replace(microsecond=0)


def time_serial_number() -> int:
    """Serial derived from the wall clock in epoch milliseconds.

    Two certificates built within the same millisecond get the same serial.
    """
    return time.time_ns() // 1_000_000


def classify_alt_name(name: str) -> x509.GeneralName:
    """IPv4 literals become IP entries, anything else a DNS name."""
    try:
        return x509.IPAddress(ipaddress.IPv4Address(name))
    except ValueError:
        return x509.DNSName(name)


def _signature_hash(key: PrivateKey):
    if isinstance(key.to_cryptography(), (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
        return None
    return hashes.SHA256()


class CertificateBuilder:
    """
    Builds one certificate and returns it as a KeyStore together with the
    signer's chain. Without a signer the certificate is self-signed.

    Setters return the builder so calls can be chained:

        store = (
            CertificateBuilder()
            .subject(CertName([("CN", "Root CA")]))
            .usage(CertUsage.CA)
            .build()
        )
    """

    def __init__(self):
        now = datetime.now(timezone.utc)
        self._signer: Optional[KeyStore] = None
        self._subject: Optional[CertName] = None
        self._usage = CertUsage.SERVER
        self._alt_names = []
        self._not_before = now
        self._not_after = now + timedelta(days=DEFAULT_CERT_VALIDITY_DAYS)
        self._serial_number: Optional[int] = None
        self._path_len: Optional[int] = DEFAULT_PATH_LEN
        self._private_key: Optional[PrivateKey] = None

    def signer(self, signer: Optional[KeyStore]) -> "CertificateBuilder":
        """Key store whose leaf issues the new certificate. None means self-signed.

        The signer is only read, and must not change while build() runs.
        """
        self._signer = signer
        return self

    def subject(self, name: CertName) -> "CertificateBuilder":
        self._subject = name
        return self

    def usage(self, usage: CertUsage) -> "CertificateBuilder":
        self._usage = usage
        return self

    def alt_names(self, names: Iterable[str]) -> "CertificateBuilder":
        """DNS names or IPv4 addresses for subjectAltName (needed for TLS SNI matching)."""
        self._alt_names = [str(name) for name in names]
        return self

    def not_before(self, value: datetime) -> "CertificateBuilder":
        self._not_before = value
        return self

    def not_after(self, value: datetime) -> "CertificateBuilder":
        self._not_after = value
        return self

    def serial_number(self, number: int) -> "CertificateBuilder":
        if number <= 0:
            raise InvalidParameters("serial number must be positive")
        self._serial_number = number
        return self

    def path_len(self, path_len: Optional[int]) -> "CertificateBuilder":
        """pathlen for CA certificates; None leaves it out of basicConstraints."""
        self._path_len = path_len
        return self

    def private_key(self, key: PrivateKey) -> "CertificateBuilder":
        """Key for the new certificate, default is a fresh RSA key."""
        self._private_key = key
        return self

    def build(self) -> KeyStore:
        cert_key = self._private_key
        if cert_key is None:
            cert_key = PrivateKey.new_rsa(DEFAULT_RSA_KEY_LENGTH)

        subject = self._subject.to_x509() if self._subject is not None else x509.Name([])
        signer_cert = self._signer.leaf.to_cryptography() if self._signer is not None else None
        issuer = signer_cert.subject if signer_cert is not None else subject

        not_before = _epoch_time(self._not_before, "not_before")
        not_after = _epoch_time(self._not_after, "not_after")

        serial = self._serial_number
        if serial is None:
            serial = time_serial_number()

        public_key = cert_key.public_key()
        usage = self._usage
        signing_key = self._signer.private_key if self._signer is not None else cert_key

        try:
            builder = (
                x509.CertificateBuilder()
                .subject_name(subject)
                .issuer_name(issuer)
                .public_key(public_key)
                .serial_number(serial)
                .not_valid_before(not_before)
                .not_valid_after(not_after)
            )

            if usage.is_ca:
                basic = x509.BasicConstraints(ca=True, path_length=self._path_len)
            else:
                basic = x509.BasicConstraints(ca=False, path_length=None)
            builder = builder.add_extension(basic, critical=True)

            builder = builder.add_extension(
                x509.SubjectKeyIdentifier.from_public_key(public_key),
                critical=False,
            )
            builder = builder.add_extension(self._authority_key_id(signer_cert, public_key), critical=False)

            eku = usage.extended_key_usage_extension()
            if eku is not None:
                builder = builder.add_extension(eku, critical=True)

            builder = builder.add_extension(usage.key_usage_extension(), critical=True)

            if self._alt_names:
                builder = builder.add_extension(
                    x509.SubjectAlternativeName([classify_alt_name(n) for n in self._alt_names]),
                    critical=False,
                )

            cert = builder.sign(
                private_key=signing_key.to_cryptography(),
                algorithm=_signature_hash(signing_key),
            )
        except ENGINE_ERRORS as e:
            raise EngineError(f"certificate build failed: {e}") from e

        logger.debug(
            "built %s certificate subject=%r issuer=%r serial=%d",
            usage.value, subject.rfc4514_string(), issuer.rfc4514_string(), serial,
        )

        certs = [Certificate(cert)]
        if self._signer is not None:
            certs.extend(self._signer.certs)
        return KeyStore(cert_key, certs)

    @staticmethod
    def _authority_key_id(signer_cert, public_key) -> x509.AuthorityKeyIdentifier:
        if signer_cert is None:
            return x509.AuthorityKeyIdentifier.from_issuer_public_key(public_key)
        try:
            ski = signer_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
        except x509.ExtensionNotFound:
            return x509.AuthorityKeyIdentifier.from_issuer_public_key(signer_cert.public_key())
        return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)
