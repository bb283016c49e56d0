"""X.509 certificate and distinguished-name wrappers."""
from datetime import datetime
from typing import Iterable, Iterator, Tuple

from cryptography import x509
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import serialization

from certchain.crypto.errors import EngineError, InvalidParameters
from certchain.crypto.keys import ENGINE_ERRORS

# short name, long name, OID
NAME_ATTRIBUTES = [
    ("C", "countryName", NameOID.COUNTRY_NAME),
    ("ST", "stateOrProvinceName", NameOID.STATE_OR_PROVINCE_NAME),
    ("L", "localityName", NameOID.LOCALITY_NAME),
    ("O", "organizationName", NameOID.ORGANIZATION_NAME),
    ("OU", "organizationalUnitName", NameOID.ORGANIZATIONAL_UNIT_NAME),
    ("CN", "commonName", NameOID.COMMON_NAME),
    ("street", "streetAddress", NameOID.STREET_ADDRESS),
    ("DC", "domainComponent", NameOID.DOMAIN_COMPONENT),
    ("UID", "userId", NameOID.USER_ID),
    ("serialNumber", "serialNumber", NameOID.SERIAL_NUMBER),
    ("emailAddress", "emailAddress", NameOID.EMAIL_ADDRESS),
    ("title", "title", NameOID.TITLE),
    ("GN", "givenName", NameOID.GIVEN_NAME),
    ("SN", "surname", NameOID.SURNAME),
    ("initials", "initials", NameOID.INITIALS),
    ("pseudonym", "pseudonym", NameOID.PSEUDONYM),
    ("generationQualifier", "generationQualifier", NameOID.GENERATION_QUALIFIER),
    ("dnQualifier", "dnQualifier", NameOID.DN_QUALIFIER),
    ("postalCode", "postalCode", NameOID.POSTAL_CODE),
    ("businessCategory", "businessCategory", NameOID.BUSINESS_CATEGORY),
    ("jurisdictionC", "jurisdictionCountryName", NameOID.JURISDICTION_COUNTRY_NAME),
    ("jurisdictionST", "jurisdictionStateOrProvinceName", NameOID.JURISDICTION_STATE_OR_PROVINCE_NAME),
    ("jurisdictionL", "jurisdictionLocalityName", NameOID.JURISDICTION_LOCALITY_NAME),
]

_OID_BY_NAME = {}
for _short, _long, _oid in NAME_ATTRIBUTES:
    _OID_BY_NAME[_short] = _oid
    _OID_BY_NAME[_long] = _oid
_SHORT_NAME_BY_OID = {oid: short for short, _, oid in NAME_ATTRIBUTES}


class CertName:
    """Ordered sequence of (attribute, value) pairs forming a subject or issuer DN.

    >>> CertName([("C", "US"), ("O", "Acme"), ("CN", "host")])
    """

    def __init__(self, parts: Iterable[Tuple[str, str]] = ()):
        attrs = []
        for field, value in parts:
            oid = _OID_BY_NAME.get(field)
            if oid is None:
                raise InvalidParameters(f"unknown name attribute: {field!r}")
            try:
                attrs.append(x509.NameAttribute(oid, value))
            except ENGINE_ERRORS as e:
                raise EngineError(f"invalid value for {field}: {e}") from e
        self._name = x509.Name(attrs)

    @classmethod
    def from_x509(cls, name: x509.Name) -> "CertName":
        obj = cls.__new__(cls)
        obj._name = name
        return obj

    def to_x509(self) -> x509.Name:
        return self._name

    def entries(self) -> Iterator[Tuple[str, str]]:
        """Yield (short name, value) pairs in encoding order.

        Values that are not valid UTF-8 are decoded with replacement characters.
        """
        for attr in self._name:
            short = _SHORT_NAME_BY_OID.get(attr.oid)
            if short is None:
                raise EngineError(f"no short name for attribute {attr.oid.dotted_string}")
            value = attr.value
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
            yield short, value

    def get(self, field: str):
        """Return the first value for `field`, or None."""
        for short, value in self.entries():
            if short == field:
                return value
        return None

    def rfc4514(self) -> str:
        return self._name.rfc4514_string()

    def __len__(self):
        return len(self._name)

    def __eq__(self, other):
        if not isinstance(other, CertName):
            return NotImplemented
        return self._name == other._name

    def __hash__(self):
        return hash(self._name)

    def __repr__(self):
        return f"<CertName {self.rfc4514()!r}>"


class Certificate:
    """Signed, immutable X.509 certificate."""

    def __init__(self, cert: x509.Certificate):
        self._cert = cert

    @classmethod
    def from_der(cls, data: bytes) -> "Certificate":
        try:
            return cls(x509.load_der_x509_certificate(data))
        except ENGINE_ERRORS as e:
            raise EngineError(f"cannot parse DER certificate: {e}") from e

    @classmethod
    def from_pem(cls, data: bytes) -> "Certificate":
        try:
            return cls(x509.load_pem_x509_certificate(data))
        except ENGINE_ERRORS as e:
            raise EngineError(f"cannot parse PEM certificate: {e}") from e

    def to_der(self) -> bytes:
        return self._cert.public_bytes(serialization.Encoding.DER)

    def to_pem(self) -> bytes:
        return self._cert.public_bytes(serialization.Encoding.PEM)

    def subject_name(self) -> CertName:
        return CertName.from_x509(self._cert.subject)

    def issuer_name(self) -> CertName:
        return CertName.from_x509(self._cert.issuer)

    @property
    def serial_number(self) -> int:
        return self._cert.serial_number

    @property
    def not_before(self) -> datetime:
        return self._cert.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self._cert.not_valid_after_utc

    def public_key(self):
        return self._cert.public_key()

    def is_self_issued(self) -> bool:
        return self._cert.subject == self._cert.issuer

    def to_cryptography(self) -> x509.Certificate:
        return self._cert

    def __eq__(self, other):
        if not isinstance(other, Certificate):
            return NotImplemented
        return self.to_der() == other.to_der()

    def __hash__(self):
        return hash(self.to_der())

    def __repr__(self):
        return f"<Certificate subject={self._cert.subject.rfc4514_string()!r} serial={self.serial_number}>"


def load_cert(path: str) -> Certificate:
    with open(path, "rb") as f:
        return Certificate.from_pem(f.read())
