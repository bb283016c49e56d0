"""Private key wrapper: RSA / EC generation and DER / PKCS#8 conversion."""
from enum import Enum

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from certchain.crypto.errors import EngineError, InvalidParameters

# EC key length -> named curve
EC_CURVES = {
    256: ec.SECP256R1,
    384: ec.SECP384R1,
    521: ec.SECP521R1,
}

ENGINE_ERRORS = (ValueError, TypeError, UnsupportedAlgorithm)


class PrivateKeyType(Enum):
    RSA = "RSA"
    EC = "EC"
    OTHER = "OTHER"


class PrivateKey:
    """Asymmetric private key held by a KeyStore or a CertificateBuilder."""

    def __init__(self, key):
        self._key = key

    @classmethod
    def new_rsa(cls, bits: int = 2048) -> "PrivateKey":
        """Generate an RSA key with public exponent 65537."""
        try:
            return cls(rsa.generate_private_key(public_exponent=65537, key_size=bits))
        except ENGINE_ERRORS as e:
            raise EngineError(f"RSA key generation failed: {e}") from e

    @classmethod
    def new_ec(cls, bits: int = 256) -> "PrivateKey":
        """Generate an EC key on the NIST curve matching `bits` (256, 384 or 521)."""
        curve = EC_CURVES.get(bits)
        if curve is None:
            raise InvalidParameters(f"unsupported EC key length: {bits}")
        return cls(ec.generate_private_key(curve()))

    @classmethod
    def from_der(cls, data: bytes) -> "PrivateKey":
        try:
            return cls(serialization.load_der_private_key(data, password=None))
        except ENGINE_ERRORS as e:
            raise EngineError(f"cannot parse DER private key: {e}") from e

    def to_der(self) -> bytes:
        # traditional format is only defined for RSA and EC
        fmt = serialization.PrivateFormat.PKCS8
        if self.key_type in (PrivateKeyType.RSA, PrivateKeyType.EC):
            fmt = serialization.PrivateFormat.TraditionalOpenSSL
        return self._key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=fmt,
            encryption_algorithm=serialization.NoEncryption(),
        )

    @classmethod
    def from_pkcs8_der(cls, data: bytes, password: str) -> "PrivateKey":
        """Parse a password-protected PKCS#8 DER container."""
        try:
            return cls(serialization.load_der_private_key(data, password=password.encode("utf-8")))
        except ENGINE_ERRORS as e:
            raise EngineError(f"cannot decrypt PKCS#8 private key: {e}") from e

    def to_pkcs8_der(self, password: str) -> bytes:
        if not password:
            raise InvalidParameters("password is required for an encrypted PKCS#8 key")
        return self._key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.BestAvailableEncryption(password.encode("utf-8")),
        )

    @classmethod
    def from_pkcs8_pem(cls, data: bytes) -> "PrivateKey":
        try:
            return cls(serialization.load_pem_private_key(data, password=None))
        except ENGINE_ERRORS as e:
            raise EngineError(f"cannot parse PEM private key: {e}") from e

    def to_pkcs8_pem(self) -> bytes:
        return self._key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    @property
    def bits(self) -> int:
        if isinstance(self._key, ec.EllipticCurvePrivateKey):
            return self._key.curve.key_size
        return getattr(self._key, "key_size", 0)

    @property
    def key_type(self) -> PrivateKeyType:
        if isinstance(self._key, rsa.RSAPrivateKey):
            return PrivateKeyType.RSA
        if isinstance(self._key, ec.EllipticCurvePrivateKey):
            return PrivateKeyType.EC
        return PrivateKeyType.OTHER

    def public_key(self):
        return self._key.public_key()

    def to_cryptography(self):
        """Return the underlying cryptography key object."""
        return self._key

    def __eq__(self, other):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.to_der() == other.to_der()

    def __repr__(self):
        return f"<PrivateKey {self.key_type.value} {self.bits} bits>"
