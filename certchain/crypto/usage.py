"""Certificate usage profiles: CA, TLS server/client, code signing."""
from collections import namedtuple
from enum import Enum

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID

UsageProfile = namedtuple("UsageProfile", ["is_ca", "extended_key_usage", "key_usage"])

# keyUsage bits, in the order x509.KeyUsage takes them
KEY_USAGE_FIELDS = [
    ("digital_signature", "digitalSignature"),
    ("content_commitment", "nonRepudiation"),
    ("key_encipherment", "keyEncipherment"),
    ("data_encipherment", "dataEncipherment"),
    ("key_agreement", "keyAgreement"),
    ("key_cert_sign", "keyCertSign"),
    ("crl_sign", "cRLSign"),
    ("encipher_only", "encipherOnly"),
    ("decipher_only", "decipherOnly"),
]

EKU_NAMES = {
    ExtendedKeyUsageOID.SERVER_AUTH: "serverAuth",
    ExtendedKeyUsageOID.CLIENT_AUTH: "clientAuth",
    ExtendedKeyUsageOID.CODE_SIGNING: "codeSigning",
}

ENTITY_KEY_USAGE = ("digital_signature", "content_commitment", "key_encipherment", "data_encipherment")


class CertUsage(Enum):
    CA = "ca"
    SERVER = "server"
    CLIENT = "client"
    SERVER_AND_CLIENT = "both"
    CODE_SIGN = "codesign"

    @property
    def profile(self) -> UsageProfile:
        return PROFILES[self]

    @property
    def is_ca(self) -> bool:
        return self.profile.is_ca

    @property
    def extended_usage(self) -> str:
        """OpenSSL-style extendedKeyUsage string, empty for CA."""
        return ",".join(EKU_NAMES[oid] for oid in self.profile.extended_key_usage)

    @property
    def usage(self) -> str:
        """OpenSSL-style keyUsage string."""
        bits = set(self.profile.key_usage)
        return ",".join(text for field, text in KEY_USAGE_FIELDS if field in bits)

    def key_usage_extension(self) -> x509.KeyUsage:
        bits = set(self.profile.key_usage)
        return x509.KeyUsage(**{field: field in bits for field, _ in KEY_USAGE_FIELDS})

    def extended_key_usage_extension(self):
        """Return the ExtendedKeyUsage value, or None for CA certificates."""
        if not self.profile.extended_key_usage:
            return None
        return x509.ExtendedKeyUsage(list(self.profile.extended_key_usage))


PROFILES = {
    CertUsage.CA: UsageProfile(True, (), ("key_cert_sign", "crl_sign")),
    CertUsage.SERVER: UsageProfile(False, (ExtendedKeyUsageOID.SERVER_AUTH,), ENTITY_KEY_USAGE),
    CertUsage.CLIENT: UsageProfile(False, (ExtendedKeyUsageOID.CLIENT_AUTH,), ENTITY_KEY_USAGE),
    CertUsage.SERVER_AND_CLIENT: UsageProfile(
        False, (ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH), ENTITY_KEY_USAGE
    ),
    CertUsage.CODE_SIGN: UsageProfile(False, (ExtendedKeyUsageOID.CODE_SIGNING,), ENTITY_KEY_USAGE),
}
