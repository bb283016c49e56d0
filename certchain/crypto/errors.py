"""Error types raised by certificate building, verification and storage."""
from enum import IntEnum


class PkiError(Exception):
    """Base class for every error raised by certchain."""


class EngineError(PkiError):
    """The cryptography backend rejected an input or failed to encode/sign."""


class TimeError(PkiError):
    """A configured time could not be expressed relative to the Unix epoch."""


class InvalidParameters(PkiError):
    """Structurally invalid input (empty chain, unknown attribute, ...)."""


class DecodeError(PkiError):
    """A persisted key store could not be decoded."""


class VerifyReason(IntEnum):
    """Why a chain failed to verify.

    Values are the OpenSSL X509_V_ERR codes reported by the path validator,
    so a code read from a verification failure maps straight to a member.
    """

    UNABLE_TO_GET_ISSUER_CERT = 2
    CERT_SIGNATURE_FAILURE = 7
    CERT_NOT_YET_VALID = 9
    CERT_HAS_EXPIRED = 10
    DEPTH_ZERO_SELF_SIGNED_CERT = 18
    SELF_SIGNED_CERT_IN_CHAIN = 19
    UNABLE_TO_GET_ISSUER_CERT_LOCALLY = 20
    UNABLE_TO_VERIFY_LEAF_SIGNATURE = 21
    INVALID_CA = 24
    PATH_LENGTH_EXCEEDED = 25
    INVALID_PURPOSE = 26
    CERT_UNTRUSTED = 27
    CERT_REJECTED = 28
    KEYUSAGE_NO_CERTSIGN = 32
    UNHANDLED_CRITICAL_EXTENSION = 34


class VerificationError(PkiError):
    """Chain path validation failed.

    `code` is the validator's error code and `reason` the matching
    VerifyReason (None for codes without a member). `depth` is the position
    in the path (0 = leaf) of the certificate that failed.
    """

    def __init__(self, code: int, message: str, depth: int = 0, subject: str = None):
        self.code = code
        self.message = message
        self.depth = depth
        self.subject = subject
        try:
            self.reason = VerifyReason(code)
        except ValueError:
            self.reason = None
        msg = f"{message} (depth {depth})"
        if subject:
            msg += f": {subject}"
        super().__init__(msg)
