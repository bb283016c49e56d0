"""Verify a PEM key store's chain against a trusted root certificate."""

#!/usr/bin/env python3
import os
import sys
import logging
import argparse

from certchain import config
from certchain.crypto.errors import PkiError, VerificationError
from certchain.crypto.pki import load_cert
from certchain.crypto.verify import CertificateVerifier
from certchain.storage import files


def main(argv=None):
    parser = argparse.ArgumentParser(description="Verify a certificate chain.")
    parser.add_argument("--chain", required=True, help="PEM key store (key + chain, leaf first)")
    parser.add_argument("--root", action="append", required=True, help="trusted root certificate PEM (repeatable)")
    parser.add_argument("--no-default-paths", action="store_true", help="do not trust the platform CA bundle")
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL)

    for path in [args.chain] + args.root:
        if not os.path.exists(path):
            print(f"ERROR: file not found: {path}")
            sys.exit(1)

    try:
        store = files.load_pem_file(args.chain)
        verifier = CertificateVerifier(default_paths=not args.no_default_paths)
        for path in args.root:
            verifier.ca_root(load_cert(path))
        path = verifier.verify(store.certs)
    except VerificationError as e:
        print(f"Chain INVALID: {e}")
        sys.exit(1)
    except (PkiError, OSError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print("Chain valid")
    for depth, cert in enumerate(path):
        print(f"  {depth}: {cert.subject_name().rfc4514()}")


if __name__ == "__main__":
    main()
