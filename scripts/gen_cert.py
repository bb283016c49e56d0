"""Issue a server/client/code-signing cert signed by a CA key store (SAN from --alt-name)."""

#!/usr/bin/env python3
import os
import sys
import logging
import argparse

from certchain import config
from certchain.crypto.builder import CertificateBuilder
from certchain.crypto.errors import PkiError
from certchain.crypto.pki import CertName
from certchain.crypto.usage import CertUsage
from certchain.storage import files


def generate_cert(cn, signer_path, password, usage=CertUsage.SERVER, alt_names=None, certs_dir=None):
    certs_dir = certs_dir or config.CERTS_DIR
    os.makedirs(certs_dir, exist_ok=True)

    p12_path = files.store_path(cn, "p12", certs_dir)
    pem_path = files.store_path(cn, "pem", certs_dir)

    # Safety check
    if os.path.exists(p12_path) or os.path.exists(pem_path):
        print(f"Certificate for '{cn}' already exists.")
        return None

    if not os.path.exists(signer_path):
        print(f"CA key store not found: {signer_path}")
        sys.exit(1)
    signer = files.load_pkcs12_file(signer_path, password)

    if alt_names is None:
        alt_names = [cn]

    print(f"Creating {usage.value} certificate for '{cn}' signed by CA...")
    store = (
        CertificateBuilder()
        .subject(CertName([("CN", cn)]))
        .signer(signer)
        .usage(usage)
        .alt_names(alt_names)
        .build()
    )

    print(f"Saving key store -> {p12_path}")
    files.save_pkcs12(store, cn, password, certs_dir)
    print(f"Saving PEM key store -> {pem_path}")
    files.save_pem(store, cn, certs_dir)

    cert = store.leaf
    print("\nCertificate generation complete!")
    print("\nCertificate:")
    print(f"    Subject: {cert.subject_name().rfc4514()}")
    print(f"    Issuer: {cert.issuer_name().rfc4514()}")
    print(f"    Serial: {cert.serial_number}")
    print(f"    Valid From: {cert.not_before.isoformat()}")
    print(f"    Valid Until: {cert.not_after.isoformat()}")
    return store


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate an end-entity certificate.")
    parser.add_argument("--cn", required=True, help="Common Name for certificate (e.g., 'server', 'client1')")
    parser.add_argument("--signer", required=True, help="PKCS#12 key store of the issuing CA")
    parser.add_argument("--usage", choices=[u.value for u in CertUsage if not u.is_ca], default=CertUsage.SERVER.value)
    parser.add_argument("--alt-name", action="append", dest="alt_names", help="DNS name or IPv4 (repeatable); default is the CN")
    parser.add_argument("--password", default=config.KEYSTORE_PASSWORD, help="key store password")
    parser.add_argument("--certs-dir", default=config.CERTS_DIR)
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL)

    if not args.password:
        print("A key store password is required (--password or KEYSTORE_PASSWORD).")
        sys.exit(1)

    try:
        generate_cert(args.cn, args.signer, args.password, CertUsage(args.usage), args.alt_names, args.certs_dir)
    except (PkiError, OSError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
