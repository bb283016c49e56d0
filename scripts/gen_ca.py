"""Create a root CA (self-signed) or an intermediate CA signed by another CA key store."""

#!/usr/bin/env python3
import os
import sys
import logging
import argparse
from datetime import datetime, timezone, timedelta

from certchain import config
from certchain.crypto.builder import CertificateBuilder
from certchain.crypto.errors import PkiError
from certchain.crypto.keys import PrivateKey
from certchain.crypto.pki import CertName
from certchain.crypto.usage import CertUsage
from certchain.storage import files


def generate_ca(cn, password, signer_path=None, path_len=None, use_ec=False,
                days=config.CA_VALIDITY_DAYS, certs_dir=None, org=None, country=None):
    certs_dir = certs_dir or config.CERTS_DIR
    os.makedirs(certs_dir, exist_ok=True)

    p12_path = files.store_path(cn, "p12", certs_dir)
    pem_path = files.store_path(cn, "pem", certs_dir)
    if os.path.exists(p12_path) or os.path.exists(pem_path):
        print(f"CA '{cn}' already exists.")
        return None

    signer = None
    if signer_path:
        print(f"Loading signer key store {signer_path}...")
        signer = files.load_pkcs12_file(signer_path, password)

    if use_ec:
        print("Generating CA private key (EC P-256)...")
        key = PrivateKey.new_ec(256)
    else:
        print(f"Generating CA private key (RSA {config.RSA_KEY_SIZE}-bit)...")
        key = PrivateKey.new_rsa(config.RSA_KEY_SIZE)

    parts = []
    if country:
        parts.append(("C", country))
    if org:
        parts.append(("O", org))
    parts.append(("CN", cn))

    builder = (
        CertificateBuilder()
        .subject(CertName(parts))
        .signer(signer)
        .usage(CertUsage.CA)
        .not_after(datetime.now(timezone.utc) + timedelta(days=days))
        .private_key(key)
    )
    if path_len is not None:
        builder.path_len(path_len)

    print("Creating self-signed CA certificate..." if signer is None else "Creating CA certificate signed by signer...")
    store = builder.build()

    print(f"Saving key store -> {p12_path}")
    files.save_pkcs12(store, cn, password, certs_dir)
    print(f"Saving PEM key store -> {pem_path}")
    files.save_pem(store, cn, certs_dir)

    cert = store.leaf
    print("\nCA generation complete!")
    print("\nCertificate:")
    print(f"    Subject: {cert.subject_name().rfc4514()}")
    print(f"    Issuer: {cert.issuer_name().rfc4514()}")
    print(f"    Serial: {cert.serial_number}")
    print(f"    Valid Until: {cert.not_after.isoformat()}")
    print(f"    Chain length: {len(store)}")
    return store


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate a root or intermediate CA key store.")
    parser.add_argument("--cn", required=True, help="Common Name of the CA (e.g. 'Root CA')")
    parser.add_argument("--signer", help="PKCS#12 key store of the issuing CA (omit for a root)")
    parser.add_argument("--path-len", type=int, default=None, help="basicConstraints pathlen")
    parser.add_argument("--ec", action="store_true", help="use an EC P-256 key instead of RSA")
    parser.add_argument("--days", type=int, default=config.CA_VALIDITY_DAYS)
    parser.add_argument("--org", help="Organization (O)")
    parser.add_argument("--country", help="Country (C), two letters")
    parser.add_argument("--password", default=config.KEYSTORE_PASSWORD, help="key store password")
    parser.add_argument("--certs-dir", default=config.CERTS_DIR)
    args = parser.parse_args(argv)

    logging.basicConfig(level=config.LOG_LEVEL)

    if not args.password:
        print("A key store password is required (--password or KEYSTORE_PASSWORD).")
        sys.exit(1)

    try:
        generate_ca(args.cn, args.password, args.signer, args.path_len, args.ec,
                    args.days, args.certs_dir, args.org, args.country)
    except (PkiError, OSError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
