"""Defaults for certificate generation, read from the environment / .env."""

import os
from dotenv import load_dotenv

load_dotenv()  # reads .env in project root

CERTS_DIR = os.getenv("CERTS_DIR", "certs")

CERT_VALIDITY_DAYS = int(os.getenv("CERT_VALIDITY_DAYS", "825"))
CA_VALIDITY_DAYS = int(os.getenv("CA_VALIDITY_DAYS", "3650"))
RSA_KEY_SIZE = int(os.getenv("RSA_KEY_SIZE", "2048"))

KEYSTORE_PASSWORD = os.getenv("KEYSTORE_PASSWORD")
LOG_LEVEL = os.getenv("CERTCHAIN_LOG_LEVEL", "WARNING")
