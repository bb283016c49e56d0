import importlib.util
from datetime import datetime, timezone, timedelta
from pathlib import Path

import pytest

from certchain.crypto.builder import CertificateBuilder
from certchain.crypto.keys import PrivateKey
from certchain.crypto.pki import CertName
from certchain.crypto.usage import CertUsage

ROOT_DIR = Path(__file__).resolve().parent.parent


def make_ca(cn, signer=None, path_len=None):
    builder = (
        CertificateBuilder()
        .subject(CertName([("C", "US"), ("O", "Acme"), ("CN", cn)]))
        .signer(signer)
        .usage(CertUsage.CA)
        .not_after(datetime.now(timezone.utc) + timedelta(days=3650))
        .private_key(PrivateKey.new_ec())
    )
    if path_len is not None:
        builder.path_len(path_len)
    return builder.build()


def make_entity(cn, signer, usage=CertUsage.CLIENT, alt_names=()):
    return (
        CertificateBuilder()
        .subject(CertName([("C", "US"), ("O", "Acme"), ("CN", cn)]))
        .signer(signer)
        .usage(usage)
        .alt_names(alt_names)
        .private_key(PrivateKey.new_ec())
        .build()
    )


@pytest.fixture(scope="session")
def root_store():
    return make_ca("Root CA")


@pytest.fixture(scope="session")
def intermediate_store(root_store):
    return make_ca("Intermediate CA", root_store)


@pytest.fixture(scope="session")
def leaf_store(intermediate_store):
    return make_entity("mycert", intermediate_store, alt_names=["192.168.1.1", "acme.home.lan"])


@pytest.fixture
def load_script():
    def _load(name):
        path = ROOT_DIR / "scripts" / f"{name}.py"
        spec = importlib.util.spec_from_file_location(f"script_{name}", path)
        mod = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(mod)
        return mod
    return _load
