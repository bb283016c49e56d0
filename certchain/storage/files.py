"""Save / load key stores under CERTS_DIR."""
import os

from certchain import config
from certchain.crypto.keystore import KeyStore
from certchain.storage.pem import dump_pem, load_pem
from certchain.storage.pkcs12 import dump_pkcs12, load_pkcs12


def store_path(name: str, ext: str, certs_dir: str = None) -> str:
    return os.path.join(certs_dir or config.CERTS_DIR, f"{name}.{ext}")


def _write(path: str, data: bytes, overwrite: bool):
    if os.path.exists(path) and not overwrite:
        raise FileExistsError(path)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)
    # private key material
    os.chmod(path, 0o600)


def save_pkcs12(store: KeyStore, name: str, password: str, certs_dir: str = None, overwrite: bool = False) -> str:
    """Write `store` as <certs_dir>/<name>.p12 with alias `name`. Returns the path."""
    path = store_path(name, "p12", certs_dir)
    _write(path, dump_pkcs12(store, name, password), overwrite)
    return path


def load_pkcs12_file(path: str, password: str) -> KeyStore:
    with open(path, "rb") as f:
        return load_pkcs12(f.read(), password)


def save_pem(store: KeyStore, name: str, certs_dir: str = None, overwrite: bool = False) -> str:
    """Write `store` as <certs_dir>/<name>.pem (unencrypted). Returns the path."""
    path = store_path(name, "pem", certs_dir)
    _write(path, dump_pem(store), overwrite)
    return path


def load_pem_file(path: str) -> KeyStore:
    with open(path, "rb") as f:
        return load_pem(f.read())
