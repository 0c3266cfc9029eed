"""
Shared utilities for turning PEM encoded certificates and keys into password
protected JKS trust stores and key stores
"""

# Standard
from typing import List, NamedTuple, Optional, Tuple
import re
import secrets
import string

# Third Party
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
import jks

# First Party
import alog

# Local
from . import config, constants
from .exceptions import ConfigError, assert_config

log = alog.use_channel("CERTS")

# One PEM block: the type in the BEGIN line and the full block text
_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([A-Z0-9 ]+)-----\r?\n.*?-----END \1-----\r?\n?", re.DOTALL
)

_PASSWORD_CHARS = string.ascii_letters + string.digits

# Store type understood by the Java consumers of the stores
STORE_TYPE = "jks"


class StoreContent(NamedTuple):
    """The decoded content of a store"""

    # (alias, certificate) for every certificate in the store. For a key store
    # these are the chain of the private key entry, leaf first.
    certs: List[Tuple[str, x509.Certificate]]

    # The private key, if any
    key: Optional[object]


## Public ######################################################################


def gen_password(length: Optional[int] = None) -> str:
    """Generate a random alphanumeric password for a store"""
    length = length or config.store_password_length
    return "".join(secrets.choice(_PASSWORD_CHARS) for _ in range(length))


def to_trust_store(pem_certs: bytes, password: str) -> bytes:
    """Build a trust store holding one trusted cert entry per PEM certificate
    block, with aliases alias0, alias1, ...

    Args:
        pem_certs:  bytes
            One or more PEM encoded certificates
        password:  str
            The store password

    Returns:
        store:  bytes
            The JKS encoded store
    """
    certs = load_pem_certs(pem_certs)
    log.debug2("Building trust store with %d certs", len(certs))
    entries = [
        jks.TrustedCertEntry.new(
            f"{constants.TRUST_STORE_ALIAS_PREFIX}{idx}", cert_to_der(cert)
        )
        for idx, cert in enumerate(certs)
    ]
    return jks.KeyStore.new(STORE_TYPE, entries).saves(password)


def to_key_store(pem_certs: bytes, pem_key: bytes, password: str) -> bytes:
    """Build a key store with a single private key entry holding the key and
    the full certificate chain. The entry is protected by the store password.

    Args:
        pem_certs:  bytes
            The PEM encoded chain, leaf first
        pem_key:  bytes
            A PEM encoded private key
        password:  str
            The store password

    Returns:
        store:  bytes
            The JKS encoded store
    """
    certs = load_pem_certs(pem_certs)
    key = load_pem_key(pem_key)
    log.debug2("Building key store with a chain of %d certs", len(certs))
    try:
        entry = jks.PrivateKeyEntry.new(
            constants.KEY_STORE_ALIAS,
            [cert_to_der(cert) for cert in certs],
            key.private_bytes(Encoding.DER, PrivateFormat.PKCS8, NoEncryption()),
            "pkcs8",
        )
        return jks.KeyStore.new(STORE_TYPE, [entry]).saves(password)
    except (jks.util.KeystoreException, TypeError, ValueError) as err:
        raise ConfigError(f"unable to build key store: {err}") from err


def trust_store_from_pem(pem_certs: bytes) -> Tuple[bytes, str]:
    """Build a trust store with a freshly generated password"""
    password = gen_password()
    return to_trust_store(pem_certs, password), password


def key_store_from_pem(pem_certs: bytes, pem_key: bytes) -> Tuple[bytes, str]:
    """Build a key store with a freshly generated password"""
    password = gen_password()
    return to_key_store(pem_certs, pem_key, password), password


def load_store(store: bytes, password: str) -> StoreContent:
    """Decode a store built by to_trust_store or to_key_store. A store that
    cannot be decoded with the password is a ConfigError.
    """
    try:
        keystore = jks.KeyStore.loads(store, password)
        certs = [
            (alias, x509.load_der_x509_certificate(entry.cert))
            for alias, entry in sorted(keystore.certs.items())
        ]
        key = None
        for alias, entry in sorted(keystore.private_keys.items()):
            certs.extend(
                (alias, x509.load_der_x509_certificate(der))
                for _, der in entry.cert_chain
            )
            key = serialization.load_der_private_key(entry.pkey_pkcs8, password=None)
    except (jks.util.KeystoreException, TypeError, ValueError) as err:
        raise ConfigError(f"unable to decode store: {err}") from err
    return StoreContent(certs=certs, key=key)


def store_matches(
    store: bytes,
    password: str,
    pem_certs: bytes,
    pem_key: Optional[bytes] = None,
) -> bool:
    """Determine whether an existing store can be decoded with the password and
    holds exactly the given certificates (and key)
    """
    try:
        content = load_store(store, password)
        certs = load_pem_certs(pem_certs)
        key = load_pem_key(pem_key) if pem_key is not None else None
    except ConfigError as err:
        log.debug2("Existing store does not match: %s", err)
        return False
    if sorted(cert_to_der(cert) for _, cert in content.certs) != sorted(
        cert_to_der(cert) for cert in certs
    ):
        return False
    if key is None or content.key is None:
        return key is None and content.key is None
    return key_to_pem(content.key) == key_to_pem(key)


def load_pem_certs(pem_certs: bytes) -> List[x509.Certificate]:
    """Decode every CERTIFICATE block in the input. At least one is required."""
    certs = []
    for block_type, block in _pem_blocks(pem_certs):
        if block_type != b"CERTIFICATE":
            continue
        try:
            certs.append(x509.load_pem_x509_certificate(block))
        except ValueError as err:
            raise ConfigError(f"unable to decode certificate: {err}") from err
    assert_config(certs, "no certs found in cert array")
    return certs


def load_pem_key(pem_key: bytes):
    """Decode the first PEM block of the input, which must be a private key"""
    blocks = _pem_blocks(pem_key)
    assert_config(blocks, "no PEM data found in private key")
    block_type, block = blocks[0]
    assert_config(
        b"PRIVATE KEY" in block_type,
        f"expected a private key block but found '{block_type.decode('utf-8')}'",
    )
    try:
        return serialization.load_pem_private_key(block, password=None)
    except (TypeError, ValueError) as err:
        raise ConfigError(f"unable to decode private key: {err}") from err


def cert_to_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(Encoding.PEM)


def cert_to_der(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(Encoding.DER)


def key_to_pem(key) -> bytes:
    return key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())


## Implementation Details ######################################################


def _pem_blocks(data: bytes) -> List[Tuple[bytes, bytes]]:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return [
        (match.group(1), match.group(0)) for match in _PEM_BLOCK.finditer(data or b"")
    ]
