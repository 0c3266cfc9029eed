"""
Tests for the trust store and key store builders
"""

# Third Party
import jks
import pytest

# Local
from nuxop import certs
from nuxop.exceptions import ConfigError
from nuxop.test_helpers.helpers import library_config, make_cert_and_key

## Helpers #####################################################################

CERT_A, KEY_A = make_cert_and_key("a.nuxeo.com")
CERT_B, KEY_B = make_cert_and_key("b.nuxeo.com")

## gen_password ################################################################


def test_gen_password_length():
    """Make sure the configured length is used and passwords differ"""
    with library_config(store_password_length=20):
        password = certs.gen_password()
    assert len(password) == 20
    assert password.isalnum()
    assert len(certs.gen_password(9)) == 9
    assert certs.gen_password() != certs.gen_password()


## Trust store #################################################################


def test_trust_store_round_trip():
    """Make sure every cert comes back with its alias"""
    store, password = certs.trust_store_from_pem(CERT_A + CERT_B)
    content = certs.load_store(store, password)
    assert content.key is None
    assert sorted(name for name, _ in content.certs) == ["alias0", "alias1"]
    assert sorted(certs.cert_to_pem(cert) for _, cert in content.certs) == sorted(
        [CERT_A, CERT_B]
    )


def test_trust_store_trusted_cert_entries():
    """Make sure every cert is a trusted certificate entry of a JKS store so
    that Java trust managers pick it up
    """
    store, password = certs.trust_store_from_pem(CERT_A + CERT_B)
    keystore = jks.KeyStore.loads(store, password)
    assert keystore.store_type == "jks"
    assert sorted(keystore.certs) == ["alias0", "alias1"]
    assert all(
        isinstance(entry, jks.TrustedCertEntry) for entry in keystore.certs.values()
    )
    assert not keystore.private_keys


def test_trust_store_ignores_other_blocks():
    """Make sure non certificate blocks in the input are skipped"""
    store, password = certs.trust_store_from_pem(KEY_A + CERT_A)
    assert len(certs.load_store(store, password).certs) == 1


def test_trust_store_no_certs():
    """Make sure input without certificates is an error"""
    with pytest.raises(ConfigError, match="no certs found"):
        certs.trust_store_from_pem(b"not a pem")


def test_trust_store_wrong_password():
    """Make sure the store is actually protected by the password"""
    store = certs.to_trust_store(CERT_A, "right-password")
    with pytest.raises(ConfigError, match="unable to decode store"):
        certs.load_store(store, "wrong-password")


## Key store ###################################################################


def test_key_store_round_trip():
    """Make sure the key and chain come back from a key store"""
    store, password = certs.key_store_from_pem(CERT_A + CERT_B, KEY_A)
    content = certs.load_store(store, password)
    assert certs.key_to_pem(content.key) == KEY_A
    assert content.certs[0] == ("alias", content.certs[0][1])
    assert certs.cert_to_pem(content.certs[0][1]) == CERT_A
    assert len(content.certs) == 2


def test_key_store_private_key_entry():
    """Make sure the key and chain live in a single private key entry"""
    store, password = certs.key_store_from_pem(CERT_A + CERT_B, KEY_A)
    keystore = jks.KeyStore.loads(store, password)
    assert list(keystore.private_keys) == ["alias"]
    assert not keystore.certs
    entry = keystore.private_keys["alias"]
    assert [der for _, der in entry.cert_chain] == [
        certs.cert_to_der(cert) for cert in certs.load_pem_certs(CERT_A + CERT_B)
    ]


def test_key_store_key_first_block():
    """Make sure the first block of the key input must be a private key"""
    with pytest.raises(ConfigError, match="private key"):
        certs.key_store_from_pem(CERT_A, CERT_A + KEY_A)
    with pytest.raises(ConfigError, match="no PEM data"):
        certs.key_store_from_pem(CERT_A, b"")


## store_matches ###############################################################


def test_store_matches():
    """Make sure an existing store only matches the material it was built
    from
    """
    store, password = certs.trust_store_from_pem(CERT_A)
    assert certs.store_matches(store, password, CERT_A)
    assert not certs.store_matches(store, password, CERT_B)
    assert not certs.store_matches(store, password, CERT_A + CERT_B)
    assert not certs.store_matches(store, "wrong", CERT_A)
    assert not certs.store_matches(store, password, CERT_A, KEY_A)

    key_store, key_password = certs.key_store_from_pem(CERT_A, KEY_A)
    assert certs.store_matches(key_store, key_password, CERT_A, KEY_A)
    assert not certs.store_matches(key_store, key_password, CERT_A, KEY_B)
    assert not certs.store_matches(key_store, key_password, CERT_A)
