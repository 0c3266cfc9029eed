"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from functools import lru_cache
from typing import List, Optional, Tuple
from unittest import mock
import copy
import datetime
import inspect
import os

# Third Party
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509.oid import NameOID

# First Party
import aconfig
import alog

# Local
from nuxop.config import library_config as config_detail_dict
from nuxop.deploy_manager.dry_run_deploy_manager import DryRunDeployManager
from nuxop.utils import b64_encode

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_INSTANCE_NAME = "nuxeo"
TEST_INSTANCE_UID = "12345678-1234-1234-1234-123456789012"
TEST_NAMESPACE = "test"
SOME_OTHER_NAMESPACE = "somewhere"
SOME_OTHER_UID = "87654321-4321-4321-4321-210987654321"


## Manifests ###################################################################


def setup_cr(
    backing_services: Optional[List[dict]] = None,
    name=TEST_INSTANCE_NAME,
    namespace=TEST_NAMESPACE,
    uid=TEST_INSTANCE_UID,
    **kwargs,
):
    """Make a Nuxeo instance manifest"""
    cr_dict = kwargs or {}
    cr_dict.setdefault("kind", "Nuxeo")
    cr_dict.setdefault("apiVersion", "nuxeo.com/v1alpha1")
    cr_dict.setdefault("metadata", {}).setdefault("name", name)
    cr_dict["metadata"].setdefault("namespace", namespace)
    cr_dict["metadata"].setdefault("uid", uid)
    cr_dict.setdefault("spec", {}).setdefault("nuxeoImage", "nuxeo:LTS")
    if backing_services is not None:
        cr_dict["spec"]["backingServices"] = copy.deepcopy(backing_services)
    return aconfig.Config(cr_dict, override_env_vars=False)


def make_deployment(name="nuxeo-cluster", namespace=TEST_NAMESPACE, env=None):
    """Make a minimal Nuxeo deployment manifest with a single nuxeo container"""
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "replicas": 1,
            "template": {
                "metadata": {"labels": {"app": "nuxeo"}},
                "spec": {
                    "containers": [
                        {
                            "name": "nuxeo",
                            "image": "nuxeo:LTS",
                            "env": copy.deepcopy(env or []),
                        }
                    ],
                },
            },
        },
    }


def make_secret(
    name, data=None, namespace=TEST_NAMESPACE, owner_uids=None, string_data=None
):
    """Make a Secret manifest. Values in data are base64 encoded here."""
    secret = {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": {"name": name, "namespace": namespace},
        "data": {key: b64_encode(val) for key, val in (data or {}).items()},
    }
    if string_data:
        secret["stringData"] = dict(string_data)
    if owner_uids:
        secret["metadata"]["ownerReferences"] = [
            {
                "apiVersion": "nuxeo.com/v1alpha1",
                "kind": "Nuxeo",
                "name": f"owner-{idx}",
                "uid": uid,
            }
            for idx, uid in enumerate(owner_uids)
        ]
    return secret


def make_config_map(name, data=None, namespace=TEST_NAMESPACE):
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": namespace},
        "data": dict(data or {}),
    }


## PKI #########################################################################


@lru_cache(maxsize=None)
def make_cert_and_key(common_name: str = "test.nuxeo.com") -> Tuple[bytes, bytes]:
    """Make a self-signed certificate and its PKCS8 private key, both PEM
    encoded
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return (
        cert.public_bytes(Encoding.PEM),
        key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()),
    )


## Config ######################################################################


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion
    """
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        config_detail_dict[key] = val

    try:
        yield
    finally:
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


## Deploy Manager ##############################################################


def get_failable_method(fail_flag, method, failure_return=False):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if fail_flag == "assert":
            raise AssertionError(f"You told me to fail {method}!")
        if fail_flag:
            log.debug4("Returning %s", failure_return)
            return failure_return
        return method(*args, **kwargs)

    return failable_method


class MockDeployManager(DryRunDeployManager):
    """The MockDeployManager wraps a standard DryRunDeployManager and adds
    configuration options to simulate failures in each of its operations. All
    operations are mock.Mock instances so tests can inspect the calls.
    """

    def __init__(
        self,
        get_state_fail=False,
        get_state_raise=False,
        create_fail=False,
        update_fail=False,
        delete_fail=False,
        resources=None,
        **kwargs,
    ):
        resources = resources or []
        for resource in resources:
            resource.setdefault("apiVersion", "v1")
        super().__init__(resources, **kwargs)

        self.get_state_fail = "assert" if get_state_raise else get_state_fail
        self.get_object_current_state = mock.Mock(
            side_effect=get_failable_method(
                self.get_state_fail, super().get_object_current_state, (False, None)
            )
        )
        self.create_object = mock.Mock(
            side_effect=get_failable_method(create_fail, super().create_object)
        )
        self.update_object = mock.Mock(
            side_effect=get_failable_method(update_fail, super().update_object)
        )
        self.delete_object = mock.Mock(
            side_effect=get_failable_method(delete_fail, super().delete_object)
        )

    def get_obj(self, kind, name, namespace=TEST_NAMESPACE, api_version=None):
        return DryRunDeployManager.get_object_current_state(
            self, kind, name, namespace, api_version
        )[1]

    def has_obj(self, *args, **kwargs):
        return self.get_obj(*args, **kwargs) is not None
