"""
Tests for the DryRunDeployManager
"""

# Third Party
from openshift.dynamic.exceptions import ConflictError, NotFoundError
import pytest

# First Party
import alog

# Local
from nuxop.deploy_manager import DryRunDeployManager
from nuxop.test_helpers.helpers import (
    SOME_OTHER_NAMESPACE,
    TEST_NAMESPACE,
    make_config_map,
    make_secret,
)

log = alog.use_channel("TEST")

## Helpers #####################################################################


def get(dm, name, kind="Secret", namespace=TEST_NAMESPACE, api_version=None):
    success, obj = dm.get_object_current_state(kind, name, namespace, api_version)
    assert success
    return obj


## get_object_current_state ####################################################


def test_get_prepopulated():
    """Make sure resources given at construction are readable"""
    dm = DryRunDeployManager([make_secret("foo", {"a": "b"})])
    obj = get(dm, "foo")
    assert obj["data"] == {"a": "Yg=="}
    assert obj["metadata"]["resourceVersion"] == "1"
    assert obj["metadata"]["uid"]


def test_get_missing():
    """Make sure a missing object is a successful lookup with no state"""
    dm = DryRunDeployManager([make_secret("foo")])
    assert get(dm, "bar") is None
    assert get(dm, "foo", namespace=SOME_OTHER_NAMESPACE) is None
    assert get(dm, "foo", kind="ConfigMap") is None
    assert get(dm, "foo", api_version="v2") is None


def test_get_returns_copy():
    """Make sure callers can't change the stored state through a read"""
    dm = DryRunDeployManager([make_config_map("foo", {"a": "b"})])
    get(dm, "foo", kind="ConfigMap")["data"]["a"] = "changed"
    assert get(dm, "foo", kind="ConfigMap")["data"]["a"] == "b"


## create_object ###############################################################


def test_create():
    """Make sure create stores the object with server assigned fields"""
    dm = DryRunDeployManager()
    created = dm.create_object(make_secret("foo"))
    assert created["metadata"]["uid"]
    assert created["metadata"]["creationTimestamp"]
    assert created["metadata"]["resourceVersion"] == "1"
    assert get(dm, "foo") == created


def test_create_existing_conflicts():
    """Make sure creating an existing object is a 409"""
    dm = DryRunDeployManager([make_secret("foo")])
    with pytest.raises(ConflictError) as conflict:
        dm.create_object(make_secret("foo"))
    assert conflict.value.status == 409


## update_object ###############################################################


def test_update():
    """Make sure update replaces the object and keeps server owned fields"""
    dm = DryRunDeployManager()
    created = dm.create_object(make_secret("foo", {"a": "1"}))
    updated = dm.update_object(make_secret("foo", {"a": "2"}))
    assert updated["metadata"]["uid"] == created["metadata"]["uid"]
    assert (
        updated["metadata"]["creationTimestamp"]
        == created["metadata"]["creationTimestamp"]
    )
    assert updated["metadata"]["resourceVersion"] == "2"
    assert get(dm, "foo")["data"] == make_secret("foo", {"a": "2"})["data"]


def test_update_missing():
    """Make sure updating a missing object is a 404"""
    dm = DryRunDeployManager()
    with pytest.raises(NotFoundError):
        dm.update_object(make_secret("foo"))


def test_update_stale_resource_version():
    """Make sure a stale resourceVersion is rejected in strict mode only"""
    for strict in [True, False]:
        dm = DryRunDeployManager(strict_resource_version=strict)
        created = dm.create_object(make_secret("foo"))
        dm.update_object(created)
        if strict:
            with pytest.raises(ConflictError):
                dm.update_object(created)
        else:
            dm.update_object(created)


## delete_object ###############################################################


def test_delete():
    """Make sure delete reports whether anything was removed"""
    dm = DryRunDeployManager([make_secret("foo")])
    assert dm.delete_object("Secret", "foo", TEST_NAMESPACE)
    assert get(dm, "foo") is None
    assert not dm.delete_object("Secret", "foo", TEST_NAMESPACE)
