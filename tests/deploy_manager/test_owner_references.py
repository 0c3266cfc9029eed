"""
Tests for the ownership helpers
"""

# Standard
import copy

# Third Party
import pytest

# First Party
import alog

# Local
from nuxop.deploy_manager.owner_references import (
    _make_owner_reference,
    get_owner_uids,
    is_owner,
    set_owner_reference,
)
from nuxop.test_helpers.helpers import TEST_NAMESPACE

## Helpers #####################################################################

log = alog.use_channel("TEST")

SAMPLE_OWNER = {
    "kind": "Nuxeo",
    "apiVersion": "nuxeo.com/v1alpha1",
    "metadata": {
        "name": "owner",
        "namespace": TEST_NAMESPACE,
        "uid": "12345",
    },
}


def sample_object():
    return {
        "kind": "Secret",
        "apiVersion": "v1",
        "metadata": {"name": "child", "namespace": TEST_NAMESPACE},
    }


## set_owner_reference #########################################################


def test_add_new_owner_ref():
    """Test that adding a ref to an object with none present adds as expected"""
    obj = sample_object()
    set_owner_reference(SAMPLE_OWNER, obj)
    assert obj["metadata"]["ownerReferences"] == [_make_owner_reference(SAMPLE_OWNER)]
    ref = obj["metadata"]["ownerReferences"][0]
    assert ref["uid"] == "12345"
    assert ref["controller"] is True
    assert ref["blockOwnerDeletion"] is True


def test_no_duplicate():
    """Test that an object with an existing ref for the owner does not
    duplicate the existing ref
    """
    obj = sample_object()
    obj["metadata"]["ownerReferences"] = [_make_owner_reference(SAMPLE_OWNER)]
    before = copy.deepcopy(obj)
    set_owner_reference(SAMPLE_OWNER, obj)
    assert obj == before


def test_keep_other_owners():
    """Test that refs to other owners are preserved"""
    obj = sample_object()
    other = {"apiVersion": "v1", "kind": "ConfigMap", "name": "x", "uid": "999"}
    obj["metadata"]["ownerReferences"] = [other]
    set_owner_reference(SAMPLE_OWNER, obj)
    assert get_owner_uids(obj["metadata"]) == ["999", "12345"]


def test_invalid_owner():
    """Make sure an owner without a uid is rejected"""
    owner = copy.deepcopy(SAMPLE_OWNER)
    del owner["metadata"]["uid"]
    with pytest.raises(AssertionError):
        set_owner_reference(owner, sample_object())


## is_owner ####################################################################


def test_is_owner():
    """Make sure ownership is a plain uid comparison"""
    obj = sample_object()
    assert not is_owner(obj["metadata"], "12345")
    set_owner_reference(SAMPLE_OWNER, obj)
    assert is_owner(obj["metadata"], "12345")
    assert not is_owner(obj["metadata"], "54321")
    assert not is_owner(obj["metadata"], None)


def test_get_owner_uids_empty():
    """Make sure missing metadata yields no owners"""
    assert get_owner_uids({}) == []
    assert get_owner_uids(None) == []
    assert get_owner_uids({"ownerReferences": None}) == []
