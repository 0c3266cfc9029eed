"""
This module holds the ownership helpers. Ownership is a plain comparison of the
owner UID list on the child against the UID of the Nuxeo instance; there is no
in-memory object graph.
"""

# Standard
from typing import List

# First Party
import alog

log = alog.use_channel("OWNRF")


def get_owner_uids(metadata: dict) -> List[str]:
    """Get the UIDs of all owner references in an object's metadata"""
    return [
        ref.get("uid") for ref in (metadata or {}).get("ownerReferences") or []
    ]


def is_owner(metadata: dict, owner_uid: str) -> bool:
    """Determine whether the object with the given metadata is owned by the
    object with the given UID

    Args:
        metadata:  dict
            The metadata section of the (possibly) owned object
        owner_uid:  str
            The UID of the candidate owner

    Returns:
        owned:  bool
            True iff any ownerReferences entry carries owner_uid
    """
    return bool(owner_uid) and owner_uid in get_owner_uids(metadata)


def set_owner_reference(owner_cr: dict, child_obj: dict):
    """Stamp an owner reference for owner_cr onto the desired child object.
    Builders call this before handing the object to the reconciler.
    """
    _validate_object_struct(owner_cr)
    metadata = child_obj.setdefault("metadata", {})
    owner_uid = owner_cr["metadata"]["uid"]
    if is_owner(metadata, owner_uid):
        log.debug3("Owner reference for %s already present", owner_uid)
        return
    log.debug2(
        "Adding owner reference for %s to %s/%s",
        owner_uid,
        child_obj.get("kind"),
        metadata.get("name"),
    )
    metadata.setdefault("ownerReferences", []).append(
        _make_owner_reference(owner_cr)
    )


## Implementation Details ######################################################


def _validate_object_struct(obj: dict):
    """Ensure that the required portions of an owner are present"""
    assert "kind" in obj, "Got object without 'kind'"
    assert "apiVersion" in obj, "Got object without 'apiVersion'"
    metadata = obj.get("metadata")
    assert isinstance(metadata, dict), "Got object with non-dict 'metadata'"
    assert "name" in metadata, "Got object without 'metadata.name'"
    assert "uid" in metadata, "Got object without 'metadata.uid'"


def _make_owner_reference(owner_cr: dict) -> dict:
    """Make the metadata.ownerReferences entry pointing at the given owner"""
    metadata = owner_cr.get("metadata", {})
    return {
        "apiVersion": owner_cr.get("apiVersion"),
        "kind": owner_cr.get("kind"),
        "name": metadata.get("name"),
        "uid": metadata.get("uid"),
        "controller": True,
        # The owner will not be deleted until this object completes its
        # deletion
        "blockOwnerDeletion": True,
    }
