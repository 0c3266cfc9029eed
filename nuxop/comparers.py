"""
Comparers decide whether a desired object and the observed object in the
cluster are equal. A comparer never mutates its arguments: it returns
(True, observed) when no write is needed and (False, updated) where updated is
a new copy of observed carrying the desired values. Fields the platform assigns
or manages are left out of every comparison so the reconciler does not fight
the cluster over them.
"""

# Standard
from typing import Callable, Tuple
import copy

# First Party
import alog

# Local
from . import constants
from .utils import nested_get, nested_setdefault

log = alog.use_channel("COMPR")

# (desired, observed) -> (equal, observed_or_updated)
Comparer = Callable[[dict, dict], Tuple[bool, dict]]

## Helpers #####################################################################


def _field(obj: dict, key: str):
    """Read a nested field, treating empty maps and lists the same as absent"""
    value = nested_get(obj, key)
    return None if value in ({}, []) else value


def _compare_fields(desired: dict, observed: dict, *keys: str) -> Tuple[bool, dict]:
    """Compare the given nested keys and, on any difference, copy all of them
    from desired onto a copy of observed
    """
    if all(_field(desired, key) == _field(observed, key) for key in keys):
        return True, observed
    updated = copy.deepcopy(observed)
    for key in keys:
        *parents, leaf = key.split(constants.NESTED_DICT_DELIM)
        parent = updated
        for part in parents:
            if parent.get(part) is None:
                parent[part] = {}
            parent = parent[part]
        value = _field(desired, key)
        if value is None:
            parent.pop(leaf, None)
        else:
            parent[leaf] = copy.deepcopy(value)
    log.debug3("Fields %s differ", keys)
    return False, updated


def _annotations(obj: dict) -> dict:
    return nested_get(obj, "metadata.annotations") or {}


## Comparers ###################################################################


def nop_comparer(_desired: dict, observed: dict) -> Tuple[bool, dict]:
    """Always reports the objects as equal"""
    return True, observed


def secret_comparer(desired: dict, observed: dict) -> Tuple[bool, dict]:
    """Secrets are equal when their data and annotations match"""
    data_equal, updated = _compare_fields(desired, observed, "data")
    annotations_equal, updated = _compare_fields(
        desired, updated, "metadata.annotations"
    )
    return data_equal and annotations_equal, updated


def config_map_comparer(desired: dict, observed: dict) -> Tuple[bool, dict]:
    """ConfigMaps are equal when their data matches"""
    return _compare_fields(desired, observed, "data", "binaryData")


def service_comparer(desired: dict, observed: dict) -> Tuple[bool, dict]:
    """Services are compared on ports, selector and type only. The cluster IP
    and the other defaulted spec fields belong to the platform.
    """
    return _compare_fields(
        desired, observed, "spec.ports", "spec.selector", "spec.type"
    )


def route_comparer(desired: dict, observed: dict) -> Tuple[bool, dict]:
    """Routes are compared on the full spec"""
    return _compare_fields(desired, observed, "spec")


def ingress_comparer(desired: dict, observed: dict) -> Tuple[bool, dict]:
    """Ingresses are compared on the spec and the TLS passthrough annotation.
    Other annotations are left to whoever put them there.
    """
    key = constants.NGINX_PASSTHROUGH_ANNOTATION
    spec_equal, updated = _compare_fields(desired, observed, "spec")
    desired_value = _annotations(desired).get(key)
    if desired_value == _annotations(observed).get(key):
        return spec_equal, updated
    if updated is observed:
        updated = copy.deepcopy(observed)
    annotations = nested_setdefault(updated, "metadata.annotations", {})
    if desired_value is None:
        del annotations[key]
    else:
        annotations[key] = desired_value
    return False, updated


def deployment_comparer(desired: dict, observed: dict) -> Tuple[bool, dict]:
    """Deployments are compared on the spec. Pod template annotations that the
    operator does not originate (e.g. a restartedAt stamp from a rollout
    restart) are carried over from observed so they do not show up as a diff.
    """
    foreign = {
        key: val
        for key, val in (
            nested_get(observed, "spec.template.metadata.annotations") or {}
        ).items()
        if key not in constants.OPERATOR_POD_ANNOTATIONS
    }
    if foreign:
        desired = copy.deepcopy(desired)
        annotations = nested_setdefault(
            desired, "spec.template.metadata.annotations", {}
        )
        for key, val in foreign.items():
            annotations.setdefault(key, val)
    return _compare_fields(desired, observed, "spec")


def pvc_comparer(desired: dict, observed: dict) -> Tuple[bool, dict]:
    """PersistentVolumeClaims are compared on access modes, requested resources
    and, when the desired object sets one, the volume mode
    """
    keys = ["spec.accessModes", "spec.resources"]
    if nested_get(desired, "spec.volumeMode") is not None:
        keys.append("spec.volumeMode")
    return _compare_fields(desired, observed, *keys)


def service_account_comparer(desired: dict, observed: dict) -> Tuple[bool, dict]:
    """ServiceAccounts are compared on image pull secrets. The token secrets
    list is maintained by the platform.
    """
    return _compare_fields(desired, observed, "imagePullSecrets")
