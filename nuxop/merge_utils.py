"""
Idempotent "add if absent, merge if compatible, error if conflicting" helpers
for the volumes, volume mounts and env vars of a Deployment manifest. Each
contributor to the deployment can call these as if it were the only one, and
genuine collisions surface as ConfigErrors instead of last-write-wins.
"""

# Standard
from typing import List, Optional
import copy

# First Party
import alog

# Local
from . import config
from .exceptions import ConfigError, assert_config
from .utils import nested_setdefault

log = alog.use_channel("MERGE")

# Volume source kinds whose key->path items can be merged
_ITEM_SOURCE_KINDS = ["secret", "configMap"]

# Keys of a volume that hold the source rather than identity
_VOLUME_NON_SOURCE_KEYS = ["name"]

## Containers ##################################################################


def get_container(deployment: dict, name: Optional[str] = None) -> dict:
    """Get the container with the given name (the Nuxeo container by default)
    from a deployment manifest

    Args:
        deployment:  dict
            The deployment manifest
        name:  Optional[str]
            The container name. Defaults to the configured nuxeo_container_name

    Returns:
        container:  dict
            The container dict, live inside the deployment so edits stick
    """
    name = name or config.nuxeo_container_name
    containers = (
        deployment.get("spec", {}).get("template", {}).get("spec", {}).get("containers")
        or []
    )
    for container in containers:
        if container.get("name") == name:
            return container
    raise ConfigError(f"could not find a container named '{name}' in the deployment")


## Volumes #####################################################################


def add_volume(deployment: dict, volume: dict):
    """Add a volume to the deployment's pod template by name. If a volume with
    the same name exists it must use the same source kind; secret, configMap
    and projected sources are merged item by item and any other kind must be
    identical.

    Args:
        deployment:  dict
            The deployment manifest to update in place
        volume:  dict
            The volume to add
    """
    volumes = nested_setdefault(deployment, "spec.template.spec.volumes", [])
    existing = next((vol for vol in volumes if vol["name"] == volume["name"]), None)
    if existing is None:
        log.debug3("Adding volume %s", volume["name"])
        volumes.append(copy.deepcopy(volume))
        return

    existing_kind = _volume_source_kind(existing)
    new_kind = _volume_source_kind(volume)
    assert_config(
        existing_kind == new_kind,
        f"volume '{volume['name']}' already defined with source '{existing_kind}'"
        f" which does not match '{new_kind}'",
    )
    name = volume["name"]
    if new_kind in _ITEM_SOURCE_KINDS:
        _merge_source(existing[new_kind], volume[new_kind], new_kind, name)
    elif new_kind == "projected":
        _merge_projected(existing["projected"], volume["projected"], name)
    else:
        assert_config(
            existing == volume,
            f"volume '{name}' already defined with a different {new_kind} source",
        )


def add_volume_mount(container: dict, mount: dict):
    """Add a volume mount to a container by name. A mount with the same name
    must be identical to the one being added.
    """
    mounts = container.setdefault("volumeMounts", [])
    existing = next((mnt for mnt in mounts if mnt["name"] == mount["name"]), None)
    if existing is None:
        log.debug3("Adding volume mount %s", mount["name"])
        mounts.append(copy.deepcopy(mount))
        return
    assert_config(
        _normalize_mount(existing) == _normalize_mount(mount),
        f"volume mount '{mount['name']}' already defined differently",
    )


## Env Vars ####################################################################


def merge_or_add_env_var(container: dict, env: dict, delimiter: str = None):
    """Add an env var to a container. If one with the same name already exists
    and both have plain values, the new value is appended to the existing one
    with the delimiter. Reference-typed (valueFrom) vars cannot be merged.

    Args:
        container:  dict
            The container to update in place
        env:  dict
            The env var entry ({"name": ..., "value": ...} or with valueFrom)
        delimiter:  str
            Joins merged values. Defaults to the configured env_merge_delimiter
    """
    delimiter = config.env_merge_delimiter if delimiter is None else delimiter
    env_list = container.setdefault("env", [])
    existing = _find_env(env_list, env["name"])
    if existing is None:
        log.debug3("Adding env var %s", env["name"])
        env_list.append(copy.deepcopy(env))
        return
    assert_config(
        "valueFrom" not in existing and "valueFrom" not in env,
        f"cannot merge env var '{env['name']}' because it is sourced from another object",
    )
    existing["value"] = delimiter.join(
        [existing.get("value", ""), env.get("value", "")]
    )
    log.debug3("Merged env var %s: %s", env["name"], existing["value"])


def only_add_env_var(container: dict, env: dict):
    """Add an env var to a container, failing if one with that name exists"""
    env_list = container.setdefault("env", [])
    assert_config(
        _find_env(env_list, env["name"]) is None,
        f"env var '{env['name']}' is already defined in container '{container.get('name')}'",
    )
    env_list.append(copy.deepcopy(env))


## Implementation Details ######################################################


def _find_env(env_list: List[dict], name: str) -> Optional[dict]:
    return next((env for env in env_list if env.get("name") == name), None)


def _normalize_mount(mount: dict) -> dict:
    """readOnly defaults to false on the server"""
    normalized = dict(mount)
    normalized["readOnly"] = bool(normalized.get("readOnly", False))
    return normalized


def _volume_source_kind(volume: dict) -> Optional[str]:
    kinds = [key for key in volume if key not in _VOLUME_NON_SOURCE_KEYS]
    return kinds[0] if len(kinds) == 1 else None


def _merge_items(existing_items: List[dict], new_items: List[dict], volume_name: str):
    """Merge key->path items. The same key must map to the same path."""
    for item in new_items:
        current = next(
            (cur for cur in existing_items if cur["key"] == item["key"]), None
        )
        if current is None:
            existing_items.append(copy.deepcopy(item))
            continue
        assert_config(
            current == item,
            f"key '{item['key']}' in volume '{volume_name}' is already projected"
            f" to '{current.get('path')}' which does not match '{item.get('path')}'",
        )


def _merge_source(existing: dict, new: dict, kind: str, volume_name: str):
    """Merge one secret/configMap source into another of the same kind"""
    ref_key = "secretName" if kind == "secret" else "name"
    assert_config(
        existing.get(ref_key) == new.get(ref_key),
        f"volume '{volume_name}' already references {kind} '{existing.get(ref_key)}'",
    )
    _merge_items(existing.setdefault("items", []), new.get("items") or [], volume_name)


def _merge_projected(existing: dict, new: dict, volume_name: str):
    """Merge projected volume sources. A source referencing the same object as
    an existing source has its items merged; any other source is appended.
    """
    sources = existing.setdefault("sources", [])
    for source in new.get("sources") or []:
        kind = _volume_source_kind(source)
        current = next(
            (
                cur
                for cur in sources
                if kind in cur and cur[kind].get("name") == source[kind].get("name")
            ),
            None,
        )
        if current is None or kind not in _ITEM_SOURCE_KINDS:
            if current is None:
                sources.append(copy.deepcopy(source))
            else:
                assert_config(
                    current == source,
                    f"volume '{volume_name}' already has a different {kind} source",
                )
            continue
        _merge_items(
            current[kind].setdefault("items", []),
            source[kind].get("items") or [],
            volume_name,
        )
