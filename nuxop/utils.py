"""
Common utilities shared across the reconciliation and binding modules
"""

# Standard
from typing import Any, Optional, Tuple
import base64

# First Party
import alog

# Local
from . import constants

log = alog.use_channel("NXUTL")

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"

## Dicts #######################################################################


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict to read from
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__ or dct is None:
            return dflt
        if not isinstance(dct, dict):
            raise TypeError(
                "Intermediate key {} is not a dict".format(  # pylint: disable=consider-using-f-string
                    constants.NESTED_DICT_DELIM.join(parts[: i + 1])
                )
            )
    return dct.get(parts[-1], dflt)


def nested_setdefault(dct: dict, key: str, dflt: Any) -> Any:
    """Like dict.setdefault, but creating intermediate dicts along a 'foo.bar'
    key
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for part in parts[:-1]:
        nxt = dct.get(part)
        if nxt is None:
            nxt = dct[part] = {}
        dct = nxt
    if dct.get(parts[-1]) is None:
        dct[parts[-1]] = dflt
    return dct[parts[-1]]


## Manifests ###################################################################


def get_manifest_identifiers(manifest: dict) -> Tuple[str, str, str, Optional[str]]:
    """Get the (api_version, kind, name, namespace) for a manifest dict"""
    metadata = manifest.get("metadata", {})
    return (
        manifest.get("apiVersion"),
        manifest.get("kind"),
        metadata.get("name"),
        metadata.get("namespace"),
    )


def make_api_version(group: Optional[str], version: str) -> str:
    """Build an apiVersion string from a group (empty for the core group) and
    a version
    """
    return f"{group}/{version}" if group else version


## Encoding ####################################################################


def b64_encode(value: bytes) -> str:
    """Encode raw bytes the way they are stored in a Secret's data map"""
    if isinstance(value, str):
        value = value.encode("utf-8")
    return base64.b64encode(value).decode("utf-8")


def b64_decode(value: str) -> bytes:
    """Decode a value read from a Secret's data map"""
    return base64.b64decode(value)
