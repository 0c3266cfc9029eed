"""
The ResourceRegistry knows which resource kinds are opaque key/value stores
(Secrets and ConfigMaps) and how to read them and reference them. It is built
once at start-up and handed to every component that needs it; there is no
module level registry.
"""

# Standard
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
import binascii

# First Party
import alog

# Local
from . import constants
from .exceptions import ConfigError
from .utils import b64_decode

log = alog.use_channel("RGSTY")


class ResolutionStrategy(Enum):
    """How projection values are read from a resource"""

    # Values are looked up by key in the object's data map
    OPAQUE_KEY_VALUE = "OpaqueKeyValue"

    # Values are extracted from the manifest with a path expression
    STRUCTURED = "Structured"


@dataclass(frozen=True)
class OpaqueKind:
    """Description of a registered opaque key/value kind"""

    kind: str
    api_version: str

    # Name of the reference type used in env valueFrom (secretKeyRef, ...)
    key_ref: str

    # Name of the projected volume source type (secret, configMap)
    projection_source: str

    # Data maps holding values, and whether their values are base64 encoded
    data_fields: Tuple[Tuple[str, bool], ...]


class ResourceRegistry:
    """Registry of opaque key/value kinds. Every kind that is not registered
    resolves with path expressions.
    """

    def __init__(self):
        self._opaque: Dict[Tuple[str, str], OpaqueKind] = {}

    @classmethod
    def default(cls) -> "ResourceRegistry":
        """Build the registry holding the core Secret and ConfigMap kinds"""
        registry = cls()
        registry.register_opaque(
            OpaqueKind(
                kind="Secret",
                api_version=constants.CORE_API_VERSION,
                key_ref="secretKeyRef",
                projection_source="secret",
                data_fields=(("data", True), ("stringData", False)),
            )
        )
        registry.register_opaque(
            OpaqueKind(
                kind="ConfigMap",
                api_version=constants.CORE_API_VERSION,
                key_ref="configMapKeyRef",
                projection_source="configMap",
                data_fields=(("data", False), ("binaryData", True)),
            )
        )
        return registry

    def register_opaque(self, opaque_kind: OpaqueKind):
        log.debug2(
            "Registering opaque kind %s/%s", opaque_kind.api_version, opaque_kind.kind
        )
        self._opaque[
            (opaque_kind.api_version, opaque_kind.kind.lower())
        ] = opaque_kind

    def get_opaque(self, api_version: str, kind: str) -> Optional[OpaqueKind]:
        """Look up a registered opaque kind. Kind matching is case-insensitive."""
        return self._opaque.get((api_version, (kind or "").lower()))

    def strategy(self, api_version: str, kind: str) -> ResolutionStrategy:
        if self.get_opaque(api_version, kind):
            return ResolutionStrategy.OPAQUE_KEY_VALUE
        return ResolutionStrategy.STRUCTURED

    def canonical_kind(self, api_version: str, kind: str) -> str:
        """Get the canonical spelling of a kind (secret -> Secret)"""
        opaque_kind = self.get_opaque(api_version, kind)
        return opaque_kind.kind if opaque_kind else kind

    def read_key(self, obj: dict, key: str) -> Optional[bytes]:
        """Read the raw bytes stored under key in an opaque object, or None if
        the key is not present
        """
        api_version = obj.get("apiVersion")
        opaque_kind = self.get_opaque(api_version, obj.get("kind"))
        if opaque_kind is None:
            raise ConfigError(f"{api_version}/{obj.get('kind')} is not a key/value kind")
        for field, encoded in opaque_kind.data_fields:
            value = (obj.get(field) or {}).get(key)
            if value is None:
                continue
            if not encoded:
                return value.encode("utf-8")
            try:
                return b64_decode(value)
            except (binascii.Error, ValueError) as err:
                raise ConfigError(
                    f"value of '{key}' in {obj.get('kind')} is not valid base64"
                ) from err
        return None
