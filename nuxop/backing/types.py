"""
Typed views of the backingServices section of a Nuxeo instance. The fields
mirror the camelCase keys of the custom resource.
"""

# Standard
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Local
from ..exceptions import assert_config
from ..utils import make_api_version

TRUST_STORE = "TrustStore"
KEY_STORE = "KeyStore"


@dataclass
class CertTransform:
    """Turns PEM material from a resource into a trust store or key store"""

    type: str
    cert: str
    store: str
    password: str
    pass_env: str
    private_key: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict) -> "CertTransform":
        transform = cls(
            type=raw.get("type"),
            cert=raw.get("cert"),
            store=raw.get("store"),
            password=raw.get("password"),
            pass_env=raw.get("passEnv"),
            private_key=raw.get("privateKey"),
        )
        assert_config(
            transform.type in (TRUST_STORE, KEY_STORE),
            f"unsupported transform type '{transform.type}'",
        )
        assert_config(
            transform.cert and transform.store and transform.password,
            "a transform requires cert, store and password",
        )
        assert_config(
            transform.pass_env, "a transform requires passEnv to expose the password"
        )
        assert_config(
            transform.type == TRUST_STORE or transform.private_key,
            "a KeyStore transform requires privateKey",
        )
        assert_config(
            transform.type == KEY_STORE or not transform.private_key,
            "a TrustStore transform does not take a privateKey",
        )
        return transform


@dataclass
class ResourceProjection:
    """One value taken from a resource and exactly one way to realize it"""

    from_: Optional[str] = None
    env: Optional[str] = None
    value: bool = False
    mount: Optional[str] = None
    transform: Optional[CertTransform] = None

    @classmethod
    def from_dict(cls, raw: dict) -> "ResourceProjection":
        transform = raw.get("transform")
        return cls(
            from_=raw.get("from"),
            env=raw.get("env"),
            value=bool(raw.get("value", False)),
            mount=raw.get("mount"),
            transform=CertTransform.from_dict(transform) if transform else None,
        )


@dataclass
class BackingServiceResource:
    """A cluster resource and the values to project from it"""

    version: str
    kind: str
    name: str
    group: str = ""
    projections: List[ResourceProjection] = field(default_factory=list)

    @property
    def api_version(self) -> str:
        return make_api_version(self.group, self.version)

    @classmethod
    def from_dict(cls, raw: dict) -> "BackingServiceResource":
        resource = cls(
            group=raw.get("group") or "",
            version=raw.get("version"),
            kind=raw.get("kind"),
            name=raw.get("name"),
            projections=[
                ResourceProjection.from_dict(proj)
                for proj in raw.get("projections") or []
            ],
        )
        assert_config(
            resource.version and resource.kind and resource.name,
            "a backing service resource requires version, kind and name",
        )
        return resource


@dataclass
class PreconfiguredBackingService:
    """Shorthand for a binding to a well known operator-managed service"""

    type: str
    resource: str
    settings: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict) -> "PreconfiguredBackingService":
        preconfigured = cls(
            type=raw.get("type"),
            resource=raw.get("resource"),
            settings=dict(raw.get("settings") or {}),
        )
        assert_config(
            preconfigured.type and preconfigured.resource,
            "a preconfigured backing service requires type and resource",
        )
        return preconfigured


@dataclass
class BackingService:
    """A named binding between Nuxeo and one backing service"""

    name: Optional[str] = None
    resources: List[BackingServiceResource] = field(default_factory=list)
    nuxeo_conf: str = ""
    template: Optional[str] = None
    pre_configured: Optional[PreconfiguredBackingService] = None

    @classmethod
    def from_dict(cls, raw: dict) -> "BackingService":
        pre_configured = raw.get("preConfigured")
        backing = cls(
            name=raw.get("name"),
            resources=[
                BackingServiceResource.from_dict(res)
                for res in raw.get("resources") or []
            ],
            nuxeo_conf=raw.get("nuxeoConf") or "",
            template=raw.get("template"),
            pre_configured=(
                PreconfiguredBackingService.from_dict(pre_configured)
                if pre_configured
                else None
            ),
        )
        assert_config(
            backing.name or backing.pre_configured,
            "a backing service requires a name unless it is preconfigured",
        )
        return backing
