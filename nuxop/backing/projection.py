"""
The projection engine binds Nuxeo to its backing services. For each binding it
reads values out of cluster resources (by key for Secrets and ConfigMaps, by
path expression for everything else) and realizes them in the Nuxeo deployment
as env vars, mounted files or trust/key stores. Values that have to be copied
or generated live in a per-binding secondary secret owned by the Nuxeo
instance.
"""

# Standard
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import copy

# Third Party
from kubernetes.client.rest import ApiException

# First Party
import alog

# Local
from .. import certs, config, constants
from ..comparers import secret_comparer
from ..deploy_manager.owner_references import set_owner_reference
from ..exceptions import (
    ConfigError,
    NuxopError,
    assert_cluster,
    assert_config,
    assert_precondition,
)
from ..merge_utils import (
    add_volume,
    add_volume_mount,
    get_container,
    merge_or_add_env_var,
    only_add_env_var,
)
from ..reconcile import Reconciler
from ..registry import ResolutionStrategy, ResourceRegistry
from ..resource_path import get_path_value, is_path_expression, path_to_key
from ..utils import b64_decode, b64_encode
from .preconfigs import preconfigured_backing
from .types import (
    KEY_STORE,
    BackingService,
    BackingServiceResource,
    CertTransform,
    ResourceProjection,
)

log = alog.use_channel("BKSVC")

SECRET_TEMPLATE = {"kind": "Secret", "apiVersion": constants.CORE_API_VERSION}


@dataclass
class BackingServicesResult:
    """The outcome of configuring all bindings of a Nuxeo instance"""

    # Combined nuxeo.conf text of every binding that succeeded
    nuxeo_conf: str = ""

    # Names of the bindings that were applied, in declaration order
    configured: List[str] = field(default_factory=list)

    # Binding name -> the error that aborted it
    errors: Dict[str, Exception] = field(default_factory=dict)

    def raise_for_errors(self):
        """Re-raise the first binding error unchanged"""
        for error in self.errors.values():
            raise error


class BindingReconciler:
    """Configures the backing services of one Nuxeo instance"""

    def __init__(self, reconciler: Reconciler, registry: ResourceRegistry):
        """
        Args:
            reconciler:  Reconciler
                The reconciler for the Nuxeo instance. Its deploy manager is
                used for every resource read.
            registry:  ResourceRegistry
                Knows which kinds resolve by key
        """
        self.reconciler = reconciler
        self.deploy_manager = reconciler.deploy_manager
        self.registry = registry

    @property
    def instance(self) -> dict:
        return self.reconciler.owner_cr

    @alog.logged_function(log.debug)
    def configure_backing_services(self, deployment: dict) -> BackingServicesResult:
        """Configure every binding of the instance into the deployment. Each
        binding is applied all-or-nothing: a binding that fails leaves the
        deployment untouched and does not stop the bindings after it.

        Args:
            deployment:  dict
                The desired Nuxeo deployment, updated in place

        Returns:
            result:  BackingServicesResult
                The combined nuxeo.conf text and any per-binding errors
        """
        result = BackingServicesResult()
        conf_blocks = []
        raw_bindings = (self.instance.get("spec") or {}).get("backingServices") or []
        for idx, raw_binding in enumerate(raw_bindings):
            label = _binding_label(raw_binding, idx)
            working = copy.deepcopy(deployment)
            try:
                backing = BackingService.from_dict(raw_binding)
                if backing.pre_configured:
                    backing = preconfigured_backing(
                        backing.pre_configured, self._namespace
                    )
                label = backing.name
                assert_config(
                    label not in result.configured,
                    f"backing service '{label}' is defined more than once",
                )
                conf = self.configure_backing_service(backing, working)
            except (NuxopError, ApiException) as err:
                log.warning(
                    "Failed to configure backing service %s: %s",
                    label,
                    err,
                    extra={"binding": label},
                )
                result.errors[label] = err
                continue
            deployment.clear()
            deployment.update(working)
            result.configured.append(label)
            if conf.strip():
                conf_blocks.append(conf.strip())
        result.nuxeo_conf = "\n".join(conf_blocks)
        return result

    def configure_backing_service(
        self, backing: BackingService, deployment: dict
    ) -> str:
        """Configure a single, fully specified binding into the deployment and
        reconcile its secondary secret

        Returns:
            nuxeo_conf:  str
                The nuxeo.conf text of the binding
        """
        plans = [
            (resource, self._validate_resource(resource))
            for resource in backing.resources
        ]
        secondary = _SecondarySecret(
            name=self.secondary_secret_name(backing.name),
            existing=self._get_existing_secondary(backing.name),
        )
        container = get_container(deployment)
        for resource, strategy in plans:
            obj = self._fetch_resource(resource)
            for projection in resource.projections:
                self._project(
                    backing, resource, strategy, obj, projection, secondary, deployment
                )

        if backing.template:
            merge_or_add_env_var(
                container,
                {"name": config.templates_env_name, "value": backing.template},
                config.templates_delimiter,
            )

        self._reconcile_secondary(secondary)
        log.debug(
            "Configured backing service %s",
            backing.name,
            extra={"binding": backing.name},
        )
        return backing.nuxeo_conf

    def secondary_secret_name(self, binding_name: str) -> str:
        return (
            self.instance["metadata"]["name"]
            + constants.SECONDARY_SECRET_INFIX
            + binding_name
        )

    ## Validation ##############################################################

    def _validate_resource(
        self, resource: BackingServiceResource
    ) -> ResolutionStrategy:
        """Check every projection of a resource before anything is fetched. The
        strategy is decided once per resource from its kind.
        """
        strategy = self.registry.strategy(resource.api_version, resource.kind)
        where = f"{resource.kind} {resource.name}"
        for projection in resource.projections:
            realizations = [
                bool(projection.env),
                bool(projection.mount),
                projection.transform is not None,
            ]
            assert_config(
                sum(realizations) == 1,
                f"projection of {where} must specify exactly one of env, mount or transform",
            )
            if projection.transform is not None:
                sources = [projection.transform.cert, projection.transform.private_key]
            else:
                assert_config(projection.from_, f"projection of {where} requires from")
                sources = [projection.from_]
            for source in filter(None, sources):
                if strategy == ResolutionStrategy.OPAQUE_KEY_VALUE:
                    assert_config(
                        not is_path_expression(source),
                        f"{where} resolves values by key, got path expression '{source}'",
                    )
                else:
                    assert_config(
                        is_path_expression(source),
                        f"{where} resolves values by path expression, got key '{source}'",
                    )
            assert_config(
                not projection.env
                or projection.value
                or strategy == ResolutionStrategy.OPAQUE_KEY_VALUE,
                f"env projection '{projection.env}' of {where} requires value: true",
            )
        return strategy

    ## Resolution ##############################################################

    @property
    def _namespace(self) -> str:
        return self.instance["metadata"]["namespace"]

    def _fetch_resource(self, resource: BackingServiceResource) -> dict:
        kind = self.registry.canonical_kind(resource.api_version, resource.kind)
        success, obj = self.deploy_manager.get_object_current_state(
            kind=kind,
            name=resource.name,
            namespace=self._namespace,
            api_version=resource.api_version,
        )
        assert_cluster(
            success, f"Failed to look up {resource.api_version}/{kind} {resource.name}"
        )
        assert_cluster(
            obj is not None,
            f"{resource.api_version}/{kind} {resource.name} not found in {self._namespace}",
        )
        return obj

    def _resolve(
        self,
        resource: BackingServiceResource,
        strategy: ResolutionStrategy,
        obj: dict,
        source: str,
    ) -> bytes:
        """Get the raw value of a key or path expression from a fetched object"""
        if strategy == ResolutionStrategy.OPAQUE_KEY_VALUE:
            value = self.registry.read_key(obj, source)
            assert_config(
                value is not None,
                f"key '{source}' not found in {resource.kind} {resource.name}",
            )
            return value
        value = get_path_value(obj, source)
        assert_precondition(
            value != "",
            f"path '{source}' has no value in {resource.kind} {resource.name}",
        )
        return value.encode("utf-8")

    ## Realization #############################################################

    def _project(
        self,
        backing: BackingService,
        resource: BackingServiceResource,
        strategy: ResolutionStrategy,
        obj: dict,
        projection: ResourceProjection,
        secondary: "_SecondarySecret",
        deployment: dict,
    ):  # pylint: disable=too-many-arguments
        container = get_container(deployment)
        opaque = strategy == ResolutionStrategy.OPAQUE_KEY_VALUE

        if projection.transform is not None:
            self._project_transform(
                backing, resource, strategy, obj, projection.transform, secondary
            )
            self._add_binding_mount(
                backing, secondary, projection.transform.store, deployment
            )
            only_add_env_var(
                container,
                _key_ref_env(
                    projection.transform.pass_env,
                    "secretKeyRef",
                    secondary.name,
                    projection.transform.password,
                ),
            )

        elif projection.env and opaque and not projection.value:
            # Points at the original object, nothing is copied
            opaque_kind = self.registry.get_opaque(resource.api_version, resource.kind)
            merge_or_add_env_var(
                container,
                _key_ref_env(
                    projection.env,
                    opaque_kind.key_ref,
                    resource.name,
                    projection.from_,
                ),
            )

        elif projection.env:
            value = self._resolve(resource, strategy, obj, projection.from_)
            try:
                text = value.decode("utf-8")
            except UnicodeDecodeError as err:
                raise ConfigError(
                    f"value of '{projection.from_}' in {resource.kind} "
                    f"{resource.name} is not valid UTF-8 and cannot be an env value"
                ) from err
            merge_or_add_env_var(container, {"name": projection.env, "value": text})

        else:
            value = self._resolve(resource, strategy, obj, projection.from_)
            key = projection.mount if opaque else path_to_key(projection.from_)
            secondary.add(key, value)
            self._add_binding_mount(
                backing, secondary, key, deployment, path=projection.mount
            )

    def _project_transform(
        self,
        backing: BackingService,
        resource: BackingServiceResource,
        strategy: ResolutionStrategy,
        obj: dict,
        transform: CertTransform,
        secondary: "_SecondarySecret",
    ):  # pylint: disable=too-many-arguments
        """Build the store for a transform and put it into the secondary
        secret along with its password
        """
        pem_certs = self._resolve(resource, strategy, obj, transform.cert)
        pem_key = None
        if transform.type == KEY_STORE:
            pem_key = self._resolve(resource, strategy, obj, transform.private_key)

        store, password = secondary.existing_store(transform, pem_certs, pem_key)
        if store is None:
            log.debug2("Building new %s for %s", transform.type, backing.name)
            if transform.type == KEY_STORE:
                store, password = certs.key_store_from_pem(pem_certs, pem_key)
            else:
                store, password = certs.trust_store_from_pem(pem_certs)
        else:
            log.debug2("Reusing existing %s for %s", transform.type, backing.name)
        secondary.add(transform.store, store)
        secondary.add(transform.password, password.encode("utf-8"))

    def _add_binding_mount(
        self,
        backing: BackingService,
        secondary: "_SecondarySecret",
        key: str,
        deployment: dict,
        path: Optional[str] = None,
    ):  # pylint: disable=too-many-arguments
        """Project a secondary secret key into the binding's volume and mount
        the volume at <mount base>/<binding name>
        """
        volume_name = (constants.BACKING_VOLUME_PREFIX + backing.name).lower()
        add_volume(
            deployment,
            {
                "name": volume_name,
                "projected": {
                    "sources": [
                        {
                            "secret": {
                                "name": secondary.name,
                                "items": [{"key": key, "path": path or key}],
                            }
                        }
                    ]
                },
            },
        )
        add_volume_mount(
            get_container(deployment),
            {
                "name": volume_name,
                "mountPath": config.backing_mount_base.rstrip("/") + "/" + backing.name,
                "readOnly": True,
            },
        )

    ## Secondary Secret ########################################################

    def _get_existing_secondary(self, binding_name: str) -> Optional[dict]:
        if not config.reuse_store_passwords:
            return None
        _, existing = self.deploy_manager.get_object_current_state(
            kind=SECRET_TEMPLATE["kind"],
            name=self.secondary_secret_name(binding_name),
            namespace=self._namespace,
            api_version=SECRET_TEMPLATE["apiVersion"],
        )
        return existing

    def _reconcile_secondary(self, secondary: "_SecondarySecret"):
        if not secondary.data:
            self.reconciler.remove_if_absent_from_spec(
                secondary.name, self._namespace, SECRET_TEMPLATE
            )
            return
        desired = {
            **SECRET_TEMPLATE,
            "type": "Opaque",
            "metadata": {"name": secondary.name, "namespace": self._namespace},
            "data": {key: b64_encode(val) for key, val in secondary.data.items()},
        }
        set_owner_reference(self.instance, desired)
        op = self.reconciler.reconcile(
            secondary.name, self._namespace, desired, SECRET_TEMPLATE, secret_comparer
        )
        log.debug2("Secondary secret %s: %s", secondary.name, op.value)


class _SecondarySecret:
    """Accumulates the keys of one binding's secondary secret"""

    def __init__(self, name: str, existing: Optional[dict] = None):
        self.name = name
        self.data: Dict[str, bytes] = {}
        self._existing_data = (existing or {}).get("data") or {}

    def add(self, key: str, value: bytes):
        if key in self.data:
            raise ConfigError(
                f"secondary secret {self.name} already contains key {key}"
            )
        self.data[key] = value

    def existing_store(
        self,
        transform: CertTransform,
        pem_certs: bytes,
        pem_key: Optional[bytes],
    ) -> Tuple[Optional[bytes], Optional[str]]:
        """Get the store and password already in the cluster for this transform
        if they were built from the same certificate material
        """
        store = self._existing_data.get(transform.store)
        password = self._existing_data.get(transform.password)
        if not (store and password):
            return None, None
        try:
            store, password = b64_decode(store), b64_decode(password).decode("utf-8")
        except ValueError as err:
            log.debug2("Existing store for %s is unreadable: %s", transform.store, err)
            return None, None
        if certs.store_matches(store, password, pem_certs, pem_key):
            return store, password
        return None, None


## Implementation Details ######################################################


def _binding_label(raw_binding: dict, idx: int) -> str:
    name = raw_binding.get("name")
    if name:
        return name
    pre_configured = raw_binding.get("preConfigured") or {}
    return pre_configured.get("type") or f"backingServices[{idx}]"


def _key_ref_env(env_name: str, ref_type: str, obj_name: str, key: str) -> dict:
    return {
        "name": env_name,
        "valueFrom": {ref_type: {"name": obj_name, "key": key}},
    }
