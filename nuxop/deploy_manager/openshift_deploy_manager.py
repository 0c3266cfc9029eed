"""
This DeployManager is responsible for running operations against the live
cluster using the openshift DynamicClient
"""

# Standard
from collections import namedtuple
from typing import Optional, Tuple

# Third Party
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import (
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes

# First Party
import alog

# Local
from .. import config
from ..exceptions import assert_cluster
from .base import DeployManagerBase

log = alog.use_channel("OSFTD")


class OpenshiftDeployManager(DeployManagerBase):
    """This DeployManager uses the openshift DynamicClient to interact with the
    cluster. API errors other than a plain 404 on read/delete are propagated to
    the caller unchanged.
    """

    def __init__(self, client: Optional[DynamicClient] = None):
        """
        Args:
            client:  Optional[DynamicClient]
                A pre-built client. If not given, one is created lazily from
                the in-cluster config or the local kubeconfig.
        """
        log.debug("Initializing openshift client")
        self._client = client

    @property
    def client(self):
        """Lazy property access to the client"""
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Tuple[bool, Optional[dict]]:
        resources = self._get_resource_handle(kind, api_version)
        if not resources:
            return False, None

        if not namespace:
            resources.namespaced = False

        try:
            resource = resources.get(name=name, namespace=namespace)
        except NotFoundError:
            log.debug(
                "No object named [%s/%s] found in namespace [%s]", kind, name, namespace
            )
            return True, None

        return True, resource.to_dict()

    @alog.logged_function(log.debug2)
    def create_object(self, resource_definition: dict) -> dict:
        res_id = self._get_resource_identifiers(resource_definition)
        resource_handle = self._require_resource_handle(res_id)
        log.debug2(
            "Attempting to create [%s/%s/%s] in %s",
            res_id.api_version,
            res_id.kind,
            res_id.name,
            res_id.namespace,
        )
        return resource_handle.create(
            body=resource_definition,
            namespace=res_id.namespace,
            field_manager=config.field_manager,
        ).to_dict()

    @alog.logged_function(log.debug2)
    def update_object(self, resource_definition: dict) -> dict:
        res_id = self._get_resource_identifiers(resource_definition)
        resource_handle = self._require_resource_handle(res_id)

        # Strip out managedFields to let the server set them
        resource_definition.get("metadata", {}).pop("managedFields", None)

        log.debug2(
            "Attempting to put [%s/%s/%s] in %s",
            res_id.api_version,
            res_id.kind,
            res_id.name,
            res_id.namespace,
        )
        return resource_handle.replace(
            body=resource_definition,
            name=res_id.name,
            namespace=res_id.namespace,
            field_manager=config.field_manager,
        ).to_dict()

    @alog.logged_function(log.debug2)
    def delete_object(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> bool:
        try:
            resource_handle = self.client.resources.get(
                api_version=api_version, kind=kind
            )
            if not namespace:
                resource_handle.namespaced = False
            log.debug2(
                "Attempting to delete [%s/%s/%s] from %s",
                api_version,
                kind,
                name,
                namespace,
            )
            resource_handle.delete(name=name, namespace=namespace)
            return True

        # If the kind or instance is not found, that's a success without change
        except (ResourceNotFoundError, NotFoundError) as err:
            log.debug2("Valid error caught when deleting [%s/%s]: %s", kind, name, err)
            return False

    ## Implementation Helpers ##################################################

    # Internal struct to hold the key resource identifier elements
    _ResourceIdentifiers = namedtuple(
        "ResourceIdentifiers", ["api_version", "kind", "name", "namespace"]
    )

    @staticmethod
    def _setup_client():
        """Create a DynamicClient that will work based on where the operator is
        running
        """
        try:
            log.debug2("Running with in-cluster config")
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)
            return DynamicClient(kubernetes.client.ApiClient(kube_config))

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(self, kind: str, api_version: str) -> Optional[Resource]:
        """Get the openshift resource handle for a specified kind and api_version"""
        resources = None
        try:
            resources = self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError):
            try:
                resources = self.client.resources.get(
                    short_names=[kind], api_version=api_version
                )
            except (ResourceNotFoundError, ResourceNotUniqueError):
                log.debug(
                    "No objects of kind [%s] found or multiple objects matching request found",
                    kind,
                )
        return resources

    def _require_resource_handle(self, res_id) -> Resource:
        resource_handle = self._get_resource_handle(res_id.kind, res_id.api_version)
        assert_cluster(
            resource_handle,
            (
                "Failed to fetch resource handle for "
                + f"{res_id.namespace}/{res_id.api_version}/{res_id.kind}"
            ),
        )
        return resource_handle

    @classmethod
    def _get_resource_identifiers(cls, resource_definition):
        """Helper for getting the required parts of a single resource definition"""
        api_version = resource_definition.get("apiVersion")
        kind = resource_definition.get("kind")
        name = resource_definition.get("metadata", {}).get("name")
        namespace = resource_definition.get("metadata", {}).get("namespace")
        assert None not in [
            api_version,
            kind,
            name,
        ], "Cannot apply resource without apiVersion, kind or name"
        return cls._ResourceIdentifiers(api_version, kind, name, namespace)
