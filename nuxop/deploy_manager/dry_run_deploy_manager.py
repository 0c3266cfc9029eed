"""
The DryRunDeployManager implements the DeployManager interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map.
"""

# Standard
from datetime import datetime
from threading import RLock
from typing import List, Optional
import copy
import uuid

# Third Party
from kubernetes.client.rest import ApiException
from openshift.dynamic.exceptions import ConflictError, NotFoundError

# First Party
import alog

# Local
from ..utils import get_manifest_identifiers
from .base import DeployManagerBase

log = alog.use_channel("DRY-RUN")

# Lock to ensure writes to the local cluster map are thread safe
DRY_RUN_CLUSTER_LOCK = RLock()


class DryRunDeployManager(DeployManagerBase):
    """
    Deploy manager which doesn't actually deploy!
    """

    def __init__(
        self,
        resources: Optional[List[dict]] = None,
        strict_resource_version: bool = False,
    ):
        """Construct with an optional set of resources that are already
        present in the cluster

        Args:
            resources:  Optional[List[dict]]
                Manifests to pre-populate the cluster with
            strict_resource_version:  bool
                If true, updates carrying a resourceVersion that does not match
                the stored object are rejected with a 409 conflict
        """
        self._cluster_content = {}
        self._resource_version_counter = 0
        self.strict_resource_version = strict_resource_version
        for resource in resources or []:
            self._store(copy.deepcopy(resource))

    ## Interface ###############################################################

    def get_object_current_state(self, kind, name, namespace=None, api_version=None):
        log.debug(
            "DRY RUN get_object_current_state of [%s/%s] in [%s]", kind, name, namespace
        )
        matches = []
        kind_entries = self._cluster_content.get(namespace, {}).get(kind, {})
        for api_ver, entries in kind_entries.items():
            log.debug3("Checking api_version [%s // %s]", api_ver, api_version)
            if name in entries and (api_version is None or api_ver == api_version):
                matches.append(entries[name])
        log.debug2(
            "Found %d matches for [%s/%s] in %s", len(matches), kind, name, namespace
        )
        if len(matches) == 1:
            return True, copy.deepcopy(matches[0])
        return True, None

    def create_object(self, resource_definition):
        api_version, kind, name, namespace = get_manifest_identifiers(
            resource_definition
        )
        log.info("DRY RUN create of [%s/%s] in [%s]", kind, name, namespace)
        _, current = self.get_object_current_state(kind, name, namespace, api_version)
        if current is not None:
            raise self._conflict(f"{kind} {name} already exists")
        resource = copy.deepcopy(resource_definition)
        metadata = resource.setdefault("metadata", {})
        metadata["uid"] = str(uuid.uuid4())
        metadata["creationTimestamp"] = datetime.now().strftime("%Y-%m-%dT%H:%M:%SZ")
        return self._store(resource)

    def update_object(self, resource_definition):
        api_version, kind, name, namespace = get_manifest_identifiers(
            resource_definition
        )
        log.info("DRY RUN update of [%s/%s] in [%s]", kind, name, namespace)
        _, current = self.get_object_current_state(kind, name, namespace, api_version)
        if current is None:
            raise NotFoundError(
                ApiException(status=404, reason=f"{kind} {name} not found")
            )
        resource = copy.deepcopy(resource_definition)
        metadata = resource.setdefault("metadata", {})
        requested_version = metadata.get("resourceVersion")
        stored_version = current["metadata"].get("resourceVersion")
        if (
            self.strict_resource_version
            and requested_version
            and requested_version != stored_version
        ):
            log.warning(
                "Rejecting update of %s/%s with stale resourceVersion", kind, name
            )
            raise self._conflict(
                f"the object {kind} {name} has been modified; please apply your "
                "changes to the latest version and try again"
            )

        # Server-owned fields carry over from the stored object
        for key in ("uid", "creationTimestamp"):
            metadata[key] = current["metadata"].get(key)
        return self._store(resource)

    def delete_object(self, kind, name, namespace=None, api_version=None):
        log.info("DRY RUN delete of [%s/%s] in [%s]", kind, name, namespace)
        changed = False
        with DRY_RUN_CLUSTER_LOCK:
            kind_entries = self._cluster_content.get(namespace, {}).get(kind, {})
            for api_ver, entries in kind_entries.items():
                if name in entries and (api_version is None or api_ver == api_version):
                    del entries[name]
                    changed = True
        return changed

    ## Implementation Details ##################################################

    def _store(self, resource: dict) -> dict:
        """Put the resource into the local cluster map with a fresh
        resourceVersion and return a copy of what was stored
        """
        api_version, kind, name, namespace = get_manifest_identifiers(resource)
        assert None not in [kind, name], "Cannot store resource without kind or name"
        with DRY_RUN_CLUSTER_LOCK:
            self._resource_version_counter += 1
            metadata = resource.setdefault("metadata", {})
            metadata["resourceVersion"] = str(self._resource_version_counter)
            metadata.setdefault("uid", str(uuid.uuid4()))
            (
                self._cluster_content.setdefault(namespace, {})
                .setdefault(kind, {})
                .setdefault(api_version, {})
            )[name] = resource
        return copy.deepcopy(resource)

    @staticmethod
    def _conflict(message: str) -> ConflictError:
        """Build the same error the dynamic client raises for a rejected write"""
        return ConflictError(ApiException(status=409, reason=message))
