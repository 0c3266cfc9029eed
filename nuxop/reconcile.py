"""
The Reconciler is the generic read/create-or-update engine every desired object
goes through, plus the inverse "delete if present and owned" operation.

A reconciliation pass is level triggered: nothing in here retries, backs off or
rolls back. Any error from the cluster is raised to the caller unchanged and
the surrounding control loop re-drives the whole pass.
"""

# Standard
from enum import Enum
from typing import Optional
import copy

# First Party
import alog

# Local
from .comparers import Comparer
from .deploy_manager import DeployManagerBase
from .deploy_manager.owner_references import get_owner_uids, is_owner
from .exceptions import OwnershipConflictError, assert_cluster

log = alog.use_channel("RECON")


class ReconcileOp(Enum):
    """The outcome of a single reconcile call"""

    CREATED = "Created"
    UPDATED = "Updated"
    NO_OP = "NoOp"


class Reconciler:
    """Applies desired objects for one Nuxeo instance. The instance is only
    read: its UID gates deletions.
    """

    def __init__(self, deploy_manager: DeployManagerBase, owner_cr: dict):
        """
        Args:
            deploy_manager:  DeployManagerBase
                The deploy manager used for every cluster read and write
            owner_cr:  dict
                The Nuxeo instance manifest driving this reconciliation
        """
        self.deploy_manager = deploy_manager
        self.owner_cr = owner_cr

    @property
    def owner_uid(self) -> Optional[str]:
        return self.owner_cr.get("metadata", {}).get("uid")

    @alog.logged_function(log.debug)
    def reconcile(
        self,
        name: str,
        namespace: str,
        desired: dict,
        observed_template: dict,
        comparer: Comparer,
    ) -> ReconcileOp:
        """Make the object at (name, namespace) match desired

        Args:
            name:  str
                Name of the object
            namespace:  str
                Namespace of the object
            desired:  dict
                The fully formed desired manifest. Any owner references must
                already be stamped on it. It is never modified.
            observed_template:  dict
                Carries the kind and apiVersion of the object to fetch
            comparer:  Comparer
                Decides whether the observed object needs an update

        Returns:
            op:  ReconcileOp
                Whether the object was created, updated or left alone
        """
        kind = observed_template["kind"]
        api_version = observed_template.get("apiVersion")
        observed = self._fetch(kind, name, namespace, api_version)

        if observed is None:
            log.debug2("Creating %s %s/%s", kind, namespace, name)
            self.deploy_manager.create_object(copy.deepcopy(desired))
            return ReconcileOp.CREATED

        # A same named object belonging to someone else is never adopted
        desired_owners = get_owner_uids(desired.get("metadata", {}))
        if desired_owners and not any(
            is_owner(observed.get("metadata", {}), uid) for uid in desired_owners
        ):
            raise OwnershipConflictError(
                f"{kind} {namespace}/{name} exists but is not owned by {desired_owners}",
                kind=kind,
                name=name,
            )

        equal, updated = comparer(desired, observed)
        if equal:
            log.debug3("%s %s/%s is up to date", kind, namespace, name)
            return ReconcileOp.NO_OP
        log.debug2("Updating %s %s/%s", kind, namespace, name)
        self.deploy_manager.update_object(updated)
        return ReconcileOp.UPDATED

    @alog.logged_function(log.debug)
    def remove_if_absent_from_spec(
        self,
        name: str,
        namespace: str,
        observed_template: dict,
    ) -> bool:
        """Delete the object at (name, namespace) if it exists and is owned by
        the Nuxeo instance. An object owned by anyone else is left untouched.

        Returns:
            deleted:  bool
                True if the object was deleted
        """
        kind = observed_template["kind"]
        api_version = observed_template.get("apiVersion")
        observed = self._fetch(kind, name, namespace, api_version)
        if observed is None:
            return False
        if not is_owner(observed.get("metadata", {}), self.owner_uid):
            log.info(
                "Not removing %s %s/%s since it is not owned by %s",
                kind,
                namespace,
                name,
                self.owner_uid,
            )
            return False
        log.debug2("Removing %s %s/%s", kind, namespace, name)
        return self.deploy_manager.delete_object(
            kind=kind, name=name, namespace=namespace, api_version=api_version
        )

    ## Implementation Details ##################################################

    def _fetch(
        self, kind: str, name: str, namespace: str, api_version: Optional[str]
    ) -> Optional[dict]:
        success, observed = self.deploy_manager.get_object_current_state(
            kind=kind, name=name, namespace=namespace, api_version=api_version
        )
        assert_cluster(
            success, f"Failed to fetch current state of {api_version}.{kind}/{name}"
        )
        return observed
