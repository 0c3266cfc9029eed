"""
Package exports
"""

# Local
from . import comparers, config
from .backing import BackingServicesResult, BindingReconciler
from .deploy_manager import (
    DeployManagerBase,
    DryRunDeployManager,
    OpenshiftDeployManager,
    is_owner,
    set_owner_reference,
)
from .exceptions import (
    ClusterError,
    ConfigError,
    OwnershipConflictError,
    assert_cluster,
    assert_config,
    assert_precondition,
)
from .reconcile import ReconcileOp, Reconciler
from .registry import ResolutionStrategy, ResourceRegistry
