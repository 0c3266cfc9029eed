"""
Binding of Nuxeo to its backing services
"""

# Local
from . import preconfigs
from .projection import BackingServicesResult, BindingReconciler
from .types import (
    BackingService,
    BackingServiceResource,
    CertTransform,
    PreconfiguredBackingService,
    ResourceProjection,
)
