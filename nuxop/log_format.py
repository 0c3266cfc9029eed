"""
Custom json log format carrying the identity of the Nuxeo instance and binding
being reconciled
"""

# First Party
from alog import AlogJsonFormatter


class NuxopJsonFormatter(AlogJsonFormatter):
    """Extends AlogJsonFormatter with the kind/name/namespace of the Nuxeo
    instance under reconciliation and, when present on the record, the name of
    the backing-service binding being processed
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "kind",
        "resourceName",
        "resourceNamespace",
        "binding",
    ]

    def __init__(self, manifest=None):
        super().__init__()
        self.manifest = manifest

    def format(self, record):
        if resource := getattr(record, "resource", self.manifest):
            metadata = resource.get("metadata", {})
            record.kind = resource.get("kind")
            record.resourceName = metadata.get("name")
            record.resourceNamespace = metadata.get("namespace")
        return super().format(record)
