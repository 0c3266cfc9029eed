"""
This defines the base class for all DeployManager types.
"""

# Standard
from typing import Optional, Tuple
import abc


class DeployManagerBase(abc.ABC):
    """
    Base class for deploy managers which carry out the individual reads and
    writes the reconciler performs against the cluster. Each operation is a
    single blocking round-trip and none of them retry.
    """

    @abc.abstractmethod
    def get_object_current_state(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> Tuple[bool, Optional[dict]]:
        """Fetch the current state of a given object by name

        Args:
            kind:  str
                The kind of the object to fetch
            name:  str
                The full name of the object to fetch
            namespace:  str
                The namespace to search for the object
            api_version:  str
                The api_version of the resource kind to fetch

        Returns:
            success:  bool
                False if the kind is not served by the cluster
            current_state:  dict or None
                The dict representation of the current object's configuration,
                or None if not present
        """

    @abc.abstractmethod
    def create_object(self, resource_definition: dict) -> dict:
        """Create a new object in the cluster

        Args:
            resource_definition:  dict
                The full manifest of the object to create

        Returns:
            created:  dict
                The object as stored by the cluster
        """

    @abc.abstractmethod
    def update_object(self, resource_definition: dict) -> dict:
        """Replace an existing object. If the manifest carries a
        metadata.resourceVersion, a stale version is rejected by the cluster.

        Args:
            resource_definition:  dict
                The full manifest of the object to write

        Returns:
            updated:  dict
                The object as stored by the cluster
        """

    @abc.abstractmethod
    def delete_object(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> bool:
        """Delete an object if it exists

        Returns:
            changed:  bool
                True if an object was deleted
        """
