"""
This module implements custom exceptions
"""

## Base Error ##################################################################


class NuxopError(Exception):
    """Base class for all nuxop exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error should abort the
        current reconciliation pass without an automatic retry
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class NuxopFatalError(NuxopError):
    """A NuxopFatalError is one that will not resolve by re-running the
    reconciliation pass with the same inputs
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class ConfigError(NuxopFatalError):
    """Exception caused by the content of the Nuxeo instance: conflicting
    volumes, mounts or env vars, mixed projection strategies, unknown
    preconfigured options, malformed PEM input
    """


class ClusterError(NuxopFatalError):
    """Exception caused when a cluster object required for a binding is missing
    or cannot be used
    """


class OwnershipConflictError(NuxopFatalError):
    """Exception raised when an object with the expected name already exists
    but is not owned by the Nuxeo instance being reconciled
    """

    def __init__(self, message: str = "", kind: str = None, name: str = None):
        self.kind = kind
        self.name = name
        super().__init__(message)


## Expected Errors #############################################################


class NuxopExpectedError(NuxopError):
    """A NuxopExpectedError is one that indicates an expected failure condition
    that should cause a reconciliation to terminate, but is expected to resolve
    in a subsequent reconciliation.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class PreconditionError(NuxopExpectedError):
    """Exception raised when a binding depends on something that is not yet
    present, such as a status field another operator has not populated yet
    """


## Assertions ##################################################################


def assert_precondition(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a PreconditionError"""
    if not condition:
        raise PreconditionError(message)


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when validating the bindings and options of the Nuxeo instance.
    """
    if not condition:
        raise ConfigError(message)


def assert_cluster(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ClusterError. This should
    be used when an operation in the cluster (such as fetching a bound secret)
    must succeed for the binding to proceed.
    """
    if not condition:
        raise ClusterError(message)
