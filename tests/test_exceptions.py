"""
Test the custom assert functions
"""

# Third Party
import pytest

# Local
from nuxop import exceptions


def test_assert_precondition_pass():
    """Make sure that no exception is throw by assert_precondition when it
    passes
    """
    exceptions.assert_precondition(True)


def test_assert_precondition_fail():
    """Make sure the right exception is thrown by assert_precondition when it
    fails
    """
    exception_msg = "error message"
    with pytest.raises(exceptions.PreconditionError, match=exception_msg):
        exceptions.assert_precondition(False, exception_msg)


def test_assert_config_pass():
    """Make sure that no exception is throw by assert_config when it passes"""
    exceptions.assert_config(True)


def test_assert_config_fail():
    """Make sure the right exception is thrown by assert_config when it fails"""
    exception_msg = "error message"
    with pytest.raises(exceptions.ConfigError, match=exception_msg):
        exceptions.assert_config(False, exception_msg)


def test_assert_cluster_fail():
    """Make sure the right exception is thrown by assert_cluster when it fails"""
    exception_msg = "error message"
    with pytest.raises(exceptions.ClusterError, match=exception_msg):
        exceptions.assert_cluster(False, exception_msg)


def test_exception_derived_from_base():
    """Make sure the derived classes are instances of the base class"""
    assert isinstance(exceptions.NuxopFatalError(), exceptions.NuxopError)
    assert isinstance(exceptions.NuxopExpectedError(), exceptions.NuxopError)


def test_fatal_errors():
    """Make sure the config, cluster and ownership errors are fatal"""
    for err in [
        exceptions.ConfigError(),
        exceptions.ClusterError(),
        exceptions.OwnershipConflictError(),
    ]:
        assert isinstance(err, exceptions.NuxopFatalError)
        assert err.is_fatal_error


def test_precondition_is_not_fatal():
    """Make sure a precondition error is retried on the next pass"""
    with pytest.raises(exceptions.PreconditionError) as precondition_error:
        exceptions.assert_precondition(False)
    assert isinstance(precondition_error.value, exceptions.NuxopExpectedError)
    assert not precondition_error.value.is_fatal_error


def test_ownership_conflict_identifies_object():
    """Make sure the ownership conflict carries the kind and name"""
    err = exceptions.OwnershipConflictError("taken", kind="Secret", name="foo")
    assert err.kind == "Secret"
    assert err.name == "foo"
    assert str(err) == "taken"
