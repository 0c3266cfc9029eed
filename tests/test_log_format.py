"""
Tests for the json log formatter
"""

# Standard
import json
import logging

# Local
from nuxop.log_format import NuxopJsonFormatter
from nuxop.test_helpers.helpers import setup_cr


def make_record(**extra):
    record = logging.LogRecord("BKSVC", logging.INFO, __file__, 1, "msg", (), None)
    for key, val in extra.items():
        setattr(record, key, val)
    return record


def test_formatter_instance_fields():
    """Make sure the instance identity is added to every record"""
    formatter = NuxopJsonFormatter(manifest=setup_cr())
    logged = json.loads(formatter.format(make_record()))
    assert logged["kind"] == "Nuxeo"
    assert logged["resourceName"] == "nuxeo"
    assert logged["resourceNamespace"] == "test"


def test_formatter_binding_field():
    """Make sure the binding passed as extra is printed"""
    formatter = NuxopJsonFormatter()
    logged = json.loads(formatter.format(make_record(binding="db")))
    assert logged["binding"] == "db"
