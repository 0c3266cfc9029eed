"""
Tests for the preconfigured backing service option parsing
"""

# Third Party
import pytest

# Local
from nuxop.backing.preconfigs import OPTION_SCHEMA, PreconfigType, parse_options
from nuxop.exceptions import ConfigError

## Happy Path ##################################################################


def test_every_type_has_a_schema():
    """Make sure every known type can be parsed without options"""
    assert set(OPTION_SCHEMA) == set(PreconfigType)
    for preconfig_type in [PreconfigType.ECK, PreconfigType.MONGO_ENTERPRISE]:
        assert parse_options(preconfig_type.value, None) == {}


def test_names_and_enum_values_lowercased():
    """Make sure option names and enumerated values are case-insensitive and
    free values keep their case
    """
    assert parse_options("Strimzi", {"Auth": "SCRAM-SHA-512", "USER": "MyUser"}) == {
        "auth": "scram-sha-512",
        "user": "MyUser",
    }


@pytest.mark.parametrize(
    "options",
    [
        {"user": "pg-user"},
        {"user": "pg-user", "ca": "pg-ca"},
        {"ca": "pg-ca", "tls": "pg-tls"},
    ],
)
def test_crunchy_valid_combinations(options):
    assert parse_options("Crunchy", options) == options


def test_strimzi_anonymous():
    assert parse_options("Strimzi", {"auth": "anonymous"}) == {"auth": "anonymous"}
    assert parse_options("Strimzi", {}) == {}


## Errors ######################################################################


def test_unknown_type():
    with pytest.raises(ConfigError, match="unknown pre-config type: 'Redis'"):
        parse_options("Redis", {})


def test_unknown_setting():
    with pytest.raises(ConfigError, match="unknown setting: 'port'"):
        parse_options("ECK", {"port": "9200"})


def test_unsupported_value():
    with pytest.raises(ConfigError, match="unsupported setting value"):
        parse_options("Strimzi", {"auth": "kerberos", "user": "u"})


@pytest.mark.parametrize(
    ["options", "match"],
    [
        ({"auth": "anonymous", "user": "u"}, "not allowed"),
        ({"user": "u"}, "not allowed"),
        ({"auth": "tls"}, "required"),
        ({"auth": "scram-sha-512", "user": ""}, "required"),
    ],
)
def test_strimzi_user_rules(options, match):
    with pytest.raises(ConfigError, match=match):
        parse_options("Strimzi", options)


@pytest.mark.parametrize(
    "options",
    [
        {},
        {"ca": "pg-ca"},
        {"tls": "pg-tls"},
        {"user": "u", "tls": "pg-tls"},
        {"user": "u", "ca": "pg-ca", "tls": "pg-tls"},
    ],
)
def test_crunchy_invalid_combinations(options):
    with pytest.raises(ConfigError, match="unsupported Crunchy"):
        parse_options("Crunchy", options)


## Totality ####################################################################


def with_companions(preconfig_type, name, value):
    """Build an option map for one option plus whatever the cross-field rules
    require alongside it
    """
    options = {name: value}
    if preconfig_type == PreconfigType.STRIMZI:
        if name == "auth" and value != "anonymous":
            options["user"] = "nuxeo"
        elif name == "user":
            options["auth"] = "tls"
    elif preconfig_type == PreconfigType.CRUNCHY:
        if name == "ca":
            options["user"] = "pg-user"
        elif name == "tls":
            options["ca"] = "pg-ca"
    return options


@pytest.mark.parametrize(
    ["preconfig_type", "name", "value"],
    [
        (preconfig_type, name, value)
        for preconfig_type, schema in OPTION_SCHEMA.items()
        for name, values in schema.items()
        for value in values or ["Free-Value"]
    ],
)
def test_every_known_option_parses(preconfig_type, name, value):
    """Make sure every known name with every allowed value parses"""
    parsed = parse_options(
        preconfig_type.value, with_companions(preconfig_type, name, value)
    )
    assert parsed[name] == value
