"""
Validation and normalization of the settings map of a preconfigured backing
service
"""

# Standard
from enum import Enum
from typing import Dict, List, Mapping, Optional

# First Party
import alog

# Local
from ...exceptions import ConfigError, assert_config

log = alog.use_channel("PREOP")


class PreconfigType(str, Enum):
    """The backing services the operator knows how to bind to"""

    ECK = "ECK"
    STRIMZI = "Strimzi"
    CRUNCHY = "Crunchy"
    MONGO_ENTERPRISE = "MongoEnterprise"


# Known options per type. An empty list means any value is accepted.
OPTION_SCHEMA: Dict[PreconfigType, Dict[str, List[str]]] = {
    PreconfigType.ECK: {
        # Secret holding the password of a non-default elastic user
        "user": [],
    },
    PreconfigType.STRIMZI: {
        "auth": ["anonymous", "scram-sha-512", "tls"],
        # KafkaUser name, which is also the name of its secret
        "user": [],
    },
    PreconfigType.CRUNCHY: {
        # Secret with keys username and password
        "user": [],
        # Secret with key ca.crt for one-way TLS
        "ca": [],
        # Secret with keys tls.crt and tls.key for mutual TLS
        "tls": [],
    },
    PreconfigType.MONGO_ENTERPRISE: {},
}


def parse_preconfig_type(service_type: str) -> PreconfigType:
    """Look up a preconfigured type by its exact name"""
    try:
        return PreconfigType(service_type)
    except ValueError as err:
        raise ConfigError(f"unknown pre-config type: '{service_type}'") from err


def parse_options(
    service_type: str, raw_options: Optional[Mapping[str, str]]
) -> Dict[str, str]:
    """Validate and normalize the options for a preconfigured backing service

    Args:
        service_type:  str
            The preconfigured type (ECK, Strimzi, Crunchy, MongoEnterprise)
        raw_options:  Optional[Mapping[str, str]]
            The settings from the Nuxeo instance

    Returns:
        options:  Dict[str, str]
            The options with lower-cased names. Values with an enumerated set of
            valid values are lower-cased too.
    """
    preconfig_type = parse_preconfig_type(service_type)
    known = OPTION_SCHEMA[preconfig_type]
    options = {}
    for raw_name, raw_value in (raw_options or {}).items():
        name = str(raw_name).lower()
        assert_config(name in known, f"unknown setting: '{name}'")
        valid_values = known[name]
        value = "" if raw_value is None else str(raw_value)
        if valid_values:
            value = value.lower()
            assert_config(
                value in valid_values,
                f"unsupported setting value '{value}' for '{name}'",
            )
        options[name] = value
    _CROSS_FIELD_RULES.get(preconfig_type, _no_rules)(options)
    log.debug2("Parsed %s options: %s", preconfig_type.value, options)
    return options


## Cross-field rules ###########################################################


def _no_rules(_options: Dict[str, str]):
    pass


def _strimzi_rules(options: Dict[str, str]):
    anonymous = options.get("auth", "anonymous") in ("anonymous", "")
    has_user = bool(options.get("user"))
    assert_config(
        not (anonymous and has_user), "user not allowed for anonymous Strimzi auth"
    )
    assert_config(
        anonymous or has_user, "user required for Strimzi sasl or tls auth"
    )


def _crunchy_rules(options: Dict[str, str]):
    present = tuple(bool(options.get(key)) for key in ("user", "ca", "tls"))
    assert_config(
        present
        in [
            # user/password auth without encryption
            (True, False, False),
            # user/password auth with one-way TLS
            (True, True, False),
            # mutual TLS
            (False, True, True),
        ],
        "unsupported Crunchy authentication/encryption configuration",
    )


_CROSS_FIELD_RULES = {
    PreconfigType.STRIMZI: _strimzi_rules,
    PreconfigType.CRUNCHY: _crunchy_rules,
}
