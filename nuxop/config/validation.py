"""
Module to validate values in a loaded config
"""

# Standard
from typing import Any, Callable, Dict, List, Optional, Union
import abc

# First Party
import aconfig
import alog

# Local
from .. import constants
from ..utils import nested_get  # pylint: disable=cyclic-import

log = alog.use_channel("CONFG")


################################################################################
## Public ######################################################################
################################################################################


def get_invalid_params(
    config: aconfig.Config,
    validation_config: aconfig.Config,
) -> List[str]:
    """Get a list of any params that are invalid

    Args:
        config:  aconfig.Config
            The parsed config with any override values
        validation_config:  aconfig.Config
            The parallel config holding validation setup

    Returns:
        invalid_params:  List[str]
            A list of all string keys for parameters that fail validation
    """
    invalid_params = []
    for val_key, validator in _parse_validation_config(validation_config).items():
        if not validator.validate(nested_get(config, val_key)):
            log.warning("Found invalid config key [%s]", val_key)
            invalid_params.append(val_key)
    return invalid_params


################################################################################
## Implementation ##############################################################
################################################################################

# Map from the "type" value in the validation yaml to the validator class
_PARAMETER_TYPES: Dict[str, type] = {}


def _parameter_type(type_key: str) -> Callable[[type], type]:
    """Decorator registering a validator class under its yaml type key"""

    def decorator(cls):
        _PARAMETER_TYPES[type_key] = cls
        return cls

    return decorator


# pylint: disable=too-few-public-methods


class _ValidatedParameter(abc.ABC):
    """A single config value with type and value validation"""

    TYPES = ()

    def __init__(self, optional: bool = False):
        self.optional = optional

    def validate(self, value: Any) -> bool:
        """Run the validation for a read value

        Args:
            value:  Any
                The value to validate against this parameter

        Returns:
            valid:  bool
                True if the value is valid, False otherwise
        """
        if value is None:
            return self.optional

        # bool is an int subclass, so it only counts when asked for explicitly
        if isinstance(value, bool) and bool not in self.TYPES:
            log.warning("Invalid type <%s>", type(value))
            return False
        if not isinstance(value, self.TYPES):
            log.warning("Invalid type <%s>", type(value))
            return False

        valid_value = self._validate_value(value)
        if not valid_value:
            log.warning("Invalid value [%s]", value)
        return valid_value

    @abc.abstractmethod
    def _validate_value(self, value: Any) -> bool:
        """Type specific value validation"""


@_parameter_type("int")
class _IntParameter(_ValidatedParameter):
    """An int with optional inclusive bounds"""

    TYPES = (int,)

    def __init__(
        self,
        *,
        min: Optional[int] = None,  # pylint: disable=redefined-builtin
        max: Optional[int] = None,  # pylint: disable=redefined-builtin
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._min = min
        self._max = max

    def _validate_value(self, value: int) -> bool:
        return (self._min is None or value >= self._min) and (
            self._max is None or value <= self._max
        )


@_parameter_type("str")
class _StrParameter(_ValidatedParameter):
    """A str with optional length bounds"""

    TYPES = (str,)

    def __init__(
        self,
        *,
        min_len: Optional[int] = None,
        max_len: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._min_len = min_len
        self._max_len = max_len

    def _validate_value(self, value: str) -> bool:
        return (self._min_len is None or len(value) >= self._min_len) and (
            self._max_len is None or len(value) <= self._max_len
        )


@_parameter_type("bool")
class _BoolParameter(_ValidatedParameter):
    """A bool"""

    TYPES = (bool,)

    def _validate_value(self, value: bool) -> bool:
        return True


@_parameter_type("enum")
class _EnumParameter(_ValidatedParameter):
    """One of a fixed set of str or int values"""

    TYPES = (str, int)

    def __init__(self, *, values: List[Union[str, int]], **kwargs):
        super().__init__(**kwargs)
        assert (
            isinstance(values, list) and values
        ), "Must specify at least one enum value!"
        self.values = values

    def _validate_value(self, value: Union[str, int]) -> bool:
        return value in self.values


# pylint: enable=too-few-public-methods


def _construct_parameter(param_args: Dict[str, Any]) -> Optional[_ValidatedParameter]:
    """Construct a _ValidatedParameter from the args parsed out of the
    validation file. If the type is unknown, None is returned.
    """
    param_args = dict(param_args)
    param_cls = _PARAMETER_TYPES.get(param_args.pop("type", None))
    if param_cls is None:
        return None
    return param_cls(**param_args)


def _parse_validation_config(
    validation_config: aconfig.Config,
    prefix_parts: Optional[List[str]] = None,
) -> Dict[str, _ValidatedParameter]:
    """Recursively parse the validation file into a dict of nested keys
    pointing to _ValidatedParameter instances
    """
    output_dict = {}
    prefix_parts = prefix_parts or []
    for key, val in validation_config.items():
        if not isinstance(val, dict):
            continue
        key_parts = prefix_parts + [key]
        nested_key = constants.NESTED_DICT_DELIM.join(key_parts)
        param = (
            _construct_parameter(val) if isinstance(val.get("type"), str) else None
        )
        if param:
            log.debug3("Found parameter at %s", nested_key)
            output_dict[nested_key] = param
        else:
            log.debug3("Recursing into %s", nested_key)
            output_dict.update(_parse_validation_config(val, key_parts))
    return output_dict
