"""
Loads the nuxop settings (mount base, store passwords, logging) from
config.yaml, checks them against config_validation.yaml and configures alog
"""

# Standard
import os

# First Party
import aconfig
import alog

# Local
from ..log_format import NuxopJsonFormatter
from .validation import get_invalid_params

# Settings may be overridden with env vars, e.g. BACKING_MOUNT_BASE
library_config = aconfig.Config.from_yaml(
    os.path.join(os.path.dirname(__file__), "config.yaml"),
    override_env_vars=True,
)

# The rules for each setting are fixed
validation_config = aconfig.Config.from_yaml(
    os.path.join(os.path.dirname(__file__), "config_validation.yaml"),
    override_env_vars=False,
)

invalid_params = get_invalid_params(library_config, validation_config)
assert not invalid_params, f"Invalid nuxop settings: {invalid_params}"

alog.configure(
    default_level=library_config.log_level,
    filters=library_config.log_filters,
    formatter=NuxopJsonFormatter() if library_config.log_json else "pretty",
    thread_id=library_config.log_thread_id,
)
