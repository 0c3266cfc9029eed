"""
Preconfigured bindings for backing services the operator knows about
"""

# Local
from .builders import (
    crunchy_backing,
    eck_backing,
    mongo_ent_backing,
    preconfigured_backing,
    strimzi_backing,
)
from .options import OPTION_SCHEMA, PreconfigType, parse_options
