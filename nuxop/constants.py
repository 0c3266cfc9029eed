"""
Shared module to hold constant values for the library
"""

# Annotation prefix used for everything this operator stamps on objects
ANNOTATION_PREFIX = "nuxeo.operator.io/"

# Annotations the operator itself puts on the pod template. Every other pod
# template annotation found in the cluster is considered foreign and preserved.
OPERATOR_POD_ANNOTATIONS = [
    ANNOTATION_PREFIX + "secondary-secret-version",
    ANNOTATION_PREFIX + "nuxeo-conf-version",
]

# Ingress annotation requesting TLS passthrough
NGINX_PASSTHROUGH_ANNOTATION = "nginx.ingress.kubernetes.io/ssl-passthrough"

# Infix used to build the secondary secret name: <instance>-secondary-<binding>
SECONDARY_SECRET_INFIX = "-secondary-"

# Prefix for the per-binding projected volume name
BACKING_VOLUME_PREFIX = "backing-"

# Alias of the single private key entry in a key store
KEY_STORE_ALIAS = "alias"

# Prefix of the aliases of trusted cert entries: alias0, alias1, ...
TRUST_STORE_ALIAS_PREFIX = "alias"

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."

# Core group/version of the opaque key/value kinds
CORE_API_VERSION = "v1"
