"""
Builders that expand a preconfigured backing service into a full backing
service: the resources to project from and the nuxeo.conf text that wires
the projected values into Nuxeo
"""

# Standard
from typing import Callable, Dict

# First Party
import alog

# Local
from ... import config, constants
from ..types import (
    TRUST_STORE,
    BackingService,
    BackingServiceResource,
    CertTransform,
    PreconfiguredBackingService,
    ResourceProjection,
)
from .options import PreconfigType, parse_options

log = alog.use_channel("PRECF")


## Public ######################################################################


def preconfigured_backing(
    pre_configured: PreconfiguredBackingService, namespace: str
) -> BackingService:
    """Expand a preconfigured backing service

    Args:
        pre_configured:  PreconfiguredBackingService
            The preconfigured binding from the Nuxeo instance
        namespace:  str
            The namespace of the Nuxeo instance, which is where the backing
            service resources are expected to live

    Returns:
        backing:  BackingService
            The equivalent fully specified backing service
    """
    options = parse_options(pre_configured.type, pre_configured.settings)
    builder = _BUILDERS[PreconfigType(pre_configured.type)]
    log.debug(
        "Expanding preconfigured %s binding for %s",
        pre_configured.type,
        pre_configured.resource,
    )
    return builder(pre_configured.resource, options, namespace)


## Builders ####################################################################


def eck_backing(resource: str, options: Dict[str, str], _namespace: str):
    """Elastic Cloud on Kubernetes. The resource is the name of an
    elasticsearch.k8s.elastic.co Elasticsearch in the namespace.
    """
    trust_store = "elastic.ca.jks"
    user_secret = options.get("user")
    resources = [
        _secret(
            f"{resource}-es-http-certs-public",
            ResourceProjection(
                transform=CertTransform(
                    type=TRUST_STORE,
                    cert="tls.crt",
                    store=trust_store,
                    password="elastic.truststore.pass",
                    pass_env="ELASTIC_TS_PASS",
                )
            ),
        )
    ]
    if user_secret:
        resources.append(
            _secret(
                user_secret,
                ResourceProjection(from_="user", env="ELASTIC_USER"),
                ResourceProjection(from_="password", env="ELASTIC_PASSWORD"),
            )
        )
        username = "${env:ELASTIC_USER}"
    else:
        # The built-in elastic user
        resources.append(
            _secret(
                f"{resource}-es-elastic-user",
                ResourceProjection(from_="elastic", env="ELASTIC_PASSWORD"),
            )
        )
        username = "elastic"
    return BackingService(
        name="elastic",
        resources=resources,
        nuxeo_conf=_conf(
            "elasticsearch.client=RestClient",
            f"elasticsearch.restClient.username={username}",
            "elasticsearch.restClient.password=${env:ELASTIC_PASSWORD}",
            f"elasticsearch.addressList=https://{resource}-es-http:9200",
            "elasticsearch.restClient.truststore.path="
            + _mount_path("elastic", trust_store),
            "elasticsearch.restClient.truststore.password=${env:ELASTIC_TS_PASS}",
            "elasticsearch.restClient.truststore.type=JKS",
        ),
    )


def strimzi_backing(resource: str, options: Dict[str, str], _namespace: str):
    """Strimzi Kafka. The resource is the name of a kafka.strimzi.io Kafka in
    the namespace. With auth enabled, the user is a KafkaUser whose secret has
    the same name.
    """
    auth = options.get("auth", "anonymous")
    user = options.get("user")
    lines = ["kafka.enabled=true"]
    resources = []
    cluster_ca = _secret(
        f"{resource}-cluster-ca-cert",
        ResourceProjection(from_="ca.password", env="KAFKA_TRUSTSTORE_PASS"),
        ResourceProjection(from_="ca.p12", mount="truststore.p12"),
    )
    truststore_lines = [
        "kafka.truststore.type=PKCS12",
        "kafka.truststore.path=" + _mount_path("strimzi", "truststore.p12"),
        "kafka.truststore.password=${env:KAFKA_TRUSTSTORE_PASS}",
    ]
    if auth == "scram-sha-512":
        lines += ["kafka.ssl=true", "kafka.sasl.enabled=true"]
        lines += truststore_lines
        lines += [
            "kafka.security.protocol=SASL_SSL",
            "kafka.sasl.mechanism=SCRAM-SHA-512",
            f"kafka.bootstrap.servers={resource}-kafka-bootstrap:9093",
            "kafka.sasl.jaas.config=org.apache.kafka.common.security.scram."
            f'ScramLoginModule required username="{user}" '
            'password="${env:KAFKA_USER_PASS}";',
        ]
        resources += [
            _secret(user, ResourceProjection(from_="password", env="KAFKA_USER_PASS")),
            cluster_ca,
        ]
    elif auth == "tls":
        lines += [
            "kafka.ssl=true",
            f"kafka.bootstrap.servers={resource}-kafka-bootstrap:9093",
        ]
        lines += truststore_lines
        lines += [
            "kafka.keystore.type=PKCS12",
            "kafka.keystore.path=" + _mount_path("strimzi", "keystore.p12"),
            "kafka.keystore.password=${env:KAFKA_KEYSTORE_PASS}",
        ]
        resources += [
            cluster_ca,
            _secret(
                user,
                ResourceProjection(from_="user.password", env="KAFKA_KEYSTORE_PASS"),
                ResourceProjection(from_="user.p12", mount="keystore.p12"),
            ),
        ]
    else:
        lines.append(f"kafka.bootstrap.servers={resource}-kafka-bootstrap:9092")
    return BackingService(name="strimzi", resources=resources, nuxeo_conf=_conf(*lines))


def crunchy_backing(resource: str, options: Dict[str, str], _namespace: str):
    """Crunchy PostgreSQL. The resource is the name of a crunchydata.com
    Pgcluster in the namespace.
    """
    user, ca, tls = options.get("user"), options.get("ca"), options.get("tls")
    resources = [
        BackingServiceResource(
            group="crunchydata.com",
            version="v1",
            kind="Pgcluster",
            name=resource,
            projections=[
                ResourceProjection(from_="{.spec.port}", env="PGPORT", value=True)
            ],
        )
    ]
    lines = [
        f"nuxeo.db.host={resource}",
        "nuxeo.db.port=${env:PGPORT}",
        "nuxeo.db.name=nuxeo",
    ]
    jdbc_base = (
        "nuxeo.db.jdbc.url=jdbc:postgresql://${nuxeo.db.host}:${nuxeo.db.port}/nuxeo"
    )
    ssl_params = "ssl=true&sslmode=verify-ca&sslrootcert=" + _mount_path(
        "crunchy", "ca.crt"
    )
    if user:
        resources.append(
            _secret(
                user,
                ResourceProjection(from_="username", env="PGUSER"),
                ResourceProjection(from_="password", env="PGPASSWORD"),
            )
        )
        lines += ["nuxeo.db.user=${env:PGUSER}", "nuxeo.db.password=${env:PGPASSWORD}"]
    if ca:
        resources.append(
            _secret(ca, ResourceProjection(from_="ca.crt", mount="ca.crt"))
        )
        if not tls:
            lines.append(
                jdbc_base
                + "?user=${nuxeo.db.user}&password=${nuxeo.db.password}&"
                + ssl_params
            )
    if tls:
        resources.append(
            _secret(
                tls,
                ResourceProjection(from_="tls.crt", mount="tls.crt"),
                ResourceProjection(from_="tls.key", mount="tls.key"),
            )
        )
        lines += [
            "nuxeo.db.user=",
            "nuxeo.db.password=",
            jdbc_base
            + "?"
            + ssl_params
            + "&sslcert="
            + _mount_path("crunchy", "tls.crt")
            + "&sslkey="
            + _mount_path("crunchy", "tls.key"),
        ]
    return BackingService(
        name="crunchy",
        template="postgresql",
        resources=resources,
        nuxeo_conf=_conf(*lines),
    )


def mongo_ent_backing(resource: str, _options: Dict[str, str], namespace: str):
    """MongoDB Enterprise. The resource is the name of a mongodb.com MongoDB
    replica set in the namespace.
    """
    return BackingService(
        name="mongoent",
        template="mongodb",
        nuxeo_conf=_conf(
            f"nuxeo.mongodb.server=mongodb://{resource}-0.{resource}-svc."
            f"{namespace}.svc.cluster.local:27017",
            "nuxeo.mongodb.ssl=false",
            "nuxeo.mongodb.dbname=nuxeo",
        ),
    )


_BUILDERS: Dict[PreconfigType, Callable[[str, Dict[str, str], str], BackingService]] = {
    PreconfigType.ECK: eck_backing,
    PreconfigType.STRIMZI: strimzi_backing,
    PreconfigType.CRUNCHY: crunchy_backing,
    PreconfigType.MONGO_ENTERPRISE: mongo_ent_backing,
}


## Implementation Details ######################################################


def _secret(name: str, *projections: ResourceProjection) -> BackingServiceResource:
    return BackingServiceResource(
        version=constants.CORE_API_VERSION,
        kind="Secret",
        name=name,
        projections=list(projections),
    )


def _mount_path(binding_name: str, file_name: str) -> str:
    return "/".join([config.backing_mount_base.rstrip("/"), binding_name, file_name])


def _conf(*lines: str) -> str:
    return "\n".join(lines) + "\n"
