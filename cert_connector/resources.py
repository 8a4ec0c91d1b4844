from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from cert_connector.errors import InvalidParameterError

CERTIFICATE_COLUMNS = (
    "Id",
    "Thumbprint",
    "SerialNumber",
    "IssuedDN",
    "IssuedCN",
    "ImportDate",
    "NotBefore",
    "NotAfter",
    "IssuerDN",
    "PrincipalId",
    "TemplateId",
    "CertState",
    "KeySizeInBits",
    "KeyType",
    "RequesterId",
    "IssuedOU",
    "IssuedEmail",
    "KeyUsage",
    "SigningAlgorithm",
    "CertStateString",
    "KeyTypeString",
    "RevocationEffDate",
    "RevocationReason",
    "RevocationComment",
    "CertificateAuthorityId",
    "CertificateAuthorityName",
    "TemplateName",
    "ArchivedKey",
    "HasPrivateKey",
    "PrincipalName",
    "CertRequestId",
    "RequesterName",
    "ContentBytes",
    "ExtendedKeyUsages",
    "SubjectAltNameElements",
    "CRLDistributionPoints",
    "LocationsCount",
    "Locations",
    "Metadata",
    "CertificateKeyId",
    "CARowIndex",
    "CARecordId",
    "DetailedKeyUsage",
    "KeyRecoverable",
)

SSL_NETWORK_COLUMNS = (
    "NetworkId",
    "Name",
    "AgentPoolName",
    "AgentPoolId",
    "Description",
    "Enabled",
    "DiscoverSchedule",
    "MonitorSchedule",
    "DiscoverPercentComplete",
    "MonitorPercentComplete",
    "DiscoverStatus",
    "MonitorStatus",
    "DiscoverLastScanned",
    "MonitorLastScanned",
    "SslAlertRecipients",
    "AutoMonitor",
    "GetRobots",
    "DiscoverTimeoutMs",
    "MonitorTimeoutMs",
    "ExpirationAlertDays",
    "DiscoverJobParts",
    "MonitorJobParts",
    "QuietHours",
)

SSL_ENDPOINT_COLUMNS = (
    "EndpointId",
    "NetworkId",
    "LastHistoryId",
    "IpAddressBytes",
    "Port",
    "SNIName",
    "EnableMonitor",
    "Reviewed",
    "History",
    "EndpointMatches",
)


@dataclass(frozen=True)
class FlagSpec:
    """A boolean query flag: python keyword, query key, default."""

    arg: str
    query_key: str
    default: bool = False


@dataclass(frozen=True)
class ResourceDescriptor:
    name: str
    display_name: str
    path: str
    columns: Tuple[str, ...]
    flags: Tuple[FlagSpec, ...] = field(default_factory=tuple)
    accepts_collection: bool = False


CERTIFICATES = ResourceDescriptor(
    name="certificates",
    display_name="Certificates",
    path="Certificates",
    columns=CERTIFICATE_COLUMNS,
    flags=(
        FlagSpec("include_revoked", "includeRevoked"),
        FlagSpec("include_expired", "includeExpired"),
        FlagSpec("include_metadata", "includeMetadata"),
        FlagSpec("include_locations", "includeLocations"),
        FlagSpec("include_has_private_key", "includeHasPrivateKey"),
    ),
    accepts_collection=True,
)

SSL_NETWORKS = ResourceDescriptor(
    name="ssl_networks",
    display_name="SSL Networks",
    path="SSL/Networks",
    columns=SSL_NETWORK_COLUMNS,
)

SSL_ENDPOINTS = ResourceDescriptor(
    name="ssl_endpoints",
    display_name="SSL Endpoints",
    path="SSL",
    columns=SSL_ENDPOINT_COLUMNS,
)

_REGISTRY: Dict[str, ResourceDescriptor] = {
    d.name: d for d in (CERTIFICATES, SSL_NETWORKS, SSL_ENDPOINTS)
}


def get_descriptor(name: str) -> ResourceDescriptor:
    """Look up a built-in resource by name or display name, ignoring case."""
    key = (name or "").strip().lower()
    for d in _REGISTRY.values():
        if key in (d.name, d.display_name.lower()):
            return d
    raise InvalidParameterError(
        f"Unknown resource '{name}'. Known: {sorted(_REGISTRY)}"
    )


def list_descriptors() -> List[ResourceDescriptor]:
    return list(_REGISTRY.values())


def descriptor_from_config(name: str, cfg: Dict[str, Any]) -> ResourceDescriptor:
    """Build a descriptor from a ``resources.<name>`` config block.

    Expected keys: ``path`` and ``columns`` (non-empty list). Optional
    ``display_name`` and ``flags`` (mapping of query key -> default bool).
    """
    path = (cfg.get("path") or "").strip("/")
    columns = cfg.get("columns") or []
    if not path:
        raise InvalidParameterError(f"resources.{name}.path is required.")
    if not isinstance(columns, list) or not columns:
        raise InvalidParameterError(
            f"resources.{name}.columns must be a non-empty list."
        )
    flags = tuple(
        FlagSpec(arg=key, query_key=key, default=bool(default))
        for key, default in (cfg.get("flags") or {}).items()
    )
    return ResourceDescriptor(
        name=name.lower(),
        display_name=cfg.get("display_name") or name,
        path=path,
        columns=tuple(str(c) for c in columns),
        flags=flags,
        accepts_collection=bool(cfg.get("accepts_collection", False)),
    )
