from cert_connector.connector import (
    OPERATIONS,
    CertConnector,
    certificates,
    fetch_resource,
    invoke,
    ssl_endpoints,
    ssl_networks,
)
from cert_connector.errors import (
    ConnectorError,
    InvalidParameterError,
    MalformedResponseError,
    MissingParameterError,
    PaginationLimitError,
)

__all__ = [
    "OPERATIONS",
    "CertConnector",
    "certificates",
    "fetch_resource",
    "invoke",
    "ssl_endpoints",
    "ssl_networks",
    "ConnectorError",
    "InvalidParameterError",
    "MalformedResponseError",
    "MissingParameterError",
    "PaginationLimitError",
]
