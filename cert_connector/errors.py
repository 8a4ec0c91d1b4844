class ConnectorError(Exception):
    """Base class for errors raised by the connector itself."""


class MissingParameterError(ConnectorError, ValueError):
    pass


class InvalidParameterError(ConnectorError, ValueError):
    pass


class MalformedResponseError(ConnectorError, ValueError):
    """Response body was not a JSON array of objects."""


class PaginationLimitError(ConnectorError):
    pass
