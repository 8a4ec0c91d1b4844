from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cert_connector.errors import InvalidParameterError, MissingParameterError
from cert_connector.resources import ResourceDescriptor

DEFAULT_PAGE_SIZE = 1000

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no", ""}


@dataclass(frozen=True)
class RequestParameters:
    api_url: str
    claim_token: Optional[str] = None
    query_string: str = ""
    page_size: int = DEFAULT_PAGE_SIZE
    flags: Dict[str, str] = field(default_factory=dict)
    collection_id: int = 0


def normalize_base_url(api_url: Optional[str]) -> str:
    if api_url is None or not str(api_url).strip():
        raise MissingParameterError("api_url is required.")
    url = str(api_url).strip()
    return url if url.endswith("/") else url + "/"


def to_flag(value: Any, name: str = "flag") -> str:
    """Render a bool-ish value as the API's lowercase ``true``/``false``."""
    if value is None:
        return "false"
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value).strip().lower()
    if text in _TRUE:
        return "true"
    if text in _FALSE:
        return "false"
    raise InvalidParameterError(f"{name} must be true/false, got {value!r}")


def _to_page_size(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_PAGE_SIZE
    try:
        size = int(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(
            f"page_size must be an integer, got {value!r}"
        ) from None
    if size <= 0:
        raise InvalidParameterError(f"page_size must be positive, got {size}")
    return size


def _to_collection_id(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        cid = int(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(
            f"collection_id must be an integer, got {value!r}"
        ) from None
    if cid < 0:
        raise InvalidParameterError(
            f"collection_id must not be negative, got {cid}"
        )
    return cid


def build_parameters(
    descriptor: ResourceDescriptor,
    api_url: Optional[str],
    claim_token: Optional[str] = None,
    page_size: Any = None,
    query_string: Optional[str] = None,
    collection_id: Any = None,
    **flags: Any,
) -> RequestParameters:
    """Validate and default user inputs for one retrieval of ``descriptor``.

    Unknown keyword flags raise InvalidParameterError.
    """
    base = normalize_base_url(api_url)

    known = {spec.arg for spec in descriptor.flags}
    unknown = sorted(set(flags) - known)
    if unknown:
        raise InvalidParameterError(
            f"{descriptor.display_name} does not accept: {', '.join(unknown)}"
        )
    if collection_id not in (None, "", 0) and not descriptor.accepts_collection:
        raise InvalidParameterError(
            f"{descriptor.display_name} does not accept collection_id"
        )

    rendered = {
        spec.query_key: to_flag(flags.get(spec.arg, spec.default), spec.arg)
        for spec in descriptor.flags
    }
    token = claim_token.strip() if isinstance(claim_token, str) else None

    return RequestParameters(
        api_url=base,
        claim_token=token or None,
        query_string=query_string or "",
        page_size=_to_page_size(page_size),
        flags=rendered,
        collection_id=_to_collection_id(collection_id),
    )
