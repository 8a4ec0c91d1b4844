import logging
import traceback
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode, urljoin

from requests import Session

from cert_connector.errors import MalformedResponseError
from cert_connector.params import RequestParameters
from cert_connector.resources import ResourceDescriptor

_SENSITIVE_HEADERS = {
    "authorization",
    "x-api-key",
    "api-key",
    "proxy-authorization",
}
_SENSITIVE_PARAMS = {
    "access_token",
    "token",
    "claimtoken",
    "claim_token",
    "apikey",
    "api_key",
    "authorization",
    "secret",
    "password",
}

DEFAULT_LOG = logging.getLogger("cert_connector")


def build_url(base_url: str, path: str) -> str:
    return urljoin(base_url.rstrip("/") + "/", path.lstrip("/"))


def build_session() -> Session:
    # No retry adapter is mounted: a failed page fails the retrieval.
    return Session()


def apply_session_defaults(sess: Session, opts: Dict[str, Any]) -> None:
    if opts.get("headers"):
        sess.headers.update(opts["headers"])
    if opts.get("auth") is not None:
        auth = opts["auth"]
        sess.auth = tuple(auth) if isinstance(auth, list) else auth
    if opts.get("proxies"):
        sess.proxies.update(opts["proxies"])
    if "verify" in opts:
        sess.verify = opts["verify"]


def query_pairs(
    descriptor: ResourceDescriptor, params: RequestParameters, page: int
) -> List[Tuple[str, Any]]:
    """Ordered query parameters for one page request."""
    pairs: List[Tuple[str, Any]] = [
        ("PageReturned", page),
        ("ReturnLimit", params.page_size),
        ("QueryString", params.query_string),
    ]
    if descriptor.accepts_collection:
        pairs.append(("collectionId", params.collection_id))
    pairs.extend(params.flags.items())
    pairs.append(("verbose", 0))
    return pairs


def page_url(
    descriptor: ResourceDescriptor, params: RequestParameters, page: int
) -> str:
    """
    Full request URL for ``page`` (1-based). Values are percent-encoded
    RFC3986 style (spaces -> %20, not '+').
    """
    base = build_url(params.api_url, descriptor.path)
    query = urlencode(query_pairs(descriptor, params, page), quote_via=quote)
    return f"{base}?{query}"


def auth_headers(claim_token: Optional[str]) -> Dict[str, str]:
    if claim_token:
        return {"Authorization": f"Bearer {claim_token}"}
    return {}


def fetch_page_records(
    sess: Session,
    url: str,
    claim_token: Optional[str] = None,
    timeout: Optional[float] = None,
    log=None,
) -> List[Dict[str, Any]]:
    """GET one page and return its records.

    HTTP errors propagate unchanged from ``raise_for_status``. A body that is
    not a JSON array of objects raises MalformedResponseError.
    """
    log = log or DEFAULT_LOG
    kwargs: Dict[str, Any] = {"headers": auth_headers(claim_token)}
    if timeout is not None:
        kwargs["timeout"] = timeout
    resp = sess.get(url, **kwargs)
    resp.raise_for_status()

    total = (getattr(resp, "headers", None) or {}).get("x-total-count")
    if total is not None:
        log.debug(f"[fetch] server reports x-total-count={total}")

    try:
        data = resp.json()
    except ValueError as e:
        raise MalformedResponseError(
            f"Response from {url} is not valid JSON: {e}"
        ) from e
    if not isinstance(data, list):
        raise MalformedResponseError(
            f"Expected a JSON array from {url}, got {type(data).__name__}"
        )
    for i, rec in enumerate(data):
        if not isinstance(rec, dict):
            raise MalformedResponseError(
                f"Element {i} from {url} is {type(rec).__name__}, not an object"
            )
    return data


def log_request(
    ctx: Dict[str, Any], url: str, opts: Dict[str, Any], prefix: str = ""
):
    log = ctx["log"]
    safe_headers = dict(opts.get("headers") or {})
    for k in list(safe_headers):
        if k.lower() in _SENSITIVE_HEADERS:
            safe_headers[k] = "***REDACTED***"
    safe_params = dict(opts.get("params") or {})
    for k in list(safe_params):
        if k.lower() in _SENSITIVE_PARAMS:
            safe_params[k] = "***REDACTED***"
    log.info(f"{prefix}GET {url} params={safe_params} headers={safe_headers}")


def log_exception(
    ctx: Dict[str, Any], url: str, e: Exception, prefix: str = ""
):
    ctx["log"].error(
        f"{prefix}Error retrieving data from {url}: {e}\nStack Trace: {traceback.format_exc()}"
    )
