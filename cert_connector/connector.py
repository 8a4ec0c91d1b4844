import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd
from requests import Session

from cert_connector.config import prepare
from cert_connector.output import write_output
from cert_connector.pagination import Cursor, FIRST_PAGE, next_cursor, paginate
from cert_connector.params import RequestParameters, build_parameters
from cert_connector.request_helpers import (
    apply_session_defaults,
    auth_headers,
    build_session,
    fetch_page_records,
    log_exception,
    log_request,
    page_url,
)
from cert_connector.resources import (
    CERTIFICATES,
    SSL_ENDPOINTS,
    SSL_NETWORKS,
    ResourceDescriptor,
    get_descriptor,
    list_descriptors,
)

LOG = logging.getLogger("cert_connector")


def fetch_resource(
    descriptor: ResourceDescriptor,
    params: RequestParameters,
    sess: Optional[Session] = None,
    log=None,
    timeout: Optional[float] = None,
    max_pages: Optional[int] = None,
) -> pd.DataFrame:
    """Retrieve every page of ``descriptor`` and return one normalized table."""
    log = log or LOG
    sess = sess or build_session()
    ctx: Dict[str, Any] = {"log": log, "resource": descriptor.name}
    prefix = f"[{descriptor.name}] "
    current = {"url": params.api_url}

    def fetch_page(cursor: Cursor) -> Tuple[List[Dict[str, Any]], Cursor]:
        page = cursor or FIRST_PAGE
        url = page_url(descriptor, params, page)
        current["url"] = url
        log_request(
            ctx, url, {"headers": auth_headers(params.claim_token)}, prefix=prefix
        )
        records = fetch_page_records(
            sess, url, params.claim_token, timeout=timeout, log=log
        )
        return records, (next_cursor(cursor) if records else None)

    try:
        df = paginate(fetch_page, descriptor.columns, log=log, max_pages=max_pages)
    except Exception as e:
        log_exception(ctx, current["url"], e, prefix=prefix)
        raise
    log.info(f"{prefix}done rows={len(df)} columns={len(df.columns)}")
    return df


def certificates(
    api_url: str,
    claim_token: Optional[str] = None,
    page_size: Optional[int] = None,
    query_string: Optional[str] = None,
    collection_id: Optional[int] = 0,
    include_revoked: Any = False,
    include_expired: Any = False,
    include_metadata: Any = False,
    include_locations: Any = False,
    include_has_private_key: Any = False,
    sess: Optional[Session] = None,
    log=None,
) -> pd.DataFrame:
    params = build_parameters(
        CERTIFICATES,
        api_url,
        claim_token=claim_token,
        page_size=page_size,
        query_string=query_string,
        collection_id=collection_id,
        include_revoked=include_revoked,
        include_expired=include_expired,
        include_metadata=include_metadata,
        include_locations=include_locations,
        include_has_private_key=include_has_private_key,
    )
    return fetch_resource(CERTIFICATES, params, sess=sess, log=log)


def ssl_networks(
    api_url: str,
    claim_token: Optional[str] = None,
    page_size: Optional[int] = None,
    query_string: Optional[str] = None,
    sess: Optional[Session] = None,
    log=None,
) -> pd.DataFrame:
    params = build_parameters(
        SSL_NETWORKS,
        api_url,
        claim_token=claim_token,
        page_size=page_size,
        query_string=query_string,
    )
    return fetch_resource(SSL_NETWORKS, params, sess=sess, log=log)


def ssl_endpoints(
    api_url: str,
    claim_token: Optional[str] = None,
    page_size: Optional[int] = None,
    query_string: Optional[str] = None,
    sess: Optional[Session] = None,
    log=None,
) -> pd.DataFrame:
    params = build_parameters(
        SSL_ENDPOINTS,
        api_url,
        claim_token=claim_token,
        page_size=page_size,
        query_string=query_string,
    )
    return fetch_resource(SSL_ENDPOINTS, params, sess=sess, log=log)


# display name -> operation, for host navigation
OPERATIONS: Dict[str, Callable[..., pd.DataFrame]] = {
    CERTIFICATES.display_name: certificates,
    SSL_NETWORKS.display_name: ssl_networks,
    SSL_ENDPOINTS.display_name: ssl_endpoints,
}


def invoke(resource: str, **kwargs: Any) -> pd.DataFrame:
    """Call any built-in operation by resource name or display name (any case)."""
    op = OPERATIONS[get_descriptor(resource).display_name]
    return op(**kwargs)


class CertConnector:
    """Config-driven runner: one resource, one env, optional output."""

    def __init__(self, config: Dict[str, Any], log=None):
        self.config = config
        self.log = log or LOG

    def fetch(
        self, resource: str, env_name: str, sess: Optional[Session] = None
    ) -> pd.DataFrame:
        _, descriptor, call_params, req_opts, _ = prepare(
            self.config, resource, env_name
        )
        return self._fetch(descriptor, call_params, req_opts, sess)

    def _fetch(self, descriptor, call_params, req_opts, sess) -> pd.DataFrame:
        params = build_parameters(descriptor, **call_params)
        sess = sess or build_session()
        apply_session_defaults(sess, req_opts)
        return fetch_resource(
            descriptor,
            params,
            sess=sess,
            log=self.log,
            timeout=req_opts.get("timeout"),
            max_pages=req_opts.get("max_pages"),
        )

    def run(
        self, resource: str, env_name: str, sess: Optional[Session] = None
    ) -> Dict[str, Any]:
        started = pd.Timestamp.now(tz="UTC")
        self.log.info(f"[run] start resource={resource} env={env_name}")

        _, descriptor, call_params, req_opts, out_cfg = prepare(
            self.config, resource, env_name
        )
        df = self._fetch(descriptor, call_params, req_opts, sess)

        meta: Dict[str, Any] = {
            "resource": descriptor.name,
            "env": env_name,
            "rows": int(len(df)),
            "columns": list(df.columns),
        }
        if out_cfg:
            ctx = {"log": self.log, "resource": descriptor.name, "env": env_name}
            meta["output"] = write_output(ctx, df, out_cfg)

        ended = pd.Timestamp.now(tz="UTC")
        meta.update(
            {
                "started_at": started.isoformat(),
                "ended_at": ended.isoformat(),
                "duration_s": float((ended - started).total_seconds()),
            }
        )
        self.log.info(
            f"[run] done resource={descriptor.name} env={env_name} rows={len(df)} "
            f"duration={meta['duration_s']:.3f}s"
        )
        return meta


def available_resources() -> List[Dict[str, Any]]:
    return [
        {
            "name": d.name,
            "display_name": d.display_name,
            "path": d.path,
            "columns": len(d.columns),
        }
        for d in list_descriptors()
    ]
