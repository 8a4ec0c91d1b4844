import pandas as pd
import pytest
import requests

import cert_connector
from cert_connector import connector
from cert_connector.errors import MalformedResponseError, MissingParameterError
from cert_connector.params import build_parameters
from cert_connector.resources import CERTIFICATES, SSL_ENDPOINTS, SSL_NETWORKS

OPS = [
    (connector.certificates, CERTIFICATES),
    (connector.ssl_networks, SSL_NETWORKS),
    (connector.ssl_endpoints, SSL_ENDPOINTS),
]


# ----------------------------
# schema stability
# ----------------------------


@pytest.mark.parametrize("op,descriptor", OPS)
def test_zero_records_yields_declared_schema(op, descriptor, fake_sess, capture_log):
    sess = fake_sess({})
    df = op("https://h/api", sess=sess, log=capture_log)
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == list(descriptor.columns)
    assert len(df) == 0
    assert len(sess.calls) == 1


# ----------------------------
# pagination termination / no phantom rows
# ----------------------------


@pytest.mark.parametrize("op,descriptor", OPS)
def test_k_pages_issue_k_plus_one_requests(op, descriptor, fake_sess, capture_log):
    k, size = 3, 2
    key = descriptor.columns[0]
    pages = {
        p: [{key: (p - 1) * size + i} for i in range(size)] for p in range(1, k + 1)
    }
    sess = fake_sess(pages)
    df = op("https://h/api", page_size=size, sess=sess, log=capture_log)
    assert len(sess.calls) == k + 1
    assert [sess.query(i)["PageReturned"] for i in range(k + 1)] == ["1", "2", "3", "4"]
    assert len(df) == k * size
    assert list(df.columns) == list(descriptor.columns)
    assert not df.isna().all(axis=1).any()


def test_rows_keep_fetch_order_across_pages(fake_sess, records, capture_log):
    sess = fake_sess({1: records(2), 2: records(1, start=10)})
    df = connector.certificates("https://h/api", sess=sess, log=capture_log)
    assert df["Id"].tolist() == [0, 1, 10]
    assert df["Thumbprint"].tolist() == ["TP0", "TP1", "TP10"]
    assert list(df.index) == [0, 1, 2]


# ----------------------------
# parameter defaulting
# ----------------------------


def test_omitted_page_size_and_flags_equal_explicit_defaults(fake_sess, capture_log):
    a, b = fake_sess({}), fake_sess({})
    connector.certificates("https://h/api", sess=a, log=capture_log)
    connector.certificates(
        "https://h/api",
        page_size=1000,
        include_revoked="false",
        include_expired="false",
        include_metadata="false",
        include_locations="false",
        include_has_private_key="false",
        sess=b,
        log=capture_log,
    )
    assert a.urls == b.urls
    q = a.query(0)
    assert q["ReturnLimit"] == "1000"
    assert q["QueryString"] == ""
    assert q["collectionId"] == "0"
    assert q["verbose"] == "0"


def test_certificate_flags_in_query(fake_sess, capture_log):
    sess = fake_sess({})
    connector.certificates(
        "https://h/api",
        collection_id=7,
        include_revoked=True,
        include_locations="TRUE",
        query_string='IssuedCN -contains "web"',
        sess=sess,
        log=capture_log,
    )
    q = sess.query(0)
    assert q["collectionId"] == "7"
    assert q["includeRevoked"] == "true"
    assert q["includeLocations"] == "true"
    assert q["includeExpired"] == "false"
    assert q["QueryString"] == 'IssuedCN -contains "web"'


# ----------------------------
# URL normalization
# ----------------------------


@pytest.mark.parametrize("op,descriptor", OPS)
def test_trailing_slash_does_not_change_urls(op, descriptor, fake_sess, capture_log):
    a, b = fake_sess({}), fake_sess({})
    op("https://h/api", sess=a, log=capture_log)
    op("https://h/api/", sess=b, log=capture_log)
    assert a.urls == b.urls
    assert a.urls[0].startswith(f"https://h/api/{descriptor.path}?PageReturned=1&")


# ----------------------------
# auth header conditionality
# ----------------------------


def test_no_token_sends_no_authorization(fake_sess, records, capture_log):
    sess = fake_sess({1: records(1)})
    connector.ssl_networks("https://h/api", sess=sess, log=capture_log)
    for _, kw in sess.calls:
        assert "Authorization" not in kw["headers"]


def test_token_sends_bearer_on_every_page(fake_sess, records, capture_log):
    sess = fake_sess({1: records(1), 2: records(1)})
    connector.ssl_endpoints("https://h/api", claim_token="T", sess=sess, log=capture_log)
    assert len(sess.calls) == 3
    for _, kw in sess.calls:
        assert kw["headers"] == {"Authorization": "Bearer T"}
    assert not any("Bearer T" in m for m in capture_log.infos)


# ----------------------------
# column projection
# ----------------------------


def test_extra_field_dropped_missing_field_null(fake_sess, capture_log):
    sess = fake_sess({1: [{"EndpointId": "e1", "Port": 443, "Surprise": 1}]})
    df = connector.ssl_endpoints("https://h/api", sess=sess, log=capture_log)
    assert list(df.columns) == list(SSL_ENDPOINTS.columns)
    assert "Surprise" not in df.columns
    assert df.loc[0, "Port"] == 443
    assert pd.isna(df.loc[0, "SNIName"])


# ----------------------------
# failures
# ----------------------------


def test_missing_api_url_fails_before_any_request(fake_sess):
    sess = fake_sess({})
    with pytest.raises(MissingParameterError):
        connector.certificates(None, sess=sess)
    assert sess.calls == []


def test_http_failure_on_later_page_discards_everything(
    fake_sess, fake_response, records, capture_log
):
    sess = fake_sess({1: records(2), 2: fake_response(status_code=500)})
    with pytest.raises(requests.HTTPError):
        connector.certificates("https://h/api", sess=sess, log=capture_log)
    assert len(sess.calls) == 2
    assert capture_log.errors and "PageReturned=2" in capture_log.errors[-1]


def test_malformed_body_is_fatal(fake_sess, fake_response, capture_log):
    sess = fake_sess({1: fake_response(json_data={"error": "nope"})})
    with pytest.raises(MalformedResponseError):
        connector.ssl_networks("https://h/api", sess=sess, log=capture_log)


def test_fetch_resource_max_pages(fake_sess, records, capture_log):
    sess = fake_sess({p: records(1) for p in range(1, 5)})
    params = build_parameters(SSL_NETWORKS, "https://h")
    with pytest.raises(cert_connector.PaginationLimitError):
        connector.fetch_resource(
            SSL_NETWORKS, params, sess=sess, log=capture_log, max_pages=2
        )


# ----------------------------
# uniform calling convention
# ----------------------------


def test_operations_listing():
    assert list(connector.OPERATIONS) == ["Certificates", "SSL Networks", "SSL Endpoints"]


@pytest.mark.parametrize(
    "name,descriptor",
    [
        ("Certificates", CERTIFICATES),
        ("ssl_networks", SSL_NETWORKS),
        ("SSL Endpoints", SSL_ENDPOINTS),
        ("ssl networks", SSL_NETWORKS),
        ("CERTIFICATES", CERTIFICATES),
    ],
)
def test_invoke_by_any_name(name, descriptor, fake_sess, capture_log):
    sess = fake_sess({})
    df = connector.invoke(name, api_url="https://h", sess=sess, log=capture_log)
    assert list(df.columns) == list(descriptor.columns)


def test_available_resources():
    names = [r["name"] for r in connector.available_resources()]
    assert names == ["certificates", "ssl_networks", "ssl_endpoints"]
