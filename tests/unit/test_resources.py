import pytest

from cert_connector import resources
from cert_connector.errors import InvalidParameterError


def test_schema_sizes():
    assert len(resources.CERTIFICATES.columns) == 44
    assert len(resources.SSL_NETWORKS.columns) == 23
    assert len(resources.SSL_ENDPOINTS.columns) == 10


@pytest.mark.parametrize(
    "d", [resources.CERTIFICATES, resources.SSL_NETWORKS, resources.SSL_ENDPOINTS]
)
def test_columns_are_unique(d):
    assert len(set(d.columns)) == len(d.columns)


def test_paths():
    assert resources.CERTIFICATES.path == "Certificates"
    assert resources.SSL_NETWORKS.path == "SSL/Networks"
    assert resources.SSL_ENDPOINTS.path == "SSL"


def test_get_descriptor_case_insensitive():
    assert resources.get_descriptor("Certificates") is resources.CERTIFICATES
    with pytest.raises(InvalidParameterError):
        resources.get_descriptor("nope")


def test_descriptors_are_frozen():
    with pytest.raises(Exception):
        resources.SSL_ENDPOINTS.path = "Other"


def test_descriptor_from_config():
    d = resources.descriptor_from_config(
        "Alerts",
        {
            "path": "/Alerts/Expiration/",
            "columns": ["Id", "DisplayName"],
            "flags": {"includeDisabled": True},
        },
    )
    assert d.name == "alerts"
    assert d.path == "Alerts/Expiration"
    assert d.columns == ("Id", "DisplayName")
    assert d.flags[0].query_key == "includeDisabled"
    assert d.flags[0].default is True


@pytest.mark.parametrize(
    "cfg", [{"columns": ["a"]}, {"path": "X"}, {"path": "X", "columns": "a"}]
)
def test_descriptor_from_config_validates(cfg):
    with pytest.raises(InvalidParameterError):
        resources.descriptor_from_config("bad", cfg)


@pytest.mark.parametrize(
    "name", ["ssl networks", "SSL NETWORKS", " SSL Networks ", "ssl_networks"]
)
def test_get_descriptor_matches_display_name_any_case(name):
    assert resources.get_descriptor(name) is resources.SSL_NETWORKS
