from datetime import date
from unittest.mock import patch

import pytest
import requests

from frontdesk_ops.config import Config
from frontdesk_ops.core.auth import AuthenticationManager
from frontdesk_ops.core.client import (
    RemoteDirectoryClient,
    member_from_payload,
    member_patch,
)
from frontdesk_ops.errors import (
    AuthenticationRejected,
    ConfigurationMissing,
    RemoteRequestError,
    RemoteUnavailable,
)
from frontdesk_ops.models import MembershipStatus

BASE = "https://directory.example.com/members/v1/members"


@pytest.fixture
def client(config, clock):
    auth = AuthenticationManager(config, clock=clock)
    return RemoteDirectoryClient(config, auth)


def _router(make_response, member_responses):
    """Answer auth probes with 200 and member calls from a list.

    Returns (side_effect, member_calls) where member_calls records every
    non-probe request as (method, url, kwargs).
    """
    member_calls = []
    queue = list(member_responses)

    def side_effect(method, url, **kwargs):
        if url == BASE and kwargs.get("params") == {"paging.limit": 1}:
            return make_response(200, {"members": []})
        member_calls.append((method, url, kwargs))
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    return side_effect, member_calls


@patch("requests.Session.request")
def test_get_by_id_success(mock_request, client, make_response):
    """Test get_by_id maps the wrapped member payload."""
    side_effect, calls = _router(
        make_response,
        [
            make_response(
                200,
                {
                    "member": {
                        "id": "wix-42",
                        "loginEmail": "ada@example.com",
                        "contact": {"firstName": "Ada", "lastName": "Lovelace"},
                        "membershipStatus": "ACTIVE",
                    }
                },
            )
        ],
    )
    mock_request.side_effect = side_effect

    member = client.get_by_id("wix-42")

    assert member.external_id == "wix-42"
    assert member.first_name == "Ada"
    assert member.email == "ada@example.com"
    assert member.membership_status == MembershipStatus.ACTIVE
    [(method, url, kwargs)] = calls
    assert (method, url) == ("GET", f"{BASE}/wix-42")
    assert kwargs["params"] == {"fieldsets": "FULL"}
    assert kwargs["headers"]["Authorization"] == "test-api-key"


@patch("requests.Session.request")
def test_get_by_id_not_found_returns_none(mock_request, client, make_response):
    """Test that a 404 is reported as None rather than an error."""
    mock_request.side_effect, _ = _router(make_response, [make_response(404)])
    assert client.get_by_id("missing") is None


@patch("requests.Session.request")
def test_reauthenticates_once_on_401(mock_request, client, make_response):
    """Test a single 401 triggers one re-authentication and one retry."""
    side_effect, calls = _router(
        make_response,
        [make_response(401), make_response(200, {"member": {"id": "wix-1"}})],
    )
    mock_request.side_effect = side_effect

    member = client.get_by_id("wix-1")

    assert member.external_id == "wix-1"
    assert len(calls) == 2
    # initial authentication plus the re-authentication
    assert mock_request.call_count == 4


@patch("requests.Session.request")
def test_second_rejection_raises(mock_request, client, make_response):
    """Test a second 401 after re-auth raises AuthenticationRejected."""
    side_effect, calls = _router(make_response, [make_response(401)])
    mock_request.side_effect = side_effect

    with pytest.raises(AuthenticationRejected) as exc_info:
        client.get_by_id("wix-1")

    assert exc_info.value.status_code == 401
    assert len(calls) == 2


@patch("requests.Session.request")
def test_403_is_treated_like_401(mock_request, client, make_response):
    side_effect, calls = _router(make_response, [make_response(403)])
    mock_request.side_effect = side_effect

    with pytest.raises(AuthenticationRejected):
        client.search("ada")
    assert len(calls) == 2


@patch("requests.Session.request")
def test_reauth_failure_raises(mock_request, client, make_response):
    """Test that a refused re-authentication stops before the retry."""
    state = {"probes": 0}

    def side_effect(method, url, **kwargs):
        if url == BASE and kwargs.get("params") == {"paging.limit": 1}:
            state["probes"] += 1
            # first probe accepted, later probes refused
            return make_response(200 if state["probes"] == 1 else 401)
        return make_response(401)

    mock_request.side_effect = side_effect

    with pytest.raises(AuthenticationRejected, match="Re-authentication failed"):
        client.get_by_id("wix-1")


@patch("requests.Session.request")
def test_timeout_becomes_remote_unavailable(mock_request, client, make_response):
    """Test that a request timeout surfaces as RemoteUnavailable."""
    mock_request.side_effect, _ = _router(
        make_response, [requests.Timeout("read timed out")]
    )
    with pytest.raises(RemoteUnavailable, match="unreachable"):
        client.get_by_id("wix-1")


@patch("requests.Session.request")
def test_server_error_becomes_remote_unavailable(
    mock_request, client, make_response
):
    mock_request.side_effect, _ = _router(make_response, [make_response(503)])
    with pytest.raises(RemoteUnavailable, match="HTTP 503"):
        client.list()


@patch("requests.Session.request")
def test_client_error_becomes_remote_request_error(
    mock_request, client, make_response
):
    mock_request.side_effect, _ = _router(
        make_response, [make_response(400, text="bad query")]
    )
    with pytest.raises(RemoteRequestError) as exc_info:
        client.search("ada")
    assert exc_info.value.status_code == 400
    assert "bad query" in str(exc_info.value)


@patch("requests.Session.request")
def test_no_credentials_raises_configuration_missing(mock_request, tmp_path):
    """Test that a client without credentials never touches the network."""
    config = Config(cache_db_path=str(tmp_path / "c"))
    client = RemoteDirectoryClient(config, AuthenticationManager(config))

    with pytest.raises(ConfigurationMissing):
        client.get_by_id("wix-1")
    mock_request.assert_not_called()


@patch("requests.Session.request")
def test_search_posts_query(mock_request, client, make_response):
    side_effect, calls = _router(
        make_response,
        [
            make_response(
                200,
                {"members": [{"id": "a", "firstName": "Ada"}, {"id": "b"}]},
            )
        ],
    )
    mock_request.side_effect = side_effect

    members = client.search("ada", limit=10)

    assert [m.external_id for m in members] == ["a", "b"]
    [(method, url, kwargs)] = calls
    assert (method, url) == ("POST", f"{BASE}/search")
    assert kwargs["json"] == {"query": "ada", "limit": 10}


@patch("requests.Session.request")
def test_list_paging(mock_request, client, make_response):
    side_effect, calls = _router(make_response, [make_response(200, {})])
    mock_request.side_effect = side_effect

    assert client.list(limit=25, offset=50) == []
    params = calls[0][2]["params"]
    assert params["paging.limit"] == 25
    assert params["paging.offset"] == 50


@patch("requests.Session.request")
def test_update_sends_patch(mock_request, client, make_response):
    side_effect, calls = _router(
        make_response,
        [make_response(200, {"member": {"id": "wix-1", "phone": "555-0000"}})],
    )
    mock_request.side_effect = side_effect

    member = client.update("wix-1", member_patch(phone="555-0000"))

    assert member.phone == "555-0000"
    [(method, url, kwargs)] = calls
    assert (method, url) == ("PATCH", f"{BASE}/wix-1")
    assert kwargs["json"] == {"member": {"contact": {"phones": ["555-0000"]}}}


@patch("requests.Session.request")
def test_empty_body_is_empty_dict(mock_request, client, make_response):
    mock_request.side_effect, _ = _router(make_response, [make_response(200)])
    assert client.list() == []


@patch("requests.Session.request")
def test_html_body_becomes_remote_unavailable(mock_request, client, make_response):
    """Test a 200 answered with HTML (a captive portal) is not decoded."""
    portal = make_response(200, text="<html>Sign in to the guest network</html>")
    portal.json.side_effect = requests.JSONDecodeError("Expecting value", "<html>", 0)
    mock_request.side_effect, _ = _router(make_response, [portal])

    with pytest.raises(RemoteUnavailable, match="not JSON"):
        client.get_by_id("wix-1")


@patch("requests.Session.request")
def test_non_object_body_becomes_remote_unavailable(
    mock_request, client, make_response
):
    mock_request.side_effect, _ = _router(
        make_response, [make_response(200, [{"id": "wix-1"}])]
    )

    with pytest.raises(RemoteUnavailable, match="list instead of an object"):
        client.list()


@patch("requests.Session.request")
def test_valid_credential_is_not_reprobed(mock_request, client, make_response):
    """Test repeated calls share one authentication."""
    side_effect, calls = _router(
        make_response, [make_response(200, {"member": {"id": "wix-1"}})]
    )
    mock_request.side_effect = side_effect

    client.get_by_id("wix-1")
    client.get_by_id("wix-1")

    assert len(calls) == 2
    assert mock_request.call_count == 3


# member_from_payload tests
def test_payload_flat_snake_case():
    member = member_from_payload(
        {
            "_id": "x1",
            "first_name": "Grace",
            "last_name": "Hopper",
            "email": "grace@example.com",
            "phone": "555",
            "membership_status": "expired",
            "membership_expiry": "2025-12-31",
        }
    )
    assert member.external_id == "x1"
    assert member.first_name == "Grace"
    assert member.last_name == "Hopper"
    assert member.membership_status == MembershipStatus.EXPIRED
    assert member.membership_expiry == date(2025, 12, 31)


def test_payload_nested_lists():
    member = member_from_payload(
        {
            "id": "x2",
            "contactDetails": {
                "firstName": "Alan",
                "emails": [{"email": "alan@example.com"}],
                "phones": ["555-0101", "555-0102"],
            },
        }
    )
    assert member.first_name == "Alan"
    assert member.email == "alan@example.com"
    assert member.phone == "555-0101"


def test_payload_expiry_timestamp_and_garbage():
    stamped = member_from_payload({"id": "a", "membershipExpiry": "2027-03-01T00:00:00Z"})
    assert stamped.membership_expiry == date(2027, 3, 1)
    garbage = member_from_payload({"id": "b", "membershipExpiry": "soon"})
    assert garbage.membership_expiry is None


def test_payload_missing_fields_default():
    member = member_from_payload({})
    assert member.external_id is None
    assert member.first_name == ""
    assert member.membership_status == MembershipStatus.UNKNOWN


def test_member_patch_only_given_fields():
    assert member_patch(first_name="Ada", email="a@b.c") == {
        "contact": {"firstName": "Ada", "emails": ["a@b.c"]}
    }
    assert member_patch() == {"contact": {}}
