from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from leadflow import dependencies
from leadflow.clients import SalesforceOAuthClient, SalesforceRestClient, pkce
from leadflow.core.config import AppSettings, SalesforceSettings, SessionSettings
from leadflow.main import create_app

INSTANCE_URL = "https://example.my.provider.com"


class FakeSalesforce:
    """Answers the token, user info and Lead endpoints."""

    def __init__(self) -> None:
        self.token_requests: list[httpx.Request] = []
        self.lead_requests: list[httpx.Request] = []
        self.userinfo_requests: list[httpx.Request] = []
        self.lead_status = 201

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/services/oauth2/token":
            self.token_requests.append(request)
            return httpx.Response(
                200, json={"access_token": "tok123", "instance_url": INSTANCE_URL}
            )
        if path == "/services/oauth2/userinfo":
            self.userinfo_requests.append(request)
            return httpx.Response(200, json={"name": "Jane Doe", "email": "jane@acme.test"})
        if path.endswith("/sobjects/Lead"):
            self.lead_requests.append(request)
            if self.lead_status != 201:
                return httpx.Response(
                    self.lead_status,
                    json=[{"message": "Rejected", "errorCode": "REJECTED"}],
                )
            return httpx.Response(201, json={"id": "00Q5e000001", "success": True})
        return httpx.Response(404)


@pytest.fixture
def salesforce(app, app_settings) -> FakeSalesforce:
    fake = FakeSalesforce()
    transport = httpx.MockTransport(fake)
    app.dependency_overrides[dependencies.get_salesforce_oauth_client] = (
        lambda: SalesforceOAuthClient(app_settings.salesforce, transport=transport)
    )
    app.dependency_overrides[dependencies.get_salesforce_rest_client] = (
        lambda: SalesforceRestClient(app_settings.salesforce, transport=transport)
    )
    return fake


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


def _query(url: str) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def _session(app, client: httpx.AsyncClient):
    cookie = client.cookies.get(app.state.settings.session.cookie_name)
    session_id = app.state.session_codec.decode(cookie)
    return app.state.session_store.get(session_id)


async def _sign_in(client: httpx.AsyncClient) -> dict[str, str]:
    initiate = await client.get("/auth/provider")
    params = _query(initiate.headers["location"])
    callback = await client.get(
        "/oauth/callback", params={"code": "auth-code", "state": params["state"]}
    )
    assert callback.status_code == 302
    return params


@pytest.mark.anyio
async def test_initiate_redirects_to_salesforce_and_sets_cookie(app, salesforce) -> None:
    async with _client(app) as client:
        response = await client.get("/auth/provider")

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith("https://login.example.com/services/oauth2/authorize?")
        params = _query(location)
        assert params["client_id"] == "test-client-id"
        assert params["redirect_uri"] == "https://app.example.com/oauth/callback"
        assert params["code_challenge_method"] == "S256"

        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie

        session = _session(app, client)
        assert session.oauth_state == params["state"]
        assert pkce.generate_challenge(session.code_verifier) == params["code_challenge"]
    assert salesforce.token_requests == []


@pytest.mark.anyio
async def test_full_sign_in_and_lead_creation(app, salesforce) -> None:
    async with _client(app) as client:
        initiate = await client.get("/auth/provider")
        params = _query(initiate.headers["location"])

        callback = await client.get(
            "/oauth/callback", params={"code": "auth-code", "state": params["state"]}
        )
        assert callback.status_code == 302
        assert callback.headers["location"] == "/protected-view"

        session = _session(app, client)
        assert session.access_token == "tok123"
        assert session.instance_url == INSTANCE_URL
        assert session.code_verifier is None
        assert session.oauth_state is None

        token_form = {
            key: values[0]
            for key, values in parse_qs(salesforce.token_requests[0].content.decode()).items()
        }
        assert token_form["code"] == "auth-code"
        assert pkce.generate_challenge(token_form["code_verifier"]) == params["code_challenge"]

        view = await client.get("/protected-view")
        assert view.status_code == 200
        assert "text/html" in view.headers["content-type"]

        lead = await client.post("/api/lead", json={"lastName": "Doe", "company": "Acme"})
        assert lead.status_code == 200
        assert lead.json() == {
            "success": True,
            "id": "00Q5e000001",
            "message": "Lead created successfully",
        }

    forwarded = json.loads(salesforce.lead_requests[0].content)
    assert forwarded == {"LastName": "Doe", "Company": "Acme", "LeadSource": "Web"}
    assert salesforce.lead_requests[0].headers["authorization"] == "Bearer tok123"


@pytest.mark.anyio
async def test_callback_error_returns_400_without_token_call(app, salesforce) -> None:
    async with _client(app) as client:
        await client.get("/auth/provider")
        response = await client.get(
            "/oauth/callback?error=access_denied&error_description=User+denied"
        )

    assert response.status_code == 400
    assert "User denied" in response.text
    assert len(salesforce.token_requests) == 0


@pytest.mark.anyio
async def test_callback_state_mismatch_rejected_before_exchange(app, salesforce) -> None:
    async with _client(app) as client:
        await client.get("/auth/provider")
        response = await client.get(
            "/oauth/callback", params={"code": "auth-code", "state": "forged-state"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid OAuth state. Please try again."
        session = _session(app, client)
        assert session.code_verifier is None
    assert salesforce.token_requests == []


@pytest.mark.anyio
async def test_callback_with_superseded_state_fails(app, salesforce) -> None:
    async with _client(app) as client:
        first = _query((await client.get("/auth/provider")).headers["location"])
        await client.get("/auth/provider")

        response = await client.get(
            "/oauth/callback", params={"code": "auth-code", "state": first["state"]}
        )

        assert response.status_code == 400
        assert (await client.get("/api/user")).status_code == 401
    assert salesforce.token_requests == []


@pytest.mark.anyio
async def test_callback_without_session_or_code(app, salesforce) -> None:
    async with _client(app) as client:
        no_code = await client.get("/oauth/callback", params={"state": "s"})
        no_session = await client.get("/oauth/callback", params={"code": "c", "state": "s"})

    assert no_code.status_code == 400
    assert no_code.json()["error"] == "Authorization code not found"
    assert no_session.status_code == 400
    assert no_session.json()["error"] == "Session expired. Please try again."
    assert salesforce.token_requests == []


@pytest.mark.anyio
async def test_protected_view_redirects_when_unauthenticated(app, salesforce) -> None:
    async with _client(app) as client:
        response = await client.get("/protected-view")

    assert response.status_code == 302
    assert response.headers["location"] == "/"


@pytest.mark.anyio
async def test_lead_requires_authentication_before_validation(app, salesforce) -> None:
    async with _client(app) as client:
        unauthenticated = await client.post(
            "/api/lead", json={"lastName": "Doe", "company": "Acme"}
        )
        incomplete_unauthenticated = await client.post("/api/lead", json={"firstName": "John"})

        await _sign_in(client)
        incomplete = await client.post("/api/lead", json={"firstName": "John"})

    assert unauthenticated.status_code == 401
    assert unauthenticated.json() == {"error": "Not authenticated"}
    assert incomplete_unauthenticated.status_code == 401
    assert incomplete.status_code == 400
    assert incomplete.json()["error"] == "Last Name and Company are required"
    assert salesforce.lead_requests == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    "body",
    [
        ["Doe", "Acme"],
        {"lastName": 42, "company": "Acme"},
        "not an object",
    ],
)
async def test_malformed_lead_body_checks_authentication_first(
    app, salesforce, body
) -> None:
    async with _client(app) as client:
        unauthenticated = await client.post("/api/lead", json=body)

        await _sign_in(client)
        authenticated = await client.post("/api/lead", json=body)

    assert unauthenticated.status_code == 401
    assert unauthenticated.json() == {"error": "Not authenticated"}
    assert authenticated.status_code == 400
    assert authenticated.json()["error"] == "Invalid lead payload"
    assert authenticated.json()["details"]
    assert salesforce.lead_requests == []


@pytest.mark.anyio
async def test_lead_body_that_is_not_json(app, salesforce) -> None:
    async with _client(app) as client:
        unauthenticated = await client.post(
            "/api/lead", content=b"{broken", headers={"content-type": "application/json"}
        )
        await _sign_in(client)
        authenticated = await client.post(
            "/api/lead", content=b"{broken", headers={"content-type": "application/json"}
        )
        empty = await client.post("/api/lead")

    assert unauthenticated.status_code == 401
    assert authenticated.status_code == 400
    assert authenticated.json()["error"] == "Invalid lead payload"
    assert empty.status_code == 400
    assert empty.json()["error"] == "Last Name and Company are required"


@pytest.mark.anyio
async def test_lead_upstream_failure_returns_500_with_details(app, salesforce) -> None:
    salesforce.lead_status = 400
    async with _client(app) as client:
        await _sign_in(client)
        response = await client.post("/api/lead", json={"lastName": "Doe", "company": "Acme"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"].startswith("Failed to create lead")
    assert body["details"] == [{"message": "Rejected", "errorCode": "REJECTED"}]


@pytest.mark.anyio
async def test_lead_upstream_401_returns_401(app, salesforce) -> None:
    salesforce.lead_status = 401
    async with _client(app) as client:
        await _sign_in(client)
        response = await client.post("/api/lead", json={"lastName": "Doe", "company": "Acme"})

    assert response.status_code == 401


@pytest.mark.anyio
async def test_user_info_and_logout(app, salesforce) -> None:
    async with _client(app) as client:
        assert (await client.get("/api/user")).status_code == 401

        await _sign_in(client)
        user = await client.get("/api/user")
        assert user.status_code == 200
        assert user.json()["name"] == "Jane Doe"

        logout = await client.post("/api/logout")
        assert logout.status_code == 200
        assert logout.json() == {"success": True}

        after = await client.get("/api/user")
        assert after.status_code == 401
        assert after.json() == {"error": "Not authenticated"}

        again = await client.post("/api/logout")
        assert again.json() == {"success": True}


@pytest.mark.anyio
async def test_health_ignores_session_and_configuration() -> None:
    bare = create_app(
        AppSettings(
            salesforce=SalesforceSettings(client_id=None, client_secret=None, callback_url=None),
            session=SessionSettings(secret=None),
        )
    )
    async with _client(bare) as client:
        client.cookies.set("leadflow_session", "garbage")
        response = await client.get("/health")
        login = await client.get("/auth/provider")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    datetime.fromisoformat(body["timestamp"])
    assert "set-cookie" not in response.headers

    assert login.status_code == 500
    assert login.json()["error"] == (
        "Missing Salesforce configuration. Please check your .env file."
    )


@pytest.mark.anyio
async def test_login_page_is_served(app) -> None:
    async with _client(app) as client:
        response = await client.get("/")

    assert response.status_code == 200
    assert "/auth/provider" in response.text


class BrokenStoreFlow:
    """Authorization flow whose session lookups hit a failing database."""

    def authenticated_session(self, session_id):
        raise sqlite3.OperationalError("database is locked")


@pytest.mark.anyio
async def test_unexpected_errors_use_structured_body(app) -> None:
    app.dependency_overrides[dependencies.get_authorization_flow] = BrokenStoreFlow
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/api/user")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "details": None}
