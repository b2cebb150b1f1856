"""Tests for the HTTP directory client."""

import json

import httpx
import pytest

from facility_authz.config.settings import AuthzSettings
from facility_authz.core.exceptions import DirectoryError
from facility_authz.integrations.directory import HttpDirectoryClient


class RecordingTransport:
    """httpx mock transport returning queued responses and keeping requests."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def make_client(transport) -> HttpDirectoryClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
    return HttpDirectoryClient(
        endpoint="https://directory.test/v1/",
        project_id="project",
        api_key="secret",
        database_id="db",
        http_client=http_client,
    )


class TestHttpDirectoryClient:
    """Test request shapes and error mapping."""

    @pytest.mark.asyncio
    async def test_sends_project_headers(self):
        transport = RecordingTransport(httpx.Response(200, json={"$id": "u1"}))
        client = make_client(transport)

        user = await client.get_user("u1")

        assert user == {"$id": "u1"}
        [request] = transport.requests
        assert request.method == "GET"
        assert str(request.url) == "https://directory.test/v1/users/u1"
        assert request.headers["X-Appwrite-Project"] == "project"
        assert request.headers["X-Appwrite-Key"] == "secret"

    @pytest.mark.asyncio
    async def test_list_users_pages_with_queries(self):
        transport = RecordingTransport(httpx.Response(200, json={"total": 1, "users": [{"$id": "u1"}]}))
        client = make_client(transport)

        users = await client.list_users(limit=25, offset=50)

        assert users == [{"$id": "u1"}]
        queries = [json.loads(q) for q in transport.requests[0].url.params.get_list("queries[]")]
        assert queries == [
            {"method": "limit", "values": [25]},
            {"method": "offset", "values": [50]},
        ]

    @pytest.mark.asyncio
    async def test_list_teams_filters_by_name(self):
        transport = RecordingTransport(httpx.Response(200, json={"teams": []}))
        client = make_client(transport)

        assert await client.list_teams(name="facility-F1-team") == []
        [query] = transport.requests[0].url.params.get_list("queries[]")
        assert json.loads(query) == {"method": "equal", "attribute": "name", "values": ["facility-F1-team"]}

    @pytest.mark.asyncio
    async def test_create_team_body(self):
        transport = RecordingTransport(httpx.Response(201, json={"$id": "facility-F1-team"}))
        client = make_client(transport)

        await client.create_team("facility-F1-team", "facility-F1-team", ["owner", "admin", "member"])

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/teams"
        assert json.loads(request.content) == {
            "teamId": "facility-F1-team",
            "name": "facility-F1-team",
            "roles": ["owner", "admin", "member"],
        }

    @pytest.mark.asyncio
    async def test_membership_requests(self):
        transport = RecordingTransport(
            httpx.Response(201, json={"$id": "m1"}),
            httpx.Response(200, json={"$id": "m1", "roles": ["admin"]}),
            httpx.Response(204),
        )
        client = make_client(transport)

        await client.create_membership("t1", "u1", ["member"])
        await client.update_membership_roles("t1", "m1", ["admin"])
        assert await client.delete_membership("t1", "m1") is None

        create, update, delete = transport.requests
        assert json.loads(create.content) == {"userId": "u1", "roles": ["member"]}
        assert update.method == "PATCH"
        assert update.url.path == "/v1/teams/t1/memberships/m1"
        assert delete.method == "DELETE"

    @pytest.mark.asyncio
    async def test_document_requests(self):
        transport = RecordingTransport(
            httpx.Response(201, json={"$id": "d1"}),
            httpx.Response(200, json={"total": 0, "documents": []}),
        )
        client = make_client(transport)

        await client.create_document("access_audit_log", {"userId": "u1"})
        await client.list_documents("patients", queries=['{"method":"limit","values":[1]}'])

        create, listing = transport.requests
        assert create.url.path == "/v1/databases/db/collections/access_audit_log/documents"
        assert json.loads(create.content) == {"documentId": "unique()", "data": {"userId": "u1"}}
        assert listing.url.params.get_list("queries[]") == ['{"method":"limit","values":[1]}']

    @pytest.mark.asyncio
    async def test_error_response_keeps_status_and_message(self):
        transport = RecordingTransport(
            httpx.Response(404, json={"message": "User not found", "type": "user_not_found"})
        )
        client = make_client(transport)

        with pytest.raises(DirectoryError) as exc_info:
            await client.get_user("missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.is_not_found
        assert exc_info.value.message == "User not found"
        assert exc_info.value.details["type"] == "user_not_found"

    @pytest.mark.asyncio
    async def test_conflict_response(self):
        transport = RecordingTransport(httpx.Response(409, json={"message": "Team already exists"}))
        client = make_client(transport)

        with pytest.raises(DirectoryError) as exc_info:
            await client.create_team("t1", "t1", ["owner"])

        assert exc_info.value.is_conflict

    @pytest.mark.asyncio
    async def test_non_json_error_uses_reason_phrase(self):
        transport = RecordingTransport(httpx.Response(500, text="upstream exploded"))
        client = make_client(transport)

        with pytest.raises(DirectoryError) as exc_info:
            await client.get_team("t1")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Internal Server Error"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(DirectoryError) as exc_info:
            await client.list_user_memberships("u1")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_from_settings(self):
        settings = AuthzSettings(
            directory_endpoint="https://example.test/v1",
            directory_project_id="p",
            directory_api_key="k",
            database_id="other-db",
        )

        client = HttpDirectoryClient.from_settings(settings)

        assert client.endpoint == "https://example.test/v1"
        assert client.database_id == "other-db"
        assert client._headers["X-Appwrite-Key"] == "k"
        await client.close()
