"""HTTP client for an Appwrite-style identity and document directory."""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ...config.settings import AuthzSettings
from ...core.exceptions import DirectoryError

logger = logging.getLogger(__name__)


def query_equal(attribute: str, value: Any) -> str:
    return json.dumps({"method": "equal", "attribute": attribute, "values": [value]})


def query_limit(limit: int) -> str:
    return json.dumps({"method": "limit", "values": [limit]})


def query_offset(offset: int) -> str:
    return json.dumps({"method": "offset", "values": [offset]})


class HttpDirectoryClient:
    """
    DirectoryClient implementation over the directory's REST API.

    Every non-2xx response is raised as DirectoryError carrying the status
    code and the message reported by the server. Transport failures raise
    DirectoryError without a status code.
    """

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        api_key: str,
        database_id: str = "immune-me-db",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.project_id = project_id
        self.database_id = database_id
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "X-Appwrite-Project": project_id,
            "X-Appwrite-Key": api_key,
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: AuthzSettings, http_client: Optional[httpx.AsyncClient] = None) -> "HttpDirectoryClient":
        return cls(
            endpoint=settings.directory_endpoint,
            project_id=settings.directory_project_id,
            api_key=settings.directory_api_key.get_secret_value(),
            database_id=settings.database_id,
            timeout=settings.directory_timeout_seconds,
            http_client=http_client,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpDirectoryClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Any] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request and decode the JSON body.

        Args:
            method: HTTP method
            path: Path below the endpoint, starting with "/"
            params: Query parameters
            json_body: JSON request body

        Returns:
            Decoded response body, None for empty responses

        Raises:
            DirectoryError: Non-2xx response or transport failure
        """
        url = f"{self.endpoint}{path}"
        try:
            response = await self._client.request(
                method, url, params=params, json=json_body, headers=self._headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Directory request {method} {path} failed: {e}")
            raise DirectoryError(f"Directory request failed: {e}")

        if response.is_error:
            message = response.reason_phrase
            error_type = None
            try:
                body = response.json()
                message = body.get("message", message)
                error_type = body.get("type")
            except ValueError:
                pass
            logger.debug(f"Directory {method} {path} returned {response.status_code}: {message}")
            raise DirectoryError(message, status_code=response.status_code, error_type=error_type)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # Users

    async def get_user(self, user_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/users/{user_id}")

    async def list_users(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        params = [("queries[]", query_limit(limit)), ("queries[]", query_offset(offset))]
        body = await self._request("GET", "/users", params=params)
        return body.get("users", [])

    # Teams

    async def list_teams(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        params = [("queries[]", query_equal("name", name))] if name else None
        body = await self._request("GET", "/teams", params=params)
        return body.get("teams", [])

    async def get_team(self, team_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/teams/{team_id}")

    async def create_team(self, team_id: str, name: str, roles: Sequence[str]) -> Dict[str, Any]:
        return await self._request(
            "POST", "/teams", json_body={"teamId": team_id, "name": name, "roles": list(roles)}
        )

    # Memberships

    async def list_team_memberships(self, team_id: str) -> List[Dict[str, Any]]:
        body = await self._request("GET", f"/teams/{team_id}/memberships")
        return body.get("memberships", [])

    async def list_user_memberships(self, user_id: str) -> List[Dict[str, Any]]:
        body = await self._request("GET", f"/users/{user_id}/memberships")
        return body.get("memberships", [])

    async def create_membership(self, team_id: str, user_id: str, roles: Sequence[str]) -> Dict[str, Any]:
        return await self._request(
            "POST", f"/teams/{team_id}/memberships", json_body={"userId": user_id, "roles": list(roles)}
        )

    async def update_membership_roles(self, team_id: str, membership_id: str, roles: Sequence[str]) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"/teams/{team_id}/memberships/{membership_id}", json_body={"roles": list(roles)}
        )

    async def delete_membership(self, team_id: str, membership_id: str) -> None:
        await self._request("DELETE", f"/teams/{team_id}/memberships/{membership_id}")

    # Documents

    def _collection_path(self, collection_id: str) -> str:
        return f"/databases/{self.database_id}/collections/{collection_id}/documents"

    async def get_document(self, collection_id: str, document_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self._collection_path(collection_id)}/{document_id}")

    async def list_documents(
        self,
        collection_id: str,
        queries: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        params = [("queries[]", query) for query in queries] if queries else None
        body = await self._request("GET", self._collection_path(collection_id), params=params)
        return body.get("documents", [])

    async def create_document(
        self,
        collection_id: str,
        data: Dict[str, Any],
        document_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            self._collection_path(collection_id),
            json_body={"documentId": document_id or "unique()", "data": data},
        )

    async def update_document(self, collection_id: str, document_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"{self._collection_path(collection_id)}/{document_id}", json_body={"data": data}
        )
