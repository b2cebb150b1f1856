"""Protocols for the external identity and document directory.

Records are plain mappings in the directory's own shape (``$id``,
``teamId``, ``userId``, ``roles`` and so on). Failures raise DirectoryError
carrying the numeric status code; 404 means "does not exist yet" and 409
means "already exists".
"""

from abc import abstractmethod
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class DirectoryClient(Protocol):
    """Protocol for the identity/document store the engine consumes."""

    # Users

    @abstractmethod
    async def get_user(self, user_id: str) -> Dict[str, Any]:
        """Get a user record by id."""
        ...

    @abstractmethod
    async def list_users(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        """List user records, one page at a time."""
        ...

    # Teams

    @abstractmethod
    async def list_teams(self, name: Optional[str] = None) -> List[Dict[str, Any]]:
        """List teams, optionally filtered by exact name."""
        ...

    @abstractmethod
    async def get_team(self, team_id: str) -> Dict[str, Any]:
        """Get a team record by id."""
        ...

    @abstractmethod
    async def create_team(self, team_id: str, name: str, roles: Sequence[str]) -> Dict[str, Any]:
        """Create a team with the given id and enabled roles."""
        ...

    # Memberships

    @abstractmethod
    async def list_team_memberships(self, team_id: str) -> List[Dict[str, Any]]:
        """List memberships of a team."""
        ...

    @abstractmethod
    async def list_user_memberships(self, user_id: str) -> List[Dict[str, Any]]:
        """List memberships held by a user across all teams."""
        ...

    @abstractmethod
    async def create_membership(self, team_id: str, user_id: str, roles: Sequence[str]) -> Dict[str, Any]:
        """Add a user to a team with the given roles."""
        ...

    @abstractmethod
    async def update_membership_roles(self, team_id: str, membership_id: str, roles: Sequence[str]) -> Dict[str, Any]:
        """Replace the roles of a membership."""
        ...

    @abstractmethod
    async def delete_membership(self, team_id: str, membership_id: str) -> None:
        """Remove a membership."""
        ...

    # Documents

    @abstractmethod
    async def get_document(self, collection_id: str, document_id: str) -> Dict[str, Any]:
        """Get a document by id."""
        ...

    @abstractmethod
    async def list_documents(
        self,
        collection_id: str,
        queries: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """List documents of a collection."""
        ...

    @abstractmethod
    async def create_document(
        self,
        collection_id: str,
        data: Dict[str, Any],
        document_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a document, with a generated id when none is given."""
        ...

    @abstractmethod
    async def update_document(self, collection_id: str, document_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Update fields of a document."""
        ...
