"""Directory user model.

The directory keeps role and facility information as loose strings in user
preferences and labels. ``DirectoryUser.from_record`` is the only place
those strings are turned into Role values and facility ids.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple

from ...config.constants import Role
from ...core.exceptions import ValidationError
from ...features.roles.role_model import ROLE_LEVELS, parse_role

logger = logging.getLogger(__name__)

ROLE_LABEL_PREFIX = "role:"
FACILITY_LABEL_PREFIXES = ("facility:", "facility_")

# Role labels written by the legacy user management functions
LEGACY_ROLE_LABELS = {
    "admin": Role.ADMINISTRATOR,
    "facility_manager": Role.SUPERVISOR,
    "healthcare_worker": Role.DOCTOR,
    "data_entry_clerk": Role.USER,
}


def _role_from_string(value: str) -> Optional[Role]:
    candidate = value.strip().lower()
    if candidate.startswith(ROLE_LABEL_PREFIX):
        candidate = candidate[len(ROLE_LABEL_PREFIX):]
    if candidate in LEGACY_ROLE_LABELS:
        return LEGACY_ROLE_LABELS[candidate]
    try:
        return parse_role(candidate)
    except ValidationError:
        return None


def _facility_from_label(label: str) -> Optional[str]:
    for prefix in FACILITY_LABEL_PREFIXES:
        if label.startswith(prefix) and len(label) > len(prefix):
            return label[len(prefix):]
    return None


@dataclass(frozen=True)
class DirectoryUser:
    """User identity record as seen by the engine."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    roles: FrozenSet[Role] = frozenset()
    facility_ids: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()
    prefs: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    active: bool = True

    @property
    def primary_role(self) -> Optional[Role]:
        """Highest role held, None when the user carries no known role."""
        if not self.roles:
            return None
        return max(self.roles, key=lambda role: ROLE_LEVELS[role])

    @property
    def home_facility_id(self) -> Optional[str]:
        return self.facility_ids[0] if self.facility_ids else None

    @property
    def is_administrator(self) -> bool:
        return Role.ADMINISTRATOR in self.roles

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "DirectoryUser":
        prefs = record.get("prefs") or {}
        labels = tuple(str(label) for label in record.get("labels") or [])

        roles = set()
        facility_ids = []

        pref_role = prefs.get("role")
        if isinstance(pref_role, str):
            role = _role_from_string(pref_role)
            if role is not None:
                roles.add(role)
            else:
                logger.debug(f"Ignoring unknown role preference {pref_role!r} for user {record.get('$id')}")

        pref_facility = prefs.get("facilityId")
        if pref_facility:
            facility_ids.append(str(pref_facility))

        for label in labels:
            # Role labels first: "facility_manager" is a role, not a facility
            role = _role_from_string(label)
            if role is not None:
                roles.add(role)
                continue
            facility_id = _facility_from_label(label)
            if facility_id is not None and facility_id not in facility_ids:
                facility_ids.append(facility_id)

        return cls(
            id=record["$id"],
            name=record.get("name"),
            email=record.get("email"),
            roles=frozenset(roles),
            facility_ids=tuple(facility_ids),
            labels=labels,
            prefs=dict(prefs),
            active=bool(record.get("status", True)),
        )

    def profile(self) -> Dict[str, Any]:
        """Profile fields exposed alongside team membership listings."""
        return {
            "name": self.name,
            "email": self.email,
            "role": self.primary_role.value if self.primary_role else None,
            "active": self.active,
        }
