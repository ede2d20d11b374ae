"""Ledger data models.

Models:
- Account: a registered participant with a credit balance and reputation
- Offer: a provider's standing advertisement of a service at a fixed cost
- ServiceRequest: a requester's commitment to consume an offer
- RequestStateTransition: audit log entry for request status changes

Models validate their own invariants and raise ``ValueError`` when
constructed with impossible values. Stores never mutate a model in place;
they persist a modified copy (``dataclasses.replace``).
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def normalize_tag(tag: str) -> str:
    """Normalize a skill or category tag: trimmed and lower-cased."""
    return tag.strip().lower()


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Normalize tags, dropping blanks and duplicates while keeping order."""
    result: List[str] = []
    for tag in tags or []:
        normalized = normalize_tag(tag)
        if normalized and normalized not in result:
            result.append(normalized)
    return result


class RequestStatus(str, Enum):
    """Lifecycle status of a service request."""

    PENDING = "pending"  # Created, awaiting settlement
    COMPLETED = "completed"  # Settled by the provider
    CANCELLED = "cancelled"  # Reserved; no operation moves a request here yet


# Valid status transitions
VALID_REQUEST_TRANSITIONS: Dict[RequestStatus, set] = {
    RequestStatus.PENDING: {RequestStatus.COMPLETED},
    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
}


@dataclass
class Account:
    """A registered participant in the exchange."""

    identity: str
    name: str
    skills: List[str] = field(default_factory=list)
    balance: int = 0
    reputation: int = 50
    registered: bool = True
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.identity or not self.identity.strip():
            raise ValueError("Account identity cannot be empty")
        if not self.name or not self.name.strip():
            raise ValueError("Account name cannot be empty")
        if self.balance < 0:
            raise ValueError(f"Balance cannot be negative: {self.balance}")
        if not 0 <= self.reputation <= 100:
            raise ValueError(f"Reputation must be between 0 and 100: {self.reputation}")
        self.skills = normalize_tags(self.skills)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "name": self.name,
            "skills": list(self.skills),
            "balance": self.balance,
            "reputation": self.reputation,
            "registered": self.registered,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            identity=data["identity"],
            name=data["name"],
            skills=list(data.get("skills") or []),
            balance=int(data.get("balance", 0)),
            reputation=int(data.get("reputation", 50)),
            registered=bool(data.get("registered", True)),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass
class Offer:
    """A service advertised by a provider at a fixed time-credit cost."""

    id: int
    provider: str
    category: str
    description: str
    time_required: int
    time_cost: int
    active: bool = True
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.id < 1:
            raise ValueError(f"Offer id must be positive: {self.id}")
        if not self.provider:
            raise ValueError("Offer provider cannot be empty")
        if not self.category or not self.category.strip():
            raise ValueError("Offer category cannot be empty")
        if not self.description or not self.description.strip():
            raise ValueError("Offer description cannot be empty")
        if self.time_required <= 0:
            raise ValueError("Time required must be positive")
        if self.time_cost <= 0:
            raise ValueError("Time cost must be positive")
        self.category = normalize_tag(self.category)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "provider": self.provider,
            "category": self.category,
            "description": self.description,
            "time_required": self.time_required,
            "time_cost": self.time_cost,
            "active": self.active,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Offer":
        return cls(
            id=int(data["id"]),
            provider=data["provider"],
            category=data["category"],
            description=data["description"],
            time_required=int(data["time_required"]),
            time_cost=int(data["time_cost"]),
            active=bool(data.get("active", True)),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass
class ServiceRequest:
    """A request to consume an offer, pending settlement by its provider."""

    id: int
    requester: str
    provider: str
    offer_id: int
    status: RequestStatus = RequestStatus.PENDING
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self):
        if self.id < 1:
            raise ValueError(f"Request id must be positive: {self.id}")
        if not self.requester or not self.provider:
            raise ValueError("Request requester and provider cannot be empty")
        try:
            self.status = RequestStatus(self.status)
        except ValueError:
            valid = [s.value for s in RequestStatus]
            raise ValueError(f"Invalid status: {self.status}. Must be one of {valid}")

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        """Check if the request can no longer change status."""
        return not VALID_REQUEST_TRANSITIONS[self.status]

    def can_transition_to(self, target: RequestStatus) -> bool:
        """Check whether moving to ``target`` is a valid transition."""
        return RequestStatus(target) in VALID_REQUEST_TRANSITIONS[self.status]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "requester": self.requester,
            "provider": self.provider,
            "offer_id": self.offer_id,
            "status": self.status.value,
            "created_at": format_datetime(self.created_at),
            "completed_at": format_datetime(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceRequest":
        return cls(
            id=int(data["id"]),
            requester=data["requester"],
            provider=data["provider"],
            offer_id=int(data["offer_id"]),
            status=data.get("status", RequestStatus.PENDING.value),
            created_at=parse_datetime(data.get("created_at")),
            completed_at=parse_datetime(data.get("completed_at")),
        )


@dataclass
class RequestStateTransition:
    """Audit record of a request status change."""

    request_id: int
    to_status: RequestStatus
    actor: str
    from_status: Optional[RequestStatus] = None  # None when the request is created
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.to_status = RequestStatus(self.to_status)
        if self.from_status is not None:
            self.from_status = RequestStatus(self.from_status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "from_status": self.from_status.value if self.from_status else None,
            "to_status": self.to_status.value,
            "actor": self.actor,
            "created_at": format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequestStateTransition":
        return cls(
            id=data["id"],
            request_id=int(data["request_id"]),
            from_status=data.get("from_status"),
            to_status=data["to_status"],
            actor=data["actor"],
            created_at=parse_datetime(data.get("created_at")),
        )
