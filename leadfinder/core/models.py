"""Core data models shared by the lead search pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

CONTACT_FIELDS = ("phone", "email", "instagram", "facebook", "linkedin")

# Wire keys returned by the generative search prompt.
WIRE_KEYS = {
    "name": "nome",
    "phone": "telefone",
    "email": "email",
    "instagram": "instagram",
    "facebook": "facebook",
    "linkedin": "linkedin",
}

_NULL_STRINGS = {"null", "none", "n/a", "undefined"}


class InvalidRequest(ValueError):
    """Raised when a search request is malformed (e.g. empty query)."""


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class SearchFilters:
    """Location and volume filters coming from the search form.

    ``radius_km == 0`` means the radius is ignored. When ``city`` or ``state``
    is set the radius is inactive and the textual location wins.
    """

    target_count: int = 50
    city: str = ""
    state: str = ""
    radius_km: float = 0

    @property
    def has_place_name(self) -> bool:
        return bool(self.city.strip() or self.state.strip())

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "SearchFilters":
        payload = payload or {}
        target_raw = payload.get("target_count", payload.get("pageSize", 50))
        radius_raw = payload.get("radius_km", payload.get("radius", 0))
        try:
            target_count = int(target_raw)
            radius_km = float(radius_raw or 0)
        except (TypeError, ValueError) as exc:
            raise InvalidRequest("target_count and radius_km must be numeric") from exc
        if radius_km < 0:
            raise InvalidRequest("radius_km must not be negative")

        city = str(payload.get("city") or "").strip()
        state = str(payload.get("state") or "").strip().upper()[:2]
        return cls(target_count=target_count, city=city, state=state, radius_km=radius_km)


@dataclass(frozen=True)
class SearchRequest:
    query: str
    location: Location
    filters: SearchFilters = field(default_factory=SearchFilters)


@dataclass(slots=True)
class BusinessRecord:
    """One business contact as returned by a batch. Only ``name`` is expected."""

    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    instagram: Optional[str] = None
    facebook: Optional[str] = None
    linkedin: Optional[str] = None

    @classmethod
    def from_payload(cls, raw: Dict[str, Any]) -> "BusinessRecord":
        name = raw.get(WIRE_KEYS["name"])
        if name is None:
            name = raw.get("name")
        values = {}
        for attr in CONTACT_FIELDS:
            value = raw.get(WIRE_KEYS[attr])
            if value is None and WIRE_KEYS[attr] != attr:
                value = raw.get(attr)
            values[attr] = _strip_or_none(value)
        return cls(name="" if name is None else str(name), **values)

    def to_payload(self) -> Dict[str, Optional[str]]:
        return {wire: getattr(self, attr) for attr, wire in WIRE_KEYS.items()}


@dataclass
class BatchOutcome:
    """Result of one batch: records on success, an error string on failure."""

    strategy: str
    records: List[BusinessRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, strategy: str, error: str) -> "BatchOutcome":
        return cls(strategy=strategy, records=[], error=error)


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    if not value_str or value_str.lower() in _NULL_STRINGS:
        return None
    return value_str
