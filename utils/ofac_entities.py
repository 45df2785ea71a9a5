from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class EntityAddress:
    address: str | None = None
    city: str | None = None
    country: str | None = None

    def as_dict(self) -> dict[str, str]:
        """JSON form; `None` fields are left out."""
        out: dict[str, str] = {}
        if self.address is not None:
            out["address"] = self.address
        if self.city is not None:
            out["city"] = self.city
        if self.country is not None:
            out["country"] = self.country
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EntityAddress":
        if not isinstance(data, dict):
            raise ValueError(f"address must be an object, got {type(data).__name__}")
        return cls(
            address=_opt_str(data.get("address")),
            city=_opt_str(data.get("city")),
            country=_opt_str(data.get("country")),
        )


@dataclass(frozen=True)
class SanctionedEntity:
    """One consolidated SDN record.

    Built once by the extractor; the consolidators derive new instances with
    longer `aka` / `addresses` tuples instead of mutating this one.
    """

    uid: str
    name: str
    type: str | None = None
    programs: tuple[str, ...] = ()
    remarks: str | None = None
    aka: tuple[str, ...] = ()
    addresses: tuple[EntityAddress, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"uid": self.uid, "name": self.name}
        if self.type is not None:
            out["type"] = self.type
        out["programs"] = list(self.programs)
        if self.remarks is not None:
            out["remarks"] = self.remarks
        out["aka"] = list(self.aka)
        out["addresses"] = [a.as_dict() for a in self.addresses]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SanctionedEntity":
        if not isinstance(data, dict):
            raise ValueError(f"entity must be an object, got {type(data).__name__}")
        uid = data.get("uid")
        name = data.get("name")
        if not uid or not name:
            raise ValueError("entity is missing uid or name")

        return cls(
            uid=str(uid),
            name=str(name),
            type=_opt_str(data.get("type")),
            programs=tuple(str(p) for p in _list_field(data, "programs")),
            remarks=_opt_str(data.get("remarks")),
            aka=tuple(str(a) for a in _list_field(data, "aka")),
            addresses=tuple(
                EntityAddress.from_dict(a) for a in _list_field(data, "addresses")
            ),
        )

    def search_item(self, score: float | None) -> dict[str, Any]:
        """Compact shape returned by the search endpoint."""
        return {
            "score": score,
            "uid": self.uid,
            "name": self.name,
            "type": self.type,
            "programs": list(self.programs),
        }


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _list_field(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"entity field {key!r} must be a list, got {type(value).__name__}")
    return value
