"""
refs.py
=======
Optional references from one record to a user (patient or doctor).

A record only carries the numeric id of the user it points at, sometimes
with a joined display name. Resolution goes through one path:

    joined name  ->  caller supplied lookup  ->  "Patient #<id>"

Records may be plain dicts (decoded JSON) or pydantic models; the helpers
at the top of this module read fields from either.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union

# Given a user id, return its display name or None
NameLookup = Callable[[int], Optional[str]]

PATIENT = "Patient"
DOCTOR = "Doctor"

# record field holding the id -> field holding the joined name
_NAME_FIELDS = {"patient": "patientName", "doctor": "doctorName"}
_KINDS = {"patient": PATIENT, "doctor": DOCTOR}


def field_value(item: Any, name: str, default: Any = None) -> Any:
    """Read a field from a mapping or an attribute-style record."""
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


@dataclass(frozen=True)
class Ref:
    """A possibly dangling reference to a user."""
    kind: str
    id: Optional[int]
    name: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return bool(self.name)

    def display(self) -> str:
        if self.name:
            return self.name
        return f"{self.kind} #{self.id}"

    def __str__(self):
        return self.display()


def lookup_from_users(users: Iterable[Any]) -> NameLookup:
    """
    Build a lookup over a list of users (dicts or records).
    Uses full_name, then username.
    """
    names = {}
    for u in users:
        uid = field_value(u, "id")
        if uid is None:
            continue
        name = field_value(u, "full_name") or field_value(u, "username")
        if name:
            names[uid] = name
    return names.get


def resolve_ref(item: Any, field: str, lookup: Optional[NameLookup] = None) -> Ref:
    """
    Resolve ``item[field]`` (``"patient"`` or ``"doctor"``) into a Ref.
    """
    if field not in _KINDS:
        raise ValueError(f"no reference field named {field!r}")
    ref_id = field_value(item, field)
    name = field_value(item, _NAME_FIELDS[field])
    if not name and lookup is not None and ref_id is not None:
        name = lookup(ref_id)
    return Ref(kind=_KINDS[field], id=ref_id, name=name or None)


def display_name(item: Any, field: str, lookup: Optional[NameLookup] = None) -> str:
    """Display string for a reference field, with the "#<id>" fallback."""
    return resolve_ref(item, field, lookup).display()


LookupLike = Union[NameLookup, Mapping[int, str], None]


def as_lookup(lookup: LookupLike) -> Optional[NameLookup]:
    """Accept either a callable or an id -> name mapping."""
    if lookup is None or callable(lookup):
        return lookup
    return lookup.get
