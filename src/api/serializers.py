"""
Turning domain dataclasses into JSON-ready dicts.
"""

from dataclasses import fields, is_dataclass
from datetime import date, datetime, time
from typing import Any, Optional

from src.models import Person
from src.records import compute_age


def serialize_person(person: Person, today: Optional[date] = None) -> dict:
    data = {f.name: to_json(getattr(person, f.name)) for f in fields(person)}
    data["full_name"] = person.full_name
    data["is_placeholder"] = person.is_placeholder
    data["age"] = compute_age(person.birth_date, today) if person.birth_date else None
    return data


def to_json(value: Any) -> Any:
    """Recursively convert dataclasses, dates and containers for jsonify."""
    if isinstance(value, Person):
        return serialize_person(value)
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (frozenset, set)):
        return sorted(to_json(v) for v in value)
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    return value
