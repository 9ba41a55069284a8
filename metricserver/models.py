"""Domain objects exchanged over the API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


def _field(data: Mapping[str, Any], key: str, kinds: tuple[type, ...]) -> Any:
    """Look ``key`` up (case-insensitively, as JSON decoding does) and check its type."""
    value = data.get(key)
    if value is None:
        value = next((v for k, v in data.items() if str(k).lower() == key), None)
    if value is not None and (isinstance(value, bool) or not isinstance(value, kinds)):
        raise ValueError(f"metric field {key!r} has the wrong type")
    return value


@dataclass
class Metric:
    """A single measurement reported by a client."""

    name: str = ""
    mtype: str = ""
    value: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Metric":
        """Build a metric from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise ValueError("metric must be a JSON object")
        value = _field(data, "value", (int, float))
        return cls(
            name=_field(data, "name", (str,)) or "",
            mtype=_field(data, "type", (str,)) or "",
            value=float(value or 0.0),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation of the metric."""
        return {"name": self.name, "type": self.mtype, "value": self.value}