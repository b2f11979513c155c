"""
Base value object for the map domain.

Value objects are frozen dataclasses compared by value. Subclasses validate
themselves in ``_validate`` so an invalid instance can never be observed.
"""
from abc import ABC
from dataclasses import dataclass, fields
from typing import Any, Dict


@dataclass(frozen=True)
class BaseValueObject(ABC):
    """Immutable, value-compared domain object with post-construction validation."""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override in subclasses to add validation logic."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict of the dataclass fields, suitable for JSON payloads."""
        return {f.name: getattr(self, f.name) for f in fields(self)}
