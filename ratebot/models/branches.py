"""Branch directory data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BranchRecord:
    """A physical office of a bank."""

    id: str
    name: str
    address: str
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None
