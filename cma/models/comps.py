from dataclasses import dataclass

from cma.models.property import ListingStatus, Property


@dataclass(frozen=True)
class SourceFailure:
    source: str
    reason: str


@dataclass(frozen=True)
class CompResult:
    """Comps bucketed by listing status.

    A property appears in exactly one bucket. `degraded` is True when at
    least one source failed, so an empty result can be told apart from
    "no comps exist".
    """

    active: tuple[Property, ...] = ()
    pending: tuple[Property, ...] = ()
    sold: tuple[Property, ...] = ()
    degraded: bool = False
    failures: tuple[SourceFailure, ...] = ()

    def bucket(self, status: ListingStatus) -> tuple[Property, ...]:
        return {
            ListingStatus.ACTIVE: self.active,
            ListingStatus.PENDING: self.pending,
            ListingStatus.SOLD: self.sold,
        }[status]

    @property
    def all(self) -> tuple[Property, ...]:
        """Sold first, then pending, then active."""
        return self.sold + self.pending + self.active

    @property
    def total(self) -> int:
        return len(self.active) + len(self.pending) + len(self.sold)

    @property
    def is_empty(self) -> bool:
        return self.total == 0
