"""
Base Repository Interface.
Defines the uniform data access contract used by every service.

Options follow one vocabulary across operations:
- filters: mapping of `field` or `field__op` to a value (op in eq, ne, in,
  nin, gt, gte, lt, lte, is_null); sequences under plain `field` mean IN.
- projection: list of field names; projected results are plain dicts.
- sort: mapping of field to 1 (ascending) or -1 (descending).
- pipeline: sequence of stages, each a callable `Select -> Select`.
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, TypeVar, Union

T = TypeVar("T")

Filters = Mapping[str, Any]
Row = Union[T, Dict[str, Any]]


class BaseRepository(Protocol[T]):
    """Interface for generic CRUD operations."""

    def list(
        self,
        filters: Optional[Filters] = None,
        projection: Optional[Sequence[str]] = None,
        sort: Optional[Mapping[str, int]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """List entities matching `filters`. An empty result is an empty list."""
        ...

    def read(self, filters: Optional[Filters] = None, projection: Optional[Sequence[str]] = None) -> Optional[Row]:
        """Get a single entity, or None when nothing matches."""
        ...

    def create(self, data: Optional[Mapping[str, Any]] = None, commit: bool = True) -> T:
        """Create a new entity."""
        ...

    def create_many(self, data: Optional[Sequence[Mapping[str, Any]]] = None, commit: bool = True) -> List[T]:
        """Create several entities in one flush."""
        ...

    def update(
        self,
        filters: Optional[Filters] = None,
        data: Optional[Mapping[str, Any]] = None,
        projection: Optional[Sequence[str]] = None,
        commit: bool = True,
    ) -> Optional[Row]:
        """Update the first entity matching `filters`; None when nothing matches."""
        ...

    def update_many(
        self,
        filters: Optional[Filters] = None,
        data: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
        commit: bool = True,
    ) -> Dict[str, Any]:
        """Update every entity matching `filters`; returns acknowledgement and counts."""
        ...

    def remove(self, filters: Optional[Filters] = None, commit: bool = True) -> Dict[str, Any]:
        """Physically delete every entity matching `filters`."""
        ...

    def aggregate(self, pipeline: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a stage pipeline and return rows as dicts."""
        ...

    def count(self, filters: Optional[Filters] = None) -> int:
        """Count entities matching `filters`."""
        ...

    def exists(self, filters: Filters) -> bool:
        """Whether at least one entity matches `filters`."""
        ...
