"""Materialized query results."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass
class DataTable:
    """Fully materialized rows of one result set."""

    columns: list[str]
    rows: list[tuple[Any, ...]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        return iter(self.rows)

    def records(self) -> list[dict[str, Any]]:
        """Rows as column-name → value dicts."""
        return [dict(zip(self.columns, row, strict=True)) for row in self.rows]


@dataclass
class DataSet:
    """The result tables produced by one command."""

    tables: list[DataTable] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.tables)

    def __getitem__(self, index: int) -> DataTable:
        return self.tables[index]
