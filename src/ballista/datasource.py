"""File-backed table providers.

Only the declared schema is read here; parsing rows is left to whichever
engine executes the resulting ``FileScan``.
"""

from __future__ import annotations

import pyarrow as pa
import pyarrow.csv as pa_csv
import pyarrow.parquet as pq


class CsvTable:
    """A CSV file with an explicit or inferred schema."""

    __slots__ = ("path", "has_header", "delimiter", "_schema")

    def __init__(
        self,
        path: str,
        schema: pa.Schema | None = None,
        has_header: bool = True,
        delimiter: str = ",",
    ) -> None:
        self.path = path
        self.has_header = has_header
        self.delimiter = delimiter
        self._schema = schema

    def __repr__(self) -> str:
        return f"CsvTable({self.path!r})"

    def schema(self) -> pa.Schema:
        """Return the declared schema, inferring it from the first block if needed."""
        if self._schema is None:
            reader = pa_csv.open_csv(
                self.path,
                read_options=pa_csv.ReadOptions(autogenerate_column_names=not self.has_header),
                parse_options=pa_csv.ParseOptions(delimiter=self.delimiter),
            )
            try:
                self._schema = reader.schema
            finally:
                reader.close()
        return self._schema


class ParquetTable:
    """A Parquet file; its schema comes from the file footer."""

    __slots__ = ("path", "_schema")

    def __init__(self, path: str) -> None:
        self.path = path
        self._schema: pa.Schema | None = None

    def __repr__(self) -> str:
        return f"ParquetTable({self.path!r})"

    def schema(self) -> pa.Schema:
        if self._schema is None:
            self._schema = pq.read_schema(self.path)
        return self._schema


def project_schema(schema: pa.Schema, projection: tuple[int, ...] | None) -> pa.Schema:
    """Narrow *schema* to the fields at *projection*, in projection order."""
    if projection is None:
        return schema
    return pa.schema([schema.field(i) for i in projection])
