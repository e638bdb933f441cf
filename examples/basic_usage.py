"""Basic usage: build a lazy query, inspect its plan, and collect it locally.

Demonstrates the core Ballista workflow with the Polars engine.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pyarrow as pa

from ballista import Context, Wildcard, avg, count, lit

# ---------------------------------------------------------------------------
# 1. Write a small CSV file
# ---------------------------------------------------------------------------

tmpdir = tempfile.mkdtemp()
path = str(Path(tmpdir) / "users.csv")
Path(path).write_text(
    "id,name,city,score\n"
    "1,Alice,Oslo,85.0\n"
    "2,Bob,Lima,92.5\n"
    "3,Charlie,Oslo,78.0\n"
    "4,Diana,Pune,95.0\n"
    "5,Eve,Lima,88.0\n"
)

# ---------------------------------------------------------------------------
# 2. Build a query: nothing is read or computed yet
# ---------------------------------------------------------------------------

ctx = Context.local({"ballista.csv.batchSize": "2"})
users = ctx.read_csv(path)
print(f"Scanned: {users!r}")

high_scorers = users.filter(users.col("score") > 80.0).project(
    Wildcard(), (users.col("score") / lit(100.0)).alias("ratio")
)
print(f"Projected: {high_scorers!r}")

by_city = high_scorers.aggregate(
    [high_scorers.col("city")],
    [count(high_scorers.col("id")).alias("users"), avg(high_scorers.col("score"))],
)

print("\nPlan:")
by_city.explain()

# ---------------------------------------------------------------------------
# 3. Execute
# ---------------------------------------------------------------------------

batches = by_city.collect()
print(f"\nReceived {len(batches)} batch(es)")
print(pa.Table.from_batches(batches, schema=by_city.schema))

top = high_scorers.limit(2).collect()
print(f"\nFirst rows: {pa.Table.from_batches(top).to_pylist()}")
