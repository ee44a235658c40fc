"""
Query Builder - Construct parameterized snapshot-store SQL.

The change-capture pipeline writes one row per framework state change into a
snapshots table whose ``record`` column holds the captured JSON:
``{"objectSnapshot": {<framework object>}}``. SQL construction lives here;
the store clients just execute it.

Supports:
- BigQuery (``@name`` parameters, JSON_VALUE/JSON_QUERY)
- SQLite (``:name`` parameters, json_extract)
- Parameterized queries (no string interpolation of uid, kind or attempt id)
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

# JSON paths inside the captured record
SNAPSHOT_PATH = "$.objectSnapshot"
UID_PATH = "$.objectSnapshot.metadata.uid"
KIND_PATH = "$.objectSnapshot.kind"
ATTEMPT_ID_PATH = "$.objectSnapshot.status.attemptStatus.id"

# Table references are interpolated, so restrict them to identifier characters
_TABLE_REF = re.compile(r"^[A-Za-z0-9_\-]+(\.[A-Za-z0-9_\-]+){0,2}$")


@dataclass
class QueryParam:
    """A single typed query parameter."""
    name: str
    type: str
    value: Any


@dataclass(frozen=True)
class Dialect:
    """SQL flavor of a snapshot store backend."""
    name: str
    json_value: str
    json_object: str
    int_type: str
    placeholder: str
    quote: str


DIALECTS = {
    "bigquery": Dialect(
        name="bigquery",
        json_value="JSON_VALUE(record, '{path}')",
        json_object="JSON_QUERY(record, '{path}')",
        int_type="INT64",
        placeholder="@{name}",
        quote="`",
    ),
    "sqlite": Dialect(
        name="sqlite",
        json_value="json_extract(record, '{path}')",
        json_object="json_extract(record, '{path}')",
        int_type="INTEGER",
        placeholder=":{name}",
        quote='"',
    ),
}


def get_dialect(name: str) -> Dialect:
    try:
        return DIALECTS[name]
    except KeyError:
        raise ValueError(f"Unknown dialect '{name}'. Allowed: {sorted(DIALECTS)}")


def build_snapshot_query(
    table: str,
    *,
    uid: str,
    kind: str,
    attempt_id: Optional[int] = None,
    dialect: str = "bigquery",
) -> tuple[str, list[QueryParam]]:
    """Build the historical-snapshot lookup for one framework object.

    Returns (sql_string, query_parameters) for parameterized execution.

    Args:
        table: Snapshot table reference (``table`` or ``project.dataset.table``)
        uid: Framework object UID every row must match
        kind: Object kind every row must match (e.g. "Framework")
        attempt_id: If given, only the snapshot of this attempt index
        dialect: "bigquery" or "sqlite"

    Returns:
        Tuple of (SQL string, list of QueryParam), rows ordered ascending by
        attempt index compared as an integer.
    """
    d = get_dialect(dialect)
    if not _TABLE_REF.match(table):
        raise ValueError(f"Invalid table reference '{table}'")

    attempt_id_expr = f"CAST({d.json_value.format(path=ATTEMPT_ID_PATH)} AS {d.int_type})"

    query_params = [
        QueryParam(name="uid", type="STRING", value=str(uid)),
        QueryParam(name="kind", type="STRING", value=str(kind)),
    ]
    where_clauses = [
        f"{d.json_value.format(path=UID_PATH)} = {d.placeholder.format(name='uid')}",
        f"{d.json_value.format(path=KIND_PATH)} = {d.placeholder.format(name='kind')}",
    ]

    if attempt_id is not None:
        where_clauses.append(f"{attempt_id_expr} = {d.placeholder.format(name='attempt_id')}")
        query_params.append(QueryParam(name="attempt_id", type="INT64", value=int(attempt_id)))

    source = f"{d.quote}{table}{d.quote}"
    where_sql = " AND ".join(where_clauses)
    sql = (
        f"SELECT {d.json_object.format(path=SNAPSHOT_PATH)} AS data FROM {source} "
        f"WHERE {where_sql} "
        f"ORDER BY {attempt_id_expr} ASC"
    )
    return sql, query_params


def params_as_dict(query_params: list[QueryParam]) -> dict[str, Any]:
    """Flatten QueryParams into a name -> value mapping (DB-API named style)."""
    return {p.name: p.value for p in query_params}
