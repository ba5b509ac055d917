from __future__ import annotations

import logging
from typing import Any, Mapping

import pandas as pd

from rate_history.facets.selections import BLANK_SENTINEL, MODIFIER_QUERY_KEY
from rate_history.io.schema import MODIFIER_COLUMNS, RATE_RECORD_COLUMNS, normalize_records
from rate_history.pipeline.accumulator import RecordPage

LOGGER = logging.getLogger(__name__)

FILTERABLE_COLUMNS = frozenset(
    {
        "service_category",
        "state_name",
        "service_code",
        "service_description",
        "program",
        "location_region",
        "provider_type",
        "duration_unit",
        MODIFIER_QUERY_KEY,
    }
)


def _load_psycopg():
    try:
        import psycopg
        from psycopg import sql
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError(
            "psycopg is required for PostgreSQL operations. "
            "Install with: pip install 'psycopg[binary]'"
        ) from exc
    return psycopg, sql


def _split_values(value: str) -> list[str]:
    return [part.strip() for part in str(value).split(",") if part.strip()]


def _blank_condition(sql, column: str):
    # A stored "-" counts as blank, matching the in-memory facet predicates.
    return sql.SQL(
        "({column} IS NULL OR TRIM({column}) = '' OR TRIM({column}) = '-')"
    ).format(column=sql.Identifier(column))


def _criterion_condition(sql, key: str, values: list[str], params: list[Any]):
    wants_blank = BLANK_SENTINEL in values
    wanted = [value for value in values if value != BLANK_SENTINEL]
    parts = []

    if key == MODIFIER_QUERY_KEY:
        if wanted:
            codes = [value.split(" - ", 1)[0].strip() for value in wanted]
            params.extend([codes] * len(MODIFIER_COLUMNS))
            parts.extend(
                sql.SQL("TRIM(SPLIT_PART({column}, ' - ', 1)) = ANY(%s)").format(
                    column=sql.Identifier(column)
                )
                for column in MODIFIER_COLUMNS
            )
        if wants_blank:
            blanks = [_blank_condition(sql, column) for column in MODIFIER_COLUMNS]
            parts.append(sql.SQL("({})").format(sql.SQL(" AND ").join(blanks)))
    elif key == "state_name":
        params.append([value.upper() for value in wanted])
        parts.append(sql.SQL("UPPER(TRIM(state_name)) = ANY(%s)"))
    elif key == "service_code":
        params.append(wanted)
        parts.append(
            sql.SQL(
                "EXISTS (SELECT 1 FROM UNNEST(STRING_TO_ARRAY(service_code, ',')) AS code "
                "WHERE TRIM(code) = ANY(%s))"
            )
        )
    else:
        if wanted:
            params.append(wanted)
            parts.append(
                sql.SQL("TRIM({column}) = ANY(%s)").format(column=sql.Identifier(key))
            )
        if wants_blank:
            parts.append(_blank_condition(sql, key))

    return sql.SQL("({})").format(sql.SQL(" OR ").join(parts))


def build_where_clause(sql, criteria: Mapping[str, str]) -> tuple[Any, list[Any]]:
    params: list[Any] = []
    conditions = []
    for key, raw_value in criteria.items():
        if key not in FILTERABLE_COLUMNS:
            raise ValueError(f"Unsupported filter column: {key}")
        values = _split_values(raw_value)
        if not values:
            continue
        conditions.append(_criterion_condition(sql, key, values, params))
    if not conditions:
        return sql.SQL(""), params
    return sql.SQL(" WHERE {}").format(sql.SQL(" AND ").join(conditions)), params


class PostgresPageFetcher:
    """Page through a rate table with LIMIT/OFFSET, counting matches on each page."""

    def __init__(
        self,
        db_url: str,
        table_name: str = "state_payment_comparison",
        order_by: str = "id",
    ) -> None:
        if not db_url:
            raise ValueError("query.db_url must be set when query.mode is 'postgres'")
        self.db_url = db_url
        self.table_name = table_name
        self.order_by = order_by

    def __call__(self, criteria: Mapping[str, str], page: int, items_per_page: int) -> RecordPage:
        psycopg, sql = _load_psycopg()
        where_sql, params = build_where_clause(sql, criteria)
        select_list = sql.SQL(", ").join(
            sql.SQL("CAST({column} AS TEXT) AS {column}").format(column=sql.Identifier(column))
            for column in RATE_RECORD_COLUMNS
        )
        count_query = sql.SQL("SELECT COUNT(*) FROM {table_name}{where_sql}").format(
            table_name=sql.Identifier(self.table_name),
            where_sql=where_sql,
        )
        page_query = sql.SQL(
            "SELECT {select_list} FROM {table_name}{where_sql} "
            "ORDER BY {order_by} LIMIT %s OFFSET %s"
        ).format(
            select_list=select_list,
            table_name=sql.Identifier(self.table_name),
            where_sql=where_sql,
            order_by=sql.Identifier(self.order_by),
        )

        with psycopg.connect(self.db_url) as conn:
            with conn.cursor() as cursor:
                cursor.execute(count_query, params)
                total_count = int(cursor.fetchone()[0])
                cursor.execute(page_query, [*params, items_per_page, (page - 1) * items_per_page])
                rows = cursor.fetchall()

        LOGGER.debug("Loaded %s rows from %s (page %s)", len(rows), self.table_name, page)
        records = normalize_records(pd.DataFrame(rows, columns=list(RATE_RECORD_COLUMNS)))
        return RecordPage(records=records, total_count=total_count)
