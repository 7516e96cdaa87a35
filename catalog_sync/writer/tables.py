"""Definitions of the catalog tables and the DDL derived from them."""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..errors import UnknownTableError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class Column:
    """A table column: name, SQL type and inline constraints."""
    name: str
    sql_type: str
    constraints: str = ""
    default: Optional[str] = None

    def definition(self) -> str:
        parts = [self.name, self.sql_type]
        if self.constraints:
            parts.append(self.constraints)
        if self.default is not None:
            parts.append(f"DEFAULT {self.default}")
        return " ".join(parts)

    def addition(self) -> str:
        """Definition usable in ADD COLUMN on a populated table.

        NOT NULL and PRIMARY KEY are dropped: existing rows have no value
        for the new column.
        """
        constraints = self.constraints.replace("PRIMARY KEY", "").replace("NOT NULL", "")
        parts = [self.name, self.sql_type]
        if constraints.strip():
            parts.append(" ".join(constraints.split()))
        if self.default is not None:
            parts.append(f"DEFAULT {self.default}")
        return " ".join(parts)


@dataclass(frozen=True)
class TableDefinition:
    """A catalog table with its keys, indexes and the columns the sync writes."""
    name: str
    columns: Tuple[Column, ...]
    foreign_keys: Tuple[str, ...] = ()
    indexes: Tuple[Tuple[str, str], ...] = ()
    synced_columns: Tuple[str, ...] = ()
    children: Tuple["TableDefinition", ...] = field(default=())

    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    def create_statements(self, include_children: bool = True) -> List[str]:
        """CREATE TABLE and CREATE INDEX statements, children included by default."""
        body = [f"    {column.definition()}" for column in self.columns]
        body.extend(f"    FOREIGN KEY {fk}" for fk in self.foreign_keys)
        statements = [
            f"CREATE TABLE IF NOT EXISTS {self.name} (\n" + ",\n".join(body) + "\n)"
        ]
        statements.extend(
            f"CREATE INDEX IF NOT EXISTS {index_name} ON {self.name}({column})"
            for index_name, column in self.indexes
        )
        if include_children:
            for child in self.children:
                statements.extend(child.create_statements())
        return statements

    def ddl(self) -> str:
        return ";\n".join(self.create_statements()) + ";\n"

    def add_column_statements(self, existing: List[str]) -> List[str]:
        """ALTER TABLE statements for the columns absent from ``existing``."""
        present = {name.lower() for name in existing}
        return [
            f"ALTER TABLE {self.name} ADD COLUMN IF NOT EXISTS {column.addition()}"
            for column in self.columns
            if column.name.lower() not in present
        ]


_TIMESTAMPS = (
    Column("created_at", "TIMESTAMP", default="CURRENT_TIMESTAMP"),
    Column("updated_at", "TIMESTAMP", default="CURRENT_TIMESTAMP"),
)

CURRENCY = TableDefinition(
    name="currency",
    columns=(
        Column("id", "VARCHAR(10)", "PRIMARY KEY"),
        Column("rate", "NUMERIC(10, 4)", "NOT NULL"),
    ) + _TIMESTAMPS,
    indexes=(("idx_currency_id", "id"),),
    synced_columns=("id", "rate"),
)

CATEGORIES = TableDefinition(
    name="categories",
    columns=(
        Column("id", "INTEGER", "PRIMARY KEY"),
        Column("name", "TEXT", "NOT NULL"),
        Column("parent_id", "INTEGER"),
    ) + _TIMESTAMPS,
    foreign_keys=("(parent_id) REFERENCES categories(id) ON DELETE SET NULL",),
    indexes=(("idx_categories_parent_id", "parent_id"),),
    synced_columns=("id", "name", "parent_id"),
)

OFFER_PARAMS = TableDefinition(
    name="offer_params",
    columns=(
        Column("id", "SERIAL", "PRIMARY KEY"),
        Column("offer_id", "INTEGER", "NOT NULL"),
        Column("param_name", "TEXT", "NOT NULL"),
        Column("param_value", "TEXT"),
        Column("created_at", "TIMESTAMP", default="CURRENT_TIMESTAMP"),
    ),
    foreign_keys=("(offer_id) REFERENCES offers(id) ON DELETE CASCADE",),
    indexes=(("idx_offer_params_offer_id", "offer_id"),),
    synced_columns=("offer_id", "param_name", "param_value"),
)

OFFERS = TableDefinition(
    name="offers",
    columns=(
        Column("id", "INTEGER", "PRIMARY KEY"),
        Column("available", "BOOLEAN", "NOT NULL"),
        Column("url", "TEXT"),
        Column("price", "NUMERIC(10, 2)"),
        Column("currency_id", "VARCHAR(10)"),
        Column("category_id", "INTEGER"),
        Column("picture", "TEXT"),
        Column("name", "TEXT", "NOT NULL"),
        Column("vendor", "TEXT"),
        Column("vendor_code", "VARCHAR(100)", "UNIQUE NOT NULL"),
        Column("description", "TEXT"),
        Column("count", "INTEGER"),
    ) + _TIMESTAMPS,
    foreign_keys=(
        "(currency_id) REFERENCES currency(id)",
        "(category_id) REFERENCES categories(id)",
    ),
    indexes=(
        ("idx_offers_vendor_code", "vendor_code"),
        ("idx_offers_category_id", "category_id"),
        ("idx_offers_currency_id", "currency_id"),
    ),
    synced_columns=(
        "id", "available", "url", "price", "currency_id", "category_id",
        "picture", "name", "vendor", "vendor_code", "description", "count",
    ),
    children=(OFFER_PARAMS,),
)

# Dependency order: offers reference currency and categories
TABLES: Dict[str, TableDefinition] = {
    table.name: table for table in (CURRENCY, CATEGORIES, OFFERS)
}


def get_table_names() -> List[str]:
    """Names of the synced catalog tables in dependency order."""
    return list(TABLES)


def get_table(name: str) -> TableDefinition:
    """
    Look up a table definition by name, case-insensitively.

    Raises:
        UnknownTableError: If the name is not a catalog table
    """
    table = TABLES.get(name.lower()) if isinstance(name, str) else None
    if table is None:
        raise UnknownTableError(name)
    return table


def get_table_ddl(name: str) -> str:
    """CREATE script of a catalog table (``offers`` includes ``offer_params``)."""
    return get_table(name).ddl()


def expected_columns(name: str) -> List[str]:
    """Columns the sync writes into the table."""
    return list(get_table(name).synced_columns)


def quote_identifier(name: str) -> str:
    """
    Quote a plain SQL identifier.

    Raises:
        ValueError: If the name is not a plain identifier
    """
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return '"' + name + '"'
