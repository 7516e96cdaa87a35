"""Unit tests for catalog table definitions and generated DDL."""

import pytest

from catalog_sync.errors import UnknownTableError
from catalog_sync.writer.tables import (
    OFFERS,
    expected_columns,
    get_table,
    get_table_ddl,
    get_table_names,
    quote_identifier,
)


class TestTableRegistry:
    """Test table lookup."""

    def test_table_names_in_dependency_order(self):
        assert get_table_names() == ["currency", "categories", "offers"]

    def test_lookup_is_case_insensitive(self):
        assert get_table("OFFERS").name == "offers"
        assert get_table("Currency").name == "currency"

    def test_unknown_table(self):
        """Test unknown tables raise UnknownTableError, a ValueError."""
        with pytest.raises(UnknownTableError) as exc_info:
            get_table("products")

        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.table == "products"

    def test_expected_columns(self):
        assert expected_columns("currency") == ["id", "rate"]
        assert expected_columns("categories") == ["id", "name", "parent_id"]
        assert expected_columns("offers") == [
            "id", "available", "url", "price", "currency_id", "category_id",
            "picture", "name", "vendor", "vendor_code", "description", "count",
        ]


class TestGeneratedDDL:
    """Test CREATE scripts."""

    def test_currency_ddl(self):
        ddl = get_table_ddl("currency")

        assert "CREATE TABLE IF NOT EXISTS currency (" in ddl
        assert "id VARCHAR(10) PRIMARY KEY" in ddl
        assert "rate NUMERIC(10, 4) NOT NULL" in ddl
        assert "updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP" in ddl
        assert "CREATE INDEX IF NOT EXISTS idx_currency_id ON currency(id)" in ddl

    def test_categories_self_reference(self):
        ddl = get_table_ddl("categories")

        assert "FOREIGN KEY (parent_id) REFERENCES categories(id) ON DELETE SET NULL" in ddl
        assert "idx_categories_parent_id" in ddl

    def test_offers_ddl_includes_params_table(self):
        """Test the offers script also creates offer_params after offers."""
        ddl = get_table_ddl("offers")

        assert "vendor_code VARCHAR(100) UNIQUE NOT NULL" in ddl
        assert "FOREIGN KEY (currency_id) REFERENCES currency(id)" in ddl
        assert "CREATE TABLE IF NOT EXISTS offer_params (" in ddl
        assert "FOREIGN KEY (offer_id) REFERENCES offers(id) ON DELETE CASCADE" in ddl
        assert ddl.index("CREATE TABLE IF NOT EXISTS offers") < ddl.index("CREATE TABLE IF NOT EXISTS offer_params")

    def test_statements_are_terminated(self):
        ddl = get_table_ddl("offers")

        statements = [s for s in ddl.split(";") if s.strip()]
        assert len(statements) == len(OFFERS.create_statements())
        assert ddl.rstrip().endswith(";")

    def test_create_without_children(self):
        statements = OFFERS.create_statements(include_children=False)

        assert not any("offer_params" in s for s in statements)


class TestColumnAdditions:
    """Test ALTER TABLE generation."""

    def test_no_missing_columns(self):
        assert OFFERS.add_column_statements(OFFERS.column_names()) == []

    def test_missing_columns_added(self):
        existing = [c for c in OFFERS.column_names() if c not in ("count", "vendor_code")]

        statements = OFFERS.add_column_statements(existing)

        assert statements == [
            "ALTER TABLE offers ADD COLUMN IF NOT EXISTS vendor_code VARCHAR(100) UNIQUE",
            "ALTER TABLE offers ADD COLUMN IF NOT EXISTS count INTEGER",
        ]

    def test_comparison_ignores_case(self):
        existing = [c.upper() for c in OFFERS.column_names()]

        assert OFFERS.add_column_statements(existing) == []

    def test_defaults_kept(self):
        existing = [c for c in OFFERS.column_names() if c != "updated_at"]

        assert OFFERS.add_column_statements(existing) == [
            "ALTER TABLE offers ADD COLUMN IF NOT EXISTS updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        ]


class TestQuoteIdentifier:

    def test_plain_identifier(self):
        assert quote_identifier("vendor_code") == '"vendor_code"'

    @pytest.mark.parametrize("name", ["", "1col", "id; DROP TABLE offers", 'a"b', None])
    def test_rejects_unsafe_names(self, name):
        with pytest.raises(ValueError):
            quote_identifier(name)
