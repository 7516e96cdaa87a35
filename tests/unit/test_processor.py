"""Unit tests for CatalogProcessor."""

from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from catalog_sync.config import FeedConfig, SyncConfig
from catalog_sync.errors import TableUpdateError, UnknownTableError
from catalog_sync.feed.loader import FeedLoader
from catalog_sync.models.catalog import Catalog, Currency
from catalog_sync.processor import CatalogProcessor
from catalog_sync.writer.tables import CATEGORIES, CURRENCY, OFFER_PARAMS, OFFERS
from tests.fakes import FakeConnection, FakePool


def _processor(pool=None, catalog=None):
    loader = Mock()
    loader.load = AsyncMock(return_value=catalog or Catalog(
        currencies=[Currency(id="RUR", rate=Decimal("1"))],
    ))
    pool = pool or FakePool(FakeConnection(columns={
        "currency": CURRENCY.column_names(),
        "categories": CATEGORIES.column_names(),
        "offers": OFFERS.column_names(),
        "offer_params": OFFER_PARAMS.column_names(),
    }))
    return CatalogProcessor(pool, loader, config=SyncConfig(batch_size=10))


class TestCatalogProcessor:
    """Test orchestration of loading and table updates."""

    def test_static_operations_need_no_feed(self):
        processor = _processor()

        assert processor.get_table_names() == ["currency", "categories", "offers"]
        assert "CREATE TABLE IF NOT EXISTS categories" in processor.get_table_ddl("categories")
        processor.loader.load.assert_not_called()

    def test_config_applied(self):
        processor = _processor()

        assert processor.writer.batch_size == 10

    @pytest.mark.asyncio
    async def test_feed_loaded_once(self):
        """Test the feed is loaded lazily and reused across updates."""
        processor = _processor()
        assert processor.catalog is None

        await processor.update("currency")
        await processor.update("categories")

        assert processor.loader.load.await_count == 1
        assert processor.catalog is not None

    @pytest.mark.asyncio
    async def test_reload(self):
        processor = _processor()

        await processor.load()
        await processor.load(reload=True)

        assert processor.loader.load.await_count == 2

    @pytest.mark.asyncio
    async def test_update_all_tables_in_order(self):
        processor = _processor()

        results = await processor.update()

        assert list(results) == ["currency", "categories", "offers"]
        assert results["currency"] == 1

    @pytest.mark.asyncio
    async def test_unknown_table_rejected_before_loading(self):
        processor = _processor()

        with pytest.raises(UnknownTableError):
            await processor.update("products")

        processor.loader.load.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_table_name_case_insensitive(self):
        processor = _processor()

        results = await processor.update("Currency")

        assert results == {"currency": 1}

    @pytest.mark.asyncio
    async def test_schema_operations_delegate(self):
        processor = _processor()

        assert await processor.get_column_names("currency") == CURRENCY.column_names()
        assert await processor.get_ddl_change("currency") == ""

    @pytest.mark.asyncio
    async def test_close(self):
        pool = FakePool(FakeConnection())
        processor = _processor(pool=pool)

        await processor.close()

        assert pool.closed

    @pytest.mark.asyncio
    async def test_close_error_not_raised(self):
        processor = _processor(pool=FakePool(FakeConnection(), close_error=OSError("gone")))

        await processor.close()

    @pytest.mark.asyncio
    async def test_invalid_currency_rate_only_fails_currency(self, tmp_path):
        """Test a feed with a non-numeric rate still syncs categories and offers."""
        feed = tmp_path / "export.xml"
        feed.write_text(
            '<?xml version="1.0" encoding="UTF-8"?>'
            "<yml_catalog><shop>"
            '<currencies><currency id="USD" rate="CBRF"/></currencies>'
            '<categories><category id="1">Tools</category></categories>'
            '<offers><offer id="5" available="true"><name>Drill</name><vendorCode>D-5</vendorCode></offer></offers>'
            "</shop></yml_catalog>",
            encoding="utf-8",
        )
        processor = _processor()
        processor.loader = FeedLoader(FeedConfig(path=str(feed)))

        assert await processor.update("offers") == {"offers": 1}
        assert await processor.update("categories") == {"categories": 1}
        with pytest.raises(TableUpdateError) as exc_info:
            await processor.update("currency")

        assert exc_info.value.table == "currency"
