"""Parse YML catalog feeds into catalog models.

The parser is hardened with defusedxml: a DOCTYPE declaration is tolerated
(real feeds reference ``shops.dtd``), but entity declarations and external
references are rejected.
"""

import re
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from xml.etree.ElementTree import Element

import defusedxml
import defusedxml.ElementTree as SafeET
import structlog

from ..errors import FeedParseError
from ..models.catalog import Catalog, Category, Currency, Offer, OfferParam

logger = structlog.get_logger(__name__)

# Feed integers map to INTEGER columns
INT_MIN = -2**31
INT_MAX = 2**31 - 1

_INT_RE = re.compile(r"[+-]?[0-9]+")
_DECIMAL_RE = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


def parse_catalog(data: bytes) -> Catalog:
    """
    Parse a feed document.

    Args:
        data: Raw XML bytes (encoding taken from the XML declaration)

    Returns:
        Parsed catalog

    Raises:
        FeedParseError: If the document is malformed, uses forbidden XML
            constructs, or a category carries an invalid id
    """
    try:
        root = SafeET.fromstring(
            data,
            forbid_dtd=False,
            forbid_entities=True,
            forbid_external=True,
        )
    except SafeET.ParseError as e:
        raise FeedParseError(f"Malformed feed XML: {e}") from e
    except defusedxml.DefusedXmlException as e:
        raise FeedParseError(f"Forbidden XML construct in feed: {e!r}") from e

    shop = root.find("shop")
    if shop is None:
        logger.warning("feed_shop_missing", root=root.tag)
        return Catalog()

    offers, skipped = parse_offers(shop.find("offers"))
    catalog = Catalog(
        currencies=parse_currencies(shop.find("currencies")),
        categories=parse_categories(shop.find("categories")),
        offers=offers,
        skipped_offers=skipped,
    )
    logger.info("feed_parsed", **catalog.summary())
    return catalog


def parse_currencies(section: Optional[Element]) -> List[Currency]:
    """
    Parse the currencies section.

    Ids and rates are kept as found; a missing id or a rate that is not a
    decimal number fails the currency update, not the whole feed.
    """
    if section is None:
        return []

    currencies = []
    for node in section.findall("currency"):
        raw_rate = node.get("rate")
        currency = Currency(
            id=node.get("id", ""),
            rate=parse_decimal(raw_rate),
            raw_rate=raw_rate,
        )
        if not currency.is_valid():
            logger.warning("currency_invalid", currency_id=currency.id, rate=raw_rate)
        currencies.append(currency)
    return currencies


def parse_categories(section: Optional[Element]) -> List[Category]:
    if section is None:
        return []

    categories = []
    for node in section.findall("category"):
        raw_id = node.get("id")
        raw_parent = node.get("parentId")
        category_id = parse_int(raw_id)
        parent_id = parse_int(raw_parent)
        if category_id is None or (raw_parent is not None and parent_id is None):
            raise FeedParseError(
                f"Invalid category id {raw_id!r} or parentId {raw_parent!r}"
            )
        categories.append(Category(id=category_id, name=_text(node), parent_id=parent_id))
    return categories


def parse_offers(section: Optional[Element]) -> Tuple[List[Offer], int]:
    """
    Parse the offers section.

    Returns:
        Tuple of (offers, number of offers skipped for a missing or invalid id)
    """
    if section is None:
        logger.warning("feed_offers_missing")
        return [], 0

    offers = []
    skipped = 0
    for node in section.findall("offer"):
        raw_id = node.get("id")
        if raw_id is None:
            logger.warning("offer_without_id_skipped")
            skipped += 1
            continue
        offer_id = parse_int(raw_id)
        if offer_id is None:
            logger.warning("offer_invalid_id_skipped", offer_id=raw_id)
            skipped += 1
            continue

        offers.append(Offer(
            id=offer_id,
            available=parse_bool(node.get("available")),
            url=child_text(node, "url"),
            price=parse_decimal(child_text(node, "price")),
            currency_id=child_text(node, "currencyId"),
            category_id=parse_int(child_text(node, "categoryId")),
            picture=child_text(node, "picture"),
            name=child_text(node, "name"),
            vendor=child_text(node, "vendor"),
            vendor_code=child_text(node, "vendorCode"),
            description=child_text(node, "description"),
            count=parse_int(child_text(node, "count")),
            params=parse_params(node.findall("param")),
        ))

    if not offers and not skipped:
        logger.warning("feed_offers_empty")
    return offers, skipped


def parse_params(nodes: Iterable[Element]) -> List[OfferParam]:
    params = []
    for node in nodes:
        name = node.get("name")
        if name is None:
            continue
        params.append(OfferParam(name=name, value=_text(node)))
    return params


def child_text(node: Element, name: str) -> Optional[str]:
    """Text of the first ``name`` child; None when absent or blank."""
    child = node.find(name)
    if child is None:
        return None
    text = _text(child)
    return text or None


def parse_bool(value: Optional[str]) -> bool:
    """Only a case-insensitive, unpadded ``true`` is true."""
    return value is not None and value.lower() == "true"


def parse_int(value: Optional[str]) -> Optional[int]:
    """Plain decimal integer within the INTEGER column range, else None."""
    if value is None or not _INT_RE.fullmatch(value):
        return None
    number = int(value)
    return number if INT_MIN <= number <= INT_MAX else None


def parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    """Plain decimal number, else None (NaN, Infinity and digit separators included)."""
    if value is None or not _DECIMAL_RE.fullmatch(value):
        return None
    return Decimal(value)


def _text(node: Element) -> str:
    return "".join(node.itertext()).strip()
