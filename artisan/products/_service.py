"""
Product catalogue: producer-owned listings and the buyer-facing reads.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from kungfu import Result, Ok, Error, LazyCoroResult

from artisan._errors import MarketError, Errors
from artisan._types import ProducerId, ProductId
from artisan.cache import Family, Mutation, QueryKey
from artisan.domain import Product, ProductDraft, Principal, validate_draft
from artisan.lifecycle import discoverable
from artisan.lift import from_result
from artisan.store import EntityStore, StoreResult

if TYPE_CHECKING:
    from artisan.session import MarketSession

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 8


async def _verified_products(store: EntityStore, me: Principal) -> StoreResult[list[Product]]:
    # The store already filters; the approved-producer set is re-applied so a
    # store that lags on a rejection cannot leak a hidden producer's goods.
    match await store.list_approved_products(me):
        case Error(e):
            return Error(e)
        case Ok(products):
            pass
    match await store.list_approved_producers(me):
        case Error(e):
            return Error(e)
        case Ok(producers):
            approved = {p.id for p in discoverable(producers)}
            return Ok([p for p in products if p.producer_id in approved])


class ProductService:
    def __init__(self, session: MarketSession) -> None:
        self.session = session

    # ─── Writes ─────────────────────────────────────────────────────────────

    def save(self, draft: ProductDraft | Mapping[str, Any]) -> LazyCoroResult[Product, MarketError]:
        """Create (no ``id``) or update one of the caller's products."""
        match validate_draft(ProductDraft, draft):
            case Error(e):
                return from_result(Error(e))
            case Ok(valid):
                pass

        async def _run() -> Result[Product, MarketError]:
            result = await self.session.mutate(Mutation.SAVE_PRODUCT, lambda store, me: store.save_product(me, valid))
            match result:
                case Ok(product):
                    logger.info(f"product {product.id} saved by {product.producer_id} (stock {product.stock})")
            return result

        return LazyCoroResult(_run)

    def delete(self, product_id: ProductId) -> LazyCoroResult[None, MarketError]:
        return self.session.mutate(Mutation.DELETE_PRODUCT, lambda store, me: store.delete_product(me, product_id))

    # ─── Reads ──────────────────────────────────────────────────────────────

    def get(self, product_id: ProductId) -> LazyCoroResult[Product, MarketError]:
        return self.session.read(
            QueryKey(Family.PRODUCT, (product_id,)),
            lambda store, me: store.get_product(me, product_id),
        )

    def list_all(self) -> LazyCoroResult[list[Product], MarketError]:
        return self.session.read(QueryKey(Family.PRODUCTS), lambda store, me: store.list_products(me))

    def list_by_producer(self, producer_id: ProducerId) -> LazyCoroResult[list[Product], MarketError]:
        return self.session.read(
            QueryKey(Family.PRODUCTS_BY_PRODUCER, (producer_id,)),
            lambda store, me: store.list_products_by_producer(me, producer_id),
        )

    def list_verified(self) -> LazyCoroResult[list[Product], MarketError]:
        """Products of approved producers only."""
        return self.session.read(QueryKey(Family.VERIFIED_PRODUCTS), _verified_products)

    def list_in_stock(self) -> LazyCoroResult[list[Product], MarketError]:
        return self.session.read(
            QueryKey(Family.PRODUCTS_IN_STOCK),
            lambda store, me: store.list_products_in_stock(me),
        )

    def by_region(self, region: str) -> LazyCoroResult[list[Product], MarketError]:
        return self.session.read(
            QueryKey(Family.PRODUCTS_BY_REGION, (region,)),
            lambda store, me: store.list_products_by_region(me, region),
        )

    def by_price_range(self, min_price: int, max_price: int) -> LazyCoroResult[list[Product], MarketError]:
        if min_price < 0 or min_price > max_price:
            return from_result(Error(Errors.validation(f"invalid price range {min_price}..{max_price}")))
        return self.session.read(
            QueryKey(Family.PRODUCTS_BY_PRICE, (min_price, max_price)),
            lambda store, me: store.list_products_by_price_range(me, min_price, max_price),
        )

    def by_rarity(self, badge: str) -> LazyCoroResult[list[Product], MarketError]:
        return self.session.read(
            QueryKey(Family.PRODUCTS_BY_RARITY, (badge,)),
            lambda store, me: store.list_products_by_rarity(me, badge),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Derived views
# ═══════════════════════════════════════════════════════════════════════════════


def search(products: Iterable[Product], text: str = "", region: str | None = None) -> list[Product]:
    """Case-insensitive match on title or description, optionally within one region."""
    needle = text.strip().lower()
    return [
        p for p in products
        if (not needle or needle in p.title.lower() or needle in p.description.lower())
        and (region is None or p.region == region)
    ]


def featured(products: Iterable[Product], limit: int = FEATURED_LIMIT) -> list[Product]:
    """Rare pieces that can still be bought."""
    return [p for p in products if p.rarity_badge and p.in_stock][:limit]


__all__ = ("ProductService", "search", "featured", "FEATURED_LIMIT")
