"""Shared fixtures for catalog service tests.

Services run against an in-memory SQLite database seeded with a small
catalog:

    catalog-1 "Electronics" (property Brand)
      cat-root "Devices"
        cat-phones "Phones" (property Color, linked into virtual-1)
          p1 "Smartphone" PHONE-1 (image, review, Color=Black)
            v1 "Smartphone Red" PHONE-1-RED (Color=Red)
      p2 "Phone case" CASE-1 (uncategorized, linked into virtual-1)
    virtual-1 "Summer Sale" (virtual)
"""

import random
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_items.application.catalog_service import CatalogService
from catalog_items.application.category_service import CategoryService
from catalog_items.application.item_service import ItemService
from catalog_items.application.outline_service import OutlineService
from catalog_items.application.sku_generator import SkuGenerator
from catalog_items.application.validation import ProductValidator, PropertyValuesValidator
from catalog_items.infrastructure.blob import BlobUrlResolver
from catalog_items.infrastructure.caching import MemoryCache
from catalog_items.infrastructure.database import Base, create_engine, create_session_factory
from catalog_items.infrastructure.events import InMemoryEventPublisher
from catalog_items.infrastructure.models import (
    CatalogEntity,
    CategoryEntity,
    CategoryItemRelationEntity,
    CategoryRelationEntity,
    EditorialReviewEntity,
    ImageEntity,
    ItemEntity,
    PropertyEntity,
    PropertyValueEntity,
)
from catalog_items.infrastructure.repository import CatalogRepository, catalog_repository_factory

BLOB_BASE_URL = "https://cdn.example.com/assets"


class CountingRepositoryFactory:
    """Repository factory that counts opened units of work."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = catalog_repository_factory(session_factory)
        self.calls = 0

    def __call__(self) -> CatalogRepository:
        self.calls += 1
        return self._factory()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create an in-memory database with the catalog schema."""
    engine = create_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield create_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> async_sessionmaker[AsyncSession]:
    """Seed the sample catalog."""
    async with session_factory() as session:
        session.add_all([
            CatalogEntity(
                id="catalog-1",
                name="Electronics",
                default_language="en-US",
                properties=[
                    PropertyEntity(id="prop-brand", catalog_id="catalog-1", name="Brand"),
                ],
            ),
            CatalogEntity(id="virtual-1", name="Summer Sale", is_virtual=True),
            CategoryEntity(id="cat-root", catalog_id="catalog-1", name="Devices", code="devices"),
            CategoryEntity(
                id="cat-phones",
                catalog_id="catalog-1",
                parent_category_id="cat-root",
                name="Phones",
                code="phones",
                properties=[
                    PropertyEntity(
                        id="prop-color",
                        catalog_id="catalog-1",
                        category_id="cat-phones",
                        name="Color",
                    ),
                ],
                outgoing_links=[
                    CategoryRelationEntity(id="rel-1", target_catalog_id="virtual-1"),
                ],
            ),
            ItemEntity(
                id="p1",
                code="PHONE-1",
                name="Smartphone",
                catalog_id="catalog-1",
                category_id="cat-phones",
                vendor="Acme",
                images=[ImageEntity(id="img-1", url="images/p1.png", sort_order=1)],
                editorial_reviews=[EditorialReviewEntity(id="rev-1", content="Great phone")],
                property_values=[
                    PropertyValueEntity(
                        id="pv-1",
                        property_id="prop-color",
                        name="Color",
                        value_type="ShortText",
                        short_text_value="Black",
                    ),
                ],
            ),
            ItemEntity(
                id="v1",
                code="PHONE-1-RED",
                name="Smartphone Red",
                catalog_id="catalog-1",
                category_id="cat-phones",
                parent_id="p1",
                property_values=[
                    PropertyValueEntity(
                        id="pv-2",
                        property_id="prop-color",
                        name="Color",
                        value_type="ShortText",
                        short_text_value="Red",
                    ),
                ],
            ),
            ItemEntity(
                id="p2",
                code="CASE-1",
                name="Phone case",
                catalog_id="catalog-1",
                category_links=[CategoryItemRelationEntity(id="link-1", catalog_id="virtual-1")],
            ),
        ])
        await session.commit()
    return session_factory


@pytest.fixture
def memory_cache() -> MemoryCache:
    """Create an empty cache."""
    return MemoryCache(default_ttl_seconds=300)


@pytest.fixture
def event_publisher() -> InMemoryEventPublisher:
    """Create a publisher without handlers."""
    return InMemoryEventPublisher()


@pytest.fixture
def item_repository_factory(seeded: async_sessionmaker[AsyncSession]) -> CountingRepositoryFactory:
    """Repository factory used by the item service."""
    return CountingRepositoryFactory(seeded)


@pytest.fixture
def catalog_service(
    seeded: async_sessionmaker[AsyncSession],
    memory_cache: MemoryCache,
    event_publisher: InMemoryEventPublisher,
) -> CatalogService:
    """Create catalog service."""
    return CatalogService(
        repository_factory=catalog_repository_factory(seeded),
        memory_cache=memory_cache,
        event_publisher=event_publisher,
    )


@pytest.fixture
def category_service(
    seeded: async_sessionmaker[AsyncSession],
    memory_cache: MemoryCache,
    event_publisher: InMemoryEventPublisher,
    catalog_service: CatalogService,
) -> CategoryService:
    """Create category service."""
    return CategoryService(
        repository_factory=catalog_repository_factory(seeded),
        memory_cache=memory_cache,
        event_publisher=event_publisher,
        catalog_service=catalog_service,
    )


@pytest.fixture
def outline_service(catalog_service: CatalogService, category_service: CategoryService) -> OutlineService:
    """Create outline service."""
    return OutlineService(catalog_service=catalog_service, category_service=category_service)


@pytest.fixture
def item_service(
    item_repository_factory: CountingRepositoryFactory,
    memory_cache: MemoryCache,
    event_publisher: InMemoryEventPublisher,
    catalog_service: CatalogService,
    category_service: CategoryService,
    outline_service: OutlineService,
) -> ItemService:
    """Create item service wired to the seeded database."""
    return ItemService(
        repository_factory=item_repository_factory,
        event_publisher=event_publisher,
        property_validator=PropertyValuesValidator(),
        catalog_service=catalog_service,
        category_service=category_service,
        outline_service=outline_service,
        memory_cache=memory_cache,
        blob_url_resolver=BlobUrlResolver(BLOB_BASE_URL),
        sku_generator=SkuGenerator("AAA-99999999", rng=random.Random(7)),
        product_validator=ProductValidator(),
    )
