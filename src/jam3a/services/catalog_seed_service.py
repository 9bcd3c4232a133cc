"""Idempotent sample catalog used by local and staging environments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from jam3a.db.models.category import Category
from jam3a.db.models.product import Product
from jam3a.repositories.category_repository import CategoryRepository
from jam3a.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SeedCategory:
    name: str
    name_ar: str
    description: str
    description_ar: str


@dataclass(slots=True, frozen=True)
class SeedProduct:
    sku: str
    name: str
    description: str
    category_name: str
    price: Decimal
    stock: int
    featured: bool = False


SEED_CATEGORIES: tuple[SeedCategory, ...] = (
    SeedCategory(
        name="Smartphones",
        name_ar="الهواتف الذكية",
        description="Latest smartphones and mobile devices",
        description_ar="أحدث الهواتف الذكية والأجهزة المحمولة",
    ),
    SeedCategory(
        name="Laptops",
        name_ar="أجهزة الكمبيوتر المحمولة",
        description="High-performance laptops and notebooks",
        description_ar="أجهزة الكمبيوتر المحمولة عالية الأداء",
    ),
    SeedCategory(
        name="Audio",
        name_ar="الصوتيات",
        description="Headphones, speakers, and audio equipment",
        description_ar="سماعات الرأس ومكبرات الصوت والمعدات الصوتية",
    ),
    SeedCategory(
        name="Wearables",
        name_ar="الأجهزة القابلة للارتداء",
        description="Smartwatches, fitness trackers, and wearable tech",
        description_ar=(
            "الساعات الذكية وأجهزة تتبع اللياقة البدنية "
            "والتقنيات القابلة للارتداء"
        ),
    ),
    SeedCategory(
        name="Home Tech",
        name_ar="تقنيات المنزل",
        description="Smart home devices and appliances",
        description_ar="أجهزة المنزل الذكية والأجهزة المنزلية",
    ),
)

SEED_PRODUCTS: tuple[SeedProduct, ...] = (
    SeedProduct(
        sku="SEED-IPHONE-16-PRO-MAX",
        name="iPhone 16 Pro Max 256GB",
        description="Flagship iPhone with advanced camera system.",
        category_name="Smartphones",
        price=Decimal("4999.00"),
        stock=50,
        featured=True,
    ),
    SeedProduct(
        sku="SEED-GALAXY-S25-ULTRA",
        name="Samsung Galaxy S25 Ultra",
        description="Flagship Android smartphone with 200MP camera.",
        category_name="Smartphones",
        price=Decimal("4599.00"),
        stock=45,
    ),
    SeedProduct(
        sku="SEED-MACBOOK-PRO-16",
        name='MacBook Pro 16" M3 Pro',
        description="Professional-grade laptop with all-day battery life.",
        category_name="Laptops",
        price=Decimal("9999.00"),
        stock=25,
        featured=True,
    ),
    SeedProduct(
        sku="SEED-AIRPODS-PRO-2",
        name="AirPods Pro 2",
        description="Wireless earbuds with active noise cancellation.",
        category_name="Audio",
        price=Decimal("999.00"),
        stock=100,
    ),
)


@dataclass(slots=True, frozen=True)
class SeedResult:
    categories_created: int
    products_created: int


class CatalogSeedService:
    """Inserts sample categories and products that are not present yet."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._category_repository = CategoryRepository(session)
        self._product_repository = ProductRepository(session)

    def seed(self) -> SeedResult:
        categories_created = 0
        products_created = 0
        categories: dict[str, Category] = {}

        try:
            for item in SEED_CATEGORIES:
                category = self._category_repository.get_by_name(item.name)
                if category is None:
                    category = self._category_repository.add(
                        Category(
                            name=item.name,
                            name_ar=item.name_ar,
                            description=item.description,
                            description_ar=item.description_ar,
                        )
                    )
                    categories_created += 1
                categories[item.name] = category

            for product_item in SEED_PRODUCTS:
                if self._product_repository.get_by_sku(product_item.sku) is not None:
                    continue
                self._product_repository.add(
                    Product(
                        sku=product_item.sku,
                        name=product_item.name,
                        description=product_item.description,
                        category_id=categories[product_item.category_name].id,
                        price=product_item.price,
                        stock=product_item.stock,
                        featured=product_item.featured,
                    )
                )
                products_created += 1
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "catalog_seeded",
            extra={
                "categories_created": categories_created,
                "products_created": products_created,
            },
        )
        return SeedResult(
            categories_created=categories_created,
            products_created=products_created,
        )
