"""SQLAlchemy models for catalogs and their products.

Defines Catalog, Product, Client and the CatalogProduct mapping table.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from catalog_sync.infrastructure.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Catalog(Base):
    """Catalog of products selected for a client or user.

    Attributes:
        id: Catalog identifier.
        title: Catalog title.
        owner_id: User that owns the catalog.
        is_custom: Whether this is a per-client custom catalog.
        is_published: Publication status.
        product_data: Canonical product set, encoded as JSON array text.
        legacy_product_ids: Product references from the legacy
            multi-value field, read only by migration.
        client_id: Owning client, if any.
        client_type_id: Client-type classification, if any.
        cover: Cover image values copied from the import feed.
        client_ids: Users associated with the catalog.
    """

    __tablename__ = "catalogs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    owner_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    is_custom: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    product_data: Mapped[str] = mapped_column(Text, nullable=False, default="")
    legacy_product_ids: Mapped[list[int] | None] = mapped_column(JSONType, nullable=True)
    client_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    client_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    cover: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType, nullable=True)
    client_ids: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Catalog(id={self.id}, title={self.title!r})>"

    def label(self) -> str:
        """Get a display label for logs.

        Returns:
            Title, or the ID when untitled.
        """
        return self.title or str(self.id)


class Product(Base):
    """Product entity referenced by catalogs.

    Attributes:
        id: Product identifier.
        bundle: Entity type; only "product" rows are sellable products.
        sku: Stock Keeping Unit (product reference code).
        title: Product title.
        client_ids: Users the product was imported for.
        client_type_ids: Client types the product is visible to.
    """

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bundle: Mapped[str] = mapped_column(String(32), nullable=False, default="product", index=True)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    client_ids: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)
    client_type_ids: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, sku={self.sku})>"


class Client(Base):
    """B2B client account.

    Attributes:
        id: Client identifier.
        title: Client name.
        owner_id: User that owns the client record.
        user_id: Fallback user linked to the client.
        client_type_id: Client-type classification.
    """

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    owner_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    client_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Client(id={self.id}, title={self.title!r})>"


class CatalogProduct(Base):
    """Mapping row materializing a catalog's product set.

    One row per product per catalog. Rows for a catalog ordered by
    weight equal its product set; they are always replaced as a whole.
    """

    __tablename__ = "catalog_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    catalog_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("catalog_id", "product_id", name="uq_catalog_products_catalog_product"),
        Index("ix_catalog_products_catalog_id", "catalog_id"),
        Index("ix_catalog_products_product_id", "product_id"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CatalogProduct(catalog_id={self.catalog_id}, "
            f"product_id={self.product_id}, weight={self.weight})>"
        )
