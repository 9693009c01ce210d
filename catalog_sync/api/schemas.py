"""API schemas for the catalog sync API.

Pydantic models for request/response validation and serialization.
"""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from catalog_sync.application.sync_orchestrator import SyncCursor


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(default_factory=list, description="Additional error details")
    request_id: str | None = Field(default=None, description="Request ID for correlation")


# ============================================================================
# Catalog Schemas
# ============================================================================


class ProductSchema(BaseModel):
    """Product in a catalog listing."""

    id: int = Field(..., description="Product ID")
    sku: str | None = Field(default=None, description="Product reference code")
    title: str = Field(..., description="Product title")


class CatalogProductsResponse(BaseModel):
    """Product set of a catalog."""

    catalog_id: int = Field(..., description="Catalog ID")
    product_ids: list[int] = Field(..., description="Product IDs in catalog order")
    products: list[ProductSchema] = Field(
        default_factory=list, description="Loaded products in catalog order"
    )


class CatalogProductsUpdateRequest(BaseModel):
    """Request to replace the product set of a catalog."""

    product_ids: list[int] = Field(..., description="Product IDs in display order")


class MappingRowSchema(BaseModel):
    """Mapping table row."""

    product_id: int = Field(..., description="Product ID")
    weight: int = Field(..., description="Position in the product set")


class CatalogMappingResponse(BaseModel):
    """Mapping table rows of a catalog."""

    catalog_id: int = Field(..., description="Catalog ID")
    rows: list[MappingRowSchema] = Field(..., description="Rows ordered by weight")


# ============================================================================
# Feed Schemas
# ============================================================================


class FeedRowRequest(BaseModel):
    """Product imported by one feed row.

    The target is either a catalog ID or the client the feed imports for.
    """

    catalog_id: int | None = Field(default=None, description="Target catalog ID")
    client_id: int | None = Field(
        default=None, description="Client whose feed catalog receives the row"
    )
    product_id: int = Field(..., description="Imported product ID")
    sku: str | None = Field(default=None, description="SKU read from the row")
    client_ids: list[int] = Field(
        default_factory=list, description="Users attached to the imported product"
    )

    @model_validator(mode="after")
    def require_target(self) -> "FeedRowRequest":
        """Require a catalog or a client."""
        if self.catalog_id is None and self.client_id is None:
            raise ValueError("catalog_id or client_id is required")
        return self


class FeedRowResponse(BaseModel):
    """Outcome of one feed row."""

    feed_key: str
    catalog_id: int | None = Field(default=None, description="Catalog the row was recorded for")
    recorded: bool = Field(
        ..., description="False for duplicate SKUs, unusable rows and unresolved targets"
    )


class FeedCatalogRequest(BaseModel):
    """Catalog a feed imports into when its client has none."""

    catalog_id: int = Field(..., description="Catalog ID")


class FeedCatalogResponse(BaseModel):
    """Remembered catalog of a feed."""

    feed_key: str
    catalog_id: int


class ProductPresaveRequest(BaseModel):
    """Feed values applied to a product before it is saved."""

    client_type_id: int | None = Field(default=None, description="Client type of the feed")


class ProductPresaveResponse(BaseModel):
    """Client types of a product after the feed tagged it."""

    product_id: int
    client_type_ids: list[int]
    tagged: bool = Field(..., description="True if the client type was added")


class FeedStartResponse(BaseModel):
    """Import session state after start."""

    feed_key: str
    status: str


class FeedFinishRequest(BaseModel):
    """Feed-level values applied to every touched catalog."""

    client_id: int | None = Field(default=None, description="Client the feed imports for")
    client_owner_id: int | None = Field(default=None, description="Owner user of the client")
    client_type_id: int | None = Field(default=None, description="Client type of the feed")
    cover: list[dict[str, Any]] | None = Field(
        default=None, description="Cover image values of the feed"
    )


class FeedFinishResponse(BaseModel):
    """Summary of an applied import session."""

    feed_key: str
    catalogs_processed: int
    catalogs_saved: int
    catalogs_failed: int
    products_added: int


# ============================================================================
# Maintenance Schemas
# ============================================================================


class SyncCursorSchema(BaseModel):
    """Cursor carried between synchronization steps."""

    remaining_ids: list[int] = Field(default_factory=list)
    total: int = 0
    progress: int = 0
    updated: int = 0
    failed: int = 0

    def to_cursor(self) -> SyncCursor:
        """Convert to the orchestrator cursor."""
        return SyncCursor.from_dict(self.model_dump())


class SyncStepRequest(BaseModel):
    """Request to run one synchronization step."""

    cursor: SyncCursorSchema | None = Field(
        default=None, description="Cursor from the previous step; omit to start"
    )


class SyncStepResponse(BaseModel):
    """Result of one synchronization step."""

    task: str
    cursor: SyncCursorSchema
    progress: float = Field(..., description="Completed fraction, 1.0 when done")
    finished: bool


# ============================================================================
# Selection Schemas
# ============================================================================


class SelectionResponse(BaseModel):
    """Products a user selected."""

    owner_id: int
    product_ids: list[int] = Field(..., description="Selected product IDs, ascending")
    products: list[ProductSchema] = Field(default_factory=list)


class SelectionAddRequest(BaseModel):
    """Request to add a product to a selection."""

    product_id: int = Field(..., description="Product ID")


class SelectionAddResponse(BaseModel):
    """Outcome of adding a product."""

    owner_id: int
    product_id: int
    added: bool = Field(
        ..., description="False if already selected, not a product, or not saved"
    )
    product_ids: list[int]


# ============================================================================
# Import Schemas
# ============================================================================


class CommercialImportRequest(BaseModel):
    """Pre-parsed CSV rows applied to one client or every client of a type."""

    rows: list[dict[str, Any]] = Field(
        ..., description="CSV rows keyed by upper-cased header (REFERENCE or SKU)"
    )
    client_id: int | None = Field(default=None, description="Client to update")
    client_type_id: int | None = Field(
        default=None, description="Update every client of this type and force the type"
    )

    @model_validator(mode="after")
    def require_one_scope(self) -> "CommercialImportRequest":
        """Require exactly one of client_id and client_type_id."""
        if (self.client_id is None) == (self.client_type_id is None):
            raise ValueError("exactly one of client_id and client_type_id is required")
        return self


class CommercialImportResponse(BaseModel):
    """Summary of a commercial import."""

    processed: int
    updated: int
    created: int
    errors: list[str]
    missing_skus: list[str] = Field(..., description="References that matched no product")
