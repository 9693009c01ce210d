"""Domain exceptions.

All domain-level errors raised by the catalog storage and import layers.
Recoverable conditions (malformed product data, mapping table failures,
missing referenced entities) are handled where they occur and never
surface as exceptions.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            entity_type: Type of entity (e.g., "ImportSession").
            entity_id: ID of the entity.
            current_state: Current state of the entity.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {entity_type}({entity_id}) "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Catalog Errors
# ============================================================================


class CatalogError(DomainError):
    """Base class for catalog-related errors."""

    pass


class CatalogNotFoundError(CatalogError):
    """Raised when a catalog cannot be loaded."""

    def __init__(self, catalog_id: int) -> None:
        """Initialize catalog not found error.

        Args:
            catalog_id: ID of the missing catalog.
        """
        super().__init__(
            f"Catalog {catalog_id} not found",
            details={"catalog_id": catalog_id},
        )


class ProductNotFoundError(CatalogError):
    """Raised when a product cannot be loaded."""

    def __init__(self, product_id: int) -> None:
        super().__init__(
            f"Product {product_id} not found",
            details={"product_id": product_id},
        )


class ClientNotFoundError(CatalogError):
    """Raised when a client cannot be loaded."""

    def __init__(self, client_id: int) -> None:
        super().__init__(
            f"Client {client_id} not found",
            details={"client_id": client_id},
        )


class ImportRejectedError(CatalogError):
    """Raised when a commercial import has nothing to apply."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        """Initialize import rejected error.

        Args:
            reason: Why the import was rejected.
            details: Optional context such as the unknown SKUs.
        """
        super().__init__(reason, details=details)


# ============================================================================
# Storage Errors
# ============================================================================


class StorageError(DomainError):
    """Raised when the datastore fails while loading data."""

    def __init__(self, operation: str, reason: str) -> None:
        """Initialize storage error.

        Args:
            operation: Name of the failed operation.
            reason: Underlying error message.
        """
        super().__init__(
            f"Storage failure during {operation}: {reason}",
            details={"operation": operation, "reason": reason},
        )


class PersistenceError(DomainError):
    """Raised when an entity cannot be saved."""

    def __init__(self, entity_type: str, entity_id: int | str | None, reason: str) -> None:
        """Initialize persistence error.

        Args:
            entity_type: Type of entity (e.g., "Catalog").
            entity_id: ID of the entity, if assigned.
            reason: Underlying error message.
        """
        super().__init__(
            f"Failed to save {entity_type}({entity_id}): {reason}",
            details={"entity_type": entity_type, "entity_id": entity_id, "reason": reason},
        )
