"""Domain layer.

Exceptions and state machines shared by the catalog storage and
import services.
"""

from catalog_sync.domain.exceptions import (
    CatalogError,
    CatalogNotFoundError,
    DomainError,
    InvalidStateTransitionError,
    PersistenceError,
    StorageError,
)
from catalog_sync.domain.state_machines import (
    ImportSessionStatus,
    validate_import_transition,
)

__all__ = [
    # Exceptions
    "CatalogError",
    "CatalogNotFoundError",
    "DomainError",
    "InvalidStateTransitionError",
    "PersistenceError",
    "StorageError",
    # State machines
    "ImportSessionStatus",
    "validate_import_transition",
]
