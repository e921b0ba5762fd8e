# fulfillment_readiness/db/interface.py
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from fulfillment_readiness.records import (
    SkuMappingRecord, StockSkuRecord, ComponentRow, InsumoRow, LocationRecord
)

class StockRepository(ABC):
    """Storage collaborator consumed by the resolution engine.

    Lookups return ``None`` (or omit the key) when a row is absent and ``0`` when a
    row exists with no stock. Implementations raise ``StorageError`` for any backend
    failure.
    """

    # Mappings

    @abstractmethod
    def find_active_mappings(self, order_skus: Iterable[str]) -> List[SkuMappingRecord]:
        """Active De-Para rows for the given order SKUs."""
        pass

    @abstractmethod
    def upsert_mapping_placeholder(self, order_sku: str, reason: str = 'auto_detected') -> bool:
        """Insert an empty mapping unless one exists.

        Returns:
            True if a row was created, False if it already existed
        """
        pass

    # Catalog

    @abstractmethod
    def find_stock_sku(self, stock_sku: str) -> Optional[StockSkuRecord]:
        pass

    @abstractmethod
    def find_location(self, location_id: str) -> Optional[LocationRecord]:
        pass

    # Compositions

    @abstractmethod
    def find_composition(self, parent_sku: str, location_id: Optional[str] = None) -> List[ComponentRow]:
        pass

    @abstractmethod
    def find_insumo_composition(self, stock_sku: str) -> List[InsumoRow]:
        """Active insumo rows for a product."""
        pass

    @abstractmethod
    def find_insumo_stock(self, insumo_skus: Iterable[str], location_id: Optional[str] = None) -> Dict[str, int]:
        """On-hand quantity of every insumo present in the catalog.

        SKUs missing from the catalog are omitted. With a location, catalog SKUs
        without an entry at that location map to 0.
        """
        pass

    # Location stock

    @abstractmethod
    def find_location_stock(self, sku: str, location_id: str) -> Optional[int]:
        pass

    @abstractmethod
    def update_location_stock(self, sku: str, location_id: str, new_quantity: int) -> None:
        """Unconditionally set the quantity of an entry, creating it if needed."""
        pass

    @abstractmethod
    def decrement_location_stock(self, sku: str, location_id: str, qty: int) -> Optional[int]:
        """Subtract ``qty`` only while the entry holds at least ``qty``.

        Returns:
            The new quantity, or None when no row was updated
        """
        pass

    @abstractmethod
    def increment_location_stock(self, sku: str, location_id: str, qty: int) -> int:
        """Add ``qty`` to an entry, creating it if needed. Returns the new quantity."""
        pass

    @abstractmethod
    def refresh_aggregate_quantity(self, sku: str) -> int:
        """Rewrite the product's aggregate quantity as the sum over its locations."""
        pass

    # Processed orders

    @abstractmethod
    def is_order_processed(self, order_id: str) -> bool:
        pass

    @abstractmethod
    def record_processed_order(self, order_id: str, skus: List[str], total_items: int) -> bool:
        """Record an order as processed. Returns False if it was already recorded."""
        pass
