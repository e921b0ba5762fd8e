# fulfillment_readiness/db/sql_repository.py
import logging
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import StorageError
from fulfillment_readiness.models import (
    Product, StockLocation, LocationStock, SkuMapping, ProductComponent,
    InsumoComposition, ProcessedOrder
)
from fulfillment_readiness.records import (
    SkuMappingRecord, StockSkuRecord, ComponentRow, InsumoRow, LocationRecord
)

logger = logging.getLogger(__name__)

_products = Product.__table__
_location_stock = LocationStock.__table__


def _unique(values: Iterable[str]) -> List[str]:
    return [value for value in dict.fromkeys(values) if value]


class SqlAlchemyRepository(StockRepository):
    """Repository over the SQLAlchemy models (PostgreSQL in production, SQLite in tests).

    Every method runs in its own short transaction so the repository can be shared
    by worker threads.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session_scope(self, sku=None, operation='consultar o banco'):
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageError(f"Falha ao {operation}: {str(e)}", sku=sku) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _insert_ignore(self, session: Session, model, values: Dict, *conflict_attrs: str) -> bool:
        """Insert a row unless it collides on ``conflict_attrs``. Returns True if inserted."""
        columns = model.__mapper__.columns
        row = {columns[attr].key: value for attr, value in values.items()}
        dialect = session.get_bind().dialect.name

        if dialect == 'postgresql':
            stmt = pg_insert(model.__table__)
        elif dialect == 'sqlite':
            stmt = sqlite_insert(model.__table__)
        else:
            try:
                with session.begin_nested():
                    session.add(model(**values))
                return True
            except IntegrityError:
                return False

        stmt = stmt.values(**row).on_conflict_do_nothing(
            index_elements=[columns[attr] for attr in conflict_attrs]
        )
        return session.execute(stmt).rowcount > 0

    @staticmethod
    def _product_id(session: Session, sku: str) -> Optional[int]:
        return session.query(Product.id).filter(Product.sku == sku).scalar()

    @staticmethod
    def _mapping_record(row: SkuMapping) -> SkuMappingRecord:
        return SkuMappingRecord(
            order_sku=row.order_sku,
            stock_sku=row.stock_sku,
            kit_sku=row.kit_sku,
            unit_multiplier=row.unit_multiplier or 1,
            active=bool(row.active),
            creation_reason=row.creation_reason
        )

    @staticmethod
    def _stock_record(row: Product) -> StockSkuRecord:
        return StockSkuRecord(
            sku=row.sku,
            exists=True,
            active=bool(row.active),
            quantity_on_hand=row.quantity_on_hand or 0,
            minimum_quantity=row.minimum_quantity or 0,
            name=row.name or ''
        )

    # Mappings

    def find_active_mappings(self, order_skus: Iterable[str]) -> List[SkuMappingRecord]:
        skus = _unique(order_skus)
        if not skus:
            return []

        with self._session_scope(operation='buscar mapeamentos') as session:
            rows = session.query(SkuMapping).filter(
                SkuMapping.order_sku.in_(skus),
                SkuMapping.active.is_(True)
            ).all()
            return [self._mapping_record(row) for row in rows]

    def upsert_mapping_placeholder(self, order_sku: str, reason: str = 'auto_detected') -> bool:
        with self._session_scope(sku=order_sku, operation='criar mapeamento') as session:
            return self._insert_ignore(session, SkuMapping, {
                'order_sku': order_sku,
                'stock_sku': None,
                'kit_sku': None,
                'unit_multiplier': 1,
                'active': True,
                'creation_reason': reason
            }, 'order_sku')

    # Catalog

    def find_stock_sku(self, stock_sku: str) -> Optional[StockSkuRecord]:
        with self._session_scope(sku=stock_sku, operation='buscar produto') as session:
            row = session.query(Product).filter(Product.sku == stock_sku).first()
            return self._stock_record(row) if row else None

    def find_location(self, location_id: str) -> Optional[LocationRecord]:
        with self._session_scope(operation='buscar local de estoque') as session:
            row = session.get(StockLocation, location_id)
            if row is None:
                return None
            return LocationRecord(id=row.id, name=row.name, active=bool(row.active))

    # Compositions

    def find_composition(self, parent_sku: str, location_id: Optional[str] = None) -> List[ComponentRow]:
        with self._session_scope(sku=parent_sku, operation='buscar composição') as session:
            query = session.query(ProductComponent).filter(ProductComponent.parent_sku == parent_sku)
            if location_id is not None:
                query = query.filter(ProductComponent.location_id == location_id)

            rows = query.order_by(ProductComponent.location_id, ProductComponent.id).all()
            return [
                ComponentRow(
                    component_sku=row.component_sku,
                    quantity_per_unit=row.quantity,
                    location_id=row.location_id
                )
                for row in rows
            ]

    def find_insumo_composition(self, stock_sku: str) -> List[InsumoRow]:
        with self._session_scope(sku=stock_sku, operation='buscar insumos') as session:
            rows = session.query(InsumoComposition).filter(
                InsumoComposition.product_sku == stock_sku,
                InsumoComposition.active.is_(True)
            ).order_by(InsumoComposition.id).all()
            return [InsumoRow(insumo_sku=row.insumo_sku, quantity=row.quantity) for row in rows]

    def find_insumo_stock(self, insumo_skus: Iterable[str], location_id: Optional[str] = None) -> Dict[str, int]:
        skus = _unique(insumo_skus)
        if not skus:
            return {}

        with self._session_scope(operation='buscar estoque de insumos') as session:
            products = session.query(Product.id, Product.sku, Product.quantity_on_hand).filter(
                Product.sku.in_(skus)
            ).all()

            if location_id is None:
                return {sku: quantity or 0 for _, sku, quantity in products}

            sku_by_id = {product_id: sku for product_id, sku, _ in products}
            stock = {sku: 0 for sku in sku_by_id.values()}
            if sku_by_id:
                entries = session.query(LocationStock.product_id, LocationStock.quantity).filter(
                    LocationStock.location_id == location_id,
                    LocationStock.product_id.in_(list(sku_by_id))
                ).all()
                for product_id, quantity in entries:
                    stock[sku_by_id[product_id]] = quantity or 0
            return stock

    # Location stock

    def find_location_stock(self, sku: str, location_id: str) -> Optional[int]:
        with self._session_scope(sku=sku, operation='buscar estoque do local') as session:
            return session.query(LocationStock.quantity).join(
                Product, Product.id == LocationStock.product_id
            ).filter(
                Product.sku == sku,
                LocationStock.location_id == location_id
            ).scalar()

    def update_location_stock(self, sku: str, location_id: str, new_quantity: int) -> None:
        with self._session_scope(sku=sku, operation='atualizar estoque do local') as session:
            product_id = self._product_id(session, sku)
            if product_id is None:
                raise StorageError(f"Produto {sku} não encontrado", code='NOT_FOUND', sku=sku)

            result = session.execute(
                update(_location_stock)
                .where(_location_stock.c.produto_id == product_id, _location_stock.c.local_id == location_id)
                .values(quantidade=new_quantity)
            )
            if result.rowcount == 0:
                inserted = self._insert_ignore(session, LocationStock, {
                    'product_id': product_id,
                    'location_id': location_id,
                    'quantity': new_quantity
                }, 'product_id', 'location_id')
                if not inserted:
                    session.execute(
                        update(_location_stock)
                        .where(_location_stock.c.produto_id == product_id, _location_stock.c.local_id == location_id)
                        .values(quantidade=new_quantity)
                    )

    def decrement_location_stock(self, sku: str, location_id: str, qty: int) -> Optional[int]:
        with self._session_scope(sku=sku, operation='baixar estoque') as session:
            product_id = self._product_id(session, sku)
            if product_id is None:
                return None

            entry = (_location_stock.c.produto_id == product_id, _location_stock.c.local_id == location_id)
            result = session.execute(
                update(_location_stock)
                .where(*entry, _location_stock.c.quantidade >= qty)
                .values(quantidade=_location_stock.c.quantidade - qty)
            )
            if result.rowcount == 0:
                return None

            return session.execute(select(_location_stock.c.quantidade).where(*entry)).scalar()

    def increment_location_stock(self, sku: str, location_id: str, qty: int) -> int:
        with self._session_scope(sku=sku, operation='repor estoque') as session:
            product_id = self._product_id(session, sku)
            if product_id is None:
                raise StorageError(f"Produto {sku} não encontrado", code='NOT_FOUND', sku=sku)

            entry = (_location_stock.c.produto_id == product_id, _location_stock.c.local_id == location_id)
            result = session.execute(
                update(_location_stock)
                .where(*entry)
                .values(quantidade=_location_stock.c.quantidade + qty)
            )
            if result.rowcount == 0:
                inserted = self._insert_ignore(session, LocationStock, {
                    'product_id': product_id,
                    'location_id': location_id,
                    'quantity': qty
                }, 'product_id', 'location_id')
                if not inserted:
                    session.execute(
                        update(_location_stock)
                        .where(*entry)
                        .values(quantidade=_location_stock.c.quantidade + qty)
                    )

            return session.execute(select(_location_stock.c.quantidade).where(*entry)).scalar()

    def refresh_aggregate_quantity(self, sku: str) -> int:
        with self._session_scope(sku=sku, operation='recalcular estoque total') as session:
            location_sum = (
                select(func.coalesce(func.sum(_location_stock.c.quantidade), 0))
                .where(_location_stock.c.produto_id == _products.c.id)
                .scalar_subquery()
            )
            session.execute(
                update(_products)
                .where(_products.c.sku_interno == sku)
                .values(quantidade_atual=location_sum)
            )
            total = session.execute(
                select(_products.c.quantidade_atual).where(_products.c.sku_interno == sku)
            ).scalar()
            return total or 0

    # Processed orders

    def is_order_processed(self, order_id: str) -> bool:
        with self._session_scope(operation='consultar histórico') as session:
            return session.query(ProcessedOrder.id).filter(ProcessedOrder.order_id == order_id).first() is not None

    def record_processed_order(self, order_id: str, skus: List[str], total_items: int) -> bool:
        with self._session_scope(operation='registrar histórico') as session:
            return self._insert_ignore(session, ProcessedOrder, {
                'order_id': order_id,
                'skus': ', '.join(skus),
                'total_items': total_items
            }, 'order_id')
