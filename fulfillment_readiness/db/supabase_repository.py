# fulfillment_readiness/db/supabase_repository.py
import logging
from typing import Any, Dict, Iterable, List, Optional

from fulfillment_readiness.db.interface import StockRepository
from fulfillment_readiness.exceptions import FulfillmentError, StorageError
from fulfillment_readiness.records import (
    SkuMappingRecord, StockSkuRecord, ComponentRow, InsumoRow, LocationRecord
)

logger = logging.getLogger(__name__)


def _unique(values: Iterable[str]) -> List[str]:
    return [value for value in dict.fromkeys(values) if value]


class SupabaseRepository(StockRepository):
    """Repository over the Supabase (PostgREST) tables used by the order screens.

    PostgREST has no conditional arithmetic update, so decrements use a
    compare-and-swap on the current quantity and retry on contention.
    """

    def __init__(self, client, max_retries: int = 5):
        """Initialize with a Supabase client.

        Args:
            client: Client returned by ``supabase.create_client``
            max_retries: Compare-and-swap attempts per decrement
        """
        self.client = client
        self.max_retries = max_retries

    def _execute(self, query, operation: str, sku: str = None) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except FulfillmentError:
            raise
        except Exception as e:
            raise StorageError(f"Falha ao {operation}: {str(e)}", sku=sku) from e

        if hasattr(result, 'error') and result.error:
            raise StorageError(f"Falha ao {operation}: {result.error}", sku=sku)

        return result.data or []

    def _table(self, name: str):
        return self.client.table(name)

    def _product_row(self, sku: str, columns: str = 'id') -> Optional[Dict[str, Any]]:
        rows = self._execute(
            self._table('produtos').select(columns).eq('sku_interno', sku).limit(1),
            'buscar produto', sku
        )
        return rows[0] if rows else None

    @staticmethod
    def _mapping_record(row: Dict[str, Any]) -> SkuMappingRecord:
        return SkuMappingRecord(
            order_sku=row['sku_pedido'],
            stock_sku=row.get('sku_correspondente'),
            kit_sku=row.get('sku_simples'),
            unit_multiplier=row.get('quantidade') or 1,
            active=bool(row.get('ativo', True)),
            creation_reason=row.get('motivo_criacao')
        )

    @staticmethod
    def _stock_record(row: Dict[str, Any]) -> StockSkuRecord:
        return StockSkuRecord(
            sku=row['sku_interno'],
            exists=True,
            active=bool(row.get('ativo', True)),
            quantity_on_hand=row.get('quantidade_atual') or 0,
            minimum_quantity=row.get('estoque_minimo') or 0,
            name=row.get('nome') or ''
        )

    # Mappings

    def find_active_mappings(self, order_skus: Iterable[str]) -> List[SkuMappingRecord]:
        skus = _unique(order_skus)
        if not skus:
            return []

        rows = self._execute(
            self._table('mapeamentos_depara')
            .select('sku_pedido, sku_correspondente, sku_simples, quantidade, ativo, motivo_criacao')
            .in_('sku_pedido', skus)
            .eq('ativo', True),
            'buscar mapeamentos'
        )
        return [self._mapping_record(row) for row in rows]

    def upsert_mapping_placeholder(self, order_sku: str, reason: str = 'auto_detected') -> bool:
        rows = self._execute(
            self._table('mapeamentos_depara').upsert({
                'sku_pedido': order_sku,
                'sku_correspondente': None,
                'sku_simples': None,
                'quantidade': 1,
                'ativo': True,
                'motivo_criacao': reason
            }, on_conflict='sku_pedido', ignore_duplicates=True),
            'criar mapeamento', order_sku
        )
        return bool(rows)

    # Catalog

    def find_stock_sku(self, stock_sku: str) -> Optional[StockSkuRecord]:
        row = self._product_row(stock_sku, 'sku_interno, nome, ativo, quantidade_atual, estoque_minimo')
        return self._stock_record(row) if row else None

    def find_location(self, location_id: str) -> Optional[LocationRecord]:
        rows = self._execute(
            self._table('locais_estoque').select('id, nome, ativo').eq('id', location_id).limit(1),
            'buscar local de estoque'
        )
        if not rows:
            return None
        row = rows[0]
        return LocationRecord(id=row['id'], name=row.get('nome') or row['id'], active=bool(row.get('ativo', True)))

    # Compositions

    def find_composition(self, parent_sku: str, location_id: Optional[str] = None) -> List[ComponentRow]:
        query = (
            self._table('produto_componentes')
            .select('sku_componente, quantidade, local_id')
            .eq('sku_produto', parent_sku)
        )
        if location_id is not None:
            query = query.eq('local_id', location_id)

        rows = self._execute(query.order('local_id'), 'buscar composição', parent_sku)
        return [
            ComponentRow(
                component_sku=row['sku_componente'],
                quantity_per_unit=row.get('quantidade') or 0,
                location_id=row.get('local_id')
            )
            for row in rows
        ]

    def find_insumo_composition(self, stock_sku: str) -> List[InsumoRow]:
        rows = self._execute(
            self._table('composicoes_insumos')
            .select('sku_insumo, quantidade')
            .eq('sku_produto', stock_sku)
            .eq('ativo', True),
            'buscar insumos', stock_sku
        )
        return [InsumoRow(insumo_sku=row['sku_insumo'], quantity=row.get('quantidade') or 1) for row in rows]

    def find_insumo_stock(self, insumo_skus: Iterable[str], location_id: Optional[str] = None) -> Dict[str, int]:
        skus = _unique(insumo_skus)
        if not skus:
            return {}

        products = self._execute(
            self._table('produtos').select('id, sku_interno, quantidade_atual').in_('sku_interno', skus),
            'buscar estoque de insumos'
        )
        if location_id is None:
            return {row['sku_interno']: row.get('quantidade_atual') or 0 for row in products}

        sku_by_id = {row['id']: row['sku_interno'] for row in products}
        stock = {sku: 0 for sku in sku_by_id.values()}
        if sku_by_id:
            entries = self._execute(
                self._table('estoque_por_local')
                .select('produto_id, quantidade')
                .eq('local_id', location_id)
                .in_('produto_id', list(sku_by_id)),
                'buscar estoque de insumos'
            )
            for entry in entries:
                stock[sku_by_id[entry['produto_id']]] = entry.get('quantidade') or 0
        return stock

    # Location stock

    def _location_entry(self, product_id, location_id: str, sku: str) -> Optional[int]:
        rows = self._execute(
            self._table('estoque_por_local')
            .select('quantidade')
            .eq('produto_id', product_id)
            .eq('local_id', location_id)
            .limit(1),
            'buscar estoque do local', sku
        )
        return (rows[0].get('quantidade') or 0) if rows else None

    def find_location_stock(self, sku: str, location_id: str) -> Optional[int]:
        product = self._product_row(sku)
        if product is None:
            return None
        return self._location_entry(product['id'], location_id, sku)

    def update_location_stock(self, sku: str, location_id: str, new_quantity: int) -> None:
        product = self._product_row(sku)
        if product is None:
            raise StorageError(f"Produto {sku} não encontrado", code='NOT_FOUND', sku=sku)

        self._execute(
            self._table('estoque_por_local').upsert({
                'produto_id': product['id'],
                'local_id': location_id,
                'quantidade': new_quantity
            }, on_conflict='produto_id,local_id'),
            'atualizar estoque do local', sku
        )

    def decrement_location_stock(self, sku: str, location_id: str, qty: int) -> Optional[int]:
        product = self._product_row(sku)
        if product is None:
            return None

        for attempt in range(1, self.max_retries + 1):
            current = self._location_entry(product['id'], location_id, sku)
            if current is None or current < qty:
                return None

            rows = self._execute(
                self._table('estoque_por_local')
                .update({'quantidade': current - qty})
                .eq('produto_id', product['id'])
                .eq('local_id', location_id)
                .eq('quantidade', current),
                'baixar estoque', sku
            )
            if rows:
                return current - qty

            logger.debug(f"Concorrência na baixa de {sku} em {location_id}, tentativa {attempt}")

        raise StorageError(
            f"Não foi possível baixar {sku} no local {location_id} após {self.max_retries} tentativas",
            code='CONTENTION', sku=sku
        )

    def increment_location_stock(self, sku: str, location_id: str, qty: int) -> int:
        product = self._product_row(sku)
        if product is None:
            raise StorageError(f"Produto {sku} não encontrado", code='NOT_FOUND', sku=sku)

        for attempt in range(1, self.max_retries + 1):
            current = self._location_entry(product['id'], location_id, sku)
            if current is None:
                rows = self._execute(
                    self._table('estoque_por_local').upsert({
                        'produto_id': product['id'],
                        'local_id': location_id,
                        'quantidade': qty
                    }, on_conflict='produto_id,local_id', ignore_duplicates=True),
                    'repor estoque', sku
                )
            else:
                rows = self._execute(
                    self._table('estoque_por_local')
                    .update({'quantidade': current + qty})
                    .eq('produto_id', product['id'])
                    .eq('local_id', location_id)
                    .eq('quantidade', current),
                    'repor estoque', sku
                )
            if rows:
                return (current or 0) + qty

        raise StorageError(
            f"Não foi possível repor {sku} no local {location_id} após {self.max_retries} tentativas",
            code='CONTENTION', sku=sku
        )

    def refresh_aggregate_quantity(self, sku: str) -> int:
        product = self._product_row(sku)
        if product is None:
            raise StorageError(f"Produto {sku} não encontrado", code='NOT_FOUND', sku=sku)

        entries = self._execute(
            self._table('estoque_por_local').select('quantidade').eq('produto_id', product['id']),
            'recalcular estoque total', sku
        )
        total = sum(entry.get('quantidade') or 0 for entry in entries)

        self._execute(
            self._table('produtos').update({'quantidade_atual': total}).eq('id', product['id']),
            'recalcular estoque total', sku
        )
        return total

    # Processed orders

    def is_order_processed(self, order_id: str) -> bool:
        rows = self._execute(
            self._table('historico_baixas').select('id').eq('id_unico', order_id).limit(1),
            'consultar histórico'
        )
        return bool(rows)

    def record_processed_order(self, order_id: str, skus: List[str], total_items: int) -> bool:
        rows = self._execute(
            self._table('historico_baixas').upsert({
                'id_unico': order_id,
                'sku_estoque': ', '.join(skus),
                'total_itens': total_items
            }, on_conflict='id_unico', ignore_duplicates=True),
            'registrar histórico'
        )
        return bool(rows)
