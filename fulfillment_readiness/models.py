# fulfillment_readiness/models.py
from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, ForeignKey, Text,
    UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()


class FulfillmentStatus(enum.Enum):
    """Fulfillment status of an order line at a stock location.

    Values:
        SKU_NOT_REGISTERED: Mapped stock SKU absent or inactive in the catalog
        OUT_OF_STOCK: No aggregate stock, or a kit component is short at the location
        UNMAPPED: Order SKU has no mapping (or the mapping has no target yet)
        NO_COMPOSITION: Stock exists but no kit recipe is defined at the location
        READY_TO_FULFILL: Every check passed
    """
    SKU_NOT_REGISTERED = 'SKU_NOT_REGISTERED'
    OUT_OF_STOCK = 'OUT_OF_STOCK'
    UNMAPPED = 'UNMAPPED'
    NO_COMPOSITION = 'NO_COMPOSITION'
    READY_TO_FULFILL = 'READY_TO_FULFILL'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @property
    def severity(self) -> int:
        """Higher is more blocking."""
        return _FULFILLMENT_SEVERITY[self]

    @property
    def label(self) -> str:
        """Display text used by the order-management screens."""
        return _FULFILLMENT_LABELS[self]

    @property
    def is_ready(self) -> bool:
        return self is FulfillmentStatus.READY_TO_FULFILL

    @classmethod
    def from_string(cls, value: str) -> 'FulfillmentStatus':
        """Create a FulfillmentStatus from its string code.

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(status.value for status in cls)
            raise ValueError(f"Invalid fulfillment status: {value}. Valid values are: {valid}")


_FULFILLMENT_SEVERITY = {
    FulfillmentStatus.SKU_NOT_REGISTERED: 4,
    FulfillmentStatus.OUT_OF_STOCK: 3,
    FulfillmentStatus.UNMAPPED: 2,
    FulfillmentStatus.NO_COMPOSITION: 1,
    FulfillmentStatus.READY_TO_FULFILL: 0,
}

_FULFILLMENT_LABELS = {
    FulfillmentStatus.SKU_NOT_REGISTERED: 'SKU sem cadastro no Estoque',
    FulfillmentStatus.OUT_OF_STOCK: 'Sem Estoque',
    FulfillmentStatus.UNMAPPED: 'Sem Mapeamento',
    FulfillmentStatus.NO_COMPOSITION: 'Sem Composição',
    FulfillmentStatus.READY_TO_FULFILL: 'Pronto',
}

# The combined readiness status shares the fulfillment taxonomy.
CombinedStatus = FulfillmentStatus


class SupplyStatus(enum.Enum):
    """Insumo (auxiliary material) status of a stock SKU.

    Values:
        INSUMO_NOT_REGISTERED: A referenced insumo SKU is missing from the catalog
        INSUMO_PENDING: A referenced insumo has no stock
        NO_INSUMO_MAPPING: The product uses no insumos
        READY: Every insumo has at least one unit
    """
    INSUMO_NOT_REGISTERED = 'INSUMO_NOT_REGISTERED'
    INSUMO_PENDING = 'INSUMO_PENDING'
    NO_INSUMO_MAPPING = 'NO_INSUMO_MAPPING'
    READY = 'READY'

    def __str__(self):
        return self.value

    @property
    def severity(self) -> int:
        return _SUPPLY_SEVERITY[self]

    @property
    def label(self) -> str:
        return _SUPPLY_LABELS[self]

    @classmethod
    def from_string(cls, value: str) -> 'SupplyStatus':
        try:
            return cls(value)
        except ValueError:
            valid = ', '.join(status.value for status in cls)
            raise ValueError(f"Invalid supply status: {value}. Valid values are: {valid}")


_SUPPLY_SEVERITY = {
    SupplyStatus.INSUMO_NOT_REGISTERED: 3,
    SupplyStatus.INSUMO_PENDING: 2,
    SupplyStatus.NO_INSUMO_MAPPING: 1,
    SupplyStatus.READY: 0,
}

_SUPPLY_LABELS = {
    SupplyStatus.INSUMO_NOT_REGISTERED: 'Insumo sem cadastro',
    SupplyStatus.INSUMO_PENDING: 'Insumo pendente',
    SupplyStatus.NO_INSUMO_MAPPING: 'Sem insumos',
    SupplyStatus.READY: 'Pronto',
}


class StockLocation(Base):
    """Physical or logical place that holds stock."""
    __tablename__ = 'locais_estoque'

    id = Column(String(64), primary_key=True)
    name = Column('nome', String(120), nullable=False)
    location_type = Column('tipo', String(40), default='fisico')
    active = Column('ativo', Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    stock_entries = relationship("LocationStock", back_populates="location")


class Product(Base):
    """Catalog entry for a stock keeping unit."""
    __tablename__ = 'produtos'

    id = Column(Integer, primary_key=True)
    sku = Column('sku_interno', String(100), nullable=False, unique=True)
    name = Column('nome', String(255), nullable=False, default='')
    active = Column('ativo', Boolean, default=True, nullable=False)
    quantity_on_hand = Column('quantidade_atual', Integer, default=0, nullable=False)
    minimum_quantity = Column('estoque_minimo', Integer, default=0, nullable=False)
    is_insumo = Column('eh_insumo', Boolean, default=False, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    stock_entries = relationship("LocationStock", back_populates="product")


class LocationStock(Base):
    """Quantity of a product held at one location."""
    __tablename__ = 'estoque_por_local'
    __table_args__ = (
        UniqueConstraint('produto_id', 'local_id', name='uq_estoque_produto_local'),
        CheckConstraint('quantidade >= 0', name='ck_estoque_quantidade_nao_negativa'),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column('produto_id', Integer, ForeignKey('produtos.id'), nullable=False)
    location_id = Column('local_id', String(64), ForeignKey('locais_estoque.id'), nullable=False)
    quantity = Column('quantidade', Integer, default=0, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="stock_entries")
    location = relationship("StockLocation", back_populates="stock_entries")


class SkuMapping(Base):
    """De-Para row linking a sales-channel SKU to an internal stock SKU."""
    __tablename__ = 'mapeamentos_depara'

    id = Column(Integer, primary_key=True)
    order_sku = Column('sku_pedido', String(100), nullable=False, unique=True)
    stock_sku = Column('sku_correspondente', String(100))
    kit_sku = Column('sku_simples', String(100))
    unit_multiplier = Column('quantidade', Integer, default=1, nullable=False)
    active = Column('ativo', Boolean, default=True, nullable=False)
    creation_reason = Column('motivo_criacao', String(60))
    notes = Column('observacoes', Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class ProductComponent(Base):
    """One component of a kit, defined per location."""
    __tablename__ = 'produto_componentes'
    __table_args__ = (
        UniqueConstraint('sku_produto', 'sku_componente', 'local_id', name='uq_componente_local'),
        Index('ix_componentes_produto_local', 'sku_produto', 'local_id'),
    )

    id = Column(Integer, primary_key=True)
    parent_sku = Column('sku_produto', String(100), nullable=False)
    component_sku = Column('sku_componente', String(100), nullable=False)
    quantity = Column('quantidade', Integer, default=1, nullable=False)
    location_id = Column('local_id', String(64), ForeignKey('locais_estoque.id'))


class InsumoComposition(Base):
    """Auxiliary material consumed once per order line of a product."""
    __tablename__ = 'composicoes_insumos'
    __table_args__ = (
        UniqueConstraint('sku_produto', 'sku_insumo', name='uq_insumo_produto'),
    )

    id = Column(Integer, primary_key=True)
    product_sku = Column('sku_produto', String(100), nullable=False, index=True)
    insumo_sku = Column('sku_insumo', String(100), nullable=False)
    quantity = Column('quantidade', Integer, default=1, nullable=False)
    active = Column('ativo', Boolean, default=True, nullable=False)
    notes = Column('observacoes', Text)


class ProcessedOrder(Base):
    """Order whose stock was already decremented."""
    __tablename__ = 'historico_baixas'

    id = Column(Integer, primary_key=True)
    order_id = Column('id_unico', String(120), nullable=False, unique=True)
    skus = Column('sku_estoque', Text)
    total_items = Column('total_itens', Integer, default=0)
    processed_at = Column(DateTime, server_default=func.now())
