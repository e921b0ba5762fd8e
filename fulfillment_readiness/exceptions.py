class FulfillmentError(Exception):
    """Base exception for Fulfillment Readiness errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Fulfillment Readiness engine"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(FulfillmentError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class DatabaseError(FulfillmentError):
    """Exception raised when the database connection cannot be set up."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Database error"
        super().__init__(message, code, details)


class StorageError(DatabaseError):
    """Exception raised when a storage lookup or write fails.

    Carries the SKU being processed so batch callers can attribute the failure.
    """

    def __init__(self, message=None, code='STORAGE_ERROR', details=None, sku=None):
        message = message or "Storage error"
        self.sku = sku
        super().__init__(message, code, details)

    def to_dict(self):
        error_dict = super().to_dict()
        if self.sku:
            error_dict['sku'] = self.sku
        return error_dict


class ValidationError(FulfillmentError):
    """Exception raised for input validation errors."""

    def __init__(self, message=None, code='VALIDATION_ERROR', details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class SkuNotRegisteredError(FulfillmentError):
    """Exception raised when a SKU is absent or inactive in the catalog."""

    def __init__(self, sku, message=None, details=None):
        self.sku = sku
        message = message or f"SKU {sku} não cadastrado no estoque"
        super().__init__(message, 'SKU_NOT_REGISTERED', details)


class InsufficientStockError(FulfillmentError):
    """Exception raised when a location does not hold enough stock for a decrement."""

    def __init__(self, sku, location_id, required, available=None, location_name=None):
        self.sku = sku
        self.location_id = location_id
        self.required = required
        self.available = available
        self.location_name = location_name
        local = location_name or location_id
        if available is None:
            message = f"Estoque insuficiente no local {local}: {sku} necessário {required}"
        else:
            message = f"Estoque insuficiente no local {local}: {sku} necessário {required}, disponível {available}"
        super().__init__(message, 'OUT_OF_STOCK', {
            'sku': sku,
            'location_id': location_id,
            'required': required,
            'available': available
        })


class MappingNotFoundError(FulfillmentError):
    """Order SKU without a usable mapping.

    Resolution reports this as the UNMAPPED status instead of raising it.
    """

    def __init__(self, order_sku, message=None):
        self.order_sku = order_sku
        message = message or f"SKU {order_sku} sem mapeamento no De-Para"
        super().__init__(message, 'UNMAPPED')


class CompositionMissingError(FulfillmentError):
    """Stock SKU without components at a location.

    Resolution reports this as the NO_COMPOSITION status instead of raising it.
    """

    def __init__(self, sku, location_id=None, location_name=None):
        self.sku = sku
        self.location_id = location_id
        local = location_name or location_id
        if local:
            message = f"Produto {sku} não possui composição cadastrada no local \"{local}\""
        else:
            message = f"Produto {sku} não possui composição cadastrada"
        super().__init__(message, 'NO_COMPOSITION')


class OrderAlreadyProcessedError(FulfillmentError):
    """Exception raised when an order's stock was already decremented."""

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Pedido {order_id} já processado", 'ALREADY_PROCESSED')
