class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class UnknownEntityError(AppError):
    def __init__(self, kind: str, entity_id: object):
        super().__init__(f"{kind.capitalize()} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class InsufficientStockError(AppError):
    def __init__(self, product_id: int, name: str, requested: int, available: int):
        super().__init__(f"Not enough stock for {name}. Requested: {requested}, available: {available}")
        self.product_id = product_id
        self.requested = requested
        self.available = available


class SequenceCollisionError(AppError):
    def __init__(self, invoice_number: str):
        super().__init__(f"Invoice number {invoice_number} was already issued.")
        self.invoice_number = invoice_number


class CommitError(AppError):
    """A unit of work failed and every change in it was rolled back."""


class InsightUnavailableError(AppError):
    pass
