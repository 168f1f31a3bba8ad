# app/services/exceptions.py


class ServiceError(Exception):
    """Clase base para errores de la capa de servicio; ``status_code`` es el HTTP sugerido."""

    status_code = 400

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class DomainValidationError(ServiceError):
    """Entrada de dominio inválida: se rechaza sin reintentar."""

    status_code = 422


class EmptyCartError(DomainValidationError):
    """Checkout sobre un carrito vacío."""


class ResourceNotFoundError(ServiceError):
    """Orden o línea de carrito inexistente (un carrito ausente es un carrito vacío)."""

    status_code = 404


class ConflictError(ServiceError):
    """Conflicto de estado en la operación."""

    status_code = 409


class OrderIntegrityError(ConflictError):
    """Colisión de identificador de orden: se aborta, nunca se sobrescribe."""

    def __init__(self, detail: str, *, order_id: str | None = None, order_number: int | None = None):
        super().__init__(detail)
        self.order_id = order_id
        self.order_number = order_number
