"""Error taxonomy raised by the commission services and engine."""


class CommissionError(Exception):
    """Base class for every commission domain error."""

    default_message = "Error de comisiones."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CommissionError):
    """Out-of-range or missing data, detected before any write."""

    default_message = "Datos invalidos."

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ConflictError(CommissionError):
    default_message = "Conflicto con el estado actual."


class AlreadyCalculated(ConflictError):
    """The sale already has a row set and no recalculation was requested."""

    default_message = "La comision de esta venta ya fue calculada."

    def __init__(self, sale, existing_rows):
        self.sale = sale
        self.existing_rows = list(existing_rows)
        super().__init__()


class NotFoundError(CommissionError):
    default_message = "Registro no encontrado."


class ExternalDependencyError(CommissionError):
    """A collaborator outside the engine (partner registry, CRM) failed."""

    default_message = "Fallo un servicio externo."
