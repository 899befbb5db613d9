"""
Domain errors shared across apps.

Views translate these into error responses; nothing in here knows about HTTP.
"""


class StatusError(Exception):
    """Base class for document status problems"""


class UnknownStatus(StatusError, ValueError):
    """A status value that is not a member of the document's status enumeration"""

    def __init__(self, value, status_class):
        self.value = value
        self.status_class = status_class
        allowed = ', '.join(status_class.values)
        super().__init__(f"'{value}' is not a valid {status_class.__name__} (expected one of: {allowed})")


class InvalidStatusTransition(StatusError):
    """Requested status change is not allowed from the current status"""

    def __init__(self, current, target, message=None):
        self.current = current
        self.target = target
        if message is None:
            if current is None:
                message = f"Documents must be created as '{target.label}'"
            else:
                message = f"Cannot change status from '{current.label}' to '{target.label}'"
        super().__init__(message)


class DocumentNotEditable(StatusError):
    """Document is past the status in which its contents may change"""

    def __init__(self, document, status):
        self.document = document
        self.status = status
        super().__init__(f"{document} cannot be modified while '{status.label}'")


class InsufficientStock(Exception):
    """Not enough stock at a location to cover a requested quantity"""

    def __init__(self, product, location, available, requested):
        self.product = product
        self.location = location
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product.name} at {location.name}: "
            f"available {available}, requested {requested}"
        )
