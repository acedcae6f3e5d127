# errors.py


class ValidationError(ValueError):
    """Bad operator input. Nothing was sent to the server."""


class NetworkError(Exception):
    """An API request failed or the server rejected it."""
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PrinterUnavailable(Exception):
    """
    The print bridge could not be reached or has no usable printer.
    Never means the sale failed: the order is already recorded server-side.
    """
