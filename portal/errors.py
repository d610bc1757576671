class DataAccessError(Exception):
    """Raised when the document store cannot be read or written."""

    def __init__(self, message, original=None):
        super().__init__(message)
        self.message = message
        self.original = original
