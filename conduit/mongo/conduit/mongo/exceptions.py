from pymongo.errors import PyMongoError


class DocumentNotFoundError(PyMongoError):
    """Raised when a query that must match a document or a stored file matches nothing."""

    def __init__(self, message: str, query=None):
        super().__init__(message)
        self.query = query
