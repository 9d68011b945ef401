"""
Error types raised by the catalog services and turned into JSON responses
by the handlers registered in :func:`store.create_app`.
"""

from typing import Any, Dict, List, Optional


class StoreError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or [{'message': message}]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': False,
            'message': self.message,
            'errors': self.errors,
        }


class ValidationError(StoreError):
    status_code = 400

    def __init__(self, errors: List[Dict[str, str]], message: str = 'Datos de entrada inválidos'):
        super().__init__(message, errors)

    @classmethod
    def for_field(cls, field: str, message: str) -> 'ValidationError':
        return cls([{'field': field, 'message': message}], message=message)


class UnauthorizedError(StoreError):
    status_code = 401


class NotFoundError(StoreError):
    status_code = 404
