"""Errores de dominio del servicio. Cada uno conoce su código HTTP y un mensaje corto."""

from typing import Optional

from fastapi import status


class LedgerError(Exception):
    """Base de todos los errores que se devuelven al cliente como {"message": ...}."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "invalid request"


class Conflict(LedgerError):
    # El alta duplicada responde 400, igual que el resto de errores de signup
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "user already exists. Please try with different email"


class Unauthenticated(LedgerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "invalid or expired token"


class InvalidCredentials(Unauthenticated):
    """Login fallido. Mismo mensaje para email desconocido y contraseña incorrecta."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "invalid email or password"


class NotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "not found"


class InvalidParty(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "enter valid email address"


class InternalError(LedgerError):
    pass
