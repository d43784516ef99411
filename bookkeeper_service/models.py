"""Define las tablas 'users', 'unpaid_transactions' y 'paid_transactions' usando SQLAlchemy ORM."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String

from bookkeeper_service.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


def _new_id():
    return str(uuid.uuid4())


class User(Base):
    """
    Modelo SQLAlchemy que representa la tabla 'users'.
    Además de la identidad guarda los totales acumulados de préstamos abiertos.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)

    # Las transacciones referencian al usuario por email
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(32), nullable=False)

    # Hash bcrypt, nunca se expone
    hashed_password = Column(String(255), nullable=False)

    # Suma de lo que le deben (lender) y de lo que debe (borrower)
    total_lent = Column(Numeric(12, 2), nullable=False, default=Decimal('0.00'))
    total_borrowed = Column(Numeric(12, 2), nullable=False, default=Decimal('0.00'))


class UnpaidTransaction(Base):
    """Préstamo abierto entre un lender y un borrower."""
    __tablename__ = "unpaid_transactions"

    id = Column(String(36), primary_key=True, default=_new_id)
    lender = Column(String(255), nullable=False, index=True)
    borrower = Column(String(255), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    repaid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PaidTransaction(Base):
    """
    Registro inmutable de un préstamo saldado.
    Conserva el id de la transacción original; el monto no se guarda.
    """
    __tablename__ = "paid_transactions"

    id = Column(String(36), primary_key=True)
    lender = Column(String(255), nullable=False, index=True)
    borrower = Column(String(255), nullable=False, index=True)
    repaid = Column(Boolean, nullable=False, default=True)
    repaid_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
