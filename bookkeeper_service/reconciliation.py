"""
Crear y saldar préstamos manteniendo los totales de cada usuario.

Cada operación corre en una única transacción de BD: o se aplican los ajustes de
totales y el cambio de registro juntos, o no se aplica nada.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookkeeper_service import accounts, obligations
from bookkeeper_service.errors import InternalError, InvalidParty, LedgerError, NotFound
from bookkeeper_service.models import PaidTransaction, UnpaidTransaction

logger = logging.getLogger(__name__)


def create_transaction(db: Session, caller_id: int, lender_email: str, borrower_email: str, amount) -> UnpaidTransaction:
    """
    Registra que lender le prestó `amount` a borrower.
    total_lent del lender y total_borrowed del borrower suben en `amount`.
    """
    logger.info(f"User {caller_id} creating transaction {lender_email} -> {borrower_email} for {amount}")

    if accounts.find_by_email(db, lender_email) is None:
        logger.warning(f"Invalid lender email: {lender_email}")
        raise InvalidParty("enter valid sender email address")
    if accounts.find_by_email(db, borrower_email) is None:
        logger.warning(f"Invalid borrower email: {borrower_email}")
        raise InvalidParty("enter valid recepient email address")

    try:
        txn = obligations.create_unpaid(db, lender_email, borrower_email, amount)
        accounts.adjust_totals(db, lender_email, txn.amount, 0)
        accounts.adjust_totals(db, borrower_email, 0, txn.amount)
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating transaction {lender_email} -> {borrower_email}: {e}", exc_info=True)
        raise InternalError()

    db.refresh(txn)
    logger.info(f"Transaction {txn.id} created")
    return txn


def repay_transaction(db: Session, caller_id: int, transaction_id: str) -> PaidTransaction:
    """
    Salda una transacción pendiente: la borra, descuenta los totales y crea el registro pagado.
    Si dos peticiones saldan el mismo id a la vez, solo la que logra el DELETE sigue adelante.
    """
    caller = accounts.find_by_id(db, caller_id)
    if caller is None:
        logger.warning(f"Repay rejected: user {caller_id} not found")
        raise NotFound("user not found")

    try:
        txn = obligations.delete_unpaid_by_id(db, transaction_id)
        if txn is None:
            raise NotFound("transaction id not found")

        accounts.adjust_totals(db, txn.lender, -txn.amount, 0)
        accounts.adjust_totals(db, txn.borrower, 0, -txn.amount)
        paid = obligations.create_paid(db, txn.id, txn.lender, txn.borrower)
        db.commit()
    except LedgerError as e:
        db.rollback()
        logger.warning(f"Repay of {transaction_id} by user {caller_id} rejected: {e.message}")
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error repaying transaction {transaction_id}: {e}", exc_info=True)
        raise InternalError()

    db.refresh(paid)
    logger.info(f"Transaction {paid.id} repaid by user {caller_id}")
    return paid
