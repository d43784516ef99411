"""Registro de préstamos: transacciones pendientes (unpaid) y saldadas (paid)."""

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import delete, or_
from sqlalchemy.orm import Session

from bookkeeper_service.errors import ValidationError
from bookkeeper_service.models import PaidTransaction, UnpaidTransaction

CENT = Decimal("0.01")
# Límite de Numeric(12, 2)
MAX_AMOUNT = Decimal("10000000000")


def create_unpaid(db: Session, lender_email: str, borrower_email: str, amount) -> UnpaidTransaction:
    amount = Decimal(str(amount))
    if not amount.is_finite():
        raise ValidationError("amount must be a finite number")
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError("amount is too large")
    # Mismo redondeo que la columna Numeric(12, 2), así los totales suman lo que queda guardado
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise ValidationError("amount must be a positive number")
    if lender_email == borrower_email:
        raise ValidationError("lender and borrower must be different users")

    txn = UnpaidTransaction(lender=lender_email, borrower=borrower_email, amount=amount, repaid=False)
    db.add(txn)
    db.flush()
    return txn


def find_unpaid_for_user(db: Session, email: str) -> List[UnpaidTransaction]:
    return (
        db.query(UnpaidTransaction)
        .filter(or_(UnpaidTransaction.lender == email, UnpaidTransaction.borrower == email))
        .order_by(UnpaidTransaction.created_at, UnpaidTransaction.id)
        .all()
    )


def find_paid_for_user(db: Session, email: str) -> List[PaidTransaction]:
    return (
        db.query(PaidTransaction)
        .filter(or_(PaidTransaction.lender == email, PaidTransaction.borrower == email))
        .order_by(PaidTransaction.repaid_at, PaidTransaction.id)
        .all()
    )


def find_unpaid_by_id(db: Session, txn_id: str, for_update: bool = False) -> Optional[UnpaidTransaction]:
    query = db.query(UnpaidTransaction).filter(UnpaidTransaction.id == txn_id)
    if for_update:
        # SELECT ... FOR UPDATE en MariaDB; SQLite lo ignora
        query = query.with_for_update()
    return query.first()


def delete_unpaid_by_id(db: Session, txn_id: str) -> Optional[UnpaidTransaction]:
    """
    Reclama la transacción borrándola. Solo el DELETE que afecta una fila gana;
    si otra petición ya la borró devuelve None.
    """
    txn = find_unpaid_by_id(db, txn_id, for_update=True)
    if txn is None:
        return None

    result = db.execute(
        delete(UnpaidTransaction)
        .where(UnpaidTransaction.id == txn_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None

    db.expunge(txn)
    return txn


def create_paid(db: Session, txn_id: str, lender_email: str, borrower_email: str) -> PaidTransaction:
    paid = PaidTransaction(id=txn_id, lender=lender_email, borrower=borrower_email, repaid=True)
    db.add(paid)
    db.flush()
    return paid
