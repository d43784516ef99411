"""Alta y consulta de usuarios, y ajuste atómico de sus totales de préstamos."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookkeeper_service.errors import Conflict, NotFound
from bookkeeper_service.models import User

logger = logging.getLogger(__name__)


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def find_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def create_account(db: Session, name: str, email: str, phone: str, password_hash: str) -> User:
    """
    Inserta un usuario nuevo. No hace commit; eso lo decide quien llama.
    Lanza Conflict si el email ya existe (también si otro alta concurrente gana la carrera).
    """
    if find_by_email(db, email):
        logger.warning(f"Registration failed: Email {email} already exists.")
        raise Conflict()

    new_user = User(
        name=name,
        email=email,
        phone=phone,
        hashed_password=password_hash,
        total_lent=Decimal('0.00'),
        total_borrowed=Decimal('0.00'),
    )
    db.add(new_user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Registration failed: unique constraint on email {email}.")
        raise Conflict()
    return new_user


def adjust_totals(db: Session, email: str, delta_lent, delta_borrowed) -> User:
    """
    Suma los deltas a total_lent y total_borrowed en un solo UPDATE.
    No lee antes de escribir, así dos ajustes concurrentes no se pisan.
    """
    delta_lent = Decimal(str(delta_lent))
    delta_borrowed = Decimal(str(delta_borrowed))

    result = db.execute(
        update(User)
        .where(User.email == email)
        .values(
            total_lent=User.total_lent + delta_lent,
            total_borrowed=User.total_borrowed + delta_borrowed,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound(f"user {email} not found")

    return db.execute(
        select(User).where(User.email == email).execution_options(populate_existing=True)
    ).scalar_one()
