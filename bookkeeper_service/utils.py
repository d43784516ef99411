"""Funciones de utilidad para autenticación: hash de contraseñas y manejo de JWT."""

import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from passlib.context import CryptContext
from jose import JWTError, jwt
from dotenv import load_dotenv

# Carga variables de entorno desde .env
load_dotenv()

logger = logging.getLogger(__name__)

# --- Configuración de Seguridad ---
SECRET_KEY = os.getenv("JWT_SECRET")
if not SECRET_KEY:
    logger.warning("JWT_SECRET no está definida en las variables de entorno. Usando clave insegura por defecto para desarrollo.")
    SECRET_KEY = "clave_secreta_insegura_por_defecto_cambiar_urgentemente"

ALGORITHM = "HS256"

# Los tokens valen 30 días, sin refresh
ACCESS_TOKEN_EXPIRE_DAYS = 30

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 10))

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifica una contraseña plana contra un hash almacenado."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Genera el hash de una contraseña plana usando bcrypt (salt aleatorio por hash)."""
    return pwd_context.hash(password)


# --- Utilidades para Tokens JWT ---
def create_access_token(user_id: int) -> str:
    """
    Genera un token de acceso JWT que identifica al usuario.

    Args:
        user_id: ID del usuario, se guarda en el claim 'id'.

    Returns:
        String del JWT codificado.
    """
    expire = datetime.now(timezone.utc) + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)
    to_encode = {"id": user_id, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict]:
    """
    Decodifica y valida un token JWT.

    Returns:
        El payload si la firma es válida, no expiró y trae 'id'; en caso contrario None.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], options={"require_exp": True})
    except JWTError as e:
        logger.warning(f"Fallo en decodificación de token: {e}")
        return None

    if not isinstance(payload.get("id"), int):
        logger.warning("Token sin claim 'id' válido.")
        return None
    return payload
