"""Configuración de la conexión a la base de datos usando SQLAlchemy."""

import os
import logging
from sqlalchemy import create_engine, exc
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

from bookkeeper_service.errors import InternalError

# Configuración del logger
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Carga variables de entorno desde el archivo .env
load_dotenv()

DEFAULT_SQLITE_URL = "sqlite:///./bookkeeper.db"


def get_database_url() -> str:
    """
    Resuelve la dirección del store.
    DATABASE_URL tiene prioridad; si no existe se arma la URL de MariaDB con DB_*.
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    required_db_vars = {"DB_USER", "DB_PASS", "DB_HOST", "DB_NAME"}
    missing_vars = required_db_vars - set(os.environ)
    if missing_vars:
        logger.warning(
            f"Faltan variables de entorno para la base de datos: {', '.join(sorted(missing_vars))}. "
            f"Usando {DEFAULT_SQLITE_URL} para desarrollo."
        )
        return DEFAULT_SQLITE_URL

    return (
        f"mysql+pymysql://{os.environ['DB_USER']}:{os.environ['DB_PASS']}"
        f"@{os.environ['DB_HOST']}/{os.environ['DB_NAME']}"
    )


def create_db_engine(url: str):
    """Crea el motor de SQLAlchemy. SQLite necesita compartir conexiones entre hilos del pool."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    # pool_pre_ping=True ayuda a manejar conexiones inactivas en el pool.
    return create_engine(url, pool_pre_ping=True)


SQLALCHEMY_DATABASE_URL = get_database_url()

try:
    engine = create_db_engine(SQLALCHEMY_DATABASE_URL)
    # Intenta conectar para verificar credenciales y disponibilidad al inicio
    with engine.connect() as connection:
        logger.info("Conexión a la base de datos establecida exitosamente.")
except exc.SQLAlchemyError as e:
    logger.error(f"Error al conectar con la base de datos: {e}", exc_info=True)
    engine = None

# Cada petición web usa su propia sesión.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine) if engine else None

# Base para los modelos declarativos (User, UnpaidTransaction, PaidTransaction).
Base = declarative_base()


# --- Función de Dependencia para FastAPI ---
def get_db():
    """
    Generador de dependencia de FastAPI para obtener una sesión de base de datos.
    Revierte la transacción ante errores de BD y cierra la sesión al terminar.
    """
    if SessionLocal is None:
        logger.error("La fábrica de sesiones de base de datos no está inicializada.")
        raise InternalError("database unavailable")

    db = SessionLocal()
    try:
        yield db
    except exc.SQLAlchemyError as e:
        logger.error(f"Error de base de datos durante la petición: {e}", exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()
