import asyncio
import logging
import os
import time
from typing import List, Optional

from fastapi import FastAPI, Depends, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

# Importaciones locales
from bookkeeper_service import accounts, obligations, reconciliation, schemas
from bookkeeper_service.db import engine, Base, get_db
from bookkeeper_service.errors import InternalError, InvalidCredentials, LedgerError, NotFound, Unauthenticated
from bookkeeper_service.models import User
from bookkeeper_service.utils import (
    create_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)

# Configura logger
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", 15))

# Crea tablas si no existen al iniciar
try:
    if engine is not None:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables verified/created.")
except Exception as e:
    logger.error(f"Error initializing database: {e}", exc_info=True)

app = FastAPI(
    title="Bookkeeper Service",
    description="Registers users and keeps track of peer-to-peer loans and their running totals.",
    version="1.0.0"
)

# --- Métricas Prometheus ---
REQUEST_COUNT = Counter(
    "bookkeeper_requests_total",
    "Total requests processed by Bookkeeper Service",
    ["method", "endpoint", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "bookkeeper_request_latency_seconds",
    "Request latency in seconds for Bookkeeper Service",
    ["endpoint"]
)
TRANSACTIONS_CREATED = Counter("bookkeeper_transactions_created_total", "Número total de préstamos registrados")
TRANSACTIONS_REPAID = Counter("bookkeeper_transactions_repaid_total", "Número total de préstamos saldados")


# --- Middleware para Métricas y Timeout ---
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start_time = time.time()
    response = None
    status_code = 500

    try:
        response = await asyncio.wait_for(call_next(request), timeout=REQUEST_TIMEOUT_SECONDS)
        status_code = response.status_code
    except asyncio.TimeoutError:
        logger.error(f"Request {request.method} {request.url.path} timed out after {REQUEST_TIMEOUT_SECONDS}s")
        response = JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"message": "request timed out"})
    except Exception as exc:
        logger.error(f"Unhandled exception during request processing: {exc}", exc_info=True)
        response = JSONResponse(status_code=500, content={"message": "internal server error"})
    finally:
        latency = time.time() - start_time
        endpoint = request.url.path
        final_status_code = getattr(response, 'status_code', status_code)

        REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=final_status_code
        ).inc()

    return response


# --- Manejo de errores: siempre {"message": ...} ---
@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if request.url.path == "/signup":
        message = "enter all credentials"
    elif errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "invalid request"
    logger.warning(f"Validation failed on {request.url.path}: {message}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


# --- Dependencias de Autenticación ---
def get_current_user_id(auth_token: Optional[str] = Header(None, alias="auth-token")) -> int:
    """Resuelve el id del usuario a partir de la cabecera auth-token."""
    if not auth_token:
        raise Unauthenticated("please provide authentication token")

    payload = decode_token(auth_token)
    if payload is None:
        raise Unauthenticated("invalid token")
    return payload["id"]


def get_current_user(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)) -> User:
    user = accounts.find_by_id(db, user_id)
    if user is None:
        logger.warning(f"Token for unknown user_id {user_id}")
        raise NotFound("user not found")
    return user


# --- Endpoints de Salud y Métricas ---
@app.get("/metrics", tags=["Monitoring"])
def metrics():
    """Exposes application metrics for Prometheus."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health", tags=["Monitoring"])
def health_check():
    return {"status": "ok", "service": "bookkeeper_service"}


# --- Endpoints de API ---

@app.get("/", response_class=PlainTextResponse)
def root():
    return "Welcome to your own book-keeper"


@app.post("/signup", response_model=schemas.SignupResponse, status_code=status.HTTP_201_CREATED, tags=["Authentication"])
def signup(user: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Registers a new user and returns a token for it.
    Fails with 400 if the email is already registered.
    """
    logger.info(f"Registration attempt for email: {user.email}")
    new_user = accounts.create_account(
        db,
        name=user.name,
        email=user.email,
        phone=user.phone,
        password_hash=get_password_hash(user.password),
    )
    try:
        db.commit()
        db.refresh(new_user)
    except Exception as e:
        db.rollback()
        logger.error(f"Database error during user creation for email {user.email}: {e}", exc_info=True)
        raise InternalError("user creation error")

    logger.info(f"User created with ID: {new_user.id} for email: {user.email}")
    return {
        "name": new_user.name,
        "email": new_user.email,
        "phone": new_user.phone,
        "token": create_access_token(new_user.id),
    }


@app.post("/login", response_model=schemas.LoginResponse, tags=["Authentication"])
def login(credentials: schemas.UserLogin, db: Session = Depends(get_db)):
    """
    Authenticates a user by email and password.
    Unknown email and wrong password get the same answer.
    """
    logger.info(f"Login attempt for user: {credentials.email}")
    user = accounts.find_by_email(db, credentials.email)

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.warning(f"Login failed for user: {credentials.email}")
        raise InvalidCredentials()

    logger.info(f"Login successful for user_id: {user.id}")
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "token": create_access_token(user.id),
    }


@app.get("/me", response_model=schemas.UserResponse, tags=["Users"])
def read_me(current_user: User = Depends(get_current_user)):
    """Returns the authenticated user's profile with total_lent and total_borrowed."""
    return current_user


@app.post("/newtransaction", response_model=schemas.UnpaidTransactionResponse, status_code=status.HTTP_201_CREATED, tags=["Transactions"])
def new_transaction(
    req: schemas.TransactionCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Records that `lender` lent `amount` to `borrower`."""
    txn = reconciliation.create_transaction(db, user_id, req.lender, req.borrower, req.amount)
    TRANSACTIONS_CREATED.inc()
    return txn


@app.get("/myunpaidtransactions", response_model=List[schemas.UnpaidTransactionResponse], tags=["Transactions"])
def my_unpaid_transactions(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return obligations.find_unpaid_for_user(db, current_user.email)


@app.get("/mypaidtransactions", response_model=List[schemas.PaidTransactionResponse], tags=["Transactions"])
def my_paid_transactions(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return obligations.find_paid_for_user(db, current_user.email)


@app.put("/repay", response_model=schemas.PaidTransactionResponse, tags=["Transactions"])
def repay(
    req: schemas.RepayRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Settles an unpaid transaction. A second repay of the same id gets 404."""
    paid = reconciliation.repay_transaction(db, user_id, req.id)
    TRANSACTIONS_REPAID.inc()
    return paid
