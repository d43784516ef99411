"""Modelos Pydantic (schemas) para validación de datos de entrada/salida del Bookkeeper Service."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# --- Schemas de Usuario ---

class UserCreate(BaseModel):
    """Datos requeridos para /signup."""
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserLogin(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SignupResponse(BaseModel):
    name: str
    email: str
    phone: str
    token: str


class LoginResponse(BaseModel):
    id: int
    name: str
    email: str
    token: str


class UserResponse(BaseModel):
    """Perfil del usuario autenticado con sus totales (excluye la contraseña)."""
    id: int
    name: str
    email: str
    phone: str
    total_lent: float
    total_borrowed: float

    model_config = ConfigDict(from_attributes=True)


# --- Schemas de Transacciones ---

class TransactionCreate(BaseModel):
    """Schema para /newtransaction. Los montos no positivos se rechazan."""
    lender: str = Field(..., min_length=1, description="Email del que presta")
    borrower: str = Field(..., min_length=1, description="Email del que recibe")
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="El monto debe ser positivo y finito.")


class RepayRequest(BaseModel):
    id: str = Field(..., min_length=1)


class UnpaidTransactionResponse(BaseModel):
    id: str
    lender: str
    borrower: str
    amount: float
    repaid: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaidTransactionResponse(BaseModel):
    id: str
    lender: str
    borrower: str
    repaid: bool
    repaid_at: datetime

    model_config = ConfigDict(from_attributes=True)
