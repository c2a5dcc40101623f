import logging
import re

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fixit_api.auth import jwt_handler, passwords
from fixit_api.auth.dependencies import Principal, get_current_principal
from fixit_api.core.errors import ConflictError, InvalidCredentialsError
from fixit_api.database import get_db
from fixit_api.models.user import ROLE_STUDENT, User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def normalize_email(value: str) -> str:
    return value.strip().lower()


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = normalize_email(value)
        if not EMAIL_PATTERN.match(normalized):
            raise ValueError('Valid email is required')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        return value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = normalize_email(value)
        if not normalized:
            raise ValueError('Email is required')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required')
        return value


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()


def build_auth_response(user: User) -> AuthResponse:
    public_user = UserResponse.model_validate(user)
    token = jwt_handler.create_access_token(public_user.model_dump())
    return AuthResponse(token=token, user=public_user)


@router.post('/register', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    if find_user_by_email(db, data.email) is not None:
        raise ConflictError('Email already registered')

    user = User(
        name=data.name,
        email=data.email,
        password=passwords.hash_password(data.password),
        role=ROLE_STUDENT,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError('Email already registered') from exc
    db.refresh(user)

    logger.info('Registered user %s', user.id)
    return build_auth_response(user)


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = find_user_by_email(db, data.email)
    if user is None:
        passwords.burn_password_check(data.password)
        raise InvalidCredentialsError()

    if not passwords.verify_password(data.password, user.password):
        raise InvalidCredentialsError()

    return build_auth_response(user)


@router.get('/me', response_model=UserResponse)
def me(principal: Principal = Depends(get_current_principal)):
    return UserResponse(id=principal.id, name=principal.name, email=principal.email, role=principal.role)
