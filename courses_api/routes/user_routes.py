import logging

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from courses_api.auth.dependencies import get_current_user
from courses_api.auth.passwords import hash_password
from courses_api.core.errors import ApiError, ErrorKind
from courses_api.database import get_db
from courses_api.models.user import User

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

MAX_PASSWORD_BYTES = 72
DUPLICATE_EMAIL_MESSAGE = 'The email you entered already exists'


def require_text(value: str | None, missing_message: str, blank_message: str) -> str:
    if value is None:
        raise ValueError(missing_message)

    normalized = value.strip()
    if not normalized:
        raise ValueError(blank_message)

    return normalized


class CreateUserRequest(BaseModel):
    first_name: str | None = Field(default=None, validate_default=True)
    last_name: str | None = Field(default=None, validate_default=True)
    email_address: str | None = Field(default=None, validate_default=True)
    password: str | None = Field(default=None, validate_default=True)

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator('first_name')
    @classmethod
    def validate_first_name(cls, value: str | None) -> str:
        return require_text(value, 'A first name is required', 'Please provide a first name')

    @field_validator('last_name')
    @classmethod
    def validate_last_name(cls, value: str | None) -> str:
        return require_text(value, 'A last name is required', 'Please provide a last name')

    @field_validator('email_address')
    @classmethod
    def validate_email_address(cls, value: str | None) -> str:
        normalized = require_text(value, 'An email address is required', 'Please provide a valid email address')
        try:
            validate_email(normalized, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValueError('Please provide a valid email address') from exc
        return normalized.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str | None) -> str:
        if value is None:
            raise ValueError('A password is required')
        if not value.strip():
            raise ValueError('Please provide a password')
        if len(value.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'Password must be {MAX_PASSWORD_BYTES} bytes or fewer')
        return value


class UserResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email_address: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


@router.get('/users', response_model=UserResponse)
def get_authenticated_user(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.post('/users', status_code=status.HTTP_201_CREATED, response_class=Response)
def create_user(data: CreateUserRequest, db: Session = Depends(get_db)):
    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        email_address=data.email_address,
        password=hash_password(data.password),
    )

    try:
        db.add(user)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info('Rejected duplicate user email: %s', data.email_address)
        raise ApiError(ErrorKind.UNIQUENESS, errors=[DUPLICATE_EMAIL_MESSAGE]) from exc
    except SQLAlchemyError:
        db.rollback()
        raise

    return Response(status_code=status.HTTP_201_CREATED, headers={'Location': '/'})
