import base64
import binascii
import logging

from fastapi import Depends, Request
from fastapi.security import HTTPBasicCredentials
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from courses_api.auth.passwords import verify_password
from courses_api.core.errors import ACCESS_DENIED_MESSAGE, ApiError, ErrorKind
from courses_api.database import get_db
from courses_api.models.user import User

logger = logging.getLogger(__name__)


def parse_basic_credentials(request: Request) -> HTTPBasicCredentials | None:
    """Read a Basic ``name:secret`` pair from the Authorization header.

    Returns None when no Basic header is present. The pair is decoded as
    UTF-8 so accounts with non-ASCII emails or passwords can sign in.
    """
    authorization = request.headers.get("Authorization")
    scheme, param = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != "basic":
        return None

    try:
        data = base64.b64decode(param, validate=True).decode("utf-8")
    except (ValueError, UnicodeDecodeError, binascii.Error):
        logger.warning("Malformed Basic auth header")
        raise ApiError(ErrorKind.UNAUTHORIZED, ACCESS_DENIED_MESSAGE) from None

    username, separator, password = data.partition(":")
    if not separator:
        logger.warning("Basic auth header without a name:secret separator")
        raise ApiError(ErrorKind.UNAUTHORIZED, ACCESS_DENIED_MESSAGE)

    return HTTPBasicCredentials(username=username, password=password)


def get_current_user(
    credentials: HTTPBasicCredentials | None = Depends(parse_basic_credentials),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        logger.warning("Auth header not found")
        raise ApiError(ErrorKind.UNAUTHORIZED, ACCESS_DENIED_MESSAGE)

    email_address = credentials.username.strip().lower()
    user = db.query(User).filter(User.email_address == email_address).first()
    if user is None:
        logger.warning("User not found with email: %s", email_address)
        raise ApiError(ErrorKind.UNAUTHORIZED, ACCESS_DENIED_MESSAGE)

    if not verify_password(credentials.password, user.password):
        logger.warning("Authentication failure for user email: %s", user.email_address)
        raise ApiError(ErrorKind.UNAUTHORIZED, ACCESS_DENIED_MESSAGE)

    logger.info("Authentication successful for user email: %s", user.email_address)
    return user
