import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from courses_api.auth.dependencies import get_current_user
from courses_api.core.errors import INVALID_JSON_MESSAGE, ApiError, ErrorKind
from courses_api.database import get_db
from courses_api.models.course import Course
from courses_api.models.user import User
from courses_api.routes.user_routes import UserResponse, require_text

router = APIRouter(tags=['courses'])

logger = logging.getLogger(__name__)

COURSE_NOT_FOUND_MESSAGE = 'Course not found'
NOT_OWNER_MESSAGE = 'Access denied.'


def validate_title(value: str | None) -> str:
    return require_text(value, 'A title is required', 'Please provide a title')


def validate_description(value: str | None) -> str:
    return require_text(value, 'A description is required', 'Please provide a description')


def normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class CourseFields(BaseModel):
    title: str | None = None
    description: str | None = None
    estimated_time: str | None = None
    materials_needed: str | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator('title')
    @classmethod
    def title_is_present(cls, value: str | None) -> str:
        return validate_title(value)

    @field_validator('description')
    @classmethod
    def description_is_present(cls, value: str | None) -> str:
        return validate_description(value)

    @field_validator('estimated_time', 'materials_needed')
    @classmethod
    def strip_optional_text(cls, value: str | None) -> str | None:
        return normalize_optional_text(value)


class CreateCourseRequest(CourseFields):
    title: str | None = Field(default=None, validate_default=True)
    description: str | None = Field(default=None, validate_default=True)


class UpdateCourseRequest(CourseFields):
    """Partial update; only the fields present in the body are applied."""


class CourseResponse(BaseModel):
    id: int
    title: str
    description: str
    estimated_time: str | None = None
    materials_needed: str | None = None
    user_id: int
    owner: UserResponse

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


def parse_course_id(raw_id: str | int, not_found_status: int = status.HTTP_404_NOT_FOUND) -> int:
    # a non-numeric id names no course
    try:
        return int(raw_id)
    except (TypeError, ValueError):
        raise ApiError(ErrorKind.NOT_FOUND, COURSE_NOT_FOUND_MESSAGE, status_code=not_found_status) from None


def authenticated_body(model: type[BaseModel]):
    """Build a dependency that validates the JSON body as ``model``.

    The caller is authenticated first, so an anonymous write is answered
    with 401 whatever its body looks like.
    """

    async def read_body(request: Request, _current_user: User = Depends(get_current_user)):
        try:
            payload = await request.json()
        except ValueError:
            raise ApiError(ErrorKind.VALIDATION, errors=[INVALID_JSON_MESSAGE]) from None

        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise RequestValidationError(exc.errors()) from exc

    return read_body


def course_query(db: Session):
    return db.query(Course).options(joinedload(Course.owner))


def get_owned_course(course_id: str | int, current_user: User, db: Session) -> Course:
    course_id = parse_course_id(course_id, not_found_status=status.HTTP_400_BAD_REQUEST)
    course = db.query(Course).filter(Course.id == course_id).first()

    if course is None:
        raise ApiError(ErrorKind.NOT_FOUND, COURSE_NOT_FOUND_MESSAGE, status_code=status.HTTP_400_BAD_REQUEST)

    if course.user_id != current_user.id:
        logger.warning('User %s attempted to modify course %s owned by user %s', current_user.id, course.id, course.user_id)
        raise ApiError(ErrorKind.FORBIDDEN, NOT_OWNER_MESSAGE)

    return course


@router.get('/courses', response_model=list[CourseResponse])
def list_courses(db: Session = Depends(get_db)):
    courses = course_query(db).order_by(Course.id.asc()).all()
    return [CourseResponse.model_validate(course) for course in courses]


@router.get('/courses/{course_id}', response_model=CourseResponse)
def get_course(course_id: str, db: Session = Depends(get_db)):
    course = course_query(db).filter(Course.id == parse_course_id(course_id)).first()

    if course is None:
        raise ApiError(ErrorKind.NOT_FOUND, COURSE_NOT_FOUND_MESSAGE)

    return CourseResponse.model_validate(course)


@router.post('/courses', status_code=status.HTTP_201_CREATED, response_class=Response)
def create_course(
    data: CreateCourseRequest = Depends(authenticated_body(CreateCourseRequest)),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    course = Course(
        title=data.title,
        description=data.description,
        estimated_time=data.estimated_time,
        materials_needed=data.materials_needed,
        user_id=current_user.id,
    )

    try:
        db.add(course)
        db.commit()
        db.refresh(course)
    except SQLAlchemyError:
        db.rollback()
        raise

    return Response(status_code=status.HTTP_201_CREATED, headers={'Location': f'/courses/{course.id}'})


@router.put('/courses/{course_id}', status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def update_course(
    course_id: str,
    data: UpdateCourseRequest = Depends(authenticated_body(UpdateCourseRequest)),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    course = get_owned_course(course_id, current_user, db)

    try:
        for field_name, value in data.model_dump(exclude_unset=True).items():
            setattr(course, field_name, value)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete('/courses/{course_id}', status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    course = get_owned_course(course_id, current_user, db)

    try:
        db.delete(course)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    return Response(status_code=status.HTTP_204_NO_CONTENT)
