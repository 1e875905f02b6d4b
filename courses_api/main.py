import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from courses_api.core import config
from courses_api.core.errors import register_error_handlers
from courses_api.database import check_connection, init_schema
from courses_api.routes import course_routes, user_routes

logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(title='Courses REST API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

register_error_handlers(app)


@app.middleware('http')
async def log_requests(request: Request, call_next):
    start_time = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.warning('%s %s failed after %.3f ms', request.method, request.url.path, duration_ms)
        raise
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.info('%s %s %s %.3f ms', request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        check_connection()
        logger.info('Connection has been established successfully')
        init_schema()
    except SQLAlchemyError:
        logger.exception('Unable to connect to the database. Check DATABASE_URL.')


@app.get('/')
def root():
    return {'message': 'Welcome to the REST API project!'}


app.include_router(user_routes.router, prefix='/api')
app.include_router(course_routes.router, prefix='/api')
