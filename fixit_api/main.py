import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError

from fixit_api.core import config
from fixit_api.core.errors import register_error_handlers
from fixit_api.core.rate_limit import create_limiter, rate_limit_exceeded_handler
from fixit_api.database import Base, engine
from fixit_api.models import issue, user  # noqa: F401
from fixit_api.routes import auth_routes, issue_routes
from fixit_api.seed_admin import seed_admin_on_startup

logging.basicConfig(level=config.LOG_LEVEL)

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'SAMEORIGIN',
    'Referrer-Policy': 'no-referrer',
    'Cross-Origin-Resource-Policy': 'same-origin',
}

app = FastAPI(title='Campus FixIt API')

app.state.limiter = create_limiter()

app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=config.cors_origins() != ['*'],
    allow_methods=['*'],
    allow_headers=['*'],
)

register_error_handlers(app)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.middleware('http')
async def add_security_headers(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    if config.APP_ENV.lower() != 'production':
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info('%s %s %s %.1fms', request.method, request.url.path, response.status_code, elapsed_ms)
    return response


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL credentials.')
        return
    seed_admin_on_startup()


@app.get('/api/health')
def health():
    return {'status': 'ok', 'message': 'Campus FixIt API running'}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(issue_routes.router, prefix='/api/issues')
