import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskhub.controllers import all_routers
from taskhub.core.config import settings
from taskhub.core.exceptions import BusinessException, ErrorCode, integrity_error_code, validation_messages
from taskhub.core.middleware import LoggingMiddleware, configure_logging

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Taskhub Task Service",
    description="""
    ## 작업 관리 API

    - **작업 관리**: 관리자 작업 생성/수정/삭제, 목록 필터·정렬·검색
    - **상태 변경**: 담당자/생성자/관리자가 상태와 메모를 갱신
    - **첨부 문서**: 작업당 PDF 최대 3개 (S3 저장)
    """,
    version="1.0.0",
)

# =================================================================
# 1. CORS 설정 (settings에서 가져오기)
# =================================================================
origins = settings.CORS_ORIGINS.split(",") if settings.CORS_ORIGINS != "*" else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in origins],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

# =================================================================
# 2. 미들웨어 및 모니터링
# =================================================================
app.add_middleware(LoggingMiddleware)
Instrumentator().instrument(app).expose(app)

# =================================================================
# 3. 라우터 등록
# =================================================================
for router, prefix, tag in all_routers:
    app.include_router(router, prefix=prefix, tags=[tag])


# =================================================================
# 4. 예외 핸들러 - 응답 형태 {success: false, code, message, error?}
# =================================================================
def error_response(error_code: ErrorCode, message: str = None, error=None) -> JSONResponse:
    content = {
        "success": False,
        "code": error_code.biz_code,
        "message": message or error_code.default_message,
    }
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=error_code.http_status, content=content)


@app.exception_handler(BusinessException)
async def business_exception_handler(request: Request, exc: BusinessException):
    if exc.error_code.http_status >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return error_response(exc.error_code, exc.message, exc.error)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(ErrorCode.INVALID_INPUT, error=validation_messages(exc.errors()))


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return error_response(integrity_error_code(exc.orig), error=str(exc.orig))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(ErrorCode.ROUTE_NOT_FOUND, f"Not found - {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    error = None if settings.ENV == "production" else str(exc)
    return error_response(ErrorCode.INTERNAL_SERVER_ERROR, error=error)


@app.get("/")
async def root():
    return {"message": "Task Service is running", "service": "task-service"}


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "task-service"}
