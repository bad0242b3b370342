from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from docreview.api.routes import router
from docreview.core.config import settings
from docreview.core.errors import CodeReviewError
from docreview.core.logging import configure_logging


# ===============================
# 🚀 APP SETUP
# ===============================

app = FastAPI(
    title=settings.APP_NAME,
    description="Documentation-aware AI code review API",
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    configure_logging("DEBUG" if settings.DEBUG else settings.LOG_LEVEL)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")


# ===============================
# ⚠️ ERROR RESPONSES
# ===============================

@app.exception_handler(CodeReviewError)
async def code_review_error_handler(request: Request, exc: CodeReviewError):
    if exc.status_code >= 500:
        logger.error(f"Code review error: {exc.message}")
    else:
        logger.warning(f"Rejected review request: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"Invalid request: {location} {first.get('msg', '')}".strip()
    return JSONResponse(status_code=422, content={"success": False, "error": message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc!r}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": f"Review failed: {exc}"},
    )


# ===============================
# 🌍 ROUTES
# ===============================

@app.get("/")
async def root():
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.APP_VERSION,
        "docs": "/docs"
    }


app.include_router(router, prefix="/api/v1")


def run():
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
