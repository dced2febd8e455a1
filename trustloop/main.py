from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from contextlib import asynccontextmanager
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from trustloop.core.config import settings
from trustloop.core.errors import UpstreamError
from trustloop.core.logger import log
from trustloop.db.session import create_db_and_tables

# Import models to ensure they are registered with SQLModel metadata
import trustloop.models  # noqa: F401

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    log.info(f"{settings.PROJECT_NAME} started")
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Shopify review collection and moderation API"
)

@app.get("/")
def read_root():
    return {"message": "Welcome to TrustLoop API. Visit /docs for Swagger UI."}

from trustloop.routers import auth, reviews, email, webhooks, dashboard, shopify

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(reviews.router, prefix="/reviews", tags=["reviews"])
app.include_router(email.router, prefix="/email", tags=["email"])
app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
app.include_router(shopify.router, prefix="/shopify", tags=["shopify"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# CORSMiddleware only answers OPTIONS that carry Origin and Access-Control-Request-Method
@app.options("/{path:path}", include_in_schema=False)
def options_handler(path: str):
    return Response(status_code=200, headers=CORS_HEADERS)

# Add CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error bodies: {"error": message} for JSON endpoints, plain text for Shopify webhooks

def is_webhook(request: Request) -> bool:
    return request.url.path.startswith("/webhooks")

def error_response(request: Request, status_code: int, message: str, headers=None):
    if is_webhook(request):
        return PlainTextResponse(message, status_code=status_code, headers=headers)
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(request, exc.status_code, str(exc.detail), getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"error": "Missing required parameters", "details": jsonable_encoder(exc.errors())},
        status_code=400
    )

@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    log.error(f"Database error on {request.url.path}: {exc}")
    return error_response(request, 500, "Database error")

@app.exception_handler(UpstreamError)
async def upstream_exception_handler(request: Request, exc: UpstreamError):
    log.error(f"Upstream error on {request.url.path}: {exc}")
    return error_response(request, 500, str(exc))

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception(f"Unhandled error on {request.url.path}")
    return error_response(request, 500, "Internal server error" if is_webhook(request) else (str(exc) or "Internal server error"))

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("trustloop.main:app", host=settings.HOST, port=settings.PORT)
