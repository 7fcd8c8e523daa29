import logfire

from dotenv import load_dotenv

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from contextlib import asynccontextmanager

from models.helpers import AuthStatus

from routers import auth

from security.gate import FAILURE_MESSAGES
from security.helpers import get_authentication_gate

from utils.logger import configure_logging, instrument_app


# Load environment variables first
load_dotenv()

# Configure logfire BEFORE creating FastAPI app
configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logfire.info("Starting admin authentication service...")

    gate = get_authentication_gate()  # * Fail loudly in the logs if credentials are missing
    if not gate.settings.is_complete:
        logfire.error("Admin login will be refused until the configuration is completed")

    yield

    logfire.info("Admin authentication service stopped")


app = FastAPI(
    title="Admin Auth API",
    description="Single-admin authentication backend issuing short-lived bearer tokens.",
    lifespan=lifespan,
)

instrument_app(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["127.0.0.1"])
app.add_middleware(GZipMiddleware, minimum_size=500)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logfire.exception(
        f"Unhandled error on {request.method} {request.url.path}: {exc}"
    )
    error, message = FAILURE_MESSAGES[AuthStatus.SYSTEM_ERROR]
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"error": error, "message": message}},
    )


app.include_router(auth.router)


def run():
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)


if __name__ == "__main__":
    run()
