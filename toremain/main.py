"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from toremain.api.auth import router as auth_router
from toremain.api.game_events import router as game_events_router
from toremain.api.health import router as health_router
from toremain.api.items import router as items_router
from toremain.api.market import router as market_router
from toremain.api.nft import router as nft_router
from toremain.api.profiles import router as profiles_router
from toremain.api.schemas import ErrorResponse
from toremain.config import settings
from toremain.core.exceptions import AuthenticationError, ToremainError
from toremain.core.logging import get_logger, setup_logging
from toremain.core.security import ACCESS, TokenProvider
from toremain.db.database import init_db
from toremain.services.ai import get_ai_client
from toremain.services.blockchain import get_blockchain_client

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    init_db()
    logger.info("Database tables ready.")

    logger.info("Initializing upstream clients...")
    blockchain_client = get_blockchain_client()
    ai_client = get_ai_client()
    app.state.blockchain_client = blockchain_client
    app.state.ai_client = ai_client
    logger.info(
        "Clients initialized: blockchain=%s, ai=%s",
        blockchain_client.name,
        ai_client.name,
    )

    yield

    # 종료 시 정리
    logger.info("Shutting down...")
    blockchain_client.close()
    ai_client.close()


app = FastAPI(title="ToreMain Server", lifespan=lifespan)

# 토큰 검증은 DB 없이 가능하므로 startup 전에도 사용할 수 있게 둔다
app.state.token_provider = TokenProvider(
    secret=settings.JWT_SECRET,
    access_validity=settings.JWT_ACCESS_TOKEN_VALIDITY,
    refresh_validity=settings.JWT_REFRESH_TOKEN_VALIDITY,
    algorithm=settings.JWT_ALGORITHM,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def authenticate_request(request: Request, call_next):
    """Authorization 헤더의 access token 을 확인해 request.state.username 설정.

    토큰이 없거나 유효하지 않으면 익명으로 계속 진행한다.
    보호된 라우트는 require_user 의존성이 401 을 돌려준다.
    """
    request.state.username = None
    header = request.headers.get("Authorization")
    if header and header.startswith(BEARER_PREFIX):
        token = header[len(BEARER_PREFIX):].strip()
        provider: TokenProvider = request.app.state.token_provider
        try:
            claims = provider.decode(token, expected_type=ACCESS)
            request.state.username = claims.username
        except AuthenticationError as e:
            logger.info("Rejected bearer token on %s: %s", request.url.path, e.message)
    return await call_next(request)


@app.exception_handler(ToremainError)
async def handle_domain_error(request: Request, exc: ToremainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Upstream failure on %s: %s", request.url.path, exc.message)
    content = ErrorResponse(error=exc.message, detail=exc.details or None).model_dump()
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(StaleDataError)
async def handle_stale_data(request: Request, exc: StaleDataError) -> JSONResponse:
    logger.warning("Optimistic lock conflict on %s: %s", request.url.path, exc)
    content = ErrorResponse(error="다른 요청이 먼저 데이터를 변경했습니다").model_dump()
    return JSONResponse(status_code=409, content=content)


app.include_router(health_router)
app.include_router(auth_router)
app.include_router(profiles_router)
app.include_router(items_router)
app.include_router(nft_router)
app.include_router(market_router)
app.include_router(game_events_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("toremain.main:app", host="0.0.0.0", port=8080, reload=settings.DEBUG)
