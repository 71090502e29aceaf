"""DB 엔진/세션 구성.

SQLite 는 개발/테스트용이다. 외래 키 제약은 커넥션마다 PRAGMA 로 켜야 하므로
`enable_sqlite_foreign_keys` 로 엔진에 리스너를 건다 (테스트 엔진도 동일).
"""

from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from toremain.config import settings
from toremain.core.logging import get_logger
from toremain.db.models import Base

logger = get_logger(__name__)


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """커넥션이 열릴 때마다 PRAGMA foreign_keys=ON 실행"""

    @event.listens_for(target, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, **kwargs) -> Engine:
    connect_args = {"check_same_thread": False} if is_sqlite(url) else {}
    new_engine = create_engine(url, connect_args=connect_args, **kwargs)
    if is_sqlite(url):
        enable_sqlite_foreign_keys(new_engine)
    return new_engine


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(target: Engine = engine) -> None:
    """모델 테이블 생성 (이미 있으면 건너뜀)"""
    logger.info("Creating database tables on %s", target.url.render_as_string())
    Base.metadata.create_all(bind=target)


def get_db() -> Generator[Session, None, None]:
    """요청 단위 세션. FastAPI dependency 로 사용하고 요청이 끝나면 닫는다."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
