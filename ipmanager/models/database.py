"""
스냅샷 저장용 데이터베이스 엔진 및 세션

기본값은 작업 디렉터리의 SQLite 파일이다. DATABASE_URL 로 PostgreSQL
(postgresql+psycopg2://...) 을 지정하면 연결 풀과 연결 재시도를 사용한다.
"""
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.exc import OperationalError
import os
import sys
import time
import logging

# 로깅 설정
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ipmanager.db")

# 서버형 DB 연결 풀 설정
SERVER_POOL_OPTIONS = {
    "pool_pre_ping": True,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
    "pool_recycle": 3600,
}


def _display_url(database_url):
    """비밀번호를 가린 URL"""
    return make_url(database_url).render_as_string(hide_password=True)


def _sqlite_engine(database_url):
    """SQLite 엔진, 파일이 들어갈 디렉터리를 미리 만든다"""
    path = make_url(database_url).database
    if path and path != ":memory:":
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

    # FastAPI 스레드 풀에서 같은 연결을 공유
    return create_engine(database_url, connect_args={"check_same_thread": False})


def _server_engine(database_url, max_retries=5, retry_delay=2):
    """연결 재시도가 포함된 서버형 DB 엔진 생성"""
    engine = create_engine(database_url, **SERVER_POOL_OPTIONS)

    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return engine
        except OperationalError as e:
            if attempt < max_retries - 1:
                logger.warning(f"데이터베이스 연결 실패 (시도 {attempt + 1}/{max_retries}): {str(e)}")
                logger.info(f"{retry_delay}초 후 재시도...")
                time.sleep(retry_delay)
            else:
                logger.error(f"데이터베이스 연결 최종 실패: {_display_url(database_url)}")
                raise


def build_engine(database_url):
    if make_url(database_url).get_backend_name() == "sqlite":
        engine = _sqlite_engine(database_url)
    else:
        engine = _server_engine(database_url)
    logger.info(f"스냅샷 저장소 연결: {_display_url(database_url)}")
    return engine


# 엔진 생성
try:
    engine = build_engine(SQLALCHEMY_DATABASE_URL)
except Exception as e:
    logger.critical(f"데이터베이스 엔진 생성 실패: {str(e)}")
    sys.exit(1)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """데이터베이스 세션 의존성"""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"데이터베이스 세션 오류: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
