"""
IP Manager 웹 애플리케이션 메인 엔트리 포인트
"""
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.responses import HTMLResponse
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from ipmanager.api import data, devices, ips, others, ranges, vlans
from ipmanager.api.deps import get_store
from ipmanager.models.database import Base, SessionLocal, engine
from ipmanager.models import models  # noqa: F401 (테이블 등록)
from ipmanager.services.persistence import load_store
from ipmanager.services.store import AllocationStore
from ipmanager.web import routes
from ipmanager.web.routes import render_template

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """시작 시 테이블 생성 및 저장된 스냅샷 로드"""
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        load_store(app.dependency_overrides.get(get_store, get_store)(), db)
    finally:
        db.close()
    yield


# FastAPI 앱 생성
app = FastAPI(
    title="IP Manager - Device / IP / VLAN Inventory",
    description="장비, IP 주소, IP 범위, VLAN 관리 시스템",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS 설정
CORS_ORIGINS = [origin.strip() for origin in os.getenv("IPMANAGER_CORS_ORIGINS", "*").split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 정적 파일 설정
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
STATIC_DIR = os.path.join(BASE_DIR, "static")

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

# API 라우터 등록
app.include_router(devices.router, prefix="/api", tags=["devices"])
app.include_router(ips.router, prefix="/api", tags=["ips"])
app.include_router(ranges.router, prefix="/api", tags=["ranges"])
app.include_router(vlans.router, prefix="/api", tags=["vlans"])
app.include_router(others.router, prefix="/api", tags=["others"])
app.include_router(data.router, prefix="/api", tags=["data"])

# 웹 라우터 등록
app.include_router(routes.router, tags=["web"])


@app.get("/", response_class=HTMLResponse)
async def root(request: Request, store: AllocationStore = Depends(get_store)):
    """메인 페이지"""
    try:
        content = render_template("index.html", request=request, stats=store.get_stats(), vlans=store.list_vlans())
        return HTMLResponse(content=content)
    except Exception as e:
        # 템플릿 파일이 없거나 오류 발생 시 기본 응답
        logger.error(f"메인 페이지 렌더링 실패: {str(e)}")
        return HTMLResponse(
            content=f"<h1>IP Manager</h1><p>템플릿을 로드할 수 없습니다: {str(e)}</p>",
            status_code=500
        )


@app.get("/health")
async def health_check():
    """헬스 체크 엔드포인트"""
    return {"status": "healthy", "service": "ipmanager"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
