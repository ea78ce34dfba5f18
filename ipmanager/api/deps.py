"""
API 공통 의존성 및 헬퍼
"""
from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from ipmanager.core.entities import ErrorKind, OperationResult
from ipmanager.models.database import get_db
from ipmanager.services.persistence import save_store
from ipmanager.services.store import AllocationStore

# 애플리케이션 전체에서 공유하는 저장소 (테스트에서는 dependency_overrides 로 교체)
_store = AllocationStore()


def get_store() -> AllocationStore:
    """저장소 의존성"""
    return _store


def raise_for_result(result: OperationResult):
    """실패 결과를 HTTP 오류로 변환"""
    if result.success:
        return
    status_code = 404 if result.kind == ErrorKind.NOT_FOUND else 400
    raise HTTPException(status_code=status_code, detail=result.error)


class StoreSession:
    """요청 단위로 저장소와 DB 세션을 묶어 변경 후 스냅샷 저장"""

    def __init__(self, store: AllocationStore, db: Session):
        self.store = store
        self.db = db

    def commit(self, result: OperationResult = None):
        """성공한 변경이면 스냅샷 저장, 실패면 HTTP 오류"""
        if result is not None:
            raise_for_result(result)
        save_store(self.store, self.db)


def get_store_session(
    store: AllocationStore = Depends(get_store),
    db: Session = Depends(get_db),
) -> StoreSession:
    return StoreSession(store, db)
