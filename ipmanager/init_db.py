"""
스냅샷 테이블 초기화 스크립트

    python -m ipmanager.init_db           # 테이블 생성
    python -m ipmanager.init_db --reset   # 저장된 스냅샷까지 삭제 후 재생성
"""
import argparse

from ipmanager.models.database import Base, SessionLocal, engine
from ipmanager.models.models import StoreSnapshot


def init_db(reset: bool = False) -> int:
    """스냅샷 테이블을 만들고 저장된 스냅샷 개수를 반환"""
    if reset:
        print("기존 스냅샷 테이블을 삭제하는 중...")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        count = db.query(StoreSnapshot).count()
    finally:
        db.close()

    print(f"데이터베이스 초기화 완료 (저장된 스냅샷 {count}개)")
    return count


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="ipmanager 스냅샷 테이블 초기화")
    parser.add_argument("--reset", action="store_true", help="저장된 스냅샷 삭제 후 재생성")
    init_db(reset=parser.parse_args().reset)
