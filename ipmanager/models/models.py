"""
데이터베이스 모델 정의
"""
from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from ipmanager.models.database import Base


class StoreSnapshot(Base):
    """저장소 전체 상태를 JSON 문서 하나로 보관"""
    __tablename__ = "store_snapshots"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    version = Column(Integer, nullable=False, default=1)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<StoreSnapshot(name='{self.name}', version={self.version})>"
