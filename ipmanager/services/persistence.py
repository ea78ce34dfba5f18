"""
저장소 상태 저장/로드

스냅샷 이름마다 JSON 문서 하나로 보관한다:
{"state": {devices, ipAddresses, ipRanges, vlans, otherDevices}, "version": N}
"""
from datetime import datetime
from typing import Any
import json
import logging
import os
import re

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ipmanager.models.models import StoreSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_NAME = os.getenv("IPMANAGER_SNAPSHOT_NAME", "ip-manager-storage-v4")
SNAPSHOT_VERSION = 4

DEFAULT_STATE = {
    "devices": [],
    "ipAddresses": [],
    "ipRanges": [],
    "vlans": [],
    "otherDevices": [],
}

# ISO-8601 타임스탬프 전체 일치
_ISO_DATETIME = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:?\d{2})?$"
)


def _encode(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_state(state: dict, version: int = SNAPSHOT_VERSION) -> str:
    """상태를 JSON 문자열로 직렬화 (datetime 은 ISO-8601 문자열)"""
    return json.dumps({"state": state, "version": version}, default=_encode)


def revive_dates(obj: Any) -> Any:
    """구조 전체를 재귀적으로 돌며 ISO-8601 문자열을 datetime 으로 변환"""
    if isinstance(obj, dict):
        return {key: revive_dates(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [revive_dates(value) for value in obj]
    if isinstance(obj, str) and _ISO_DATETIME.match(obj):
        try:
            return datetime.fromisoformat(obj.replace("Z", "+00:00"))
        except ValueError:
            return obj
    return obj


def deserialize_state(payload: str) -> dict:
    """JSON 문자열을 상태 dict 로 복원

    버전이 다르면 저장된 상태를 그대로 기본값 위에 병합한다.
    형식이 잘못된 경우 ValueError 발생.
    """
    document = json.loads(payload)
    if not isinstance(document, dict) or not isinstance(document.get("state"), dict):
        raise ValueError("Snapshot has no state object")

    version = document.get("version")
    if version != SNAPSHOT_VERSION:
        logger.warning(f"스냅샷 버전 불일치 (저장됨: {version}, 현재: {SNAPSHOT_VERSION}), 기본값과 병합")

    state = dict(DEFAULT_STATE)
    state.update(revive_dates(document["state"]))
    return state


def load_store(store, db: Session, name: str = SNAPSHOT_NAME) -> bool:
    """저장된 스냅샷을 저장소로 로드

    스냅샷이 없거나 손상된 경우 빈 상태로 시작하며 False 를 반환한다.
    """
    snapshot = db.query(StoreSnapshot).filter(StoreSnapshot.name == name).first()
    if not snapshot:
        logger.info(f"저장된 스냅샷 없음: {name}")
        store.load_snapshot(DEFAULT_STATE)
        return False

    try:
        store.load_snapshot(deserialize_state(snapshot.payload))
    except (ValueError, TypeError, ValidationError) as e:
        logger.warning(f"스냅샷 로드 실패, 빈 상태로 시작: {str(e)}")
        store.load_snapshot(DEFAULT_STATE)
        return False
    return True


def save_store(store, db: Session, name: str = SNAPSHOT_NAME):
    """저장소 전체 상태를 스냅샷으로 저장"""
    payload = serialize_state(store.snapshot())
    try:
        snapshot = db.query(StoreSnapshot).filter(StoreSnapshot.name == name).first()
        if snapshot:
            snapshot.payload = payload
            snapshot.version = SNAPSHOT_VERSION
        else:
            db.add(StoreSnapshot(name=name, version=SNAPSHOT_VERSION, payload=payload))
        db.commit()
    except SQLAlchemyError as e:
        logger.error(f"스냅샷 저장 실패: {str(e)}")
        db.rollback()
        raise
