"""
장비 관리 API 엔드포인트
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from ipmanager.api.deps import StoreSession, get_store, get_store_session
from ipmanager.core.entities import CamelModel, Device, DeviceType
from ipmanager.services.store import AllocationStore

router = APIRouter()


# Pydantic 모델
class DeviceCreate(CamelModel):
    name: str
    location: str
    type: DeviceType = DeviceType.OTHER
    vlan_id: Optional[str] = None
    mac_address: Optional[str] = None
    assigned_ip: Optional[str] = None
    switch_ip: Optional[str] = None
    notes: str = ""


class DeviceUpdate(CamelModel):
    name: Optional[str] = None
    location: Optional[str] = None
    type: Optional[DeviceType] = None
    vlan_id: Optional[str] = None
    mac_address: Optional[str] = None
    assigned_ip: Optional[str] = None
    switch_ip: Optional[str] = None
    notes: Optional[str] = None


@router.get("/devices", response_model=List[Device])
async def get_devices(
    search: Optional[str] = None,
    vlan_id: Optional[str] = Query(None, alias="vlanId"),
    device_type: Optional[DeviceType] = Query(None, alias="type"),
    store: AllocationStore = Depends(get_store),
):
    """장비 목록 조회"""
    return store.list_devices(search=search, vlan_id=vlan_id, device_type=device_type)


@router.get("/devices/{device_id}", response_model=Device)
async def get_device(device_id: str, store: AllocationStore = Depends(get_store)):
    """특정 장비 조회"""
    device = store.get_device(device_id)
    if not device:
        raise HTTPException(status_code=404, detail="장비를 찾을 수 없습니다")
    return device


@router.post("/devices", response_model=Device, status_code=201)
async def create_device(device: DeviceCreate, session: StoreSession = Depends(get_store_session)):
    """새 장비 생성"""
    result = session.store.add_device(**device.model_dump())
    session.commit(result)
    return session.store.get_device(result.id)


@router.put("/devices/{device_id}", response_model=Device)
async def update_device(
    device_id: str,
    device_update: DeviceUpdate,
    session: StoreSession = Depends(get_store_session),
):
    """장비 정보 수정 (assignedIp 를 null 로 보내면 할당 해제)"""
    update_data = device_update.model_dump(exclude_unset=True)
    result = session.store.update_device(device_id, **update_data)
    session.commit(result)
    return session.store.get_device(device_id)


@router.delete("/devices/{device_id}", status_code=204)
async def delete_device(device_id: str, session: StoreSession = Depends(get_store_session)):
    """장비 삭제"""
    session.commit(session.store.delete_device(device_id))
    return None
