"""
기타 장비 (디스플레이/컨트롤러/카메라) API 엔드포인트
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from ipmanager.api.deps import StoreSession, get_store, get_store_session
from ipmanager.core.entities import CamelModel, OtherDevice
from ipmanager.services.store import AllocationStore

router = APIRouter()


class OtherDeviceCreate(CamelModel):
    name: str
    display_ip: str
    controller_ip: str
    location: str
    camera_ip: Optional[str] = None
    notes: str = ""


class OtherDeviceUpdate(CamelModel):
    name: Optional[str] = None
    display_ip: Optional[str] = None
    controller_ip: Optional[str] = None
    location: Optional[str] = None
    camera_ip: Optional[str] = None
    notes: Optional[str] = None


@router.get("/others", response_model=List[OtherDevice])
async def get_other_devices(search: Optional[str] = None, store: AllocationStore = Depends(get_store)):
    return store.list_other_devices(search=search)


@router.get("/others/{other_id}", response_model=OtherDevice)
async def get_other_device(other_id: str, store: AllocationStore = Depends(get_store)):
    other = store.get_other_device(other_id)
    if not other:
        raise HTTPException(status_code=404, detail="장비를 찾을 수 없습니다")
    return other


@router.post("/others", response_model=OtherDevice, status_code=201)
async def create_other_device(payload: OtherDeviceCreate, session: StoreSession = Depends(get_store_session)):
    result = session.store.add_other_device(**payload.model_dump())
    session.commit(result)
    return session.store.get_other_device(result.id)


@router.put("/others/{other_id}", response_model=OtherDevice)
async def update_other_device(
    other_id: str,
    payload: OtherDeviceUpdate,
    session: StoreSession = Depends(get_store_session),
):
    result = session.store.update_other_device(other_id, **payload.model_dump(exclude_unset=True))
    session.commit(result)
    return session.store.get_other_device(other_id)


@router.delete("/others/{other_id}", status_code=204)
async def delete_other_device(other_id: str, session: StoreSession = Depends(get_store_session)):
    session.commit(session.store.delete_other_device(other_id))
    return None
