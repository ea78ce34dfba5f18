"""
IP 주소 관리 API 엔드포인트
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from ipmanager.api.deps import StoreSession, get_store, get_store_session
from ipmanager.core.entities import CamelModel, IPAddress, IPStatus
from ipmanager.services.store import AllocationStore

router = APIRouter()


class ManualIpCreate(CamelModel):
    address: str
    vlan_id: Optional[str] = None


class ManualIpResponse(CamelModel):
    success: bool
    ip_id: str


class StatusUpdate(CamelModel):
    status: IPStatus


class AssignRequest(CamelModel):
    device_id: str


@router.get("/ips", response_model=List[IPAddress])
async def get_ips(
    status: Optional[IPStatus] = None,
    range_id: Optional[str] = Query(None, alias="rangeId"),
    vlan_id: Optional[str] = Query(None, alias="vlanId"),
    search: Optional[str] = None,
    store: AllocationStore = Depends(get_store),
):
    """IP 목록 조회 (주소 순 정렬)"""
    return store.list_ips(status=status, range_id=range_id, vlan_id=vlan_id, search=search)


@router.get("/ips/available", response_model=List[IPAddress])
async def get_available_ips(store: AllocationStore = Depends(get_store)):
    """할당 가능한 IP 목록"""
    return store.get_available_ips()


@router.get("/ips/{ip_id}", response_model=IPAddress)
async def get_ip(ip_id: str, store: AllocationStore = Depends(get_store)):
    ip = store.get_ip(ip_id)
    if not ip:
        raise HTTPException(status_code=404, detail="IP 주소를 찾을 수 없습니다")
    return ip


@router.post("/ips", response_model=ManualIpResponse, status_code=201)
async def create_manual_ip(payload: ManualIpCreate, session: StoreSession = Depends(get_store_session)):
    """수동 IP 등록 (이미 있으면 기존 ID 반환)"""
    result = session.store.add_manual_ip(payload.address, payload.vlan_id)
    session.commit(result)
    return {"success": True, "ip_id": result.ip_id}


@router.patch("/ips/{ip_id}/status", response_model=IPAddress)
async def update_ip_status(
    ip_id: str,
    payload: StatusUpdate,
    session: StoreSession = Depends(get_store_session),
):
    """IP 상태 변경 (available / reserved)"""
    session.commit(session.store.update_ip_status(ip_id, payload.status))
    return session.store.get_ip(ip_id)


@router.post("/ips/{ip_id}/assign", response_model=IPAddress)
async def assign_ip(ip_id: str, payload: AssignRequest, session: StoreSession = Depends(get_store_session)):
    """IP 를 장비에 할당"""
    session.commit(session.store.assign_ip_to_device(ip_id, payload.device_id))
    return session.store.get_ip(ip_id)


@router.post("/ips/{ip_id}/unassign", response_model=IPAddress)
async def unassign_ip(ip_id: str, session: StoreSession = Depends(get_store_session)):
    """IP 할당 해제"""
    session.commit(session.store.unassign_ip(ip_id))
    return session.store.get_ip(ip_id)
