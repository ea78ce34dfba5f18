"""
VLAN 관리 API 엔드포인트
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from ipmanager.api.deps import StoreSession, get_store, get_store_session
from ipmanager.core.entities import CamelModel, Device, IPAddress, IPRange, Vlan
from ipmanager.services.store import AllocationStore

router = APIRouter()


class VlanCreate(CamelModel):
    vlan_id: int
    name: str
    description: str = ""


class VlanUpdate(CamelModel):
    vlan_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None


class VlanDetail(CamelModel):
    vlan: Vlan
    devices: List[Device]
    ip_addresses: List[IPAddress]
    ip_ranges: List[IPRange]


@router.get("/vlans", response_model=List[Vlan])
async def get_vlans(store: AllocationStore = Depends(get_store)):
    """VLAN 목록 조회 (번호 순)"""
    return store.list_vlans()


@router.get("/vlans/{vlan_id}", response_model=VlanDetail)
async def get_vlan(vlan_id: str, store: AllocationStore = Depends(get_store)):
    """VLAN 상세 (소속 장비/IP/범위 포함)"""
    detail = store.get_vlan_detail(vlan_id)
    if not detail:
        raise HTTPException(status_code=404, detail="VLAN 을 찾을 수 없습니다")
    return detail


@router.post("/vlans", response_model=Vlan, status_code=201)
async def create_vlan(vlan: VlanCreate, session: StoreSession = Depends(get_store_session)):
    """새 VLAN 생성"""
    result = session.store.add_vlan(**vlan.model_dump())
    session.commit(result)
    return session.store.get_vlan(result.id)


@router.put("/vlans/{vlan_id}", response_model=Vlan)
async def update_vlan(vlan_id: str, vlan_update: VlanUpdate, session: StoreSession = Depends(get_store_session)):
    """VLAN 정보 수정"""
    result = session.store.update_vlan(vlan_id, **vlan_update.model_dump(exclude_unset=True))
    session.commit(result)
    return session.store.get_vlan(vlan_id)


@router.delete("/vlans/{vlan_id}", status_code=204)
async def delete_vlan(vlan_id: str, session: StoreSession = Depends(get_store_session)):
    """VLAN 삭제 (참조하던 장비/IP/범위는 VLAN 없음으로 변경)"""
    session.commit(session.store.delete_vlan(vlan_id))
    return None
