"""
IP 범위 관리 API 엔드포인트
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from ipmanager.api.deps import StoreSession, get_store, get_store_session
from ipmanager.core.entities import CamelModel, IPAddress, IPRange, IPStatus
from ipmanager.services.store import AllocationStore

router = APIRouter()


class RangeCreate(CamelModel):
    name: str
    start_ip: Optional[str] = None
    end_ip: Optional[str] = None
    cidr: Optional[str] = None
    vlan_id: Optional[str] = None


class RangeCreateResponse(CamelModel):
    success: bool
    id: str
    count: int
    truncated: bool


@router.get("/ranges", response_model=List[IPRange])
async def get_ranges(store: AllocationStore = Depends(get_store)):
    """IP 범위 목록 조회"""
    return store.list_ranges()


@router.get("/ranges/{range_id}", response_model=IPRange)
async def get_range(range_id: str, store: AllocationStore = Depends(get_store)):
    ip_range = store.get_range(range_id)
    if not ip_range:
        raise HTTPException(status_code=404, detail="IP 범위를 찾을 수 없습니다")
    return ip_range


@router.get("/ranges/{range_id}/ips", response_model=List[IPAddress])
async def get_range_ips(range_id: str, store: AllocationStore = Depends(get_store)):
    if not store.get_range(range_id):
        raise HTTPException(status_code=404, detail="IP 범위를 찾을 수 없습니다")
    return store.get_ips_by_range(range_id)


@router.get("/ranges/{range_id}/stats")
async def get_range_stats(range_id: str, store: AllocationStore = Depends(get_store)):
    """범위 사용률 통계"""
    ip_range = store.get_range(range_id)
    if not ip_range:
        raise HTTPException(status_code=404, detail="IP 범위를 찾을 수 없습니다")

    ips = store.get_ips_by_range(range_id)
    total_ips = len(ips)
    assigned_ips = sum(1 for ip in ips if ip.status == IPStatus.ASSIGNED)
    reserved_ips = sum(1 for ip in ips if ip.status == IPStatus.RESERVED)

    return {
        "range_id": range_id,
        "name": ip_range.name,
        "cidr": ip_range.cidr,
        "total_ips": total_ips,
        "assigned_ips": assigned_ips,
        "reserved_ips": reserved_ips,
        "available_ips": total_ips - assigned_ips - reserved_ips,
        "utilization_percent": round((assigned_ips / total_ips * 100), 2) if total_ips > 0 else 0
    }


@router.post("/ranges", response_model=RangeCreateResponse, status_code=201)
async def create_range(payload: RangeCreate, session: StoreSession = Depends(get_store_session)):
    """새 IP 범위 생성 (시작/끝 IP 또는 CIDR)

    최대 개수를 넘는 범위는 앞부분만 생성되며 truncated 로 알린다.
    """
    result = session.store.add_ip_range(**payload.model_dump())
    session.commit(result)
    return {"success": True, "id": result.id, "count": result.count, "truncated": result.truncated}


@router.delete("/ranges/{range_id}", status_code=204)
async def delete_range(range_id: str, session: StoreSession = Depends(get_store_session)):
    """IP 범위 및 소속 IP 삭제"""
    session.commit(session.store.delete_ip_range(range_id))
    return None
