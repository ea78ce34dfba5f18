"""
통계 / 백업 / 복원 / 가져오기 / 내보내기 API 엔드포인트
"""
from datetime import datetime
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse, Response
from typing import Any, Dict, Optional
import logging

from ipmanager.api.deps import StoreSession, get_store, get_store_session
from ipmanager.services.backup import build_backup, restore_backup
from ipmanager.services.bulk_import import import_other_devices, import_parsed, parse_file, parse_other_file
from ipmanager.services.export import device_table, ip_table, other_device_table, to_csv, to_xlsx
from ipmanager.services.store import AllocationStore

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_TABLES = {
    "devices": (device_table, "Devices"),
    "ips": (ip_table, "IP Addresses"),
    "others": (other_device_table, "Others"),
}


@router.get("/data/stats")
async def get_stats(store: AllocationStore = Depends(get_store)):
    """대시보드 통계"""
    return store.get_stats()


@router.get("/data/backup")
async def download_backup(store: AllocationStore = Depends(get_store)):
    """JSON 백업 다운로드"""
    filename = f"ip-manager-backup-{datetime.now().strftime('%Y-%m-%d')}.json"
    return JSONResponse(
        content=build_backup(store),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/data/restore")
async def upload_restore(document: Dict[str, Any], session: StoreSession = Depends(get_store_session)):
    """백업 복원 (기존 데이터는 모두 교체)"""
    result = restore_backup(session.store, document)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    session.commit()
    return {
        "success": True,
        "vlans": result.vlans,
        "ranges": result.ranges,
        "devices": result.devices,
        "reserved": result.reserved,
        "errors": result.errors,
    }


@router.post("/data/import")
async def import_devices(
    file: UploadFile = File(...),
    vlan_id: Optional[str] = Form(None, alias="vlanId"),
    session: StoreSession = Depends(get_store_session),
):
    """엑셀/CSV 장비 목록 가져오기"""
    contents = await file.read()
    parsed = parse_file(contents, file.filename or "")
    if not parsed.success:
        raise HTTPException(status_code=400, detail=parsed.error)

    result = import_parsed(session.store, parsed, vlan_id=vlan_id or None)
    if not result.success:
        raise HTTPException(status_code=404, detail="; ".join(result.errors))
    session.commit()
    return {
        "success": True,
        "imported": result.imported,
        "skipped": result.skipped,
        "errors": result.errors,
    }


@router.post("/data/import/others")
async def import_other_device_list(
    file: UploadFile = File(...),
    session: StoreSession = Depends(get_store_session),
):
    """엑셀/CSV 기타 장비 목록 가져오기"""
    contents = await file.read()
    parsed = parse_other_file(contents, file.filename or "")
    if not parsed.success:
        raise HTTPException(status_code=400, detail=parsed.error)

    result = import_other_devices(session.store, parsed)
    session.commit()
    return {
        "success": True,
        "imported": result.imported,
        "skipped": result.skipped,
        "errors": result.errors,
    }


@router.get("/data/export/{table}")
async def export_table(
    table: str,
    fmt: str = Query("csv", alias="format"),
    store: AllocationStore = Depends(get_store),
):
    """장비/IP 목록 CSV 또는 XLSX 내보내기"""
    if table not in EXPORT_TABLES or fmt not in ("csv", "xlsx"):
        raise HTTPException(status_code=404, detail="지원하지 않는 내보내기 형식입니다")

    build, title = EXPORT_TABLES[table]
    headers, rows = build(store)
    filename = f"{table}-{datetime.now().strftime('%Y-%m-%d')}.{fmt}"
    disposition = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if fmt == "csv":
        return Response(content=to_csv(headers, rows), media_type="text/csv; charset=utf-8", headers=disposition)
    return Response(content=to_xlsx(headers, rows, title=title), media_type=XLSX_MEDIA_TYPE, headers=disposition)


@router.post("/data/clear")
async def clear_data(session: StoreSession = Depends(get_store_session)):
    """장비/IP/범위/VLAN 전체 삭제"""
    session.store.clear_all_data()
    session.commit()
    logger.warning("사용자 요청으로 전체 데이터 삭제")
    return {"success": True}
