"""Shared fixtures: fresh store per test, throwaway SQLite database, API client."""

import os
import tempfile

# 엔진은 import 시점에 만들어지므로 ipmanager import 전에 설정
_TMP_DIR = tempfile.mkdtemp(prefix="ipmanager-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"

import pytest
from fastapi.testclient import TestClient

from ipmanager.core.entities import IPStatus
from ipmanager.services.store import AllocationStore


@pytest.fixture
def store():
    return AllocationStore()


@pytest.fixture
def office_vlan(store):
    result = store.add_vlan(vlan_id=10, name="Office", description="Main office")
    assert result.success
    return result.id


@pytest.fixture
def office_range(store, office_vlan):
    result = store.add_ip_range(
        name="Office LAN", start_ip="192.168.1.1", end_ip="192.168.1.5", vlan_id=office_vlan
    )
    assert result.success
    return result.id


@pytest.fixture
def db_session():
    from ipmanager.models.database import Base, SessionLocal, engine
    from ipmanager.models import models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(store):
    from ipmanager.api.deps import get_store
    from ipmanager.main import app
    from ipmanager.models.database import Base, engine

    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def check_invariants():
    """장비 <-> IP 할당 관계가 양방향으로 일치하는지 검사"""

    def _check(store):
        devices = store.list_devices()
        for ip in store.list_ips():
            if ip.device_id:
                holders = [d for d in devices if d.assigned_ip == ip.address]
                assert len(holders) == 1, ip.address
                assert holders[0].id == ip.device_id
                assert ip.status == IPStatus.ASSIGNED
                assert ip.assigned_at is not None
            else:
                assert ip.status != IPStatus.ASSIGNED, ip.address
                assert ip.assigned_at is None
        for device in devices:
            if device.assigned_ip:
                ip = store.get_ip_by_address(device.assigned_ip)
                assert ip is not None, device.assigned_ip
                assert ip.device_id == device.id

    return _check
