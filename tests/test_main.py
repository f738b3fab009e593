"""Tests for main.py wiring and the store table in config."""

from fastapi.testclient import TestClient


def test_health_endpoint():
    from main import app

    resp = TestClient(app).get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_inventory_routes_are_mounted():
    from main import app

    paths = {route.path for route in app.routes}
    assert "/api/stores" in paths
    assert "/api/reports/planning/status" in paths
    assert "/api/reports/planning/refresh" in paths
    assert "/api/debug/inventory" in paths


def test_store_configs_route_to_expected_regions():
    """Each store must hit the SP-API region that owns its marketplace."""
    from services.inventory_runtime import build_store_configs

    stores = build_store_configs()
    assert stores["US"].api_region == "NA"
    assert stores["CA"].api_region == "NA"
    assert stores["UK"].api_region == "EU"
    assert stores["AU"].api_region == "FE"
    assert stores["UK"].marketplace_id == "A1F83G8C2ARO7P"
    assert stores["AU"].marketplace_label == "Amazon AU"


def test_unknown_report_stores_are_ignored():
    from services.inventory_cache import InventoryCacheService
    from services.inventory_runtime import InventoryRuntime, build_store_configs

    runtime = InventoryRuntime(
        build_store_configs(),
        report_store_codes=["US", "XX"],
        cache=InventoryCacheService(),
    )
    assert runtime.report_store_codes == ["US"]
    assert runtime.scheduler.tracked_codes() == ["US"]
