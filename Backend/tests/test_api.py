"""
HTTP-level tests: routing, authorization and error responses.
"""
import pytest
from beanie import PydanticObjectId
from httpx import ASGITransport, AsyncClient

from royaldrive.main import app
from royaldrive.services.sales_transaction_service import get_sales_transaction_service
from royaldrive.services.vehicle_service import get_vehicle_service

from tokens import create_access_token


def bearer(role: str, permissions=None) -> dict:
    token = create_access_token("user-1", role, permissions=permissions)
    return {"Authorization": f"Bearer {token}"}


ADMIN = bearer("admin")
SALESPERSON = bearer("salesperson")
SALES_MANAGER = bearer("salesperson", permissions=["vehicles:view:internal"])


@pytest.fixture
async def client(vehicle_service, sales_service):
    app.dependency_overrides[get_vehicle_service] = lambda: vehicle_service
    app.dependency_overrides[get_sales_transaction_service] = lambda: sales_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def vehicle_payload(vehicle_data):
    def build(**overrides) -> dict:
        return vehicle_data(**overrides).model_dump(mode="json", by_alias=True, exclude_none=True)
    return build


@pytest.fixture
async def created(client, vehicle_payload):
    response = await client.post("/api/v1/vehicles", json=vehicle_payload(), headers=ADMIN)
    assert response.status_code == 201
    return response.json()


# Basics

@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


# Vehicles

@pytest.mark.asyncio
async def test_create_vehicle_requires_permission(client, vehicle_payload):
    anonymous = await client.post("/api/v1/vehicles", json=vehicle_payload())
    forbidden = await client.post("/api/v1/vehicles", json=vehicle_payload(), headers=SALESPERSON)
    bad_token = await client.post(
        "/api/v1/vehicles", json=vehicle_payload(), headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert anonymous.status_code == 401
    assert forbidden.status_code == 403
    assert bad_token.status_code == 401


@pytest.mark.asyncio
async def test_create_vehicle(created):
    assert created["internal"]["stockNumber"] == "RD-2025-000001"
    assert created["marketing"]["slug"] == "2021-toyota-camry-rd-2025-000001"


@pytest.mark.asyncio
async def test_slug_view_hides_internal_block(client, created):
    storefront = await client.get(f"/api/v1/public/vehicles/{created['marketing']['slug']}")
    internal = await client.get(f"/api/v1/vehicles/{created['id']}", headers=ADMIN)
    # Even a privileged caller gets the public view on the storefront path
    storefront_as_admin = await client.get(
        f"/api/v1/public/vehicles/{created['marketing']['slug']}", headers=ADMIN
    )

    assert storefront.status_code == 200
    assert "internal" not in storefront.json()
    assert "internal" not in storefront_as_admin.json()
    assert internal.json()["internal"]["stockNumber"] == "RD-2025-000001"


@pytest.mark.asyncio
async def test_vehicle_by_id_follows_caller_permissions(client, created):
    url = f"/api/v1/vehicles/{created['id']}"

    anonymous = (await client.get(url)).json()["internal"]
    salesperson = (await client.get(url, headers=SALESPERSON)).json()["internal"]
    manager = (await client.get(url, headers=SALES_MANAGER)).json()["internal"]

    assert "notes" not in anonymous
    assert "notes" not in salesperson
    assert salesperson["acquisitionCost"] == 19000
    assert manager["notes"] == "Trade-in, rear bumper scuff"


@pytest.mark.asyncio
async def test_unknown_vehicle_is_404(client):
    response = await client.get(f"/api/v1/vehicles/{PydanticObjectId()}")
    body = response.json()

    assert response.status_code == 404
    assert body["detail"] == "NotFoundError"
    assert "not found" in body["message"]
    assert body["path"].endswith(response.request.url.path)


@pytest.mark.asyncio
async def test_duplicate_vin_is_409(client, vehicle_payload):
    payload = vehicle_payload(vin="1HGCM82633A004352")
    first = await client.post("/api/v1/vehicles", json=payload, headers=ADMIN)
    second = await client.post("/api/v1/vehicles", json=payload, headers=ADMIN)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["field"] == "vin"
    assert second.json()["detail"] == "ConflictError"


@pytest.mark.asyncio
async def test_invalid_vin_is_422(client, vehicle_payload):
    payload = vehicle_payload()
    payload["vin"] = "IOQ123"
    response = await client.post("/api/v1/vehicles", json=payload, headers=ADMIN)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_vehicles_query_params(client, vehicle_payload):
    for year, price in ((2019, 15000), (2022, 31000)):
        payload = vehicle_payload(year=year, pricing={"listPrice": price})
        assert (await client.post("/api/v1/vehicles", json=payload, headers=ADMIN)).status_code == 201

    response = await client.get("/api/v1/vehicles", params={"minPrice": 20000, "sort": "-price"})
    body = response.json()

    assert response.status_code == 200
    assert [v["year"] for v in body["items"]] == [2022]
    assert body["pagination"]["total"] == 1
    assert "notes" not in body["items"][0]["internal"]


@pytest.mark.asyncio
async def test_update_and_status_routes(client, created, lookups):
    url = f"/api/v1/vehicles/{created['id']}"

    updated = await client.put(url, json={"year": 2022}, headers=ADMIN)
    assert updated.status_code == 200
    assert updated.json()["marketing"]["slug"] == "2022-toyota-camry-rd-2025-000001"

    moved = await client.patch(f"{url}/status", json={"status": str(lookups.pending.id)}, headers=ADMIN)
    assert moved.json()["status"]["name"] == "Pending"

    deleted = await client.delete(url, headers=ADMIN)
    assert deleted.json() == {"message": "Vehicle deleted", "id": created["id"]}
    assert (await client.get(url, headers=ADMIN)).status_code == 404


@pytest.mark.asyncio
async def test_null_for_required_field_is_not_a_server_error(client, created):
    url = f"/api/v1/vehicles/{created['id']}"
    response = await client.put(
        url,
        json={"pricing": None, "marketing": {"description": None}, "trim": None},
        headers=ADMIN,
    )

    assert response.status_code == 200
    assert response.json()["pricing"]["listPrice"] == created["pricing"]["listPrice"]
    assert response.json()["marketing"]["description"] == created["marketing"]["description"]


# Sales

@pytest.mark.asyncio
async def test_sales_require_permission(client):
    assert (await client.get("/api/v1/sales")).status_code == 401
    assert (await client.get("/api/v1/sales", headers=SALESPERSON)).status_code == 403


@pytest.mark.asyncio
async def test_sale_lifecycle(client, created, lookups):
    response = await client.post(
        "/api/v1/sales",
        json={
            "vehicle": created["id"],
            "customerName": "Jane Doe",
            "salePrice": 20000,
            "discount": 0,
            "taxRate": 0.13,
        },
        headers=ADMIN,
    )
    sale = response.json()
    assert response.status_code == 201
    assert sale["status"] == "pending"
    assert sale["taxAmount"] == 2600.0
    assert sale["totalPrice"] == 22600.0

    completed = await client.post(f"/api/v1/sales/{sale['id']}/complete", headers=ADMIN)
    assert completed.json()["status"] == "completed"
    assert completed.json()["vehicleSync"] == "synced"

    vehicle = (await client.get(f"/api/v1/vehicles/{created['id']}", headers=ADMIN)).json()
    assert vehicle["status"]["id"] == str(lookups.sold.id)
    assert vehicle["internal"]["actualSalePrice"] == 20000

    cancelled = await client.post(f"/api/v1/sales/{sale['id']}/cancel", headers=ADMIN)
    assert cancelled.status_code == 400
    assert cancelled.json()["detail"] == "InvalidTransitionError"

    deleted = await client.delete(f"/api/v1/sales/{sale['id']}", headers=ADMIN)
    assert deleted.status_code == 400

    summary = (await client.get("/api/v1/sales/summary", headers=ADMIN)).json()
    assert summary == [
        {
            "status": "completed",
            "count": 1,
            "totalRevenue": 22600.0,
            "totalGross": 20000.0,
            "totalMargin": 0.0,
        }
    ]


@pytest.mark.asyncio
async def test_sale_for_unknown_vehicle_is_404(client):
    response = await client.post(
        "/api/v1/sales",
        json={"vehicle": str(PydanticObjectId()), "customerName": "Jane Doe", "salePrice": 100},
        headers=ADMIN,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_drift_and_reconcile_routes(client, created, lookups_without_sold):
    sale = (await client.post(
        "/api/v1/sales",
        json={"vehicle": created["id"], "customerName": "Jane Doe", "salePrice": 20000},
        headers=ADMIN,
    )).json()
    await client.post(f"/api/v1/sales/{sale['id']}/complete", headers=ADMIN)

    drift = (await client.get("/api/v1/sales/drift", headers=ADMIN)).json()
    assert [s["id"] for s in drift] == [sale["id"]]
    assert drift[0]["vehicleSync"] == "skipped"

    result = (await client.post("/api/v1/sales/reconcile", headers=ADMIN)).json()
    assert result == {"checked": 1, "synced": 0, "skipped": 1, "failed": 0}
