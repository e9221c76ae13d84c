"""
Tests for the vehicle endpoints
"""
VEHICLE = {
    "vin": "1hgcm82633a004352",
    "make": "Honda",
    "model": "Accord",
    "year": 2020,
    "color": "Blue",
    "has_airbags": True,
}


def test_create_vehicle(client, customer):
    response = client.post("/vehicles", json=VEHICLE, headers=customer["headers"])

    assert response.status_code == 201
    body = response.json()
    assert body["vin"] == "1HGCM82633A004352"
    assert body["owner_id"] == customer["user"]["id"]
    assert body["is_active"] is True
    assert body["has_airbags"] is True
    assert body["has_abs"] is False


def test_create_vehicle_requires_auth(client):
    assert client.post("/vehicles", json=VEHICLE).status_code == 401


def test_create_vehicle_duplicate_vin(client, customer, other_customer):
    client.post("/vehicles", json=VEHICLE, headers=customer["headers"])

    response = client.post("/vehicles", json=VEHICLE, headers=other_customer["headers"])

    assert response.status_code == 409
    assert response.json()["detail"] == "Vehicle with this VIN already exists"


def test_create_vehicle_invalid_vin(client, customer):
    response = client.post("/vehicles", json={**VEHICLE, "vin": "1HGCM82633O004352"}, headers=customer["headers"])

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "vin"


def test_create_vehicle_invalid_year(client, customer):
    response = client.post("/vehicles", json={**VEHICLE, "year": 1850}, headers=customer["headers"])

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "year"


def test_customer_cannot_register_for_someone_else(client, customer, other_customer):
    payload = {**VEHICLE, "owner_id": other_customer["user"]["id"]}

    response = client.post("/vehicles", json=payload, headers=customer["headers"])

    assert response.json()["owner_id"] == customer["user"]["id"]


def test_agent_registers_vehicle_for_customer(client, customer, agent):
    payload = {**VEHICLE, "owner_id": customer["user"]["id"]}

    response = client.post("/vehicles", json=payload, headers=agent["headers"])

    assert response.status_code == 201
    assert response.json()["owner_id"] == customer["user"]["id"]
    listed = client.get("/vehicles", headers=customer["headers"]).json()
    assert [v["id"] for v in listed] == [response.json()["id"]]


def test_agent_with_unknown_owner(client, agent):
    response = client.post("/vehicles", json={**VEHICLE, "owner_id": "missing"}, headers=agent["headers"])

    assert response.status_code == 400


def test_vehicles_are_private(client, api, customer, other_customer):
    vehicle = api.create_vehicle(customer["headers"])

    assert client.get(f"/vehicles/{vehicle['id']}", headers=other_customer["headers"]).status_code == 404
    assert client.get("/vehicles", headers=other_customer["headers"]).json() == []


def test_agent_sees_all_vehicles(client, api, customer, other_customer, agent):
    api.create_vehicle(customer["headers"])
    api.create_vehicle(other_customer["headers"])

    assert len(client.get("/vehicles", headers=agent["headers"]).json()) == 2


def test_update_vehicle(client, api, customer):
    vehicle = api.create_vehicle(customer["headers"])

    response = client.patch(
        f"/vehicles/{vehicle['id']}",
        json={"color": "Red", "mileage": 42000},
        headers=customer["headers"],
    )

    assert response.status_code == 200
    assert response.json()["color"] == "Red"
    assert response.json()["mileage"] == 42000
    assert response.json()["make"] == "Honda"


def test_update_vehicle_cannot_clear_required_field(client, api, customer):
    vehicle = api.create_vehicle(customer["headers"])

    response = client.patch(f"/vehicles/{vehicle['id']}", json={"make": None}, headers=customer["headers"])

    assert response.status_code == 400
    assert response.json()["detail"] == "Fields cannot be cleared: make"


def test_update_vehicle_of_other_customer(client, api, customer, other_customer):
    vehicle = api.create_vehicle(customer["headers"])

    response = client.patch(f"/vehicles/{vehicle['id']}", json={"color": "Red"}, headers=other_customer["headers"])

    assert response.status_code == 404


def test_delete_vehicle_deactivates(client, api, customer):
    vehicle = api.create_vehicle(customer["headers"])

    response = client.delete(f"/vehicles/{vehicle['id']}", headers=customer["headers"])

    assert response.status_code == 204
    assert client.get("/vehicles", headers=customer["headers"]).json() == []
    inactive = client.get("/vehicles", params={"include_inactive": True}, headers=customer["headers"]).json()
    assert inactive[0]["is_active"] is False


def test_list_vehicles_pagination(client, api, customer):
    for _ in range(3):
        api.create_vehicle(customer["headers"])

    page = client.get("/vehicles", params={"limit": 2, "offset": 0}, headers=customer["headers"]).json()
    rest = client.get("/vehicles", params={"limit": 2, "offset": 2}, headers=customer["headers"]).json()

    assert len(page) == 2
    assert len(rest) == 1
