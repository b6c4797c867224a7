import uuid

from fastapi.testclient import TestClient
from sqlmodel import Session

from app.models.gadget import Gadget, GadgetStatus
from app.models.user import User


def test_gadget_routes_require_auth(client: TestClient):
    response = client.get("/api/v1/gadgets/")
    assert response.status_code == 401


def test_create_gadget(client: TestClient, auth_headers: dict, test_user: User):
    """Test creating a gadget with a generated codename."""
    response = client.post("/api/v1/gadgets/", headers=auth_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Gadget created successfully."
    gadget = data["gadget"]
    assert gadget["status"] == "Available"
    assert gadget["owner_id"] == test_user.id
    assert len(gadget["name"].split(" ")) == 2
    uuid.UUID(gadget["id"])


def test_created_gadget_names_are_unique(client: TestClient, auth_headers: dict):
    names = {
        client.post("/api/v1/gadgets/", headers=auth_headers).json()["gadget"]["name"]
        for _ in range(15)
    }
    assert len(names) == 15


def test_list_gadgets_with_probability(client: TestClient, auth_headers: dict, gadget: Gadget):
    response = client.get("/api/v1/gadgets/", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "All gadgets fetched successfully."
    assert data["count"] == 1
    listed = data["gadgets"][0]
    assert listed["name"] == gadget.name
    assert listed["success_probability"].endswith("%")
    assert 1 <= int(listed["success_probability"][:-1]) <= 100


def test_list_gadgets_filtered_by_status(client: TestClient, auth_headers: dict, session: Session, gadget: Gadget):
    session.add(Gadget(name="Iron Heron", status=GadgetStatus.DEPLOYED))
    session.commit()

    response = client.get("/api/v1/gadgets/?status=Deployed", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Gadgets with status 'Deployed' fetched successfully."
    assert [g["name"] for g in data["gadgets"]] == ["Iron Heron"]


def test_list_gadgets_invalid_status(client: TestClient, auth_headers: dict):
    response = client.get("/api/v1/gadgets/?status=Exploded", headers=auth_headers)
    assert response.status_code == 422


def test_update_gadget_name_and_status(client: TestClient, auth_headers: dict, gadget: Gadget):
    response = client.patch(
        f"/api/v1/gadgets/{gadget.id}",
        headers=auth_headers,
        json={"name": "Quiet Lynx", "status": "Deployed"},
    )

    assert response.status_code == 200
    data = response.json()["gadget"]
    assert data["name"] == "Quiet Lynx"
    assert data["status"] == "Deployed"
    assert data["updated_at"] is not None


def test_update_gadget_decommission_timestamps(client: TestClient, auth_headers: dict, gadget: Gadget):
    response = client.patch(
        f"/api/v1/gadgets/{gadget.id}", headers=auth_headers, json={"status": "Decommissioned"})
    assert response.json()["gadget"]["decommissioned_at"] is not None

    response = client.patch(
        f"/api/v1/gadgets/{gadget.id}", headers=auth_headers, json={"status": "Available"})
    assert response.json()["gadget"]["decommissioned_at"] is None


def test_update_gadget_requires_a_field(client: TestClient, auth_headers: dict, gadget: Gadget):
    response = client.patch(f"/api/v1/gadgets/{gadget.id}", headers=auth_headers, json={})
    assert response.status_code == 422
    assert "at least one field" in response.json()["detail"]


def test_update_gadget_duplicate_name(client: TestClient, auth_headers: dict, session: Session, gadget: Gadget):
    session.add(Gadget(name="Wild Cobra"))
    session.commit()

    response = client.patch(
        f"/api/v1/gadgets/{gadget.id}", headers=auth_headers, json={"name": "Wild Cobra"})

    assert response.status_code == 409
    assert response.json()["detail"] == "Gadget name must be unique."


def test_update_gadget_not_found(client: TestClient, auth_headers: dict):
    response = client.patch(
        f"/api/v1/gadgets/{uuid.uuid4()}", headers=auth_headers, json={"name": "Bold Owl"})
    assert response.status_code == 404


def test_update_cannot_destroy(client: TestClient, auth_headers: dict, gadget: Gadget):
    response = client.patch(
        f"/api/v1/gadgets/{gadget.id}", headers=auth_headers, json={"status": "Destroyed"})

    assert response.status_code == 400
    assert "self-destruct" in response.json()["detail"]


def test_update_destroyed_gadget(client: TestClient, auth_headers: dict, session: Session, gadget: Gadget):
    gadget.status = GadgetStatus.DESTROYED
    session.add(gadget)
    session.commit()

    response = client.patch(
        f"/api/v1/gadgets/{gadget.id}", headers=auth_headers, json={"name": "Bold Owl"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Gadget is destroyed! It can't be updated."


def test_decommission_gadget(client: TestClient, auth_headers: dict, gadget: Gadget):
    response = client.delete(f"/api/v1/gadgets/{gadget.id}", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Gadget decommissioned successfully."
    assert data["gadget"]["status"] == "Decommissioned"
    assert data["gadget"]["decommissioned_at"] is not None

    response = client.delete(f"/api/v1/gadgets/{gadget.id}", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Gadget is already decommissioned."


def test_decommission_missing_gadget(client: TestClient, auth_headers: dict):
    response = client.delete(f"/api/v1/gadgets/{uuid.uuid4()}", headers=auth_headers)
    assert response.status_code == 404


def test_gadget_history(client: TestClient, auth_headers: dict, gadget: Gadget):
    client.patch(f"/api/v1/gadgets/{gadget.id}", headers=auth_headers, json={"status": "Deployed"})
    client.delete(f"/api/v1/gadgets/{gadget.id}", headers=auth_headers)

    response = client.get(f"/api/v1/gadgets/{gadget.id}/history", headers=auth_headers)

    assert response.status_code == 200
    actions = [entry["action"] for entry in response.json()]
    assert actions == ["gadget_decommissioned", "gadget_updated"]
