"""Integration tests for the legacy /receipts endpoints."""

import json
import uuid
from typing import Any

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration

INFO = {
    "hoTenNguoiGui": "Nguyễn Văn A",
    "donViNguoiGui": "Phòng Kế toán",
    "hoTenNguoiNhan": "Trần Thị B",
    "donViNguoiNhan": "Phòng Hành chính",
    "lyDoNop": "Tạm ứng công tác",
    "soTien": 1500000,
    "ngayThang": "14/03/2025",
    "diaDiem": "Hà Nội",
}
DRAWN = {"type": "draw", "data": json.dumps([[{"x": 1, "y": 1}, {"x": 20, "y": 8}]])}


def _create(client: TestClient, **extra: Any) -> dict[str, Any]:
    response = client.post("/receipts", json={"info": INFO, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_receipt_anonymous(client: TestClient) -> None:
    """Test receipts can be created without auth and come back flat."""
    receipt = _create(client)

    assert receipt["id"].startswith("3DO-")
    assert receipt["status"] == "pending"
    assert receipt["info"]["hoTenNguoiGui"] == "Nguyễn Văn A"
    assert receipt["info"]["bangChu"]
    assert isinstance(receipt["createdAt"], int)
    assert receipt["signatureDataNguoiGui"] is None
    assert receipt["userId"] is None


def test_create_receipt_records_creator(client: TestClient) -> None:
    user_id = uuid.uuid4()

    response = client.post(
        "/receipts", json={"info": INFO}, headers={"Authorization": f"Bearer {user_id}"}
    )

    assert response.json()["userId"] == str(user_id)


def test_get_receipt_round_trips_info(client: TestClient) -> None:
    receipt = _create(client)

    response = client.get(f"/receipts/{receipt['id']}")

    assert response.status_code == 200
    assert response.json()["info"] == receipt["info"]


def test_receipt_is_also_a_document(client: TestClient) -> None:
    receipt = _create(client)

    document = client.get(f"/documents/{receipt['id']}").json()

    assert document["kind"] == "receipt"
    assert [s["id"] for s in document["signers"]] == ["signer-1", "signer-2"]
    assert document["signers"][0]["name"] == "Nguyễn Văn A"


def test_sign_sender_then_receiver(client: TestClient) -> None:
    receipt_id = _create(client)["id"]

    first = client.post(f"/receipts/{receipt_id}/sign", json={"signatureDataNguoiGui": DRAWN})
    assert first.status_code == 200
    assert first.json()["status"] == "partially_signed"
    assert first.json()["signatureDataNguoiGui"]["type"] == "draw"
    assert first.json()["signedAt"] is None

    second = client.post(
        f"/receipts/{receipt_id}/sign",
        json={"signatureDataNguoiNhan": {"type": "type", "data": "Trần Thị B"}},
    )
    body = second.json()
    assert body["status"] == "signed"
    assert body["signatureDataNguoiNhan"]["type"] == "type"
    assert body["signatureDataNguoiNhan"]["data"] == "Trần Thị B"
    assert isinstance(body["signedAt"], int)


def test_sign_without_signature_is_400(client: TestClient) -> None:
    receipt_id = _create(client)["id"]

    response = client.post(f"/receipts/{receipt_id}/sign", json={})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "EMPTY_SIGNATURE"


def test_required_login_receipt(client: TestClient) -> None:
    receipt_id = _create(client, signingMode=1)["id"]

    response = client.post(f"/receipts/{receipt_id}/sign", json={"signatureDataNguoiGui": DRAWN})

    assert response.status_code == 401


def test_contract_is_not_a_receipt(client: TestClient) -> None:
    created = client.post(
        "/documents",
        json={"kind": "contract", "signers": [{"role": "Bên A"}]},
        headers={"Authorization": f"Bearer {uuid.uuid4()}"},
    ).json()

    assert client.get(f"/receipts/{created['id']}").status_code == 404
    assert client.get("/receipts/3DO-NOPE00").status_code == 404
