def _create(client, payload):
    response = client.post("/api/transaction", json=payload)
    assert response.status_code == 201
    return response.json()


def test_list_transactions_empty(unlimited_client):
    resp = unlimited_client.get("/api/transaction")
    assert resp.status_code == 200
    assert resp.json() == []


def test_create_transaction(unlimited_client, sample_transaction):
    resp = unlimited_client.post("/api/transaction", json=sample_transaction)
    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] == 1
    assert body["amount"] == 10000
    assert body["businessName"] == "Supermarket"
    assert body["name"] == "Jane Doe"
    assert "transactionDate" in body


def test_get_transaction_by_id(unlimited_client, sample_transaction):
    created = _create(unlimited_client, sample_transaction)

    resp = unlimited_client.get(f"/api/transaction/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == created


def test_get_missing_transaction(unlimited_client):
    resp = unlimited_client.get("/api/transaction/999")
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"] == "Not Found"
    assert body["message"] == "Transaction not found with id: 999"
    assert body["path"] == "/api/transaction/999"


def test_invalid_id_is_a_validation_error(unlimited_client):
    resp = unlimited_client.get("/api/transaction/abc")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation Error"


def test_list_is_newest_first(unlimited_client, sample_transaction):
    first = _create(unlimited_client, sample_transaction)
    second = _create(unlimited_client, {**sample_transaction, "amount": 5})

    ids = [t["id"] for t in unlimited_client.get("/api/transaction").json()]
    assert ids == [second["id"], first["id"]]


def test_list_by_customer(unlimited_client, sample_transaction):
    _create(unlimited_client, sample_transaction)
    _create(unlimited_client, {**sample_transaction, "name": "John Roe"})

    resp = unlimited_client.get("/api/transaction/user/Jane Doe")
    assert resp.status_code == 200
    names = {t["name"] for t in resp.json()}
    assert names == {"Jane Doe"}


def test_update_transaction(unlimited_client, sample_transaction):
    created = _create(unlimited_client, sample_transaction)

    resp = unlimited_client.put(
        f"/api/transaction/{created['id']}",
        json={**sample_transaction, "amount": 2500, "businessName": "Pharmacy"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["amount"] == 2500
    assert body["businessName"] == "Pharmacy"
    assert body["transactionDate"] == created["transactionDate"]


def test_update_missing_transaction(unlimited_client, sample_transaction):
    resp = unlimited_client.put("/api/transaction/42", json=sample_transaction)
    assert resp.status_code == 404


def test_delete_transaction(unlimited_client, sample_transaction):
    created = _create(unlimited_client, sample_transaction)

    resp = unlimited_client.delete(f"/api/transaction/{created['id']}")
    assert resp.status_code == 204
    assert unlimited_client.get(f"/api/transaction/{created['id']}").status_code == 404


def test_delete_missing_transaction(unlimited_client):
    assert unlimited_client.delete("/api/transaction/7").status_code == 404


def test_negative_amount_rejected(unlimited_client, sample_transaction):
    resp = unlimited_client.post("/api/transaction", json={**sample_transaction, "amount": -1})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Validation Error"
    assert any(d.startswith("amount") for d in body["details"])


def test_blank_fields_rejected(unlimited_client):
    resp = unlimited_client.post("/api/transaction", json={"amount": 1, "businessName": "  ", "name": ""})
    assert resp.status_code == 400
    details = resp.json()["details"]
    assert len(details) == 2


def test_missing_fields_rejected(unlimited_client):
    resp = unlimited_client.post("/api/transaction", json={"amount": 1})
    assert resp.status_code == 400
    assert resp.json()["status"] == 400


def test_customer_limit_enforced(db_path, sample_transaction):
    from fastapi.testclient import TestClient
    from app.config import Settings
    from app.main import create_app

    settings = Settings(database_path=db_path, rate_limit_capacity=100, max_transactions_per_client=2)
    with TestClient(create_app(settings)) as test_client:
        _create(test_client, sample_transaction)
        _create(test_client, sample_transaction)

        resp = test_client.post("/api/transaction", json=sample_transaction)
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Business Rule Violation"
        assert "Jane Doe" in body["message"]


def test_unknown_route(unlimited_client):
    resp = unlimited_client.get("/nothing-here")
    assert resp.status_code == 404
    assert resp.json()["error"] == "http_error_404"


def test_health(unlimited_client):
    resp = unlimited_client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["service"] == "transactions-api"


def test_openapi_documents_remaining_header(unlimited_client):
    schema = unlimited_client.get("/openapi.json").json()
    list_response = schema["paths"]["/api/transaction"]["get"]["responses"]["200"]
    assert "X-Rate-Limit-Remaining" in list_response["headers"]
    health_response = schema["paths"]["/health"]["get"]["responses"]["200"]
    assert "headers" not in health_response
