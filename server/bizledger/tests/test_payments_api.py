from datetime import date

from sqlalchemy.exc import OperationalError

import bizledger.routers.payments as payments_router
from bizledger.models import Payment

from factories import build_client, create_loan, create_purchase, create_sale, create_user


def _seed_sale(SessionLocal, total=10000):
    with SessionLocal() as db:
        create_user(db)
        return create_sale(db, total).id


def _pay(client, sale_id, amount, method="CASH"):
    return client.post(
        f"/api/sales/{sale_id}/payment",
        json={"amountPaid": amount, "paymentMethod": method, "paymentDate": "2025-03-10T00:00:00.000Z"},
    )


def test_record_and_edit_payment():
    client, SessionLocal = build_client()
    sale_id = _seed_sale(SessionLocal)

    response = _pay(client, sale_id, 4000)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Payment recorded successfully"
    assert body["entityType"] == "sale"
    assert body["entity"]["amountPaid"] == 4000
    assert body["entity"]["balance"] == 6000
    assert body["entity"]["status"] == "PARTIALLY_PAID"
    assert body["payment"]["paymentDate"] == "2025-03-10"
    payment_id = body["payment"]["id"]

    response = client.patch(
        f"/api/payments/{payment_id}",
        json={"amountPaid": 10000, "paymentMethod": "BANK_TRANSFER", "paymentDate": "2025-03-11", "reference": "TRF-1"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Payment updated successfully"
    assert body["entity"]["status"] == "PAID"
    assert body["entity"]["balance"] == 0
    assert body["payment"]["reference"] == "TRF-1"
    assert body["payment"]["paymentMethod"] == "BANK_TRANSFER"


def test_overpayment_is_rejected_with_maximum():
    client, SessionLocal = build_client()
    sale_id = _seed_sale(SessionLocal)
    first = _pay(client, sale_id, 4000).json()["payment"]["id"]
    _pay(client, sale_id, 3000)

    response = client.patch(
        f"/api/payments/{first}",
        json={"amountPaid": 7000.01, "paymentMethod": "CASH", "paymentDate": "2025-03-10"},
    )
    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "Payment amount cannot exceed remaining balance. Maximum for this payment: ₦7,000.00",
    }

    with SessionLocal() as db:
        assert float(db.get(Payment, first).amount) == 4000


def test_invalid_payload_returns_field_errors():
    client, SessionLocal = build_client()
    sale_id = _seed_sale(SessionLocal)
    payment_id = _pay(client, sale_id, 4000).json()["payment"]["id"]

    response = client.patch(
        f"/api/payments/{payment_id}",
        json={"amountPaid": -5, "paymentMethod": "BARTER", "paymentDate": "2025-03-10"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Validation failed"
    assert set(body["errors"]) == {"amountPaid", "paymentMethod"}


def test_missing_payment_is_not_found():
    client, SessionLocal = build_client()
    _seed_sale(SessionLocal)

    response = client.patch(
        "/api/payments/999",
        json={"amountPaid": 10, "paymentMethod": "CASH", "paymentDate": "2025-03-10"},
    )
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Payment not found or unauthorized"}


def test_delete_payment_twice():
    client, SessionLocal = build_client()
    sale_id = _seed_sale(SessionLocal)
    payment_id = _pay(client, sale_id, 4000).json()["payment"]["id"]

    response = client.delete(f"/api/payments/{payment_id}")
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Payment deleted successfully"
    assert body["payment"] is None
    assert body["entity"]["status"] == "UNPAID"
    assert body["entity"]["amountPaid"] == 0

    assert client.delete(f"/api/payments/{payment_id}").status_code == 404


def test_refund_freezes_payment_edits():
    client, SessionLocal = build_client()
    sale_id = _seed_sale(SessionLocal)
    payment_id = _pay(client, sale_id, 10000).json()["payment"]["id"]

    response = client.post(f"/api/sales/{sale_id}/refund", json={"refundReason": "Damaged goods"})
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Refund processed successfully"
    assert body["entity"]["status"] == "REFUNDED"
    assert body["entity"]["refundAmount"] == 10000

    response = client.patch(
        f"/api/payments/{payment_id}",
        json={"amountPaid": 5000, "paymentMethod": "CASH", "paymentDate": "2025-03-10"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot update payment for a refunded sale"
    assert client.delete(f"/api/payments/{payment_id}").status_code == 400


def test_purchase_refund_reduces_what_the_expense_report_counts_as_paid():
    client, SessionLocal = build_client()
    with SessionLocal() as db:
        create_user(db)
        purchase_id = create_purchase(db, 20000, purchase_date=date(2025, 3, 1)).id

    paid = client.post(
        f"/api/purchases/{purchase_id}/payment",
        json={"amountPaid": 20000, "paymentMethod": "CASH", "paymentDate": "2025-03-01"},
    )
    assert paid.status_code == 200

    response = client.post(
        f"/api/purchases/{purchase_id}/refund",
        json={
            "refundAmount": 5000,
            "refundReason": "Damaged crate",
            "refundDate": "2025-03-20T00:00:00.000Z",
            "paymentMethod": "CARD",
            "reference": "RF-9",
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["entity"]["status"] == "PARTIALLY_REFUNDED"
    assert body["entity"]["amountPaid"] == 15000
    assert body["entity"]["refundAmount"] == 5000
    assert body["payment"]["paymentMethod"] == "CARD"
    assert body["payment"]["reference"] == "RF-9"
    assert body["payment"]["category"] == "INCOME"
    assert len(body["entity"]["payments"]) == 2

    report = client.get("/api/reports/expense", params={"range": "custom", "startDate": "2025-01-01", "endDate": "2025-12-31"})
    summary = report.json()["summary"]
    assert summary["totalPaid"] == 15000
    assert summary["totalDeductible"] == 15000
    assert summary["byCategory"] == {"COST_OF_GOODS": 15000}
    assert summary["byPaymentMethod"] == {"CASH": 20000, "CARD": -5000}
    assert summary["balance"] == 0


def test_create_entities_and_records():
    client, SessionLocal = build_client()
    with SessionLocal() as db:
        create_user(db)

    response = client.post(
        "/api/sales",
        json={
            "date": "2025-04-01",
            "totalAmount": 2500,
            "partyName": "Ada Stores",
            "initialPayment": {"amountPaid": 1000, "paymentMethod": "CARD", "paymentDate": "2025-04-01"},
        },
    )
    assert response.status_code == 201
    sale = response.json()
    assert sale["number"] == "SAL-000001"
    assert sale["status"] == "PARTIALLY_PAID"
    assert len(sale["payments"]) == 1

    response = client.post("/api/purchases", json={"date": "2025-04-02", "totalAmount": 800})
    assert response.status_code == 201
    assert response.json()["number"] == "PUR-000001"

    response = client.post(
        "/api/income",
        json={"mainCategory": "BUSINESS_INCOME", "grossAmount": 1500, "date": "2025-05-01", "paymentMethod": "CASH"},
    )
    assert response.status_code == 201
    assert response.json()["payment"]["payableType"] == "OTHER_INCOME"

    response = client.post(
        "/api/expenses",
        json={"category": "RENT_RATES", "amount": 600, "date": "2025-05-02"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["expense"]["vendorName"] == "N/A"
    assert body["payment"]["category"] == "EXPENSE"
    assert body["payment"]["paymentMethod"] == "BANK_TRANSFER"


def test_draft_quotation_payment_is_rejected():
    client, SessionLocal = build_client()
    with SessionLocal() as db:
        create_user(db)

    quotation = client.post("/api/quotations", json={"date": "2025-04-01", "totalAmount": 900}).json()
    assert quotation["status"] == "DRAFT"

    response = client.post(
        f"/api/quotations/{quotation['id']}/payment",
        json={"amountPaid": 100, "paymentMethod": "CASH", "paymentDate": "2025-04-02"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot add payment to a quotation with status draft"


def test_loan_payment_endpoint():
    client, SessionLocal = build_client()
    with SessionLocal() as db:
        create_user(db)
        loan_id = create_loan(db, 1000).id

    response = client.post(
        f"/api/loans/{loan_id}/payment",
        json={"amountPaid": 1200, "paymentMethod": "BANK_TRANSFER", "paymentDate": "2025-05-10"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Loan payment recorded successfully"
    assert body["principal"] == 1000
    assert body["interest"] == 200
    assert body["loan"]["status"] == "PAID_OFF"
    assert body["interestRecord"]["kind"] == "INCOME"
    assert body["interestRecord"]["amount"] == 200

    assert client.post("/api/loans/999/payment", json={
        "amountPaid": 10, "paymentMethod": "CASH", "paymentDate": "2025-05-10",
    }).status_code == 404


def test_lock_timeout_is_retryable(monkeypatch):
    client, SessionLocal = build_client()
    sale_id = _seed_sale(SessionLocal)
    payment_id = _pay(client, sale_id, 4000).json()["payment"]["id"]

    def locked(*args, **kwargs):
        raise OperationalError("UPDATE payments", {}, Exception("database is locked"))

    monkeypatch.setattr(payments_router, "update_payment", locked)
    response = client.patch(
        f"/api/payments/{payment_id}",
        json={"amountPaid": 10, "paymentMethod": "CASH", "paymentDate": "2025-03-10"},
    )
    assert response.status_code == 500
    assert response.json()["retryable"] is True


def test_unexpected_error_returns_generic_500(monkeypatch):
    client, SessionLocal = build_client(raise_server_exceptions=False)
    _seed_sale(SessionLocal)

    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(payments_router, "delete_payment", broken)
    response = client.delete("/api/payments/1")
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}


def test_health():
    client, _ = build_client()
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
