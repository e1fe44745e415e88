from __future__ import annotations

import logging
from decimal import Decimal

from app.transactions.model import HostedPaymentDetails, MobileMoneyDetails, Transaction
from services.metrics import counter_value


def _seed_payment(store, transaction_id="txn_1", third_party_id=None, amount="100"):
    return store.create(
        Transaction(
            transaction_id=transaction_id,
            type="PAYMENT",
            amount=Decimal(amount),
            details=HostedPaymentDetails(
                reason="Order 1",
                success_url="https://m/s",
                failure_url="https://m/f",
                cancel_url="https://m/c",
                notify_url="https://m/n",
            ),
            third_party_id=third_party_id,
        )
    )


def _seed_payout(store, transaction_id="out_1", amount="40"):
    return store.create(
        Transaction(
            transaction_id=transaction_id,
            type="PAYOUT",
            amount=Decimal(amount),
            details=MobileMoneyDetails(
                reason="Refund",
                phone_number="+251900000001",
                payment_method="Telebirr",
                notify_url="https://m/n",
                kind="PAYOUT",
            ),
        )
    )


def test_payment_success_credits_ledger_once(handler, store, ledger):
    _seed_payment(store)
    payload = {"thirdPartyId": "txn_1", "Status": "COMPLETED", "totalAmount": 100}

    first = handler.handle_payment_callback(payload)
    assert first.status_code == 200
    assert first.body["status"] == "received"
    assert first.body["thirdPartyId"] == "txn_1"
    assert first.body["transaction_status"] == "SUCCESS"
    assert first.body["applied"] is True
    assert first.body["ledger_effect"] == "CREDIT"

    second = handler.handle_payment_callback(payload)
    assert second.status_code == 200
    assert second.body["applied"] is False
    assert second.body["ignored"] is True
    assert second.body["reason"] == "ALREADY_SUCCESS"
    assert "ledger_effect" not in second.body

    txn = store.get("txn_1")
    assert txn.status == "SUCCESS"
    assert len(txn.webhook_log) == 2
    assert ledger.credits == [("txn_1", Decimal("100"))]
    assert ledger.debits == []


def test_conflicting_terminal_status_is_logged_not_applied(handler, store, ledger):
    _seed_payment(store)
    handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "FAILED"})
    out = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "COMPLETED"})

    assert out.status_code == 200
    assert out.body["reason"] == "ALREADY_FAILED"
    txn = store.get("txn_1")
    assert txn.status == "FAILED"
    assert [e.status_raw for e in txn.webhook_log] == ["FAILED", "COMPLETED"]
    assert ledger.credits == []


def test_pending_then_success(handler, store, ledger):
    _seed_payment(store)
    pending = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "PENDING"})
    assert pending.body["transaction_status"] == "PENDING"
    assert "ledger_effect" not in pending.body

    done = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "SUCCESS"})
    assert done.body["ledger_effect"] == "CREDIT"
    assert len(ledger.credits) == 1


def test_payout_success_debits_ledger(handler, store, ledger):
    _seed_payout(store)
    out = handler.handle_payout_callback(
        {"transactionId": "out_1", "status": "SUCCESS", "amount": "40", "paymentMethod": "Telebirr"}
    )
    assert out.status_code == 200
    assert out.body["ledger_effect"] == "DEBIT"
    assert "thirdPartyId" not in out.body
    assert ledger.debits == [("out_1", Decimal("40"))]
    assert ledger.credits == []


def test_payout_callback_accepts_client_reference(handler, store):
    _seed_payout(store)
    out = handler.handle_payout_callback({"clientReference": "out_1", "status": "FAILED"})
    assert out.status_code == 200
    assert store.get("out_1").status == "FAILED"


def test_payment_correlates_on_third_party_id_only(handler, store, ledger):
    _seed_payment(store, "txn_1", third_party_id="pp_1")

    wrong = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "COMPLETED"})
    assert wrong.status_code == 404
    assert store.get("txn_1").status == "INITIATED"

    payout_style = handler.handle_payout_callback({"transactionId": "txn_1", "status": "SUCCESS"})
    assert payout_style.status_code == 404
    assert store.get("txn_1").webhook_log == ()

    right = handler.handle_payment_callback({"thirdPartyId": "pp_1", "Status": "COMPLETED"})
    assert right.status_code == 200
    assert right.body["transaction_id"] == "txn_1"
    assert right.body["thirdPartyId"] == "pp_1"
    assert store.get("txn_1").status == "SUCCESS"
    assert ledger.credits == [("txn_1", Decimal("100"))]


def test_unknown_transaction_is_rejected_and_nothing_created(handler, store):
    out = handler.handle_payment_callback({"thirdPartyId": "ghost", "Status": "COMPLETED"})
    assert out.status_code == 404
    assert out.body == {"ok": False, "error": "TRANSACTION_NOT_FOUND", "third_party_id": "ghost"}
    assert store.get("ghost") is None
    assert counter_value("webhook_events_total", source="PAYMENT", outcome="unknown_transaction") == 1


def test_malformed_payloads_leave_store_untouched(handler, store):
    _seed_payment(store)

    no_status = handler.handle_payment_callback({"thirdPartyId": "txn_1"})
    assert no_status.status_code == 400
    assert no_status.body["error"] == "MISSING_STATUS"

    no_key = handler.handle_payment_callback({"Status": "COMPLETED"})
    assert no_key.status_code == 400
    assert no_key.body["error"] == "MISSING_THIRD_PARTY_ID"

    not_object = handler.handle_payout_callback(["out_1", "SUCCESS"])
    assert not_object.status_code == 400
    assert not_object.body["error"] == "INVALID_JSON_OBJECT"

    assert store.get("txn_1").webhook_log == ()
    assert store.get("txn_1").status == "INITIATED"


def test_non_finite_amount_is_rejected_and_later_delivery_applies(handler, store, ledger):
    _seed_payment(store)

    for bogus in ("sNaN", "NaN", "Infinity", "-Infinity", "12abc"):
        out = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "SUCCESS", "totalAmount": bogus})
        assert out.status_code == 400, bogus
        assert out.body == {"ok": False, "error": "INVALID_AMOUNT"}

    payout = _seed_payout(store)
    out = handler.handle_payout_callback({"transactionId": payout.transaction_id, "status": "SUCCESS", "amount": "Infinity"})
    assert out.status_code == 400
    assert out.body["error"] == "INVALID_AMOUNT"

    assert store.get("txn_1").status == "INITIATED"
    assert store.get("txn_1").webhook_log == ()
    assert store.get("out_1").webhook_log == ()
    assert ledger.credits == [] and ledger.debits == []

    ok = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "SUCCESS", "totalAmount": 100})
    assert ok.status_code == 200
    assert ok.body["transaction_status"] == "SUCCESS"
    assert ledger.credits == [("txn_1", Decimal("100"))]


def test_wrapped_payload_is_unwrapped(handler, store):
    _seed_payment(store)
    out = handler.handle_payment_callback({"data": {"thirdPartyId": "txn_1", "Status": "COMPLETED"}})
    assert out.status_code == 200
    assert store.get("txn_1").status == "SUCCESS"


def test_amount_mismatch_is_flagged_and_recorded_amount_used(handler, store, ledger, caplog):
    _seed_payment(store)
    caplog.set_level(logging.WARNING, logger="santim.webhooks")

    out = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "COMPLETED", "totalAmount": "90"})

    assert out.status_code == 200
    assert out.body["amount_mismatch"] is True
    txn = store.get("txn_1")
    assert txn.amount == Decimal("100")
    assert txn.webhook_log[-1].amount == Decimal("90")
    assert ledger.credits == [("txn_1", Decimal("100"))]
    assert any("webhook_amount_mismatch" in r.message for r in caplog.records)


def test_unrecognized_status_is_logged_and_ignored(handler, store):
    _seed_payment(store)
    out = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "ON_HOLD"})

    assert out.status_code == 200
    assert out.body["ignored"] is True
    assert out.body["reason"] == "UNRECOGNIZED_STATUS"
    txn = store.get("txn_1")
    assert txn.status == "INITIATED"
    assert txn.webhook_log[-1].status is None
    assert txn.webhook_log[-1].status_raw == "ON_HOLD"


def test_ledger_failure_keeps_transition_and_is_not_retried(store, ledger):
    from app.reconciliation.handler import ReconciliationHandler

    ledger.fail = True
    handler = ReconciliationHandler(store, ledger)
    _seed_payment(store)

    out = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "COMPLETED"})
    assert out.status_code == 500
    assert out.body["error"] == "LEDGER_FAILED"
    assert store.get("txn_1").status == "SUCCESS"

    ledger.fail = False
    again = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "COMPLETED"})
    assert again.status_code == 200
    assert again.body["reason"] == "ALREADY_SUCCESS"
    assert ledger.credits == []


def test_store_failure_is_500(handler, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(handler.store, "apply_notification", boom)
    out = handler.handle_payment_callback({"thirdPartyId": "txn_1", "Status": "COMPLETED"})
    assert out.status_code == 500
    assert out.body == {"ok": False, "error": "Callback processing failed"}
