# app/transactions/store.py
from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Optional, Protocol

from app.santimpay.errors import DuplicateThirdPartyId, DuplicateTransaction, UnknownTransaction
from app.transactions.model import (
    CorrelateBy,
    Transaction,
    TransactionType,
    WebhookLogEntry,
    utcnow,
)
from app.transactions.state_machine import can_transition


@dataclass(frozen=True)
class NotificationApplied:
    transaction: Transaction  # state after the update
    status_before: str
    transitioned: bool  # status actually moved


class TransactionStore(Protocol):
    def create(self, txn: Transaction) -> Transaction: ...

    def get(self, transaction_id: str) -> Optional[Transaction]: ...

    def apply_notification(
        self,
        key: str,
        *,
        by: CorrelateBy,
        txn_type: TransactionType,
        new_status: Optional[str],
        entry: WebhookLogEntry,
    ) -> NotificationApplied:
        """
        Atomic: locate a `txn_type` record by `by`, move status forward when allowed,
        flag an amount mismatch against the recorded amount, append `entry`.
        Raises UnknownTransaction when nothing matches.
        """
        ...


def flag_amount_mismatch(entry: WebhookLogEntry, recorded) -> WebhookLogEntry:
    mismatch = entry.amount is not None and entry.amount != recorded
    return replace(entry, amount_mismatch=mismatch)


class InMemoryTransactionStore:
    """Process-local store; one lock guards every read-modify-write."""

    backend = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, Transaction] = {}
        self._by_third_party: dict[str, str] = {}

    def create(self, txn: Transaction) -> Transaction:
        with self._lock:
            if txn.transaction_id in self._by_id:
                raise DuplicateTransaction(txn.transaction_id)
            # only payments are indexed by processor id; payouts carry none
            if txn.third_party_id is not None and txn.third_party_id in self._by_third_party:
                raise DuplicateThirdPartyId(txn.third_party_id)
            self._by_id[txn.transaction_id] = txn
            if txn.third_party_id is not None:
                self._by_third_party[txn.third_party_id] = txn.transaction_id
            return txn

    def get(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            return self._by_id.get(transaction_id)

    def apply_notification(
        self,
        key: str,
        *,
        by: CorrelateBy,
        txn_type: TransactionType,
        new_status: Optional[str],
        entry: WebhookLogEntry,
    ) -> NotificationApplied:
        with self._lock:
            if by == "transaction_id":
                txn_id = key if key in self._by_id else None
            else:
                txn_id = self._by_third_party.get(key)

            current = self._by_id.get(txn_id) if txn_id else None
            if current is None or current.type != txn_type:
                raise UnknownTransaction(key, by=by)

            allowed = can_transition(current.status, new_status)
            updated = replace(
                current,
                status=new_status if allowed else current.status,
                webhook_log=current.webhook_log + (flag_amount_mismatch(entry, current.amount),),
                updated_at=utcnow(),
            )
            self._by_id[current.transaction_id] = updated
            return NotificationApplied(
                transaction=updated,
                status_before=current.status,
                transitioned=updated.status != current.status,
            )
