# app/transactions/repository.py
from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Callable, Optional

from psycopg2.extras import Json, RealDictCursor

from app.santimpay.errors import DuplicateThirdPartyId, DuplicateTransaction, UnknownTransaction
from app.transactions.model import (
    CorrelateBy,
    Transaction,
    TransactionType,
    WebhookLogEntry,
    details_from_dict,
    details_to_dict,
)
from app.transactions.store import NotificationApplied
from app.transactions.state_machine import TERMINAL_STATUSES

_COLUMNS = """
  transaction_id, type, amount, status, third_party_id,
  details, webhook_log, created_at, updated_at
"""

_KEY_COLUMN = {
    "transaction_id": "transaction_id",
    "third_party_id": "third_party_id",
}


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def _row_to_transaction(row: dict[str, Any]) -> Transaction:
    return Transaction(
        transaction_id=row["transaction_id"],
        type=row["type"],
        amount=Decimal(str(row["amount"])),
        status=row["status"],
        third_party_id=row["third_party_id"],
        details=details_from_dict(_load_json(row["details"]) or {}),
        webhook_log=tuple(WebhookLogEntry.from_dict(e) for e in (_load_json(row["webhook_log"]) or [])),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresTransactionStore:
    """
    Rows live in app.santim_transactions (see alembic 0001).
    `get_conn` is db.get_conn: commits on success, rolls back on error.
    """

    backend = "postgres"

    def __init__(self, get_conn: Callable):
        self._get_conn = get_conn

    def create(self, txn: Transaction) -> Transaction:
        with self._get_conn() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"""
                    INSERT INTO app.santim_transactions (
                      transaction_id, type, amount, status, third_party_id,
                      details, webhook_log, created_at, updated_at
                    )
                    VALUES (
                      %(transaction_id)s, %(type)s, %(amount)s, %(status)s, %(third_party_id)s,
                      %(details)s::jsonb, '[]'::jsonb, %(created_at)s, %(updated_at)s
                    )
                    ON CONFLICT DO NOTHING
                    RETURNING {_COLUMNS}
                    """,
                    {
                        "transaction_id": txn.transaction_id,
                        "type": txn.type,
                        "amount": txn.amount,
                        "status": txn.status,
                        "third_party_id": txn.third_party_id,
                        "details": Json(details_to_dict(txn.details)),
                        "created_at": txn.created_at,
                        "updated_at": txn.updated_at,
                    },
                )
                row = cur.fetchone()
                if not row:
                    # the existing row is left untouched; report which key collided
                    cur.execute(
                        "SELECT 1 FROM app.santim_transactions WHERE transaction_id = %s",
                        (txn.transaction_id,),
                    )
                    id_taken = cur.fetchone() is not None
        if not row:
            if id_taken or txn.third_party_id is None:
                raise DuplicateTransaction(txn.transaction_id)
            raise DuplicateThirdPartyId(txn.third_party_id)
        return _row_to_transaction(row)

    def get(self, transaction_id: str) -> Optional[Transaction]:
        with self._get_conn() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM app.santim_transactions WHERE transaction_id = %s",
                    (transaction_id,),
                )
                row = cur.fetchone()
        return _row_to_transaction(row) if row else None

    def apply_notification(
        self,
        key: str,
        *,
        by: CorrelateBy,
        txn_type: TransactionType,
        new_status: Optional[str],
        entry: WebhookLogEntry,
    ) -> NotificationApplied:
        column = _KEY_COLUMN[by]
        terminal_sql = ", ".join(f"'{s}'" for s in TERMINAL_STATUSES)

        # single statement: row lock + terminal guard + amount check + log append
        sql = f"""
        WITH prev AS (
          SELECT transaction_id, status
          FROM app.santim_transactions
          WHERE {column} = %(key)s
            AND type = %(txn_type)s
          FOR UPDATE
        )
        UPDATE app.santim_transactions t
        SET
          status = CASE
            WHEN prev.status IN ({terminal_sql}) THEN prev.status
            WHEN %(new_status)s::text IS NULL THEN prev.status
            ELSE %(new_status)s::text
          END,
          webhook_log = t.webhook_log || jsonb_build_array(
            %(entry)s::jsonb || jsonb_build_object(
              'amount_mismatch',
              COALESCE(%(amount)s::numeric <> t.amount, false)
            )
          ),
          updated_at = now()
        FROM prev
        WHERE t.transaction_id = prev.transaction_id
        RETURNING
          t.transaction_id, t.type, t.amount, t.status, t.third_party_id,
          t.details, t.webhook_log, t.created_at, t.updated_at,
          prev.status AS status_before
        """
        params = {
            "key": key,
            "txn_type": txn_type,
            "new_status": new_status,
            "entry": Json(entry.to_dict()),
            "amount": entry.amount,
        }

        with self._get_conn() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                row = cur.fetchone()

        if not row:
            raise UnknownTransaction(key, by=by)

        txn = _row_to_transaction(row)
        status_before = row["status_before"]
        return NotificationApplied(
            transaction=txn,
            status_before=status_before,
            transitioned=txn.status != status_before,
        )
