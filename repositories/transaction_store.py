# repositories/transaction_store.py
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlmodel import Session, select

from models.models import InternalStatus, PaymentTransaction, TransactionStatus, utcnow


class TransactionStore:
    """Typed access to ``payment_transactions`` on top of a SQLModel session."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------
    def get(self, transaction_id: str) -> Optional[PaymentTransaction]:
        return self.session.get(PaymentTransaction, transaction_id)

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[PaymentTransaction]:
        statement = select(PaymentTransaction).where(
            PaymentTransaction.stripe_payment_intent_id == payment_intent_id
        )
        return self.session.exec(statement).first()

    def get_by_subscription(self, subscription_id: str) -> Optional[PaymentTransaction]:
        statement = select(PaymentTransaction).where(
            PaymentTransaction.stripe_subscription_id == subscription_id
        )
        return self.session.exec(statement).first()

    def list_for_company(
        self,
        company_id: str,
        status: Optional[str] = None,
        internal_status: Optional[str] = None,
        customer: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[int, List[PaymentTransaction]]:
        """Return (total matching rows, one page of rows newest first)."""
        conditions = [PaymentTransaction.company_id == company_id]
        if status:
            conditions.append(PaymentTransaction.status == status)
        if internal_status:
            conditions.append(PaymentTransaction.internal_status == internal_status)
        if customer:
            conditions.append(PaymentTransaction.customer == customer)

        total = self.session.exec(
            select(func.count()).select_from(PaymentTransaction).where(*conditions)
        ).one()

        statement = (
            select(PaymentTransaction)
            .where(*conditions)
            .order_by(PaymentTransaction.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return total, list(self.session.exec(statement).all())

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------
    def add(self, transaction: PaymentTransaction) -> PaymentTransaction:
        self.session.add(transaction)
        self.session.commit()
        self.session.refresh(transaction)
        return transaction

    def set_payment_status(self, payment_intent_id: str, status: str, internal_status: str) -> int:
        """
        Single-row ``UPDATE ... WHERE stripe_payment_intent_id = ?``.
        Returns the number of rows touched (0 when the intent is unknown).
        """
        statement = (
            update(PaymentTransaction)
            .where(PaymentTransaction.stripe_payment_intent_id == payment_intent_id)
            .values(status=status, internal_status=internal_status, updated_at=utcnow())
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount

    def set_internal_status(
        self,
        transaction: PaymentTransaction,
        internal_status: str,
        notes: Optional[str] = None,
    ) -> PaymentTransaction:
        transaction.internal_status = internal_status
        if notes:
            transaction.payment_metadata = transaction.merged_metadata({"internalNotes": notes})
        transaction.updated_at = utcnow()
        return self.add(transaction)

    def mark_subscription_canceled(
        self, subscription_id: str, canceled_at: datetime
    ) -> Optional[PaymentTransaction]:
        transaction = self.get_by_subscription(subscription_id)
        if not transaction:
            return None

        extra: Dict[str, Any] = {"canceledAt": canceled_at.isoformat()}
        transaction.status = TransactionStatus.CANCELED.value
        transaction.internal_status = InternalStatus.CANCELED_BY_USER.value
        transaction.payment_metadata = transaction.merged_metadata(extra)
        transaction.updated_at = utcnow()
        return self.add(transaction)
