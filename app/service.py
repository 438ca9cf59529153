import logging
from datetime import datetime
from typing import List

from .db.database import TransactionRepository
from .exceptions import BusinessRuleError, ResourceNotFoundError
from .models import TransactionRequest, TransactionResponse

logger = logging.getLogger(__name__)

RESOURCE_NAME = "Transaction"


class TransactionService:
    """Business rules around the transaction store"""

    def __init__(self, repository: TransactionRepository, max_transactions_per_client: int = 100):
        self.repository = repository
        self.max_transactions_per_client = max_transactions_per_client

    def get_all_transactions(self) -> List[TransactionResponse]:
        logger.info("Fetching all transactions")
        return [TransactionResponse(**row) for row in self.repository.find_all()]

    def get_transaction(self, transaction_id: int) -> TransactionResponse:
        logger.info(f"Fetching transaction with id: {transaction_id}")
        row = self.repository.find_by_id(transaction_id)
        if row is None:
            raise ResourceNotFoundError(RESOURCE_NAME, transaction_id)
        return TransactionResponse(**row)

    def get_transactions_by_customer(self, name: str) -> List[TransactionResponse]:
        logger.info(f"Fetching transactions for customer: {name}")
        return [TransactionResponse(**row) for row in self.repository.find_by_name(name)]

    def create_transaction(self, payload: TransactionRequest) -> TransactionResponse:
        logger.info(f"Creating transaction for: {payload.name}")
        self._validate_amount(payload.amount)
        self._validate_transaction_limit(payload.name)

        row = self.repository.insert(
            amount=payload.amount,
            business_name=payload.business_name,
            name=payload.name,
            transaction_date=datetime.now().replace(microsecond=0),
        )
        logger.info(f"Transaction created with id: {row['id']}")
        return TransactionResponse(**row)

    def update_transaction(self, transaction_id: int, payload: TransactionRequest) -> TransactionResponse:
        logger.info(f"Updating transaction with id: {transaction_id}")
        existing = self.repository.find_by_id(transaction_id)
        if existing is None:
            raise ResourceNotFoundError(RESOURCE_NAME, transaction_id)

        self._validate_amount(payload.amount)
        # Moving a transaction to another customer counts against their limit
        if existing["name"] != payload.name:
            self._validate_transaction_limit(payload.name)

        row = self.repository.update(
            transaction_id,
            amount=payload.amount,
            business_name=payload.business_name,
            name=payload.name,
        )
        if row is None:
            # Deleted between the existence check and the write
            raise ResourceNotFoundError(RESOURCE_NAME, transaction_id)
        logger.info(f"Transaction updated with id: {transaction_id}")
        return TransactionResponse(**row)

    def delete_transaction(self, transaction_id: int) -> None:
        logger.info(f"Deleting transaction with id: {transaction_id}")
        if not self.repository.exists(transaction_id):
            raise ResourceNotFoundError(RESOURCE_NAME, transaction_id)
        self.repository.delete(transaction_id)
        logger.info(f"Transaction deleted with id: {transaction_id}")

    def _validate_amount(self, amount: int) -> None:
        if amount < 0:
            raise BusinessRuleError("Transaction amount cannot be negative")

    def _validate_transaction_limit(self, name: str) -> None:
        count = self.repository.count_by_name(name)
        if count >= self.max_transactions_per_client:
            raise BusinessRuleError(
                f"Customer {name} has reached the maximum of "
                f"{self.max_transactions_per_client} transactions"
            )
