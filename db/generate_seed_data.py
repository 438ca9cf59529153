"""Fill the transaction store with fake data.

Usage: python -m db.generate_seed_data [NUM_RECORDS]
"""
from faker import Faker
import random
import sys
from datetime import datetime

from app.config import Settings
from app.db.database import TransactionRepository

fake = Faker()

# Constants for realistic data
BUSINESSES = ['Supermarket', 'Pharmacy', 'Gas Station', 'Restaurant', 'Bookstore',
              'Electronics', 'Clothing', 'Coffee Shop']
CUSTOMERS = [fake.name() for _ in range(20)]


def generate_transaction():
    return {
        'amount': random.randint(500, 250000),
        'business_name': random.choice(BUSINESSES),
        'name': random.choice(CUSTOMERS),
        'transaction_date': fake.date_time_between(start_date='-1y', end_date='now').replace(microsecond=0),
    }


def seed(repository: TransactionRepository, num_records: int = 200) -> int:
    repository.ensure_schema()
    for _ in range(num_records):
        repository.insert(**generate_transaction())
    return num_records


if __name__ == "__main__":
    count = int(sys.argv[1]) if len(sys.argv) > 1 else 200
    settings = Settings.from_env()
    seed(TransactionRepository(settings.database_path), count)
    print(f"{datetime.now().isoformat()} inserted {count} transactions into {settings.database_path}")
