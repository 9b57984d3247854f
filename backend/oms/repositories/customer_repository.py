"""
Customer and Worker lookups used by the order workflows
"""
from typing import Optional

from oms.domain.order import Customer, Worker


class CustomerRepository:

    def get(self, cursor, customer_id: int) -> Optional[Customer]:
        cursor.execute("""
            SELECT id, name, email, phone, address
            FROM customers
            WHERE id = %s
        """, (customer_id,))

        row = cursor.fetchone()
        if not row:
            return None
        return Customer(**row)

    def exists(self, cursor, customer_id: int) -> bool:
        return self.get(cursor, customer_id) is not None


class WorkerRepository:

    def get(self, cursor, worker_id: int) -> Optional[Worker]:
        cursor.execute("""
            SELECT id, name, role
            FROM workers
            WHERE id = %s
        """, (worker_id,))

        row = cursor.fetchone()
        if not row:
            return None
        return Worker(**row)

    def exists(self, cursor, worker_id: int) -> bool:
        return self.get(cursor, worker_id) is not None
