# production_planner/services/sales_repository.py
from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, List, Optional

from production_planner.models import SalesRecord
from production_planner.exceptions import ValidationError
from production_planner.utils.validation import validate_sales_record

class SalesRepository(ABC):
    """Read-only access to historical sales."""

    @abstractmethod
    def get_sales(
        self,
        product_id: str,
        market_id: str,
        variant_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[SalesRecord]:
        """Get the sales of one item at one market between two dates (inclusive)."""
        pass

    @abstractmethod
    def get_sales_between(self, start: Optional[date] = None, end: Optional[date] = None) -> List[SalesRecord]:
        """Get every sale between two dates (inclusive)."""
        pass

class InMemorySalesRepository(SalesRepository):
    """Sales repository over a list held in memory."""

    def __init__(self, records: Optional[Iterable[SalesRecord]] = None):
        self._records: List[SalesRecord] = []
        for record in records or []:
            self.add(record)

    def add(self, record: SalesRecord) -> None:
        errors = validate_sales_record(record)
        if errors:
            raise ValidationError("Invalid sales record", details=errors)
        self._records.append(record)

    def __len__(self):
        return len(self._records)

    def get_sales_between(self, start: Optional[date] = None, end: Optional[date] = None) -> List[SalesRecord]:
        return [
            r for r in self._records
            if (start is None or r.sale_date >= start) and (end is None or r.sale_date <= end)
        ]

    def get_sales(
        self,
        product_id: str,
        market_id: str,
        variant_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[SalesRecord]:
        return [
            r for r in self.get_sales_between(start, end)
            if r.product_id == product_id
            and r.market_id == market_id
            and (variant_id is None or r.variant_id == variant_id)
        ]
