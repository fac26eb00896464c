# expense_tracker/core/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

TRANSACTION_TYPES = ("income", "expense")

CATEGORIES = (
    "Groceries",
    "Transport",
    "Entertainment",
    "Rent",
    "Insurance",
    "Health",
    "Education",
    "Other",
    "Salary",
    "Freelance",
    "Investments",
    "Gift",
)

MIN_AMOUNT = 0.01
MAX_AMOUNT = 1_000_000
DESCRIPTION_MIN = 3
DESCRIPTION_MAX = 255
NOTES_MAX = 500


@dataclass
class Transaction:
    amount: float
    category: str
    description: str
    type: str
    date: date
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def formatted_amount(self) -> str:
        return f"€{self.amount:.2f}"

    def to_dict(self) -> Dict[str, object]:
        """Return the JSON shape used by the HTTP API and exports."""
        return {
            "id": self.id,
            "amount": self.amount,
            "formattedAmount": self.formatted_amount,
            "category": self.category,
            "description": self.description,
            "type": self.type,
            "date": self.date.isoformat(),
            "tags": list(self.tags),
            "notes": self.notes,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
