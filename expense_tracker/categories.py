"""Category registry - the fixed set of expense categories.

Categories are static configuration, not user data. Identifiers form a
closed enumeration so an unknown category is rejected when a value is
parsed rather than later, when an expense is saved.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class CategoryId(str, Enum):
    """Identifiers of the categories known to the registry."""

    FOOD = "food"
    TRANSPORTATION = "transportation"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    BILLS = "bills"
    OTHER = "other"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Category:
    """A classification bucket for expenses."""
    id: CategoryId
    name: str
    color: str
    icon: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['id'] = self.id.value
        if data['description'] is None:
            del data['description']
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=parse_category_id(data.get('id')),
            name=str(data.get('name', '')),
            color=str(data.get('color', '')),
            icon=str(data.get('icon', '')),
            description=data.get('description'),
        )


EXPENSE_CATEGORIES: Tuple[Category, ...] = (
    Category(
        id=CategoryId.FOOD,
        name='Food',
        color='#ef4444',
        icon='utensils',
        description='Restaurants, groceries, and dining out',
    ),
    Category(
        id=CategoryId.TRANSPORTATION,
        name='Transportation',
        color='#3b82f6',
        icon='car',
        description='Gas, public transit, and vehicle maintenance',
    ),
    Category(
        id=CategoryId.ENTERTAINMENT,
        name='Entertainment',
        color='#8b5cf6',
        icon='film',
        description='Movies, games, and leisure activities',
    ),
    Category(
        id=CategoryId.SHOPPING,
        name='Shopping',
        color='#f59e0b',
        icon='shopping-bag',
        description='Clothing, electronics, and retail purchases',
    ),
    Category(
        id=CategoryId.BILLS,
        name='Bills',
        color='#10b981',
        icon='file-text',
        description='Utilities, rent, and recurring payments',
    ),
    Category(
        id=CategoryId.OTHER,
        name='Other',
        color='#6b7280',
        icon='more-horizontal',
        description='Miscellaneous expenses',
    ),
)

_CATEGORIES_BY_ID: Dict[CategoryId, Category] = {c.id: c for c in EXPENSE_CATEGORIES}


def parse_category_id(value: Union[str, CategoryId, None]) -> CategoryId:
    """Convert a raw identifier into a :class:`CategoryId`.

    Raises:
        ValueError: If the value does not name a registered category.
    """
    if isinstance(value, CategoryId):
        return value
    try:
        return CategoryId(str(value).strip().lower())
    except ValueError:
        raise ValueError("Invalid category selected") from None


def get_category(category_id: Union[str, CategoryId]) -> Category:
    """Return the registry entry for ``category_id``."""
    return _CATEGORIES_BY_ID[parse_category_id(category_id)]


def category_options() -> List[Tuple[str, str]]:
    """(id, display name) pairs in registry order, for select widgets."""
    return [(c.id.value, c.name) for c in EXPENSE_CATEGORIES]


def category_colors() -> Dict[str, str]:
    return {c.name: c.color for c in EXPENSE_CATEGORIES}
