"""
Age-bucket derivation for participants.

0-12 children, 13-17 adolescents, 18-64 adults, 65+ seniors.
"""

from datetime import date
from typing import Iterable, List, Optional

from .models import PopulationCategory


def calculate_age(birthday: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Whole years since birthday; None when unknown or in the future."""
    if birthday is None:
        return None
    today = today or date.today()
    age = today.year - birthday.year
    if (today.month, today.day) < (birthday.month, birthday.day):
        age -= 1
    if age < 0:
        return None
    return age


def population_category(birthday: Optional[date], today: Optional[date] = None) -> Optional[PopulationCategory]:
    age = calculate_age(birthday, today)
    if age is None:
        return None
    if age <= 12:
        return PopulationCategory.CHILDREN
    if age <= 17:
        return PopulationCategory.ADOLESCENTS
    if age <= 64:
        return PopulationCategory.ADULTS
    return PopulationCategory.SENIORS


def derive_clientele_categories(
    birthdays: Iterable[Optional[date]],
    today: Optional[date] = None,
) -> List[PopulationCategory]:
    """
    Distinct categories across participants, in first-seen order.

    Participants without a birthday contribute nothing.
    """
    categories: List[PopulationCategory] = []
    for birthday in birthdays:
        category = population_category(birthday, today)
        if category is not None and category not in categories:
            categories.append(category)
    return categories
