"""Classification - categories and organization acronyms."""

from .acronym import make_acronym
from .categorizer import DEFAULT_CATEGORY, DEFAULT_CATEGORY_RULES, Categorizer

__all__ = [
    "make_acronym",
    "DEFAULT_CATEGORY",
    "DEFAULT_CATEGORY_RULES",
    "Categorizer",
]
