"""
Keyword-based notice categorization.

The rule table is ordered: the first category with any keyword found in
the description wins, not the best match.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from bidwatch.core.config.models import CategoryRule

if TYPE_CHECKING:
    from bidwatch.persistence.models import Category
    from bidwatch.persistence.repo import LookupRepository


DEFAULT_CATEGORY = "Other"

DEFAULT_CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        name="Works",
        keywords=[
            "construção", "reforma", "obra", "edificação", "pavimentação",
            "construction", "renovation", "paving",
        ],
        description="Construction, renovation and paving works",
    ),
    CategoryRule(
        name="Services",
        keywords=[
            "serviço", "manutenção", "consultoria", "assessoria",
            "service", "maintenance", "consulting",
        ],
        description="Services, maintenance and consulting",
    ),
    CategoryRule(
        name="IT",
        keywords=[
            "software", "computador", "informática", "sistema", "tecnologia",
            "computer", "technology",
        ],
        description="Information technology",
    ),
    CategoryRule(
        name="Health",
        keywords=[
            "medicamento", "hospital", "médico", "saúde", "farmacêutico",
            "medicine", "medical", "health", "pharmaceutical",
        ],
        description="Health, medicines and hospital supplies",
    ),
    CategoryRule(
        name="Food",
        keywords=["alimentação", "alimento", "refeição", "merenda", "food", "meal"],
        description="Food and meals",
    ),
    CategoryRule(
        name="Equipment",
        keywords=[
            "equipamento", "mobiliário", "móveis", "máquina",
            "equipment", "furniture", "machine",
        ],
        description="Equipment, machines and furniture",
    ),
)


class Categorizer:
    """Assign a category name to a notice description.

    Args:
        rules: Ordered keyword table (default: built-in table)
        default: Category used when no keyword matches
    """

    def __init__(
        self,
        rules: Sequence[CategoryRule] | None = None,
        default: str = DEFAULT_CATEGORY,
    ):
        self.rules = tuple(rules) if rules else DEFAULT_CATEGORY_RULES
        self.default = default
        self._descriptions = {rule.name: rule.description for rule in self.rules}

    def categorize(self, description: str | None) -> str:
        """Return the first matching category name, or the default.

        Total and deterministic: every input, including None and the
        empty string, yields a non-empty name.
        """
        if not description:
            return self.default

        text = description.lower()
        for rule in self.rules:
            if any(keyword in text for keyword in rule.keywords):
                return rule.name
        return self.default

    def resolve(self, lookups: LookupRepository, description: str | None) -> Category:
        """Categorize and find-or-create the Category row."""
        name = self.categorize(description)
        category, _ = lookups.get_or_create_category(name, description=self._descriptions.get(name))
        return category
