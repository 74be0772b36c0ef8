"""Tests for the categorizer and acronym generator."""

import pytest

from bidwatch.core.classify.acronym import make_acronym
from bidwatch.core.classify.categorizer import DEFAULT_CATEGORY, Categorizer
from bidwatch.core.config.models import CategoryRule
from bidwatch.persistence.repo import LookupRepository


def test_acronym_drops_stop_words_and_keeps_token_order():
    assert make_acronym("Secretaria de Estado da Fazenda") == "SEF"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Ministério da Saúde", "MS"),
        ("Tribunal Regional Eleitoral do RJ", "TRE"),
        ("de da do", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_acronym_edge_cases(name, expected):
    assert make_acronym(name) == expected


@pytest.mark.parametrize(
    "description, expected",
    [
        ("Construção de escola municipal", "Works"),
        ("Aquisição de computadores", "IT"),
        ("Fornecimento de MEDICAMENTOS", "Health"),
        ("Merenda escolar", "Food"),
    ],
)
def test_categorize_first_matching_rule(description, expected):
    assert Categorizer().categorize(description) == expected


@pytest.mark.parametrize("description", ["Locação de veículos", "", None])
def test_categorize_defaults_to_other(description):
    assert Categorizer().categorize(description) == DEFAULT_CATEGORY == "Other"


def test_categorize_rule_order_wins_over_best_match():
    # "reforma" (Works) comes before "sistema" and "software" (IT)
    description = "Reforma do sistema de software"
    assert Categorizer().categorize(description) == "Works"

    rules = [
        CategoryRule(name="IT", keywords=["sistema", "software"]),
        CategoryRule(name="Works", keywords=["reforma"]),
    ]
    assert Categorizer(rules).categorize(description) == "IT"


def test_categorize_is_deterministic():
    categorizer = Categorizer()
    results = {categorizer.categorize("Serviço de manutenção predial") for _ in range(10)}
    assert results == {"Services"}


def test_resolve_find_or_creates_category_once(session_factory):
    categorizer = Categorizer()

    with session_factory() as session:
        first = categorizer.resolve(LookupRepository(session), "Obra de pavimentação")
        second = categorizer.resolve(LookupRepository(session), "Construção de ponte")
        assert first.id == second.id
        assert first.name == "Works"

    with session_factory() as session:
        names = [c.name for c in LookupRepository(session).list_categories()]
    assert names == ["Works"]
