"""Shared fixtures: a throwaway SQLite database and a mocked HTTP fetcher."""

from __future__ import annotations

from datetime import datetime

import httpx
import pytest

from bidwatch.core.fetch.http_fetcher import HttpFetcher
from bidwatch.core.normalize.canonical import NormalizedRecord
from bidwatch.persistence.db import create_db_engine, make_sessionmaker, session_scope
from bidwatch.persistence.models import Base


LISTING_HTML = """
<html><body>
<table class="resultados">
  <tr><th>Número</th><th>Objeto</th><th>Órgão</th><th>Abertura</th><th>Modalidade</th><th>Link</th></tr>
  <tr>
    <td> 001/2024 </td>
    <td>Construção de escola municipal</td>
    <td>Secretaria de Estado da Fazenda</td>
    <td>15/03/2024 14:30</td>
    <td>Pregão Eletrônico</td>
    <td><a href="/ConsultaLicitacoes/detalhe.asp?id=1">Ver</a></td>
  </tr>
  <tr>
    <td>002/2024</td>
    <td>Aquisição de computadores</td>
    <td>Ministério da Saúde</td>
    <td>20/03/2024 10:00</td>
    <td>Concorrência</td>
    <td><a href="detalhe.asp?id=2">Ver</a></td>
  </tr>
</table>
</body></html>
"""


DETAIL_HTML = """
<html><body>
<table class="detalhes">
  <tr><td>Valor estimado:</td><td>R$ 1.234.567,89</td></tr>
  <tr><td>Data de publicação:</td><td>01/03/2024</td></tr>
  <tr><td>Situação:</td><td>Publicado</td></tr>
</table>
<a href="/arquivos/edital_001.pdf">Edital completo</a>
<a href="/arquivos/edital_001.pdf">Edital (cópia)</a>
<a href="/arquivos/anexo_edital.zip"></a>
<a href="/arquivos/ata.pdf">Ata</a>
</body></html>
"""


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'bidwatch.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return session_scope(make_sessionmaker(engine))


@pytest.fixture
def make_record():
    def _make(notice_number: str = "001/2024", **overrides) -> NormalizedRecord:
        fields = {
            "description": "Construção de escola municipal",
            "organization": "Secretaria de Estado da Fazenda",
            "opening_date": datetime(2024, 3, 15, 14, 30),
            "modality": "Pregão Eletrônico",
            "detail_url": "https://comprasnet.gov.br/ConsultaLicitacoes/detalhe.asp?id=1",
            "source": "ComprasNet",
        }
        fields.update(overrides)
        return NormalizedRecord(notice_number=notice_number, **fields)

    return _make


@pytest.fixture
def mock_fetcher():
    """Build an HttpFetcher whose requests go to a handler function."""

    def _make(handler) -> HttpFetcher:
        return HttpFetcher(transport=httpx.MockTransport(handler))

    return _make
