"""Tests for the listing and detail page extractors."""

from datetime import datetime
from decimal import Decimal

import pytest

from bidwatch.core.errors import ParseError
from bidwatch.core.extract.detail import DetailPageExtractor
from bidwatch.core.extract.rows import TableRowExtractor

from conftest import DETAIL_HTML, LISTING_HTML


@pytest.fixture
def extractor():
    return TableRowExtractor(
        row_selector="table.resultados tr",
        min_columns=6,
        base_url="https://comprasnet.gov.br/ConsultaLicitacoes/ConsLicitacaoPorData.asp",
        source="ComprasNet",
    )


def test_extract_rows_skips_header_row(extractor):
    rows = list(extractor.extract_rows(LISTING_HTML))

    assert [r.notice_number for r in rows] == ["001/2024", "002/2024"]
    assert rows[0].organization == "Secretaria de Estado da Fazenda"
    assert rows[0].opening_date == "15/03/2024 14:30"
    assert rows[0].source == "ComprasNet"


def test_extract_rows_resolves_detail_links_against_origin(extractor):
    rows = list(extractor.extract_rows(LISTING_HTML))

    assert rows[0].detail_url == "https://comprasnet.gov.br/ConsultaLicitacoes/detalhe.asp?id=1"
    assert rows[1].detail_url == "https://comprasnet.gov.br/detalhe.asp?id=2"


def test_extract_rows_skips_short_rows(extractor):
    html = """
    <html><body><table class="resultados">
      <tr><td>003/2024</td><td>Only three</td><td>cells</td></tr>
      <tr><td>004/2024</td><td>Obra</td><td>Prefeitura</td><td>01/04/2024 09:00</td><td>Tomada</td><td></td></tr>
    </table></body></html>
    """
    rows = list(extractor.extract_rows(html))

    assert [r.notice_number for r in rows] == ["004/2024"]
    assert rows[0].detail_url is None


def test_extract_rows_is_restartable(extractor):
    rows = extractor.extract_rows(LISTING_HTML)

    first = [r.to_dict() for r in rows]
    second = [r.to_dict() for r in rows]

    assert first == second
    assert len(first) == 2


LATIN1_LISTING = """<?xml version="1.0" encoding="iso-8859-1"?>
<html><body><table class="resultados">
  <tr><td>005/2024</td><td>Aquisição de veículos</td><td>Prefeitura de São José</td>
      <td>02/04/2024 10:00</td><td>Pregão</td><td><a href="/detalhe.asp?id=5">ver</a></td></tr>
</table></body></html>
"""


def test_extract_rows_reads_xml_declared_latin1_bytes(extractor):
    rows = list(extractor.extract_rows(LATIN1_LISTING.encode("iso-8859-1")))

    assert len(rows) == 1
    assert rows[0].description == "Aquisição de veículos"
    assert rows[0].organization == "Prefeitura de São José"


def test_extract_rows_accepts_text_with_xml_declaration(extractor):
    rows = list(extractor.extract_rows(LATIN1_LISTING))

    assert [r.notice_number for r in rows] == ["005/2024"]


def test_extract_rows_uses_the_http_charset_for_bytes(extractor):
    html = LATIN1_LISTING.replace(' encoding="iso-8859-1"', "")

    rows = list(extractor.extract_rows(html.encode("iso-8859-1"), encoding="iso-8859-1"))

    assert rows[0].modality == "Pregão"


def test_extract_rows_sniffs_utf8_bytes(extractor):
    rows = list(extractor.extract_rows(LISTING_HTML.encode("utf-8")))

    assert rows[1].organization == "Ministério da Saúde"


@pytest.mark.parametrize("html", ["", "   ", "<html><body><p>Nenhum resultado</p></body></html>"])
def test_extract_rows_yields_nothing_for_empty_pages(extractor, html):
    assert list(extractor.extract_rows(html)) == []


def test_detail_extractor_reads_value_date_and_documents():
    detail = DetailPageExtractor().extract(
        DETAIL_HTML,
        base_url="https://comprasnet.gov.br/ConsultaLicitacoes/detalhe.asp?id=1",
    )

    assert detail.estimated_value == Decimal("1234567.89")
    assert detail.published_at == datetime(2024, 3, 1)
    assert detail.fields["Situação"] == "Publicado"

    assert [d.url for d in detail.documents] == [
        "https://comprasnet.gov.br/arquivos/edital_001.pdf",
        "https://comprasnet.gov.br/arquivos/anexo_edital.zip",
    ]
    assert detail.documents[0].name == "Edital completo"
    assert detail.documents[1].name == "anexo_edital.zip"


def test_detail_extractor_tolerates_malformed_value():
    html = """
    <html><body><table class="detalhes">
      <tr><td>Valor estimado</td><td>sigiloso</td></tr>
    </table></body></html>
    """
    detail = DetailPageExtractor().extract(html)

    assert detail.estimated_value is None
    assert detail.published_at is None
    assert detail.documents == []
    assert detail.is_empty


def test_detail_extractor_rejects_empty_page():
    with pytest.raises(ParseError):
        DetailPageExtractor().extract("")
