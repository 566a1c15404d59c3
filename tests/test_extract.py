import pytest

from rvis_crawler.etl import extract
from rvis_crawler.models import TableRow

HEADER_TABLE = """
<html><body>
<form><input type="hidden" name="_csrf" value="0123456789abcdef"></form>
<table class="table table-striped">
  <thead><tr><th>縣市</th><th>名稱</th><th>電話</th><th>地址</th></tr></thead>
  <tbody>
    <tr><td>臺北市</td><td><a href="#">Clinic A</a></td><td>02-1234</td><td> Road 1 </td></tr>
    <tr><td>新北市</td><td>Clinic B</td><td>02-5678</td><td>Road 2</td></tr>
  </tbody>
</table>
</body></html>
"""

DATA_FIRST_TABLE = """
<table class="result-table">
  <tr><td>臺中市</td><td>Clinic C</td><td>04-1111</td><td>Road 3</td></tr>
  <tr><td>臺南市</td><td>Clinic D</td><td>06-2222</td><td>Road 4</td></tr>
</table>
"""


def test_extract_token_from_hidden_field():
    assert extract.extract_token(HEADER_TABLE) == "0123456789abcdef"


def test_extract_token_falls_back_to_meta_tag():
    html = '<head><meta name="_csrf" content="meta-token"></head><body></body>'
    assert extract.extract_token(html) == "meta-token"


@pytest.mark.parametrize(
    "html",
    [
        "<html><body>no form here</body></html>",
        '<input type="hidden" name="_csrf" value="">',
        "",
    ],
)
def test_extract_token_missing(html):
    with pytest.raises(extract.TokenMissing):
        extract.extract_token(html)


def test_header_row_is_skipped():
    rows = extract.extract_table_rows(HEADER_TABLE)

    assert rows == [
        TableRow(county="臺北市", name="Clinic A", phone="02-1234", address="Road 1"),
        TableRow(county="新北市", name="Clinic B", phone="02-5678", address="Road 2"),
    ]


def test_leading_data_row_is_kept():
    rows = extract.extract_table_rows(DATA_FIRST_TABLE)

    assert [row.name for row in rows] == ["Clinic C", "Clinic D"]


def test_only_first_row_is_treated_as_header():
    html = """
    <table class="table">
      <tr><th>a</th><th>b</th><th>c</th><th>d</th></tr>
      <tr><td>1</td><td>2</td><td>3</td><td>4</td></tr>
      <tr><th>x</th><td>5</td><td>6</td><td>7</td><td>8</td></tr>
    </table>
    """
    rows = extract.extract_table_rows(html)

    assert len(rows) == 2
    assert rows[1] == TableRow(county="5", name="6", phone="7", address="8")


def test_short_rows_are_skipped():
    html = """
    <table class="table">
      <tr><td>臺北市</td><td>Clinic A</td><td>02-1234</td><td>Road 1</td><td>extra</td></tr>
      <tr><td colspan="4">查無資料</td></tr>
      <tr><td>a</td><td>b</td><td>c</td></tr>
    </table>
    """
    rows = extract.extract_table_rows(html)

    assert rows == [TableRow(county="臺北市", name="Clinic A", phone="02-1234", address="Road 1")]


def test_table_without_matching_class_is_ignored():
    html = '<table class="layout"><tr><td>a</td><td>b</td><td>c</td><td>d</td></tr></table>'
    assert extract.extract_table_rows(html) == []


def test_first_matching_table_wins():
    html = DATA_FIRST_TABLE + HEADER_TABLE
    rows = extract.extract_table_rows(html)

    assert [row.name for row in rows] == ["Clinic C", "Clinic D"]


def test_cell_markup_is_stripped():
    html = """
    <table class="table">
      <tr><td><span> 臺北市 </span></td><td><b>Clinic</b> A</td><td>02-1234<br></td><td>
          Road 1
      </td></tr>
    </table>
    """
    rows = extract.extract_table_rows(html)

    assert rows == [TableRow(county="臺北市", name="Clinic A", phone="02-1234", address="Road 1")]


def test_nested_table_rows_are_not_outer_rows():
    html = """
    <table class="table">
      <tr><th>縣市</th><th>名稱</th><th>電話</th><th>地址</th></tr>
      <tr><td>a</td><td>N</td><td>p</td><td><table><tr><td>1</td><td>2</td><td>3</td><td>4</td></tr></table></td></tr>
      <tr><td>b</td><td>M</td><td>q</td><td>Road</td></tr>
    </table>
    """
    rows = extract.extract_table_rows(html)

    assert [row.name for row in rows] == ["N", "M"]
    assert rows[0].county == "a"


def test_rows_inside_thead_tbody_and_tfoot_keep_document_order():
    html = """
    <table class="table">
      <thead><tr><th>a</th><th>b</th><th>c</th><th>d</th></tr></thead>
      <tbody><tr><td>1</td><td>first</td><td>3</td><td>4</td></tr></tbody>
      <tfoot><tr><td>5</td><td>last</td><td>7</td><td>8</td></tr></tfoot>
    </table>
    """
    rows = extract.extract_table_rows(html)

    assert [row.name for row in rows] == ["first", "last"]


def test_no_table_returns_empty_list():
    assert extract.extract_table_rows("<html></html>") == []
    assert extract.extract_table_rows("") == []
