import pytest

from csvwatch.errors import ParseError
from csvwatch.tabular import parse_line, parse_rows, strip_bom


def test_parse_rows_keeps_order_and_quoting() -> None:
    text = 'a,b\n"c,d",e\n\n"say ""hi""",f\n'
    assert parse_rows(text) == [["a", "b"], ["c,d", "e"], ['say "hi"', "f"]]


def test_parse_rows_can_drop_header() -> None:
    assert parse_rows("h1,h2\n1,2\n", has_header=True) == [["1", "2"]]
    assert parse_rows("", has_header=True) == []


def test_parse_rows_rejects_malformed_quotes() -> None:
    with pytest.raises(ParseError, match="line 2"):
        parse_rows('ok\n1,"x"y\n')


def test_quoted_field_never_spans_lines() -> None:
    assert parse_rows('1,"a\nb",2\n', errors=[]) == [['b"', "2"]]
    with pytest.raises(ParseError, match="line 1"):
        parse_rows('1,"a\nb",2\n')


def test_parse_rows_collects_errors_and_keeps_good_lines() -> None:
    errors = []
    assert parse_rows('1,"open\n2,3\n4,5\n', errors=errors) == [["2", "3"], ["4", "5"]]
    assert len(errors) == 1
    assert "line 1" in str(errors[0])


def test_parse_line_drops_trailing_carriage_return() -> None:
    assert parse_line("a,b\r") == ["a", "b"]
    assert parse_line("") == []


def test_strip_bom() -> None:
    assert strip_bom(b"\xef\xbb\xbfa,b") == b"a,b"
    assert strip_bom(b"a,b") == b"a,b"
