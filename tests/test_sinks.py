import io

import orjson

from csvwatch.sinks import JsonLinesRowHandler, PrintRowHandler


def test_print_handler_numbers_columns() -> None:
    stream = io.StringIO()
    handler = PrintRowHandler(stream)
    handler("/data/a.csv", ["1", "x y"])
    handler("/data/a.csv", [])
    assert stream.getvalue() == "[/data/a.csv] col0=1|col1=x y|\n[/data/a.csv] \n"


def test_json_handler_writes_one_object_per_row() -> None:
    stream = io.StringIO()
    handler = JsonLinesRowHandler(stream)
    handler("/data/a.csv", ["1", "café"])
    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    assert orjson.loads(lines[0]) == {"path": "/data/a.csv", "row": ["1", "café"]}
