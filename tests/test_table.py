import pytest

from screens.students.table import (
    ALL,
    TableState,
    apply_view,
    cell_text,
    clamp_page,
    dropdown_options,
    filter_rows,
    initial_state,
    page_count,
    paginate,
    sort_rows,
)


ROWS = [
    {"id": "1", "studentname": "Asha Rao", "state": "Karnataka", "year": 2024, "examspreparing": ["KCET", "JEE Main"], "city": "Mysuru"},
    {"id": "2", "studentname": "Bharat K", "state": "Kerala", "year": 2023, "examspreparing": ["NEET UG"], "city": None},
    {"id": "3", "studentname": "chitra S", "state": "Karnataka", "year": 2023, "examspreparing": [], "city": "Hubli"},
    {"id": "4", "studentname": "Dev M", "state": "Goa", "year": None, "examspreparing": ["KCET"], "city": ""},
]


def ids(rows):
    return [r["id"] for r in rows]


def test_search_matches_any_cell_case_insensitively():
    assert ids(filter_rows(ROWS, TableState(search="KARNATAKA"))) == ["1", "3"]
    assert ids(filter_rows(ROWS, TableState(search="jee"))) == ["1"]
    assert ids(filter_rows(ROWS, TableState(search="   "))) == ["1", "2", "3", "4"]


def test_column_filters_are_anded():
    state = TableState(column_filters={"state": "kar", "city": "hub"})
    assert ids(filter_rows(ROWS, state)) == ["3"]
    assert ids(filter_rows(ROWS, TableState(column_filters={"city": ""}))) == ["1", "2", "3", "4"]


def test_dropdown_filters():
    assert ids(filter_rows(ROWS, TableState(year="2023"))) == ["2", "3"]
    assert ids(filter_rows(ROWS, TableState(state="Goa"))) == ["4"]
    assert ids(filter_rows(ROWS, TableState(exam="KCET"))) == ["1", "4"]
    assert ids(filter_rows(ROWS, TableState(year=ALL, state=ALL, exam=ALL))) == ["1", "2", "3", "4"]


def test_toggle_sort():
    s = TableState().toggle_sort("studentname")
    assert (s.sort_key, s.sort_desc) == ("studentname", False)
    s = s.toggle_sort("studentname")
    assert s.sort_desc is True
    s = s.toggle_sort("year")
    assert (s.sort_key, s.sort_desc) == ("year", False)


def test_sort_is_case_insensitive_and_missing_values_go_last():
    assert ids(sort_rows(ROWS, "studentname")) == ["1", "2", "3", "4"]
    assert ids(sort_rows(ROWS, "city")) == ["3", "1", "2", "4"]
    assert ids(sort_rows(ROWS, "city", descending=True)) == ["1", "3", "2", "4"]
    assert ids(sort_rows(ROWS, "year", descending=True))[-1] == "4"


def test_sort_is_stable_and_without_key_keeps_order():
    assert ids(sort_rows(ROWS, "state")) == ["4", "1", "3", "2"]
    assert ids(sort_rows(ROWS, None)) == ["1", "2", "3", "4"]


def test_page_count_and_clamp():
    assert page_count(0, 25) == 1
    assert page_count(25, 25) == 1
    assert page_count(26, 25) == 2
    assert clamp_page(0, 60, 25) == 1
    assert clamp_page(9, 60, 25) == 3


@pytest.mark.parametrize("total", [0, 1, 24, 25, 26, 99, 100, 101, 250])
@pytest.mark.parametrize("size", [25, 50, 100])
def test_pages_cover_every_row_exactly_once(total, size):
    rows = [{"id": str(i)} for i in range(total)]
    seen = []
    for page in range(1, page_count(total, size) + 1):
        chunk, actual = paginate(rows, page, size)
        assert actual == page
        assert len(chunk) <= size
        seen.extend(ids(chunk))
    assert seen == ids(rows)


def test_page_size_change_resets_page():
    s = TableState(page=4).with_page_size(50)
    assert (s.page, s.page_size) == (1, 50)
    with pytest.raises(ValueError):
        TableState().with_page_size(30)


def test_apply_view_clamps_to_last_page():
    rows = [{"id": str(i), "studentname": f"n{i:03d}"} for i in range(30)]
    view = apply_view(rows, TableState(page=7, sort_key="studentname", sort_desc=True))
    assert view.total == 30
    assert view.page_count == 2
    assert view.page == 2
    assert ids(view.rows) == [str(i) for i in range(4, -1, -1)]


def test_dropdown_options():
    opts = dropdown_options(ROWS)
    assert opts["year"] == ["2024", "2023"]
    assert opts["state"] == ["Goa", "Karnataka", "Kerala"]
    assert opts["exam"] == ["JEE Main", "KCET", "NEET UG"]


def test_cell_text():
    assert cell_text(None) == ""
    assert cell_text(["a", "b"]) == "a, b"
    assert cell_text(2024) == "2024"


def test_initial_state_uses_configured_page_sizes():
    s = initial_state([10, 20], default_page_size=20)
    assert (s.page_size, s.page_sizes) == (20, (10, 20))
    assert s.with_page_size(10).page_size == 10
    with pytest.raises(ValueError):
        s.with_page_size(25)
    assert initial_state([50, 100]).page_size == 50
    with pytest.raises(ValueError):
        initial_state([25, 50], default_page_size=100)
    with pytest.raises(ValueError):
        initial_state([])


def test_configured_page_size_drives_the_view():
    rows = [{"id": str(i)} for i in range(25)]
    view = apply_view(rows, initial_state([10, 20], default_page_size=10).with_page(3))
    assert view.page_count == 3
    assert ids(view.rows) == [str(i) for i in range(20, 25)]
