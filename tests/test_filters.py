from oppgrid.filters import ContainsFilter, RowSearchFilter
from oppgrid.models.grid_row import GridRow


def _rows(records):
    return [GridRow.from_record(record) for record in records]


def _visible_ids(rows):
    return [row.id for row in rows if not row.hidden]


class TestContainsFilter:
    def test_word_boundaries_rank_first(self):
        """Account names matching at a word start come before buried matches"""
        filter_obj = ContainsFilter()

        completion_list = [
            "Pacme Holdings",  # buried
            "Acme Corp",  # start
            "Big Acme",  # after space
            "NorthAcme",  # uppercase boundary
            "Globex",  # no match
        ]

        result = filter_obj.filter_matches(completion_list, "acme")

        assert len(result) == 4
        assert "Globex" not in result
        assert set(result[:3]) == {"Acme Corp", "Big Acme", "NorthAcme"}
        assert result[3] == "Pacme Holdings"

    def test_empty_text_returns_all(self):
        items = ["a", "b"]
        assert ContainsFilter().filter_matches(items, "") == items

    def test_matches_case_insensitive(self):
        filter_obj = ContainsFilter()
        assert filter_obj.matches("Closed Won", "WON")
        assert not filter_obj.matches("Closed Won", "lost")


class TestRowSearchFilter:
    def test_matches_name_account_and_stage(self, records):
        rows = _rows(records)
        search = RowSearchFilter()

        search.apply_filter(rows, "globex")
        assert _visible_ids(rows) == ["006B"]
        search.apply_filter(rows, "prospect")
        assert _visible_ids(rows) == ["006A", "006C"]
        search.apply_filter(rows, "INITECH")
        assert _visible_ids(rows) == ["006C"]

    def test_only_hidden_flag_changes(self, records):
        """Rows are never removed or reordered"""
        rows = _rows(records)
        RowSearchFilter().apply_filter(rows, "globex")

        assert [r.id for r in rows] == ["006A", "006B", "006C"]
        assert [r.hidden for r in rows] == [True, False, True]

    def test_empty_term_shows_everything(self, records):
        rows = _rows(records)
        search = RowSearchFilter()
        search.apply_filter(rows, "globex")

        search.apply_filter(rows, "")
        assert len(_visible_ids(rows)) == 3
        search.apply_filter(rows, "globex")
        search.apply_filter(rows, None)
        assert len(_visible_ids(rows)) == 3
        assert search.term == ""

    def test_searches_working_copy(self, records):
        rows = _rows(records)
        rows[0].editable.set_field("Name", "Renamed Deal")

        RowSearchFilter().apply_filter(rows, "renamed")
        assert _visible_ids(rows) == ["006A"]

    def test_no_match_hides_all(self, records):
        rows = _rows(records)
        RowSearchFilter().apply_filter(rows, "zzz")
        assert _visible_ids(rows) == []

    def test_custom_fields(self, records):
        rows = _rows(records)
        search = RowSearchFilter(fields=("StageName",))
        search.apply_filter(rows, "acme")
        assert _visible_ids(rows) == []
