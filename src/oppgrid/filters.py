from collections.abc import Sequence

from .models.constants import SEARCHABLE_FIELDS
from .models.grid_row import GridRow


class FilterBase:
    """Base class for text matching strategies"""

    def filter_matches(self, completion_list, current_text):
        """Filter completion list based on current text"""
        raise NotImplementedError()


class ContainsFilter(FilterBase):
    """Contains matching strategy with word boundary prioritization"""

    def matches(self, item, current_text):
        """Case-insensitive substring test for a single item"""
        return current_text.lower() in str(item).lower()

    def filter_matches(self, completion_list, current_text):
        if not current_text:
            return completion_list

        current_lower = current_text.lower()

        # Split into two groups: matches at word boundaries vs matches anywhere
        word_start_matches = []
        other_matches = []

        for item in completion_list:
            item_str = str(item).lower()
            if current_lower not in item_str:
                continue

            # Check if match occurs after common word delimiters or before uppercase
            match_pos = item_str.find(current_lower)
            original_item_str = str(item)
            if (
                match_pos == 0
                or original_item_str[match_pos - 1] in "_- "
                or original_item_str[match_pos].isupper()
            ):
                word_start_matches.append(item)
            else:
                other_matches.append(item)

        return word_start_matches + other_matches


class RowSearchFilter:
    """Marks grid rows hidden/visible from a search term.

    Only the `hidden` flag changes; rows are never removed or reordered.
    Matches Name, AccountName and StageName of the working copy.
    """

    def __init__(self, fields: Sequence[str] = SEARCHABLE_FIELDS):
        self._fields = tuple(fields)
        self._strategy = ContainsFilter()
        self.term = ""

    def row_matches(self, row: GridRow, term: str) -> bool:
        """Check if any searchable working-copy field contains term."""
        for field_name in self._fields:
            value = row.editable.get_field(field_name)
            if value and self._strategy.matches(value, term):
                return True
        return False

    def apply_filter(self, rows: Sequence[GridRow], term: str | None) -> None:
        """Update `hidden` on every row for term."""
        self.term = (term or "").lower()
        if not self.term:
            for row in rows:
                row.hidden = False
        else:
            for row in rows:
                row.hidden = not self.row_matches(row, self.term)
