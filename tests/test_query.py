"""Validate query string construction for list and search endpoints."""

from datetime import date, datetime

from clinic_portal.core.models import AppointmentStatus
from clinic_portal.data.query import build_query, with_query


class TestBuildQuery:
    """Test omission, ordering and encoding rules."""

    def test_drops_empty_and_missing_values(self):
        """Empty strings and None never reach the query string."""
        query = build_query({"page": 1, "limit": 20, "search": "", "status": None})
        assert query == "page=1&limit=20"

    def test_keeps_falsy_values_that_are_not_empty(self):
        assert build_query({"offset": 0, "active": False}) == "offset=0&active=false"

    def test_every_kept_key_appears_once_in_input_order(self):
        params = {"z": "last", "a": "first", "empty": "", "m": 5}
        query = build_query(params)

        names = [part.split("=")[0] for part in query.split("&")]
        assert names == ["z", "a", "m"]
        assert "empty" not in query

    def test_percent_encodes_names_and_values(self):
        query = build_query({"q": "Smith & Sons", "clinic name": "body/bliss"})
        assert query == "q=Smith%20%26%20Sons&clinic%20name=body%2Fbliss"

    def test_leaves_unreserved_marks_alone(self):
        assert build_query({"q": "it's (fine)!*"}) == "q=it's%20(fine)!*"

    def test_serializes_booleans_dates_and_enums(self):
        query = build_query(
            {
                "read": True,
                "day": date(2024, 3, 5),
                "at": datetime(2024, 3, 5, 9, 30),
                "status": AppointmentStatus.COMPLETED,
            }
        )
        assert query == "read=true&day=2024-03-05&at=2024-03-05T09%3A30%3A00&status=1"

    def test_empty_input(self):
        assert build_query({}) == ""
        assert build_query(None) == ""
        assert build_query({"a": None, "b": ""}) == ""

    def test_accepts_pairs(self):
        assert build_query([("a", 1), ("b", None), ("c", "x")]) == "a=1&c=x"


class TestWithQuery:
    """Test query strings appended to paths."""

    def test_no_separator_without_parameters(self):
        assert with_query("/clients", {"search": ""}) == "/clients"

    def test_appends_question_mark(self):
        assert with_query("/clients", {"page": 2}) == "/clients?page=2"

    def test_extends_existing_query(self):
        assert with_query("/orders?sort=asc", {"page": 2}) == "/orders?sort=asc&page=2"
