"""
Tests for node classification, pointer titles and name validation.
"""

import pytest

from barswitch.errors import Result, ValidationReason, validate_name
from barswitch.types import (
    Collections,
    Ignored,
    Node,
    PointerRecord,
    StorageFolder,
    classify,
    parse_pointer_title,
    pointer_title,
)


# -----------------------------------------------------------------------------
# Pointer titles
# -----------------------------------------------------------------------------

class TestPointerTitle:

    def test_encode(self):
        assert pointer_title("CurrentBB", "Work") == "CurrentBB:Work"

    def test_parse(self):
        assert parse_pointer_title("CurrentBB", "CurrentBB:Work") == "Work"

    def test_parse_untagged(self):
        assert parse_pointer_title("CurrentBB", "Work") is None
        assert parse_pointer_title("CurrentBB", "CurrentBB") is None

    def test_parse_stops_at_second_separator(self):
        assert parse_pointer_title("CurrentBB", "CurrentBB:Work:extra") == "Work"

    def test_parse_empty_name(self):
        assert parse_pointer_title("CurrentBB", "CurrentBB:") == ""

    def test_custom_tag(self):
        assert parse_pointer_title("Active", "Active:Home") == "Home"
        assert parse_pointer_title("Active", "CurrentBB:Home") is None


# -----------------------------------------------------------------------------
# Classification
# -----------------------------------------------------------------------------

class TestClassify:

    def test_pointer(self):
        node = Node(id="9", parent_id="3", title="CurrentBB:Work", url="http://x")
        entry = classify(node, "CurrentBB")
        assert isinstance(entry, PointerRecord)
        assert entry.name == "Work"

    def test_folder(self):
        node = Node(id="4", parent_id="3", title="Work")
        entry = classify(node, "CurrentBB")
        assert isinstance(entry, StorageFolder)
        assert entry.name == "Work"

    def test_stray_bookmark_is_ignored(self):
        node = Node(id="7", parent_id="3", title="news", url="https://news.example")
        assert isinstance(classify(node, "CurrentBB"), Ignored)

    def test_pointer_tag_wins_over_folder_shape(self):
        """A folder titled like a pointer is still a pointer candidate."""
        node = Node(id="8", parent_id="3", title="CurrentBB:Home")
        assert isinstance(classify(node, "CurrentBB"), PointerRecord)


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------

class TestValidateName:

    def test_valid(self):
        assert validate_name("Work", ["Default", "Home"]) is None

    def test_empty(self):
        error = validate_name("", [])
        assert error.reason is ValidationReason.EMPTY
        assert error.message == "Please provide a name."

    def test_separator(self):
        error = validate_name("has:colon", [])
        assert error.reason is ValidationReason.RESERVED_CHARACTER
        assert error.message == "The name can't contain a colon."

    def test_duplicate(self):
        error = validate_name("Home", ["Default", "Home"])
        assert error.reason is ValidationReason.DUPLICATE
        assert error.message == "This name is taken."

    def test_empty_checked_before_duplicate(self):
        assert validate_name("", [""]).reason is ValidationReason.EMPTY

    def test_case_sensitive(self):
        assert validate_name("work", ["Work"]) is None


class TestResult:

    def test_success_is_truthy(self):
        assert Result.success()
        assert Result.success().error is None

    def test_failure_carries_error(self):
        error = validate_name("", [])
        result = Result.failure(error)
        assert not result
        assert result.error is error


class TestCollections:

    def test_unpacks(self):
        names, current = Collections(names=("Default", "Work"), current="Work")
        assert names == ("Default", "Work")
        assert current == "Work"

    def test_to_dict(self):
        c = Collections(names=("Default",), current="Default")
        assert c.to_dict() == {"names": ["Default"], "current": "Default"}


@pytest.mark.parametrize("url,expected", [(None, True), ("https://a", False)])
def test_node_is_folder(url, expected):
    assert Node(id="1", parent_id="0", title="x", url=url).is_folder is expected
