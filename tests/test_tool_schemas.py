import pytest

from tool_schemas.loader import load_tool_definitions
from workbench.constants import (
    EDIT_FILE_FIELDS,
    READ_FIELDS,
    SEARCH_FIELDS,
    SOURCE_EDIT_FIELDS,
    SOURCE_OPERATIONS,
)

ENDPOINT_FIELDS = {
    "search_files": SEARCH_FIELDS,
    "read_file": READ_FIELDS,
    "edit_file": EDIT_FILE_FIELDS,
    "edit_source": SOURCE_EDIT_FIELDS,
}


def _schemas_by_name():
    return {
        tool["function"]["name"]: tool["function"]["parameters"]
        for tool in load_tool_definitions()
    }


@pytest.mark.parametrize("name", sorted(ENDPOINT_FIELDS))
def test_schema_properties_match_accepted_fields(name):
    parameters = _schemas_by_name()[name]

    assert set(parameters["properties"]) == ENDPOINT_FIELDS[name]


def test_edit_source_schema_lists_every_operation():
    operation = _schemas_by_name()["edit_source"]["properties"]["operation"]

    assert operation["enum"] == list(SOURCE_OPERATIONS)


def test_path_is_required_wherever_a_file_is_targeted():
    schemas = _schemas_by_name()

    assert schemas["search_files"]["required"] == []
    for name in ("read_file", "edit_file", "edit_source"):
        assert "path" in schemas[name]["required"]
