"""Housing search and selection tools."""

from __future__ import annotations

from relocation_agent.schemas.housing import (
    CreateHousingOptionInput,
    ListHousingInput,
    SearchHousingInput,
    SelectHousingInput,
)
from relocation_agent.tools.base import create_tool, forward

TOOLS = [
    create_tool("search_housing")
    .describe("Search for housing options for a move by location, budget and bedrooms")
    .input(SearchHousingInput)
    .handler(forward("housing.search", mutation=False)),
    create_tool("list_housing_options")
    .describe("List housing options with filters")
    .input(ListHousingInput)
    .handler(forward("housing.list", mutation=False)),
    create_tool("create_housing_option")
    .describe("Create a new housing option")
    .input(CreateHousingOptionInput)
    .handler(forward("housing.create", mutation=True)),
    create_tool("select_housing")
    .describe("Select a housing option for a move")
    .input(SelectHousingInput)
    .handler(forward("housing.select", mutation=True)),
]
