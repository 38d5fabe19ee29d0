"""Tests for error-location resolution, source windows and stack parsing."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from conftest import PROJECT_ID

from source_resolver.core.errors import LookupFailure
from source_resolver.core.location import (
    batch_resolve_error_locations,
    get_source_code_with_context,
    parse_error_stack,
    resolve_error_location,
    resolve_stack_trace,
)
from source_resolver.db.memory import InMemoryAssociationStore
from source_resolver.models import ErrorLocation, FileContent, RawLocation

V8_STACK = """TypeError: cart is empty
    at checkout (https://shop.example.com/static/main.js:1:2041)
    at https://shop.example.com/static/main.js:1:5120
    at async Promise.all (index 0)
"""

GECKO_STACK = """checkout@https://shop.example.com/static/main.js:1:2041
@https://shop.example.com/static/vendor.js:3:77
"""


def _register(store: InMemoryAssociationStore, version: str = "1.2.0") -> None:
    store.register_position(
        PROJECT_ID,
        version,
        "main.js",
        1,
        2041,
        RawLocation(source="src/app.js", line=7, column=10, name="checkout", context_lines=["a", "b"]),
    )


class TestResolveErrorLocation:
    @pytest.mark.asyncio
    async def test_resolves_registered_position(self, seeded_store: InMemoryAssociationStore) -> None:
        _register(seeded_store)
        loc = await resolve_error_location(seeded_store, PROJECT_ID, "1.2.0", "main.js", 1, 2041)
        assert loc is not None
        assert loc.original_file == "src/app.js"
        assert loc.original_line == 7
        assert loc.original_column == 10
        assert loc.function_name == "checkout"
        assert loc.context_lines == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unresolvable_position_is_none(self, seeded_store: InMemoryAssociationStore) -> None:
        assert await resolve_error_location(seeded_store, PROJECT_ID, "1.2.0", "main.js", 99, 1) is None

    @pytest.mark.asyncio
    async def test_unknown_version_is_none(self, seeded_store: InMemoryAssociationStore) -> None:
        assert await resolve_error_location(seeded_store, PROJECT_ID, "7.0.0", "main.js", 1, 2041) is None

    @pytest.mark.asyncio
    async def test_missing_fields_fall_back_to_request(self) -> None:
        store = AsyncMock()
        store.resolve_location.return_value = RawLocation(name="fn")
        loc = await resolve_error_location(store, PROJECT_ID, "1.0.0", "main.js", 4, 8)
        assert loc is not None
        assert (loc.original_file, loc.original_line, loc.original_column) == ("main.js", 4, 8)

    @pytest.mark.asyncio
    async def test_zero_column_from_provider_is_kept(self) -> None:
        store = AsyncMock()
        store.resolve_location.return_value = RawLocation(source="src/a.js", line=3, column=0)
        loc = await resolve_error_location(store, PROJECT_ID, "1.0.0", "main.js", 4, 8)
        assert loc is not None
        assert loc.original_column == 0

    @pytest.mark.asyncio
    async def test_lookup_failure_is_absorbed(self) -> None:
        store = AsyncMock()
        store.resolve_location.side_effect = LookupFailure("timeout")
        assert await resolve_error_location(store, PROJECT_ID, "1.0.0", "main.js", 1) is None


class TestSourceCodeWithContext:
    @pytest.mark.asyncio
    async def test_window_is_clipped_to_file(self, seeded_store: InMemoryAssociationStore) -> None:
        window = await get_source_code_with_context(seeded_store, PROJECT_ID, "1.2.0", "src/app.js", 2, 3)
        assert window is not None
        assert window.start_line == 1
        assert window.end_line == 5
        assert window.target_line == 2
        assert window.context_lines[0].startswith("import { helper }")
        assert len(window.context_lines) == window.end_line - window.start_line + 1

    @pytest.mark.asyncio
    async def test_window_in_the_middle(self, seeded_store: InMemoryAssociationStore) -> None:
        window = await get_source_code_with_context(seeded_store, PROJECT_ID, "1.2.0", "src/app.js", 7, 1)
        assert window is not None
        assert (window.start_line, window.end_line) == (6, 8)
        assert window.context_lines[1].strip() == "throw new TypeError('cart is empty');"

    @pytest.mark.asyncio
    async def test_missing_file_is_none(self, seeded_store: InMemoryAssociationStore) -> None:
        assert await get_source_code_with_context(seeded_store, PROJECT_ID, "1.2.0", "nope.js", 1) is None

    @pytest.mark.asyncio
    async def test_zero_bounds_default_to_one(self) -> None:
        store = AsyncMock()
        store.get_file_content.return_value = FileContent(content="x", start_line=0, end_line=0)
        window = await get_source_code_with_context(store, PROJECT_ID, "1.0.0", "a.js", 1)
        assert window is not None
        assert (window.start_line, window.end_line) == (1, 1)

    @pytest.mark.asyncio
    async def test_lookup_failure_is_absorbed(self) -> None:
        store = AsyncMock()
        store.get_file_content.side_effect = LookupFailure("HTTP 500")
        assert await get_source_code_with_context(store, PROJECT_ID, "1.0.0", "a.js", 1) is None


class TestBatchResolve:
    @pytest.mark.asyncio
    async def test_results_keep_input_order(self, seeded_store: InMemoryAssociationStore) -> None:
        _register(seeded_store)
        locations = [
            ErrorLocation(project_id=PROJECT_ID, version="1.2.0", file_name="main.js", line=99, column=1),
            ErrorLocation(project_id=PROJECT_ID, version="1.2.0", file_name="main.js", line=1, column=2041),
        ]
        results = await batch_resolve_error_locations(seeded_store, locations)
        assert len(results) == 2
        assert results[0] is None
        assert results[1] is not None
        assert results[1].original_file == "src/app.js"

    @pytest.mark.asyncio
    async def test_unexpected_error_isolated_to_its_element(self) -> None:
        store = AsyncMock()
        store.resolve_location.side_effect = [RuntimeError("bug"), RawLocation(source="src/b.js", line=2)]
        locations = [
            ErrorLocation(project_id=PROJECT_ID, version="1.0.0", file_name="a.js", line=1),
            ErrorLocation(project_id=PROJECT_ID, version="1.0.0", file_name="b.js", line=2),
        ]
        results = await batch_resolve_error_locations(store, locations)
        assert results[0] is None
        assert results[1] is not None
        assert results[1].original_file == "src/b.js"

    @pytest.mark.asyncio
    async def test_empty_batch(self, memory_store: InMemoryAssociationStore) -> None:
        assert await batch_resolve_error_locations(memory_store, []) == []


class TestParseErrorStack:
    def test_v8_frames(self) -> None:
        frames = parse_error_stack(V8_STACK)
        assert len(frames) == 2
        assert frames[0].function_name == "checkout"
        assert frames[0].file_name == "https://shop.example.com/static/main.js"
        assert (frames[0].line, frames[0].column) == (1, 2041)
        assert frames[1].function_name is None
        assert frames[1].column == 5120

    def test_gecko_frames(self) -> None:
        frames = parse_error_stack(GECKO_STACK)
        assert [f.function_name for f in frames] == ["checkout", None]
        assert frames[1].file_name == "https://shop.example.com/static/vendor.js"
        assert (frames[1].line, frames[1].column) == (3, 77)

    def test_no_frames(self) -> None:
        assert parse_error_stack("Error: something\nno frames here") == []


class TestResolveStackTrace:
    @pytest.mark.asyncio
    async def test_one_result_per_frame(self, seeded_store: InMemoryAssociationStore) -> None:
        seeded_store.register_position(
            PROJECT_ID,
            "1.2.0",
            "https://shop.example.com/static/main.js",
            1,
            2041,
            RawLocation(source="src/app.js", line=7, column=10, name="checkout"),
        )
        results = await resolve_stack_trace(seeded_store, PROJECT_ID, "1.2.0", V8_STACK)
        assert len(results) == 2
        assert results[0] is not None
        assert results[0].original_line == 7
        assert results[1] is None


@pytest.mark.asyncio
async def test_resolved_location_round_trips_into_context(seeded_store: InMemoryAssociationStore) -> None:
    _register(seeded_store)
    loc = await resolve_error_location(seeded_store, PROJECT_ID, "1.2.0", "main.js", 1, 2041)
    assert loc is not None

    window = await get_source_code_with_context(
        seeded_store, PROJECT_ID, "1.2.0", loc.original_file, loc.original_line
    )

    assert window is not None
    assert window.target_line == loc.original_line


@pytest.mark.asyncio
async def test_batch_failure_is_isolated_in_the_middle(seeded_store: InMemoryAssociationStore) -> None:
    _register(seeded_store)
    good = ErrorLocation(project_id=PROJECT_ID, version="1.2.0", file_name="main.js", line=1, column=2041)
    bad = ErrorLocation(project_id=PROJECT_ID, version="0.0.0", file_name="main.js", line=1, column=2041)

    results = await batch_resolve_error_locations(seeded_store, [good, bad, good])

    assert len(results) == 3
    assert results[1] is None
    assert results[0] == results[2]
    assert results[0] is not None
