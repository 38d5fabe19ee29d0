import asyncio

import pytest
from conftest import APP_JS, PROJECT_ID, seed, source_archive, sourcemap_archive

from source_resolver.core.errors import LookupFailure, MutationFailure
from source_resolver.db.memory import InMemoryAssociationStore
from source_resolver.models import ErrorInfo, RawLocation


def test_upload_unpacks_sources(memory_store: InMemoryAssociationStore) -> None:
    result = asyncio.run(
        memory_store.upload_source_code_and_sourcemap(PROJECT_ID, "1.0.0", source_archive(), sourcemap_archive())
    )

    assoc = memory_store.associations[result.association_id]
    assert assoc.files["src/app.js"] == APP_JS
    assert assoc.sourcemaps == ("dist/main.js.map",)
    assert assoc.is_active is False

    versions = asyncio.run(memory_store.list_source_versions(PROJECT_ID))
    assert len(versions) == 1
    assert versions[0].id == result.association_id
    assert versions[0].sourcemap_version == "1.0.0"


def test_sourcemap_archive_without_maps(memory_store: InMemoryAssociationStore, zip_factory) -> None:
    asyncio.run(
        memory_store.upload_source_code_and_sourcemap(PROJECT_ID, "1.0.0", source_archive(), zip_factory({}))
    )
    versions = asyncio.run(memory_store.list_source_versions(PROJECT_ID))
    assert versions[0].sourcemap_version is None


def test_corrupt_archive_rejected(memory_store: InMemoryAssociationStore) -> None:
    with pytest.raises(MutationFailure):
        asyncio.run(memory_store.upload_source_code_and_sourcemap(PROJECT_ID, "1.0.0", b"junk", sourcemap_archive()))
    assert memory_store.associations == {}


def test_activation_touches_updated_timestamp(memory_store: InMemoryAssociationStore) -> None:
    ids = asyncio.run(seed(memory_store, active="1.0.0"))
    before = memory_store.associations[ids["2.0.0"]].updated

    asyncio.run(memory_store.set_active_association(PROJECT_ID, ids["2.0.0"]))

    assert memory_store.associations[ids["2.0.0"]].updated >= before
    assert memory_store.associations[ids["2.0.0"]].is_active is True
    assert memory_store.associations[ids["1.0.0"]].is_active is False


def test_concurrent_activations_leave_one_active(memory_store: InMemoryAssociationStore) -> None:
    ids = asyncio.run(seed(memory_store))

    async def _race() -> None:
        await asyncio.gather(*(memory_store.set_active_association(PROJECT_ID, i) for i in ids.values()))

    asyncio.run(_race())
    versions = asyncio.run(memory_store.list_source_versions(PROJECT_ID))
    assert sum(v.is_active for v in versions) == 1


def test_missing_association_is_reported_not_raised(memory_store: InMemoryAssociationStore) -> None:
    result = asyncio.run(memory_store.delete_association(PROJECT_ID, "nope"))
    assert result.success is False
    assert "nope" in result.message


def test_lookups_on_unknown_version_raise(memory_store: InMemoryAssociationStore) -> None:
    with pytest.raises(LookupFailure):
        asyncio.run(memory_store.list_files(PROJECT_ID, "1.0.0"))
    with pytest.raises(LookupFailure):
        asyncio.run(memory_store.resolve_location(PROJECT_ID, "1.0.0", "main.js", 1))


def test_resolve_falls_back_to_line_only_position(memory_store: InMemoryAssociationStore) -> None:
    asyncio.run(seed(memory_store))
    location = RawLocation(source="src/app.js", line=7)
    memory_store.register_position(PROJECT_ID, "1.0.0", "main.js", 1, None, location)

    assert asyncio.run(memory_store.resolve_location(PROJECT_ID, "1.0.0", "main.js", 1, 500)) == location
    assert asyncio.run(memory_store.resolve_location(PROJECT_ID, "1.2.0", "main.js", 1, 500)) is None


def test_file_content_target_clamped_to_file(memory_store: InMemoryAssociationStore) -> None:
    asyncio.run(seed(memory_store))
    window = asyncio.run(memory_store.get_file_content(PROJECT_ID, "1.0.0", "src/config.js", 40, 1))
    assert window is not None
    assert (window.start_line, window.end_line) == (1, 2)


def test_related_files_rank_imports_before_siblings(memory_store: InMemoryAssociationStore, zip_factory) -> None:
    archive = zip_factory(
        {
            "src/a.js": "const b = require('./b');\nimport c from '../lib/c';\n",
            "src/b.js": "b",
            "src/z.js": "z",
            "lib/c/index.js": "c",
            "other/d.js": "d",
        }
    )
    asyncio.run(memory_store.upload_source_code_and_sourcemap(PROJECT_ID, "1.0.0", archive, sourcemap_archive()))

    raw = asyncio.run(
        memory_store.prepare_context(PROJECT_ID, "1.0.0", ErrorInfo(file_name="src/a.js", line=1), 10)
    )

    assert [(rf.file, rf.relevance) for rf in raw.related_files] == [
        ("src/b.js", 1.0),
        ("lib/c/index.js", 1.0),
        ("src/z.js", 0.5),
    ]


def test_ping(memory_store: InMemoryAssociationStore) -> None:
    assert asyncio.run(memory_store.ping()) is True
