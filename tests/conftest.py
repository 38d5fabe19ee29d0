"""Shared fixtures and helpers for tests."""

import io
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
import pytest_asyncio

from source_resolver.db import InMemoryAssociationStore

_REPO_ROOT = Path(__file__).parent.parent

PROJECT_ID = "web-shop"

APP_JS = """import { helper } from './utils/helper';
import config from './config';

export function checkout(cart) {
  const total = helper(cart);
  if (!total) {
    throw new TypeError('cart is empty');
  }
  return total * config.tax;
}
"""

HELPER_JS = """export function helper(cart) {
  return cart.items.reduce((sum, item) => sum + item.price, 0);
}
"""

CONFIG_JS = "export default { tax: 1.2 };\n"


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Archive helpers
# ---------------------------------------------------------------------------


def make_zip(files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def source_archive() -> bytes:
    return make_zip(
        {
            "src/app.js": APP_JS,
            "src/utils/helper.js": HELPER_JS,
            "src/config.js": CONFIG_JS,
            "README.md": "# web shop\n",
        }
    )


def sourcemap_archive() -> bytes:
    return make_zip({"dist/main.js.map": '{"version": 3, "sources": ["src/app.js"], "mappings": ""}'})


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------

SEEDED_VERSIONS = ("1.0.0", "1.2.0", "2.0.0")


async def seed(store: InMemoryAssociationStore, active: str = "1.2.0") -> dict[str, str]:
    """Upload every seeded version of ``PROJECT_ID``; return version -> association id."""
    ids: dict[str, str] = {}
    for version in SEEDED_VERSIONS:
        result = await store.upload_source_code_and_sourcemap(
            PROJECT_ID, version, source_archive(), sourcemap_archive(), set_as_active=version == active
        )
        ids[version] = result.association_id
    return ids


@pytest.fixture
def zip_factory() -> Callable[[dict[str, str]], bytes]:
    return make_zip


@pytest.fixture
def memory_store() -> InMemoryAssociationStore:
    return InMemoryAssociationStore()


@pytest_asyncio.fixture
async def seeded_store() -> InMemoryAssociationStore:
    """Store holding versions 1.0.0, 1.2.0 (active) and 2.0.0 of ``PROJECT_ID``."""
    store = InMemoryAssociationStore()
    await seed(store)
    return store
