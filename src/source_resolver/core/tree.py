"""Build, mark and expand the file hierarchy of an uploaded source version."""

import logging
from collections.abc import Iterable, Iterator

from source_resolver.core.errors import LookupFailure
from source_resolver.core.ports.store import AssociationStore
from source_resolver.models import FileEntry, FileNode, FileTreeView

logger = logging.getLogger(__name__)

_SEPARATOR = "/"


def _path_of(entry: FileEntry | str) -> str:
    return entry if isinstance(entry, str) else entry.file_path


def _depth(path: str) -> int:
    return len(path.split(_SEPARATOR))


def _sort_nodes(nodes: list[FileNode]) -> None:
    # directories first, then by title
    nodes.sort(key=lambda n: (n.is_leaf, n.title))
    for node in nodes:
        if node.children:
            _sort_nodes(node.children)


def build_file_tree(files: Iterable[FileEntry | str]) -> list[FileNode]:
    """Turn a flat list of file paths into a sorted directory/file hierarchy.

    Every prefix of every path becomes exactly one node. When a path is both a
    file and the prefix of another file, the directory wins.
    """
    file_paths = {p for p in (_path_of(f) for f in files) if p}

    directory_paths: set[str] = set()
    for path in file_paths:
        parts = path.split(_SEPARATOR)
        for i in range(1, len(parts)):
            directory_paths.add(_SEPARATOR.join(parts[:i]))

    nodes: dict[str, FileNode] = {}
    for path in sorted(file_paths | directory_paths):
        is_leaf = path not in directory_paths
        nodes[path] = FileNode(
            key=path,
            title=path.split(_SEPARATOR)[-1],
            is_leaf=is_leaf,
            children=None if is_leaf else [],
        )

    roots: list[FileNode] = []
    for node in sorted(nodes.values(), key=lambda n: _depth(n.key)):
        parts = node.key.split(_SEPARATOR)
        if len(parts) == 1:
            roots.append(node)
            continue
        parent = nodes[_SEPARATOR.join(parts[:-1])]
        assert parent.children is not None
        parent.children.append(node)

    _sort_nodes(roots)
    return roots


def iter_nodes(tree: Iterable[FileNode]) -> Iterator[FileNode]:
    """Yield every node depth-first."""
    for node in tree:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


def count_leaves(tree: Iterable[FileNode]) -> int:
    return sum(1 for node in iter_nodes(tree) if node.is_leaf)


def find_node(tree: Iterable[FileNode], key: str) -> FileNode | None:
    for node in iter_nodes(tree):
        if node.key == key:
            return node
    return None


def mark_error_file(tree: Iterable[FileNode], target_path: str, line: int | None = None) -> int:
    """Flag every node whose key is ``target_path``; return how many were marked."""
    marked = 0
    for node in iter_nodes(tree):
        if node.key == target_path:
            node.is_error_file = True
            node.error_line = line
            marked += 1
    return marked


def expand_keys(target_path: str) -> list[str]:
    """Keys of every ancestor directory of ``target_path``, outermost first."""
    parts = target_path.split(_SEPARATOR)
    return [_SEPARATOR.join(parts[:i]) for i in range(1, len(parts))]


async def load_file_tree(
    store: AssociationStore,
    project_id: str,
    version: str,
    error_file: str | None = None,
    error_line: int | None = None,
) -> FileTreeView:
    """Fetch a version's files and build the tree with ``error_file`` located."""
    try:
        files = await store.list_files(project_id, version)
    except LookupFailure as exc:
        logger.warning("Could not list files for %s@%s: %s", project_id, version, exc)
        files = []

    tree = build_file_tree(files)
    if not error_file:
        return FileTreeView(tree=tree)

    found = mark_error_file(tree, error_file, error_line) > 0
    return FileTreeView(
        tree=tree,
        expanded_keys=expand_keys(error_file),
        selected_key=error_file,
        error_file_found=found,
    )


async def search_files(store: AssociationStore, project_id: str, version: str, query: str) -> list[str]:
    """Case-insensitive substring search over a version's file paths."""
    needle = query.strip().lower()
    if not needle:
        return []
    try:
        files = await store.list_files(project_id, version)
    except LookupFailure as exc:
        logger.warning("Could not search files for %s@%s: %s", project_id, version, exc)
        return []
    return [f.file_path for f in files if needle in f.file_path.lower()]
