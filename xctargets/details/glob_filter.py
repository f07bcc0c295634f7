import fnmatch
from pathlib import Path
from typing import Sequence

SWIFT_SOURCE_PATTERNS = [
    "**/*.swift",
    "!Tests/*",
    "!*/Tests/*",
    "!*.test.swift",
    "!*Tests.swift",
    "!build/*",
]


def split_patterns(patterns: Sequence[str]) -> tuple[list[str], list[str]]:
    includes = [p for p in patterns if not p.startswith("!")]
    excludes = [p[1:] for p in patterns if p.startswith("!")]
    return includes, excludes


# Paths relative to root, sorted so that discovery order never depends on
# the filesystem...
def glob_with_exclusions(root: Path, patterns: Sequence[str]) -> list[str]:
    includes, excludes = split_patterns(patterns)
    if not includes or not root.is_dir():
        return []
    matched = {
        src.relative_to(root).as_posix()
        for pattern in includes
        for src in root.glob(pattern)
        if src.is_file()
    }
    return sorted(
        rel_path
        for rel_path in matched
        if not any(fnmatch.fnmatch(rel_path, exclude) for exclude in excludes)
    )


def find_swift_sources(source_dir: Path) -> list[str]:
    return glob_with_exclusions(source_dir, SWIFT_SOURCE_PATTERNS)
