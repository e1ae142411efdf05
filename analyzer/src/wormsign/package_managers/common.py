# analyzer/src/wormsign/package_managers/common.py
# Handler shape and helpers shared by the npm / yarn / pnpm parsers.
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from wormsign.errors import LockfileParseError
from wormsign.models import LockfileIndex

ParseResult = tuple[LockfileIndex, list[str]]

# Resolved versions only: 1.2.3, 1.2.3-beta.1, 1.2.3+build.5, 0.0.0-use.local
CONCRETE_VERSION_RE = re.compile(r'^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$')


def normalize_version(raw) -> str:
    """Trim and strip pnpm-style peer/build suffixes: 1.0.0(react@18) / 1.0.0_react@18."""
    if raw is None:
        return ''
    return str(raw).split('(')[0].split('_')[0].strip()


def is_concrete_version(version: str) -> bool:
    return bool(version) and CONCRETE_VERSION_RE.match(version) is not None


def split_name_version(value: str) -> tuple[str, str] | None:
    """Split ``name@version`` / ``@scope/name@version`` on the version '@'."""
    at = value.find('@', 1 if value.startswith('@') else 0)
    if at <= 0:
        return None
    return value[:at], value[at + 1:]


def empty_warning(label: str) -> str:
    return f'No packages parsed from {label}; unsupported format?'


@dataclass(frozen=True)
class PackageManagerHandler:
    """One package-manager variant: its lockfile names and its parser."""
    id: str
    label: str
    lock_files: tuple[str, ...]
    parse: Callable[[str], ParseResult]

    def detect_preference(self, field_value) -> bool:
        if not field_value or not isinstance(field_value, str):
            return False
        return field_value.strip().startswith(self.id)

    def find_lockfile(self, root) -> Path | None:
        for file_name in self.lock_files:
            candidate = Path(root) / file_name
            if candidate.is_file():
                return candidate
        return None

    def load(self, lock_path) -> ParseResult:
        lock_path = Path(lock_path)
        try:
            content = lock_path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise LockfileParseError(f'Unable to read {lock_path.name}: {e}') from e
        return self.parse(content)
