# analyzer/src/wormsign/package_managers/pnpm.py
# pnpm-lock.yaml, lockfileVersion 5.x through 9.x
from __future__ import annotations

import re

import yaml

from wormsign.errors import LockfileParseError
from wormsign.models import LockfileIndex
from wormsign.package_managers.common import (
    PackageManagerHandler,
    empty_warning,
    is_concrete_version,
    normalize_version,
)

# v6+: /name@1.0.0, /@scope/name@1.0.0(peer@2.0.0), name@1.0.0 (v9)
AT_KEY_RE = re.compile(r'^(@[^/@]+/[^/@]+|[^/@]+)@(.+)$')
# v5: /name/1.0.0, /@scope/name/1.0.0_peer@2.0.0
SLASH_KEY_RE = re.compile(r'^(@[^/@]+/[^/@]+|[^/@]+)/([^/]+)$')


def parse_package_key(key: str) -> tuple[str, str] | None:
    """Split a ``packages`` key into (name, bare version)."""
    clean = str(key).strip()
    if clean.startswith('/'):
        clean = clean[1:]
    base = clean.split('(', 1)[0]
    m = AT_KEY_RE.match(base) or SLASH_KEY_RE.match(base)
    if not m:
        return None
    return m.group(1), normalize_version(m.group(2))


def _entry_name_version(key, info) -> tuple[str, str] | None:
    if isinstance(info, dict) and info.get('name') and info.get('version'):
        # tarball / git dependencies spell out name and version
        return str(info['name']), normalize_version(info['version'])
    return parse_package_key(key)


def _entry_integrity(info) -> str | None:
    if not isinstance(info, dict):
        return None
    resolution = info.get('resolution')
    if isinstance(resolution, dict) and resolution.get('integrity'):
        return str(resolution['integrity'])
    return None


def parse(content: str):
    index = LockfileIndex()
    warnings: list[str] = []
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise LockfileParseError(f'YAML parse error: {e}') from e
    if doc is None:
        return index, warnings
    if not isinstance(doc, dict):
        raise LockfileParseError('YAML parse error: top level is not a mapping')

    packages = doc.get('packages')
    if not isinstance(packages, dict):
        if 'lockfileVersion' not in doc:
            warnings.append(empty_warning('pnpm-lock.yaml'))
        return index, warnings

    for key, info in packages.items():
        parsed = _entry_name_version(key, info)
        if not parsed:
            warnings.append(f'Skipping pnpm-lock.yaml entry {key}: unrecognised key')
            continue
        name, version = parsed
        if not is_concrete_version(version):
            warnings.append(f'Skipping pnpm-lock.yaml entry {key}: no resolved version')
            continue
        index.add(name, version, _entry_integrity(info))

    if packages and not len(index):
        warnings.append(empty_warning('pnpm-lock.yaml'))
    return index, warnings


handler = PackageManagerHandler(
    id='pnpm',
    label='pnpm',
    lock_files=('pnpm-lock.yaml',),
    parse=parse,
)
