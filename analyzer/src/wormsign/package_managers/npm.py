# analyzer/src/wormsign/package_managers/npm.py
# package-lock.json / npm-shrinkwrap.json (lockfileVersion 1, 2 and 3)
from __future__ import annotations

import json

from wormsign.errors import LockfileParseError
from wormsign.models import LockfileIndex
from wormsign.package_managers.common import (
    PackageManagerHandler,
    empty_warning,
    is_concrete_version,
    split_name_version,
)

NODE_MODULES = 'node_modules/'


def infer_name_from_path(pkg_path: str) -> str | None:
    """node_modules/a/node_modules/@scope/b -> @scope/b"""
    if not pkg_path:
        return None
    segments = [s for s in pkg_path.split(NODE_MODULES) if s]
    if not segments:
        return None
    last = segments[-1].strip('/')
    if last.startswith('@'):
        # "@scope/name" survives the split as one segment; a bare "@scope"
        # means the name continued in the next path component
        if '/' in last:
            return last
        return '/'.join(segments[-2:]) if len(segments) > 1 else last
    return last.split('/')[-1] or None


def resolve_version(name: str, raw) -> tuple[str, str] | None:
    """Map a lockfile version to a concrete (name, version) pair.

    ``npm:real-name@1.2.3`` aliases resolve to the aliased package.
    """
    if raw is None:
        return None
    version = str(raw).strip()
    if version.startswith('npm:'):
        parts = split_name_version(version[4:])
        if not parts:
            return None
        name, version = parts
    if not is_concrete_version(version):
        return None
    return name, version


def _collect_flat(packages: dict, index: LockfileIndex, warnings: list[str]):
    for pkg_path, info in packages.items():
        if not pkg_path or not isinstance(info, dict):
            # "" is the project itself
            continue
        if info.get('link'):
            continue
        name = info.get('name') or infer_name_from_path(pkg_path)
        if not name:
            warnings.append(f'Skipping lockfile entry with no package name: {pkg_path}')
            continue
        resolved = resolve_version(name, info.get('version'))
        if not resolved:
            warnings.append(f'Skipping {name} at {pkg_path}: no resolved version ({info.get("version")!r})')
            continue
        index.add(resolved[0], resolved[1], info.get('integrity'))


def _collect_tree(dependencies: dict, index: LockfileIndex, warnings: list[str]):
    stack = [dependencies]
    while stack:
        deps = stack.pop()
        for name, info in deps.items():
            if not isinstance(info, dict):
                # "requires" maps names to ranges; those are not resolutions
                continue
            resolved = resolve_version(name, info.get('version'))
            if resolved:
                index.add(resolved[0], resolved[1], info.get('integrity'))
            elif 'version' in info:
                warnings.append(f'Skipping {name}: no resolved version ({info.get("version")!r})')
            for child_key in ('dependencies', 'requires'):
                children = info.get(child_key)
                if isinstance(children, dict) and children:
                    stack.append(children)


def parse(content: str):
    warnings: list[str] = []
    index = LockfileIndex()
    try:
        lock = json.loads(content)
    except json.JSONDecodeError as e:
        raise LockfileParseError(f'Unable to parse package-lock.json: {e}') from e
    if not isinstance(lock, dict):
        raise LockfileParseError('Unable to parse package-lock.json: top level is not an object')

    packages = lock.get('packages')
    if isinstance(packages, dict):
        _collect_flat(packages, index, warnings)

    dependencies = lock.get('dependencies')
    if isinstance(dependencies, dict):
        _collect_tree(dependencies, index, warnings)

    if not isinstance(packages, dict) and not isinstance(dependencies, dict):
        # neither the v2+ nor the v1 layout
        warnings.append(empty_warning('package-lock.json'))
        return index, warnings

    has_entries = any(k for k in packages or {}) or bool(dependencies)
    if not len(index) and has_entries:
        warnings.append(empty_warning('package-lock.json'))
    return index, warnings


handler = PackageManagerHandler(
    id='npm',
    label='npm',
    lock_files=('package-lock.json', 'npm-shrinkwrap.json'),
    parse=parse,
)
