"""Shared fixtures: throwaway Node.js projects on disk."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.fixture
def make_project(tmp_path):
    """Build a project directory from a package.json mapping and extra files.

    ``files`` maps a relative path to str (text) or bytes content.
    """

    def _make(package_json=None, files=None, name='project') -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        if package_json is not None:
            (root / 'package.json').write_text(json.dumps(package_json), encoding='utf-8')
        for rel, content in (files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding='utf-8')
        return root

    return _make


@pytest.fixture
def npm_lock():
    """package-lock.json v3 body for a {name: (version, integrity)} mapping."""

    def _lock(packages) -> str:
        body = {'name': 'project', 'lockfileVersion': 3, 'packages': {'': {'name': 'project'}}}
        for name, (version, integrity) in packages.items():
            entry = {'version': version}
            if integrity:
                entry['integrity'] = integrity
            body['packages'][f'node_modules/{name}'] = entry
        return json.dumps(body)

    return _lock


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for var in ('WORMSIGN_OFFLINE', 'WORMSIGN_DATA_ROOT', 'PKG_SCAN_ROOT'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv('WORMSIGN_CACHE_FILE', str(tmp_path / 'cache.json'))
