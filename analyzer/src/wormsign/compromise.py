# analyzer/src/wormsign/compromise.py
# Compromise lists: CSV / JSON loaders and the per-name lookup index.
from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Any, Iterable, Mapping

from wormsign.logger import get_logger
from wormsign.models import CompromiseEntry, CompromiseIndex, CompromiseRecord

logger = get_logger(__name__)

WILDCARD_VERSIONS = {'', '*', 'any'}

# header spellings seen across the public feeds, lower-cased
NAME_COLUMNS = ('package name', 'name', 'package_name', 'package')
VERSION_COLUMNS = ('package version', 'version', 'package_version', 'versions')
REASON_COLUMNS = ('reason', 'msc id', 'description')
INTEGRITY_COLUMNS = ('integrity', 'hash', 'shasum')


def as_record(item) -> CompromiseRecord:
    if isinstance(item, CompromiseRecord):
        return item
    if isinstance(item, Mapping):
        return CompromiseRecord.from_mapping(item)
    raise TypeError(f'Unsupported compromise record: {item!r}')


def is_wildcard(version: str | None) -> bool:
    return version is None or version.strip().lower() in WILDCARD_VERSIONS


# ---------------------------
# Index
# ---------------------------
def build_index(records: Iterable[CompromiseRecord | Mapping[str, Any]]) -> CompromiseIndex:
    """Union every record into ``{name: CompromiseEntry}``.

    Records without a name are skipped. A missing, empty, ``*`` or ``any``
    version marks the whole package as compromised.
    """
    index: CompromiseIndex = {}
    for item in records:
        record = as_record(item)
        name = (record.name or '').strip()
        if not name:
            continue
        entry = index.setdefault(name, CompromiseEntry())
        if is_wildcard(record.version):
            entry.wildcard = True
        else:
            entry.exact_versions.add(record.version.strip())
        integrity = (record.integrity or '').strip()
        if integrity:
            entry.hashes.add(integrity)
    return index


def dedupe_records(records: Iterable[CompromiseRecord]) -> list[CompromiseRecord]:
    seen = set()
    out = []
    for record in records:
        key = (record.name, (record.version or '').strip(), record.integrity or '')
        if key in seen:
            continue
        seen.add(key)
        out.append(record)
    return out


# ---------------------------
# CSV
# ---------------------------
def _pick(row: dict, columns, fallback_position=None) -> str:
    for column in columns:
        value = row.get(column)
        if value:
            return value.strip()
    if fallback_position is not None and not any(c in row for c in columns):
        values = list(row.values())
        if len(values) > fallback_position and values[fallback_position]:
            return str(values[fallback_position]).strip()
    return ''


def parse_csv(raw: str) -> list[CompromiseRecord]:
    """Parse a header-driven CSV compromise list.

    Unknown headers fall back to "first column is the name, second the
    version". A malformed file logs a warning and yields no records.
    """
    records = []
    try:
        reader = csv.reader(io.StringIO(raw.lstrip('\ufeff')))
        header = None
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            if header is None:
                header = [h.strip().lower() for h in row]
                continue
            mapped = {header[i] if i < len(header) else f'_{i}': cell.strip() for i, cell in enumerate(row)}
            name = _pick(mapped, NAME_COLUMNS, 0)
            if not name:
                continue
            records.append(CompromiseRecord(
                name=name,
                version=_pick(mapped, VERSION_COLUMNS, 1),
                reason=_pick(mapped, REASON_COLUMNS) or None,
                integrity=_pick(mapped, INTEGRITY_COLUMNS) or None,
            ))
    except csv.Error as e:
        logger.warning('CSV parse warning: %s', e)
        return []
    return records


def load_csv(file_path) -> list[CompromiseRecord]:
    return parse_csv(Path(file_path).read_text(encoding='utf-8', errors='replace'))


# ---------------------------
# JSON
# ---------------------------
def parse_json(raw: str, origin: str = '<json>') -> list[CompromiseRecord]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning('Failed to parse JSON %s: %s', origin, e)
        return []
    if isinstance(data, dict) and isinstance(data.get('packages'), list):
        data = data['packages']
    if not isinstance(data, list):
        logger.warning('JSON at %s does not contain a "packages" array or is not an array.', origin)
        return []
    records = []
    for item in data:
        if not isinstance(item, Mapping):
            continue
        record = CompromiseRecord.from_mapping(item)
        if record.name:
            records.append(record)
    return records


def load_json(file_path) -> list[CompromiseRecord]:
    path = Path(file_path)
    return parse_json(path.read_text(encoding='utf-8', errors='replace'), str(path))


def load_file(file_path) -> list[CompromiseRecord]:
    """Load a compromise list by extension: .json, anything else as CSV."""
    path = Path(file_path)
    if path.suffix.lower() == '.json':
        return load_json(path)
    return load_csv(path)
