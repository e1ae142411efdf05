# analyzer/src/wormsign/package_managers/yarn.py
# yarn.lock: legacy v1 syntax (line state machine) and Berry v2+ (YAML)
from __future__ import annotations

import re
from enum import Enum

import yaml

from wormsign.errors import LockfileParseError
from wormsign.models import LockfileIndex
from wormsign.package_managers.common import (
    PackageManagerHandler,
    empty_warning,
    is_concrete_version,
    normalize_version,
    split_name_version,
)

BERRY_METADATA_RE = re.compile(r'^"?__metadata"?:', re.M)
# "quoted, with commas", or a bare token up to the next comma
DESCRIPTOR_RE = re.compile(r'\s*(?:"((?:[^"\\]|\\.)*)"|([^,]+))\s*(?:,|$)')
DESCRIPTOR_PREFIX_RE = re.compile(r'^(?:patch|virtual):')


# ---------------------------
# Descriptors
# ---------------------------
def parse_descriptors(header: str) -> list[str]:
    """Split an entry header into descriptors, quoted or bare."""
    out = []
    for m in DESCRIPTOR_RE.finditer(header):
        token = m.group(1) if m.group(1) is not None else m.group(2)
        token = token.strip()
        if token:
            out.append(token)
    return out


def normalize_descriptor(descriptor: str) -> str:
    return DESCRIPTOR_PREFIX_RE.sub('', descriptor.strip().strip('"'))


def extract_package_name(descriptor: str) -> str | None:
    """Package name a descriptor resolves to.

    lodash@^4.17.0            -> lodash
    @babel/core@npm:^7.0.0    -> @babel/core
    string-width-cjs@npm:string-width@^4.2.0 -> string-width
    resolve@patch:resolve@npm%3A^1.22#~builtin<compat/resolve> -> resolve
    """
    if not descriptor:
        return None
    normalized = normalize_descriptor(descriptor)
    parts = split_name_version(normalized)
    if not parts:
        return normalized or None
    name, rng = parts
    if rng.startswith('npm:'):
        aliased = split_name_version(rng[4:])
        if aliased and aliased[0]:
            return aliased[0]
    return name


def _entry_integrity(fields) -> str | None:
    integrity = fields.get('integrity')
    if integrity:
        return str(integrity)
    resolved = str(fields.get('resolved') or '')
    if '#' in resolved:
        return resolved.split('#', 1)[1] or None
    return None


# ---------------------------
# Legacy v1
# ---------------------------
class State(Enum):
    SEEKING_PACKAGES = 'seeking-packages-block'
    READING_ENTRY_HEADER = 'reading-entry-header'
    READING_ENTRY_FIELDS = 'reading-entry-fields'


def _field_value(rest: str) -> str:
    rest = rest.strip()
    if rest.startswith(':'):
        rest = rest[1:].strip()
    if len(rest) >= 2 and rest[0] == rest[-1] and rest[0] in '"\'':
        rest = rest[1:-1]
    return rest


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(' \t'))


class V1Parser:
    """Line-oriented reader for ``# yarn lockfile v1`` files.

    A top-level ``descriptor[, descriptor]:`` line opens an entry
    (READING_ENTRY_HEADER); its first indented line fixes the field column
    and moves to READING_ENTRY_FIELDS. Lines indented deeper than that column
    belong to nested blocks (dependencies:) and are ignored. Any top-level
    line, and end of input, flushes the open entry.
    """

    def __init__(self):
        self.index = LockfileIndex()
        self.warnings: list[str] = []
        self.state = State.SEEKING_PACKAGES
        self.descriptors: list[str] = []
        self.fields: dict[str, str] = {}
        self.field_indent = 0
        self.entries = 0
        self.unrecognized = 0

    def flush(self):
        if self.descriptors:
            self.entries += 1
            version = normalize_version(self.fields.get('version'))
            if is_concrete_version(version):
                integrity = _entry_integrity(self.fields)
                for descriptor in self.descriptors:
                    name = extract_package_name(descriptor)
                    if name:
                        self.index.add(name, version, integrity)
            else:
                self.warnings.append(
                    f'Skipping yarn.lock entry {", ".join(self.descriptors)}: no resolved version'
                )
        self.descriptors = []
        self.fields = {}
        self.state = State.SEEKING_PACKAGES

    def feed(self, raw_line: str):
        line = raw_line.rstrip()
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            return

        if _indent(line) == 0:
            self.flush()
            if stripped.endswith(':'):
                self.descriptors = parse_descriptors(stripped[:-1])
                self.state = State.READING_ENTRY_HEADER
            else:
                self.unrecognized += 1
            return

        if self.state is State.SEEKING_PACKAGES:
            return
        if self.state is State.READING_ENTRY_HEADER:
            self.field_indent = _indent(line)
            self.state = State.READING_ENTRY_FIELDS
        elif _indent(line) > self.field_indent:
            return

        key, _, rest = stripped.partition(' ')
        if rest:
            self.fields[key.rstrip(':').strip('"')] = _field_value(rest)

    def finish(self):
        self.flush()
        if not len(self.index) and (self.entries or self.unrecognized):
            self.warnings.append(empty_warning('yarn.lock'))
        return self.index, self.warnings


def parse_v1(content: str):
    parser = V1Parser()
    for raw_line in content.splitlines():
        parser.feed(raw_line)
    return parser.finish()


# ---------------------------
# Berry (v2+)
# ---------------------------
def parse_berry(content: str):
    index = LockfileIndex()
    warnings: list[str] = []
    try:
        doc = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise LockfileParseError(f'Yarn lockfile parse error: {e}') from e
    if not isinstance(doc, dict):
        raise LockfileParseError('Yarn lockfile parse error: top level is not a mapping')

    entries = 0
    mappings = 0
    for key, info in doc.items():
        if key == '__metadata' or not isinstance(info, dict):
            continue
        mappings += 1
        resolution = str(info.get('resolution') or '')
        if '@workspace:' in resolution or '@workspace:' in str(key):
            continue
        entries += 1
        version = normalize_version(info.get('version'))
        if not is_concrete_version(version):
            warnings.append(f'Skipping yarn.lock entry {key}: no resolved version')
            continue
        integrity = info.get('integrity') or info.get('checksum')
        for descriptor in parse_descriptors(str(key)):
            name = extract_package_name(descriptor)
            if name:
                index.add(name, version, str(integrity) if integrity else None)

    if not mappings or (entries and not len(index)):
        warnings.append(empty_warning('yarn.lock'))
    return index, warnings


def is_berry(content: str) -> bool:
    return BERRY_METADATA_RE.search(content) is not None


def parse(content: str):
    if is_berry(content):
        return parse_berry(content)
    return parse_v1(content)


handler = PackageManagerHandler(
    id='yarn',
    label='Yarn',
    lock_files=('yarn.lock',),
    parse=parse,
)
