# analyzer/src/wormsign/models.py
# Value objects shared by the parsers, the match engine and the heuristics.
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

SEVERITIES = ('low', 'medium', 'high', 'critical')

DEPENDENCY_SECTIONS = (
    'dependencies',
    'devDependencies',
    'peerDependencies',
    'optionalDependencies',
)
TRANSITIVE = 'transitive'
LOCKED = 'locked'


def severity_rank(severity: str) -> int:
    try:
        return SEVERITIES.index(severity)
    except ValueError:
        return 0


def meets_threshold(severity: str, threshold: str) -> bool:
    return severity_rank(severity) >= severity_rank(threshold)


@dataclass(frozen=True)
class DependencyRecord:
    name: str
    version: str
    integrity: str | None = None


@dataclass
class LockfileIndex:
    """Resolved packages of one lockfile.

    ``packages`` maps a name to every concrete version seen anywhere in the
    tree; ``integrity`` is sparse and keyed by name, then version.
    """
    packages: dict[str, set[str]] = field(default_factory=dict)
    integrity: dict[str, dict[str, str]] = field(default_factory=dict)

    def add(self, name: str, version: str, integrity: str | None = None):
        self.packages.setdefault(name, set()).add(version)
        if integrity:
            self.integrity.setdefault(name, {})[version] = integrity

    def integrity_for(self, name: str, version: str) -> str | None:
        return self.integrity.get(name, {}).get(version)

    def records(self) -> Iterator[DependencyRecord]:
        for name in sorted(self.packages):
            for version in sorted(self.packages[name]):
                yield DependencyRecord(name, version, self.integrity_for(name, version))

    def __len__(self):
        return len(self.packages)

    def __contains__(self, name):
        return name in self.packages


@dataclass(frozen=True)
class CompromiseRecord:
    name: str
    version: str | None = None
    reason: str | None = None
    integrity: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'CompromiseRecord':
        def _text(key):
            value = data.get(key)
            return str(value) if value is not None else None
        return cls(
            name=_text('name') or '',
            version=_text('version'),
            reason=_text('reason'),
            integrity=_text('integrity'),
        )

    def to_dict(self) -> dict:
        out = {'name': self.name, 'version': self.version or ''}
        if self.reason:
            out['reason'] = self.reason
        if self.integrity:
            out['integrity'] = self.integrity
        return out


@dataclass
class CompromiseEntry:
    wildcard: bool = False
    exact_versions: set[str] = field(default_factory=set)
    hashes: set[str] = field(default_factory=set)


CompromiseIndex = dict[str, CompromiseEntry]


@dataclass(frozen=True)
class ScanMatch:
    name: str
    version: str
    section: str

    def to_dict(self) -> dict:
        return {'name': self.name, 'version': self.version, 'section': self.section}


@dataclass(frozen=True)
class Finding:
    message: str
    severity: str
    rule_id: str
    file: str

    def to_dict(self) -> dict:
        return {
            'message': self.message,
            'severity': self.severity,
            'ruleId': self.rule_id,
            'file': self.file,
        }


@dataclass
class ScanResult:
    matches: list[ScanMatch] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'matches': [m.to_dict() for m in self.matches],
            'warnings': list(self.warnings),
            'findings': [f.to_dict() for f in self.findings],
        }
