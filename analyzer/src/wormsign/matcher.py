# analyzer/src/wormsign/matcher.py
# Intersect a lockfile index with a compromise index.
from __future__ import annotations

from wormsign.models import (
    DEPENDENCY_SECTIONS,
    LOCKED,
    TRANSITIVE,
    CompromiseEntry,
    CompromiseIndex,
    LockfileIndex,
    ScanMatch,
)


def collect_declared(package_json) -> dict[str, str]:
    """Map each directly declared dependency to the first section naming it."""
    declared: dict[str, str] = {}
    for section in DEPENDENCY_SECTIONS:
        entries = (package_json or {}).get(section)
        if not isinstance(entries, dict):
            continue
        for name in entries:
            declared.setdefault(name, section)
    return declared


def match_reason(entry: CompromiseEntry | None, version: str, integrity: str | None = None) -> str | None:
    """Why a resolved version is flagged: 'wildcard', 'version', 'integrity' or None.

    Order matters: a wildcard entry condemns every version, an exact version
    beats a hash. Hash matching is substring containment because integrity
    strings carry an algorithm prefix (sha512-...) that lists often omit, so
    a short stored fragment can in principle match an unrelated hash.
    """
    if entry is None:
        return None
    if entry.wildcard:
        return 'wildcard'
    if version in entry.exact_versions:
        return 'version'
    if integrity and entry.hashes:
        for h in entry.hashes:
            if h in integrity:
                return 'integrity'
    return None


def should_flag(entry: CompromiseEntry | None, version: str, integrity: str | None = None) -> bool:
    return match_reason(entry, version, integrity) is not None


def match(lock_index: LockfileIndex, compromise_index: CompromiseIndex, declared=None) -> list[ScanMatch]:
    """Return one ScanMatch per flagged (name, version), in sorted order.

    ``declared`` is the output of collect_declared(); ``None`` means the
    declaring section is unknown and every match is reported as 'locked'.
    """
    matches = []
    seen = set()
    for name in sorted(set(lock_index.packages) & set(compromise_index)):
        entry = compromise_index[name]
        for version in sorted(lock_index.packages[name]):
            if (name, version) in seen:
                continue
            if not should_flag(entry, version, lock_index.integrity_for(name, version)):
                continue
            seen.add((name, version))
            if declared is None:
                section = LOCKED
            else:
                section = declared.get(name, TRANSITIVE)
            matches.append(ScanMatch(name=name, version=version, section=section))
    return matches
