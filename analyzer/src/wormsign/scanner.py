# analyzer/src/wormsign/scanner.py
# scan_project: package.json heuristics, lockfile detection and parsing, then
# the match against the compromise index.
from __future__ import annotations

import json
from pathlib import Path

from wormsign.compromise import as_record, build_index, load_file
from wormsign.config import WormSignConfig
from wormsign.detector import detect_package_manager
from wormsign.errors import LockfileParseError, ScanError
from wormsign.heuristics import analyze_scripts, load_yara_rules, scan_malware_files
from wormsign.logger import get_logger
from wormsign.matcher import collect_declared, match
from wormsign.models import ScanResult, meets_threshold

logger = get_logger(__name__)


def resolve_compromise_source(compromise_source):
    """Records from an in-memory list, or from a CSV/JSON file path."""
    if compromise_source is None:
        raise ScanError('No compromised package list was provided.')
    if isinstance(compromise_source, (str, Path)):
        path = Path(compromise_source)
        if not path.is_file():
            raise ScanError(f'Compromised list not found at {path}')
        return load_file(path)
    return [as_record(item) for item in compromise_source]


def read_package_json(root: Path) -> dict:
    path = root / 'package.json'
    if not path.is_file():
        raise ScanError(f'package.json not found at {path}')
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        raise ScanError(f'Unable to read package.json at {path}: {e}') from e
    if not isinstance(data, dict):
        raise ScanError(f'package.json at {path} is not a JSON object')
    return data


def collect_findings(root: Path, package_json: dict, config: WormSignConfig, suppressed):
    findings = analyze_scripts(package_json, suppressed)
    yara_rules = load_yara_rules(config.yara, config.base_dir)
    file_findings, warnings = scan_malware_files(
        root,
        suppressed_rules=suppressed,
        yara_rules=yara_rules,
        yara_timeout=int(config.yara.get('timeout_seconds') or 30),
    )
    findings.extend(file_findings)
    kept = [f for f in findings if meets_threshold(f.severity, config.severity_threshold)]
    if len(kept) != len(findings):
        logger.debug('Dropped %d findings below %s', len(findings) - len(kept), config.severity_threshold)
    return kept, warnings


def load_lockfile(detection):
    """Parse the detected lockfile, falling back to the other lockfiles present.

    Returns ``(lock_index, warnings)``.
    """
    warnings = []
    candidates = [(detection.handler, detection.lock_path)]
    candidates += [c for c in detection.available if c[0] is not detection.handler]

    for handler, lock_path in candidates:
        try:
            lock_index, parse_warnings = handler.load(lock_path)
        except LockfileParseError as e:
            logger.debug('%s parse failed: %s', lock_path, e)
            warnings.append(f'Failed to parse {lock_path.name} with the {handler.label} handler: {e}')
            continue
        logger.debug('Parsed %d packages from %s', len(lock_index), lock_path)
        return lock_index, warnings + parse_warnings

    raise ScanError('Unable to analyse the dependency lockfile.')


def scan_project(project_root, compromise_source, *, config=None, suppressed_rules=None) -> ScanResult:
    root = Path(project_root)
    if not root.is_dir():
        raise ScanError(f'Project root does not exist: {root}')

    records = resolve_compromise_source(compromise_source)
    package_json = read_package_json(root)

    config = config or WormSignConfig()
    suppressed = set(config.suppressed_rules) | set(suppressed_rules or ())
    findings, warnings = collect_findings(root, package_json, config, suppressed)

    detection = detect_package_manager(root, package_json)
    if detection.handler is None:
        raise ScanError(
            'Unable to determine which package manager to inspect. '
            'Add a lockfile or set the packageManager field in package.json.'
        )
    if detection.lock_path is None:
        raise ScanError(
            f'Detected {detection.handler.label}, but no lockfile was found. '
            'Please generate a lockfile and retry.'
        )
    warnings.extend(detection.warnings)

    lock_index, lock_warnings = load_lockfile(detection)
    warnings.extend(lock_warnings)

    matches = match(lock_index, build_index(records), collect_declared(package_json))
    return ScanResult(matches=matches, warnings=warnings, findings=findings)
