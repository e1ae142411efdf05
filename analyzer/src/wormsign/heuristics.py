# analyzer/src/wormsign/heuristics.py
# Install-script and dropped-file heuristics. Nothing here raises on bad input:
# unreadable files degrade to warnings.
from __future__ import annotations

import hashlib
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from wormsign.entropy import EntropyCalculator, is_high_entropy
from wormsign.logger import get_logger
from wormsign.models import Finding
from wormsign.signatures import (
    KNOWN_MALWARE_HASHES,
    MALWARE_FILENAMES,
    MALWARE_PATTERNS,
    SCRIPT_PATTERNS,
)

logger = get_logger(__name__)

# YARA support (optional - scanning disabled if yara-python is not installed)
try:
    import yara
    YARA_AVAILABLE = True
except ImportError:
    yara = None
    YARA_AVAILABLE = False

# ---------------------------
# Thresholds (can be overridden via env)
# ---------------------------
SCRIPT_ENTROPY_THRESHOLD = float(os.environ.get('WORMSIGN_SCRIPT_ENTROPY', '5.2'))
FILE_ENTROPY_THRESHOLD = float(os.environ.get('WORMSIGN_FILE_ENTROPY', '7.0'))
LARGE_FILE_BYTES = int(os.environ.get('WORMSIGN_LARGE_FILE_BYTES', str(5 * 1024 * 1024)))  # 5MB
CHUNK_SIZE = 64 * 1024
MAX_WORKERS = 4

PACKAGE_JSON = 'package.json'


# ---------------------------
# package.json scripts
# ---------------------------
def _script_finding(name: str, label: str, severity: str, rule_id: str) -> Finding:
    return Finding(
        message=f"Suspicious script detected in '{name}': {label}",
        severity=severity,
        rule_id=rule_id,
        file=PACKAGE_JSON,
    )


def analyze_scripts(package_json, suppressed_rules=()) -> list[Finding]:
    """Flag suspicious ``scripts`` entries.

    Every script is checked against the regex table, for high entropy and for
    known malware substrings; each check reports at most once per script.
    """
    suppressed = set(suppressed_rules or ())
    scripts = (package_json or {}).get('scripts') or {}
    if not isinstance(scripts, dict):
        return []

    findings = []
    for name, script in scripts.items():
        if not isinstance(script, str):
            continue

        for rule_id, regex, label, severity in SCRIPT_PATTERNS:
            if rule_id in suppressed:
                continue
            if regex.search(script):
                findings.append(_script_finding(name, label, severity, rule_id))

        if 'high_entropy_script' not in suppressed and is_high_entropy(script, SCRIPT_ENTROPY_THRESHOLD):
            findings.append(_script_finding(
                name, 'High Entropy (Potential Obfuscated Payload)', 'high', 'high_entropy_script'))

        if 'malware_signature' not in suppressed and any(sig in script for sig in MALWARE_PATTERNS):
            findings.append(_script_finding(
                name, 'Known Malware Signature Match', 'critical', 'malware_signature'))

    return findings


# ---------------------------
# YARA
# ---------------------------
def load_yara_rules(yara_cfg, base_dir=None):
    """Compile the configured rules file, or None when YARA is off/unavailable."""
    yara_cfg = yara_cfg or {}
    if not yara_cfg.get('enabled'):
        return None
    if not YARA_AVAILABLE:
        logger.warning('YARA enabled in config but yara-python is not installed; skipping YARA scan')
        return None

    rules_path = yara_cfg.get('rules_path')
    if not rules_path:
        logger.warning('YARA enabled but no rules_path configured')
        return None
    candidate = Path(rules_path)
    if not candidate.is_absolute() and base_dir is not None:
        candidate = Path(base_dir) / candidate
    if not candidate.exists():
        logger.warning('YARA rules not found at %s, YARA scanning disabled', candidate)
        return None

    try:
        rules = yara.compile(filepath=str(candidate))
    except yara.Error as e:
        logger.warning('Failed to compile YARA rules %s: %s', candidate, e)
        return None
    logger.debug('YARA rules loaded from %s', candidate)
    return rules


def determine_yara_severity(match) -> str:
    """Map YARA rule tags to severity level."""
    tags = {t.lower() for t in match.tags}
    if tags & {'critical', 'malware', 'backdoor', 'trojan', 'ransomware', 'rootkit', 'apt'}:
        return 'high'
    if tags & {'suspicious', 'webshell', 'cryptominer', 'dropper', 'downloader', 'stealer'}:
        return 'medium'
    return 'low'


def scan_file_with_yara(file_path: Path, yara_rules, timeout: int = 30) -> list[Finding]:
    if not yara_rules:
        return []
    try:
        matches = yara_rules.match(str(file_path), timeout=timeout)
    except yara.TimeoutError:
        logger.warning('YARA timeout scanning %s', file_path)
        return []
    except yara.Error as e:
        logger.warning('YARA could not scan %s: %s', file_path, e)
        return []

    findings = []
    for m in matches:
        description = dict(getattr(m, 'meta', {}) or {}).get('description', '')
        message = f"YARA rule '{m.rule}' matched '{file_path.name}'"
        if description:
            message += f': {description}'
        findings.append(Finding(
            message=message,
            severity=determine_yara_severity(m),
            rule_id='yara_match',
            file=file_path.name,
        ))
    return findings


# ---------------------------
# Known malware filenames
# ---------------------------
def digest_file(path: Path, with_entropy: bool = False) -> tuple[str, float | None]:
    """One streaming pass: SHA-256 hex digest and, optionally, byte entropy."""
    sha = hashlib.sha256()
    entropy = EntropyCalculator() if with_entropy else None
    with open(path, 'rb') as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b''):
            sha.update(chunk)
            if entropy is not None:
                entropy.update(chunk)
    return sha.hexdigest(), (entropy.digest() if entropy is not None else None)


def _suspicious_file(file_name: str, suffix: str = '') -> Finding:
    return Finding(
        message=f"Suspicious file detected: '{file_name}' (associated with Shai Hulud){suffix}",
        severity='low',
        rule_id='malware_file',
        file=file_name,
    )


def inspect_candidate(path: Path, yara_rules=None, yara_timeout: int = 30) -> tuple[list[Finding], list[str]]:
    """Classify one present malware-candidate file."""
    file_name = path.name
    try:
        size = path.stat().st_size
        is_large = size > LARGE_FILE_BYTES
        digest, entropy = digest_file(path, with_entropy=is_large)
    except OSError as e:
        msg = f"Suspicious file detected: '{file_name}' (associated with Shai Hulud) - could not read: {e}"
        return [_suspicious_file(file_name, ' - could not read')], [msg]

    findings = []
    if digest in KNOWN_MALWARE_HASHES:
        findings.append(Finding(
            message=f"CONFIRMED MALWARE file detected: '{file_name}' (Hash match: {digest})",
            severity='critical',
            rule_id='confirmed_malware',
            file=file_name,
        ))
    else:
        if entropy is not None and entropy > FILE_ENTROPY_THRESHOLD:
            findings.append(Finding(
                message=(f"HIGH RISK file detected: '{file_name}' "
                         f"(High Entropy: {entropy:.2f}, Size: {size} bytes)"),
                severity='high',
                rule_id='malware_file_high_entropy',
                file=file_name,
            ))
        findings.append(_suspicious_file(file_name))

    findings.extend(scan_file_with_yara(path, yara_rules, yara_timeout))
    return findings, []


def scan_malware_files(project_root, suppressed_rules=(), yara_rules=None, yara_timeout: int = 30,
                       filenames=MALWARE_FILENAMES):
    """Check the project root for known malicious filenames.

    Returns ``(findings, warnings)``; results follow the order of ``filenames``.
    """
    root = Path(project_root)
    present = [root / name for name in filenames if (root / name).is_file()]
    if not present:
        return [], []

    with ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(present))) as pool:
        results = list(pool.map(lambda p: inspect_candidate(p, yara_rules, yara_timeout), present))

    suppressed = set(suppressed_rules or ())
    findings, warnings = [], []
    for file_findings, file_warnings in results:
        findings.extend(f for f in file_findings if f.rule_id not in suppressed)
        warnings.extend(file_warnings)
    return findings, warnings
