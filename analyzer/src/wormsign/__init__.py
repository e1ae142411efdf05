"""worm-sign: detect compromised npm/yarn/pnpm dependencies and Shai-Hulud artifacts."""

__version__ = '2.1.0'

from wormsign.compromise import build_index, load_csv, load_json, parse_csv, parse_json
from wormsign.config import load_config
from wormsign.detector import detect_package_manager
from wormsign.errors import LockfileParseError, ScanError, SourceFetchError, WormSignError
from wormsign.heuristics import analyze_scripts, scan_malware_files
from wormsign.matcher import match
from wormsign.models import CompromiseRecord, Finding, ScanMatch, ScanResult
from wormsign.scanner import scan_project

__all__ = [
    'CompromiseRecord',
    'Finding',
    'LockfileParseError',
    'ScanError',
    'ScanMatch',
    'ScanResult',
    'SourceFetchError',
    'WormSignError',
    'analyze_scripts',
    'build_index',
    'detect_package_manager',
    'load_config',
    'load_csv',
    'load_json',
    'match',
    'parse_csv',
    'parse_json',
    'scan_malware_files',
    'scan_project',
]
