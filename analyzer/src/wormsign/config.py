# analyzer/src/wormsign/config.py
# .wormsignrc / wormsign.yml knobs: offline mode, allowed feeds, severity
# threshold, suppressed rules, YARA.
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from wormsign.logger import get_logger
from wormsign.models import SEVERITIES

logger = get_logger(__name__)

CONFIG_FILES = (
    'package.json',
    '.wormsignrc',
    '.wormsignrc.yml',
    '.wormsignrc.yaml',
    '.wormsignrc.json',
    'wormsign.yml',
)
PACKAGE_JSON_KEY = 'wormsign'

# file key -> attribute; camelCase spellings kept for configs shared with the
# Node tooling
KEY_ALIASES = {
    'offline': 'offline',
    'allowedSources': 'allowed_sources',
    'allowed_sources': 'allowed_sources',
    'severityThreshold': 'severity_threshold',
    'severity_threshold': 'severity_threshold',
    'suppressedRules': 'suppressed_rules',
    'suppressed_rules': 'suppressed_rules',
    'yara': 'yara',
}
YARA_ALIASES = {
    'enabled': 'enabled',
    'rulesPath': 'rules_path',
    'rules_path': 'rules_path',
    'timeoutSeconds': 'timeout_seconds',
    'timeout_seconds': 'timeout_seconds',
}


@dataclass
class WormSignConfig:
    offline: bool = False
    allowed_sources: list[str] = field(default_factory=list)
    severity_threshold: str = 'low'
    suppressed_rules: list[str] = field(default_factory=list)
    yara: dict = field(default_factory=lambda: {'enabled': False, 'rules_path': None, 'timeout_seconds': 30})
    source_path: Path | None = None

    @property
    def base_dir(self) -> Path | None:
        return self.source_path.parent if self.source_path else None


def _as_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(',') if v.strip()]
    return [str(v) for v in value]


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def config_from_mapping(data, source_path=None) -> WormSignConfig:
    cfg = WormSignConfig(source_path=Path(source_path) if source_path else None)
    for key, value in (data or {}).items():
        attr = KEY_ALIASES.get(key)
        if attr is None:
            logger.debug('Ignoring unknown config key %r', key)
            continue
        if attr == 'offline':
            cfg.offline = _as_bool(value)
        elif attr in ('allowed_sources', 'suppressed_rules'):
            setattr(cfg, attr, _as_list(value))
        elif attr == 'severity_threshold':
            threshold = str(value).lower()
            if threshold not in SEVERITIES:
                logger.warning('Unknown severityThreshold %r; using "low"', value)
                threshold = 'low'
            cfg.severity_threshold = threshold
        elif attr == 'yara' and isinstance(value, dict):
            for ykey, yvalue in value.items():
                yattr = YARA_ALIASES.get(ykey)
                if yattr:
                    cfg.yara[yattr] = yvalue
    return cfg


def _read_candidate(path: Path):
    """Parsed config mapping from ``path``, or None when it holds none."""
    text = path.read_text(encoding='utf-8')
    if path.name == 'package.json':
        data = json.loads(text)
        section = data.get(PACKAGE_JSON_KEY) if isinstance(data, dict) else None
        return section if isinstance(section, dict) else None
    if path.suffix == '.json':
        data = json.loads(text)
    else:
        # YAML is a superset of JSON, so an extensionless rc file may be either
        data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f'{path.name} must contain a mapping')
    return data


def find_config(search_from) -> tuple[Path, dict] | None:
    start = Path(search_from).resolve()
    for directory in (start, *start.parents):
        for file_name in CONFIG_FILES:
            candidate = directory / file_name
            if not candidate.is_file():
                continue
            data = _read_candidate(candidate)
            if data is not None:
                return candidate, data
    return None


def load_config(search_from=None) -> WormSignConfig:
    """Search from ``search_from`` (default: cwd) upwards for a config file.

    Invalid files log a warning and yield the defaults.
    """
    try:
        found = find_config(search_from or os.getcwd())
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning('Failed to load configuration file: %s', e)
        found = None

    cfg = config_from_mapping(found[1], found[0]) if found else WormSignConfig()
    if _as_bool(os.environ.get('WORMSIGN_OFFLINE', '')):
        cfg.offline = True
    return cfg
