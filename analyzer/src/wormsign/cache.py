# analyzer/src/wormsign/cache.py
# One-hour cache of fetched compromise records, kept in the user's home.
import json
import os
import time
from pathlib import Path

from wormsign.compromise import as_record
from wormsign.logger import get_logger

logger = get_logger(__name__)

TTL_SECONDS = 60 * 60


def cache_path() -> Path:
    override = os.environ.get('WORMSIGN_CACHE_FILE')
    return Path(override) if override else Path.home() / '.worm-sign-cache.json'


def load_cache(now=None):
    """Cached records, or None when missing, unreadable or older than the TTL."""
    path = cache_path()
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
        if (now or time.time()) - float(data['timestamp']) > TTL_SECONDS:
            return None
        return [as_record(p) for p in data['packages']]
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.debug('Ignoring unreadable cache %s: %s', path, e)
        return None


def save_cache(records, now=None):
    path = cache_path()
    data = {
        'timestamp': now or time.time(),
        'packages': [as_record(r).to_dict() for r in records],
    }
    try:
        path.write_text(json.dumps(data), encoding='utf-8')
    except OSError as e:
        logger.debug('Could not write cache %s: %s', path, e)
