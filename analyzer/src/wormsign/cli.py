# analyzer/src/wormsign/cli.py
# worm-sign command line: pick the compromise list, scan, render, exit 0/1/2.
import argparse
import os
import stat
import sys
from pathlib import Path

from wormsign import __version__
from wormsign.cache import load_cache, save_cache
from wormsign.compromise import load_csv, load_file
from wormsign.config import load_config
from wormsign.errors import WormSignError
from wormsign.logger import get_logger, setup_logging
from wormsign.reporters import REPORTERS
from wormsign.scanner import scan_project
from wormsign.sources import SOURCES, fetch_compromised_packages, select_sources

logger = get_logger(__name__)

EXIT_CLEAN = 0
EXIT_MATCHES = 1
EXIT_ERROR = 2

HOOK_SCRIPT = """#!/bin/sh
# worm-sign pre-commit hook
echo "Running worm-sign..."
worm-sign --fetch
"""

# substring of the error message -> hint
HINTS = (
    ('package.json not found', 'Are you in the root directory of your Node.js project?'),
    ('no lockfile was found',
     "Run your package manager's install command (e.g., `npm install`) to generate a lockfile."),
    ('Unable to determine which package manager',
     'Ensure you have a lockfile (package-lock.json, yarn.lock, pnpm-lock.yaml) '
     'or set the "packageManager" field in package.json.'),
    ('API request failed',
     'Check your internet connection or try using --source koi for an alternative data source.'),
)


def info(msg: str):
    print(msg, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='worm-sign',
        description='Scan a Node.js project for compromised dependencies and Shai-Hulud artifacts.',
    )
    p.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    p.add_argument('-p', '--path', help='project root (default: $PKG_SCAN_ROOT or cwd)')
    p.add_argument('-l', '--list', action='append', default=[], metavar='FILE',
                   help='local CSV/JSON compromise list; repeatable')
    p.add_argument('-f', '--fetch', action='store_true', help='fetch compromise lists from remote feeds')
    p.add_argument('-s', '--source', default='all', choices=[*SOURCES, 'all'], help='feed to fetch')
    p.add_argument('-u', '--url', help='custom HTTPS feed URL')
    p.add_argument('--data-format', default='json', choices=['json', 'csv'],
                   help='payload format of --url')
    p.add_argument('--insecure', action='store_true', help='skip TLS verification for --url')
    p.add_argument('--format', default='text', choices=sorted(REPORTERS), help='output format')
    p.add_argument('--no-cache', dest='cache', action='store_false', help='ignore the feed cache')
    p.add_argument('--install-hook', action='store_true', help='install a git pre-commit hook and exit')
    p.add_argument('--dry-run', action='store_true', help='always exit 0 when banned packages are found')
    p.add_argument('--debug', action='store_true', help='verbose logging')
    return p


def resolve_project_root(override=None) -> Path:
    if override:
        return Path(override).resolve()
    env_root = os.environ.get('PKG_SCAN_ROOT')
    if env_root:
        return Path(env_root).resolve()
    return Path.cwd()


def install_hook(cwd=None) -> int:
    hooks_dir = Path(cwd or Path.cwd()) / '.git' / 'hooks'
    if not hooks_dir.is_dir():
        info('Error: .git/hooks directory not found. Is this a git repository?')
        return EXIT_MATCHES
    hook_path = hooks_dir / 'pre-commit'
    try:
        hook_path.write_text(HOOK_SCRIPT, encoding='utf-8')
        hook_path.chmod(hook_path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as e:
        info(f'Error installing hook: {e}')
        return EXIT_MATCHES
    print('Pre-commit hook installed successfully!')
    print('worm-sign will now run before every commit.')
    return EXIT_CLEAN


def load_local_lists(data_root: Path):
    """Every CSV under ``<data_root>/sources``, else the legacy ``vuls.csv``."""
    records = []
    sources_dir = data_root / 'sources'
    if sources_dir.is_dir():
        for csv_path in sorted(sources_dir.glob('*.csv')):
            try:
                loaded = load_csv(csv_path)
            except OSError as e:
                info(f'Warning: Failed to load {csv_path.name}: {e}')
                continue
            logger.debug('Loaded %d packages from %s', len(loaded), csv_path.name)
            records.extend(loaded)
    if records:
        return records

    legacy = data_root / 'vuls.csv'
    if legacy.is_file():
        info(f'Using local banned list: {legacy}')
        return load_csv(legacy)

    info('Warning: No local banned lists found in sources/ directory or root.')
    return []


def fetch_records(args, config):
    """Feed records (cached or fresh), or None to fall back to local lists."""
    if config.offline:
        info('Offline mode is enabled; skipping remote fetch.')
        return None
    if args.cache:
        cached = load_cache()
        if cached is not None:
            info('Using cached API data.')
            return cached

    sources = select_sources(args.source, args.url, args.data_format,
                             allowed=config.allowed_sources, insecure=args.insecure)
    if not sources:
        info('Warning: No allowed sources to fetch from. Falling back to local list.')
        return None

    records, errors = fetch_compromised_packages(sources)
    for err in errors:
        info(f'Fetch warning: {err}')
    if not records:
        if errors:
            info('Falling back to local list.')
            return None
        return records
    info(f'Fetched {len(records)} unique packages.')
    if args.cache:
        save_cache(records)
    return records


def resolve_records(args, config, project_root: Path):
    records = None
    if args.fetch or args.url:
        records = fetch_records(args, config)
    if args.list:
        local = []
        for list_path in args.list:
            local.extend(load_file(list_path))
        records = (records or []) + local
    if records is None:
        data_root = Path(os.environ.get('WORMSIGN_DATA_ROOT') or project_root)
        records = load_local_lists(data_root)
    return records


def print_hint(message: str):
    for needle, hint in HINTS:
        if needle in message:
            info(f'Hint: {hint}')
            return


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    if args.install_hook:
        return install_hook()

    project_root = resolve_project_root(args.path)
    try:
        config = load_config(project_root)
        for list_path in args.list:
            if not Path(list_path).is_file():
                raise WormSignError(f'Compromised list not found at {list_path}')
        records = resolve_records(args, config, project_root)
        info(f'Scanning project at: {project_root}')
        result = scan_project(project_root, records, config=config)
    except (WormSignError, OSError) as e:
        info(f'Error: {e}')
        print_hint(str(e))
        logger.debug('Scan failed', exc_info=True)
        return EXIT_ERROR

    print(REPORTERS[args.format](result, project_root))

    if result.matches:
        if args.dry_run:
            info('[DRY RUN] Vulnerabilities found, but exiting with 0.')
            return EXIT_CLEAN
        return EXIT_MATCHES
    return EXIT_CLEAN


if __name__ == '__main__':
    sys.exit(main())
