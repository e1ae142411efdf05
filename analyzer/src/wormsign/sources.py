# analyzer/src/wormsign/sources.py
# Remote compromise feeds. Every hop is checked against private address space
# before any request is made.
from __future__ import annotations

import ipaddress
import json
import socket
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

import requests

from wormsign.compromise import dedupe_records, parse_csv, parse_json
from wormsign.errors import SourceFetchError, UrlValidationError
from wormsign.logger import get_logger
from wormsign.models import CompromiseRecord

logger = get_logger(__name__)

REQUEST_TIMEOUT = 5  # seconds
MAX_REDIRECTS = 5
USER_AGENT = 'worm-sign'


@dataclass(frozen=True)
class SourceConfig:
    url: str
    type: str = 'json'  # json | csv
    name: str | None = None
    insecure: bool = False

    @property
    def label(self) -> str:
        return self.name or self.url


SOURCES = {
    'datadog': SourceConfig(
        url='https://raw.githubusercontent.com/DataDog/indicators-of-compromise/main/shai-hulud-2.0/consolidated_iocs.csv',
        type='csv',
        name='datadog',
    ),
    'koi': SourceConfig(
        url='https://docs.google.com/spreadsheets/d/16aw6s7mWoGU7vxBciTEZSaR5HaohlBTfVirvI-PypJc/export?format=csv&gid=1289659284',
        type='csv',
        name='koi',
    ),
}


# ---------------------------
# SSRF guard
# ---------------------------
def is_private_ip(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return False
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped:
        addr = addr.ipv4_mapped
    return (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_reserved
        or addr.is_multicast
        or addr.is_unspecified
    )


def resolve_host(hostname: str) -> list[str]:
    try:
        infos = socket.getaddrinfo(hostname, 443, proto=socket.IPPROTO_TCP)
    except socket.gaierror as e:
        raise UrlValidationError(f'DNS lookup failed for {hostname}: {e}') from e
    return sorted({info[4][0] for info in infos})


def validate_url(url: str) -> str:
    """Return the first resolved address for ``url`` or raise UrlValidationError."""
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise UrlValidationError(f'Invalid URL: {url}') from e
    if parsed.scheme != 'https':
        raise UrlValidationError('Security Error: Only HTTPS protocol is allowed.')
    hostname = parsed.hostname
    if not hostname:
        raise UrlValidationError(f'Invalid URL: {url}')

    try:
        ipaddress.ip_address(hostname)
        addresses = [hostname]
    except ValueError:
        addresses = resolve_host(hostname)

    for address in addresses:
        if is_private_ip(address):
            if address == hostname:
                raise UrlValidationError(f'Security Error: Access to private IP {hostname} is forbidden.')
            raise UrlValidationError(
                f'Security Error: Hostname {hostname} resolves to private IP {address}.')
    if not addresses:
        raise UrlValidationError(f'DNS lookup failed for {hostname}: no addresses')
    return addresses[0]


# ---------------------------
# Fetch
# ---------------------------
def _decode(source: SourceConfig, body: str) -> list[CompromiseRecord]:
    if source.type == 'csv':
        return parse_csv(body)
    if source.type == 'json':
        try:
            data = json.loads(body)
        except ValueError as e:
            raise SourceFetchError(f'Failed to parse API response: {e}') from e
        if not isinstance(data, dict) or not isinstance(data.get('packages'), list):
            raise SourceFetchError('Invalid API response: "packages" field must be an array.')
        return parse_json(body, source.label)
    raise SourceFetchError(f'Unknown source type: {source.type}')


def fetch_from_source(source: SourceConfig) -> list[CompromiseRecord]:
    if not source.url or not source.type:
        raise SourceFetchError('Invalid source configuration: missing url or type')

    headers = {
        'Accept': 'application/json' if source.type == 'json' else 'text/csv',
        'User-Agent': USER_AGENT,
    }
    url = source.url
    for _ in range(MAX_REDIRECTS + 1):
        validate_url(url)
        try:
            resp = requests.get(
                url,
                headers=headers,
                timeout=REQUEST_TIMEOUT,
                allow_redirects=False,
                verify=not source.insecure,
            )
        except requests.exceptions.Timeout as e:
            raise SourceFetchError(f'API request timed out after {REQUEST_TIMEOUT * 1000}ms') from e
        except requests.exceptions.RequestException as e:
            raise SourceFetchError(f'API request failed: {e}') from e

        if 300 <= resp.status_code < 400:
            location = resp.headers.get('Location')
            if not location:
                raise SourceFetchError('Redirect without location header')
            url = urljoin(url, location)
            logger.debug('Following redirect to %s', url)
            continue
        if resp.status_code != 200:
            raise SourceFetchError(f'API request failed with status {resp.status_code}')
        return _decode(source, resp.text)

    raise SourceFetchError('Too many redirects')


def fetch_compromised_packages(sources) -> tuple[list[CompromiseRecord], list[str]]:
    """Fetch every source; one failing feed never aborts the others."""
    records: list[CompromiseRecord] = []
    errors: list[str] = []
    for source in sources:
        try:
            fetched = fetch_from_source(source)
        except SourceFetchError as e:
            errors.append(f'Failed to fetch from {source.label}: {e}')
            continue
        logger.debug('Fetched %d records from %s', len(fetched), source.label)
        records.extend(fetched)
    return dedupe_records(records), errors


def select_sources(name: str = 'all', url: str | None = None, data_format: str = 'json',
                   allowed=None, insecure: bool = False) -> list[SourceConfig]:
    """Resolve CLI source options into SourceConfigs.

    ``allowed`` (config allowedSources) restricts named feeds when non-empty.
    """
    if url:
        return [SourceConfig(url=url, type=data_format, name='custom', insecure=insecure)]
    if name == 'all':
        names = list(SOURCES)
    elif name in SOURCES:
        names = [name]
    else:
        raise SourceFetchError(f'Unknown source: {name}. Available: {", ".join(SOURCES)}, all')
    if allowed:
        names = [n for n in names if n in allowed]
    return [SOURCES[n] for n in names]
