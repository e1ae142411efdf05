# analyzer/src/wormsign/detector.py
# Pick the package manager (and lockfile) to inspect for a project root.
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from wormsign.logger import get_logger
from wormsign.package_managers import HANDLERS, PackageManagerHandler

logger = get_logger(__name__)


@dataclass
class Detection:
    handler: PackageManagerHandler | None = None
    lock_path: Path | None = None
    warnings: list[str] = field(default_factory=list)
    # every handler whose lockfile is present, in priority order
    available: list[tuple[PackageManagerHandler, Path]] = field(default_factory=list)


def find_preferred(package_json, handlers=HANDLERS) -> PackageManagerHandler | None:
    field_value = (package_json or {}).get('packageManager')
    if not field_value:
        return None
    for handler in handlers:
        if handler.detect_preference(field_value):
            return handler
    logger.debug('packageManager field %r matches no known handler', field_value)
    return None


def detect_package_manager(project_root, package_json, handlers=HANDLERS) -> Detection:
    root = Path(project_root)
    preferred = find_preferred(package_json, handlers)

    available = []
    for handler in handlers:
        lock_path = handler.find_lockfile(root)
        if lock_path:
            available.append((handler, lock_path))
    detection = Detection(available=available)

    if preferred:
        preferred_lock = preferred.find_lockfile(root)
        if preferred_lock:
            detection.handler, detection.lock_path = preferred, preferred_lock
            return detection
        if available:
            fallback, fallback_lock = available[0]
            detection.warnings.append(
                f'package.json declares {preferred.label}, but its lockfile is missing; '
                f'falling back to {fallback.label}.'
            )
            detection.handler, detection.lock_path = fallback, fallback_lock
            return detection
        detection.warnings.append(
            f'package.json declares {preferred.label}, but no matching lockfile was found.'
        )
        detection.handler = preferred
        return detection

    if len(available) == 1:
        detection.handler, detection.lock_path = available[0]
        return detection

    if len(available) > 1:
        names = ', '.join(h.label for h, _ in available)
        detection.handler, detection.lock_path = available[0]
        detection.warnings.append(
            f'Multiple lockfiles detected ({names}); defaulting to {detection.handler.label}.'
        )
        return detection

    return detection
