from wormsign.package_managers.common import PackageManagerHandler
from wormsign.package_managers.npm import handler as npm_handler
from wormsign.package_managers.pnpm import handler as pnpm_handler
from wormsign.package_managers.yarn import handler as yarn_handler

# Fixed priority order used when several lockfiles are present.
HANDLERS: tuple[PackageManagerHandler, ...] = (pnpm_handler, yarn_handler, npm_handler)

__all__ = [
    'HANDLERS',
    'PackageManagerHandler',
    'npm_handler',
    'pnpm_handler',
    'yarn_handler',
]
