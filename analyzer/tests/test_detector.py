from wormsign.detector import detect_package_manager, find_preferred
from wormsign.package_managers import npm_handler


def test_package_manager_field_wins(make_project):
    root = make_project({'packageManager': 'yarn@4.1.0'},
                        files={'yarn.lock': '', 'package-lock.json': '{}'})
    detection = detect_package_manager(root, {'packageManager': 'yarn@4.1.0'})
    assert detection.handler.id == 'yarn'
    assert detection.lock_path.name == 'yarn.lock'
    assert detection.warnings == []


def test_declared_manager_without_lockfile_falls_back(make_project):
    pkg = {'packageManager': 'pnpm@9.0.0'}
    root = make_project(pkg, files={'package-lock.json': '{}'})
    detection = detect_package_manager(root, pkg)
    assert detection.handler.id == 'npm'
    assert detection.warnings == [
        'package.json declares pnpm, but its lockfile is missing; falling back to npm.'
    ]


def test_declared_manager_and_no_lockfiles(make_project):
    pkg = {'packageManager': 'npm@10.0.0'}
    root = make_project(pkg)
    detection = detect_package_manager(root, pkg)
    assert detection.handler.id == 'npm'
    assert detection.lock_path is None


def test_single_lockfile(make_project):
    root = make_project({}, files={'npm-shrinkwrap.json': '{}'})
    detection = detect_package_manager(root, {})
    assert detection.handler.id == 'npm'
    assert detection.lock_path.name == 'npm-shrinkwrap.json'


def test_multiple_lockfiles_use_priority_order(make_project):
    root = make_project({}, files={'yarn.lock': '', 'package-lock.json': '{}'})
    detection = detect_package_manager(root, {})
    assert detection.handler.id == 'yarn'
    assert detection.warnings == ['Multiple lockfiles detected (Yarn, npm); defaulting to Yarn.']
    assert [h.id for h, _ in detection.available] == ['yarn', 'npm']


def test_nothing_detected(make_project):
    root = make_project({})
    detection = detect_package_manager(root, {})
    assert detection.handler is None
    assert detection.lock_path is None


def test_unknown_package_manager_field_is_ignored():
    assert find_preferred({'packageManager': 'bun@1.0.0'}) is None
    assert find_preferred({'packageManager': 42}) is None
    assert find_preferred({}) is None


def test_preference_is_limited_to_given_handlers(make_project):
    pkg = {'packageManager': 'yarn@4.1.0'}
    root = make_project(pkg, files={'yarn.lock': '', 'package-lock.json': '{}'})
    assert find_preferred(pkg, handlers=(npm_handler,)) is None
    detection = detect_package_manager(root, pkg, handlers=(npm_handler,))
    assert detection.handler is npm_handler
    assert detection.lock_path.name == 'package-lock.json'
    assert detection.warnings == []
