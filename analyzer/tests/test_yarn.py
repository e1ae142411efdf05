import pytest

from wormsign.errors import LockfileParseError
from wormsign.package_managers.yarn import (
    extract_package_name,
    is_berry,
    parse,
    parse_berry,
    parse_descriptors,
)

V1_LOCK = '''\
# THIS IS AN AUTOGENERATED FILE. DO NOT EDIT THIS FILE DIRECTLY.
# yarn lockfile v1


"@babel/core@^7.0.0", "@babel/core@^7.24.0":
  version "7.24.0"
  resolved "https://registry.yarnpkg.com/@babel/core/-/core-7.24.0.tgz#abc123"
  integrity sha512-core==
  dependencies:
    debug "^4.1.0"

left-pad@^1.3.0:
  version "1.3.0"
  resolved "https://registry.yarnpkg.com/left-pad/-/left-pad-1.3.0.tgz#5b8a3a7765dfe001261dde915589e782f8c94d1e"

"string-width-cjs@npm:string-width@^4.2.0":
  version "4.2.3"
  integrity sha512-sw==
'''

BERRY_LOCK = '''\
__metadata:
  version: 6
  cacheKey: 8

"@scope/pkg@npm:^1.0.0, @scope/pkg@npm:^1.1.0":
  version: 1.1.0
  resolution: "@scope/pkg@npm:1.1.0"
  checksum: deadbeef
  languageName: node
  linkType: hard

"lodash@npm:4.17.21":
  version: 4.17.21
  resolution: "lodash@npm:4.17.21"
  languageName: node
  linkType: hard

"app@workspace:.":
  version: 0.0.0-use.local
  resolution: "app@workspace:."
  languageName: unknown
  linkType: soft
'''


def test_descriptor_parsing():
    assert parse_descriptors('"@a/b@^1", "@a/b@^2"') == ['@a/b@^1', '@a/b@^2']
    assert parse_descriptors('x@^1, x@~1.2') == ['x@^1', 'x@~1.2']


@pytest.mark.parametrize('descriptor,name', [
    ('lodash@^4.17.0', 'lodash'),
    ('@babel/core@npm:^7.0.0', '@babel/core'),
    ('string-width-cjs@npm:string-width@^4.2.0', 'string-width'),
    ('resolve@patch:resolve@npm%3A^1.22#~builtin<compat/resolve>', 'resolve'),
])
def test_extract_package_name(descriptor, name):
    assert extract_package_name(descriptor) == name


def test_v1_round_trip_with_scoped_names():
    index, warnings = parse(V1_LOCK)
    assert warnings == []
    assert index.packages == {
        '@babel/core': {'7.24.0'},
        'left-pad': {'1.3.0'},
        'string-width': {'4.2.3'},
    }
    assert index.integrity_for('@babel/core', '7.24.0') == 'sha512-core=='
    # no integrity line: the resolved URL fragment stands in
    assert index.integrity_for('left-pad', '1.3.0') == '5b8a3a7765dfe001261dde915589e782f8c94d1e'
    # nested dependency ranges are not entries
    assert 'debug' not in index


def test_berry_round_trip_skips_workspace():
    assert is_berry(BERRY_LOCK)
    index, warnings = parse(BERRY_LOCK)
    assert warnings == []
    assert index.packages == {'@scope/pkg': {'1.1.0'}, 'lodash': {'4.17.21'}}
    assert index.integrity_for('@scope/pkg', '1.1.0') == 'deadbeef'


def test_v1_entry_without_version_warns():
    index, warnings = parse('foo@^1.0.0:\n  resolved "x"\n')
    assert len(index) == 0
    assert any('foo@^1.0.0' in w for w in warnings)
    assert any('No packages parsed from yarn.lock' in w for w in warnings)


def test_empty_v1_lockfile_is_silent():
    index, warnings = parse('# yarn lockfile v1\n\n')
    assert len(index) == 0
    assert warnings == []


def test_berry_invalid_yaml_raises():
    with pytest.raises(LockfileParseError):
        parse_berry('__metadata:\n  version: [unclosed\n')


def test_berry_without_entry_mappings_warns():
    index, warnings = parse('__metadata:\n  version: 6\n\n"left-pad@npm:1.3.0": 1.3.0\n')
    assert len(index) == 0
    assert warnings == ['No packages parsed from yarn.lock; unsupported format?']


def test_berry_workspace_only_is_silent():
    lock = '__metadata:\n  version: 6\n\n"app@workspace:.":\n  version: 0.0.0-use.local\n  resolution: "app@workspace:."\n'
    index, warnings = parse(lock)
    assert len(index) == 0
    assert warnings == []
