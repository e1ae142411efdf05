import json

from wormsign.compromise import build_index, dedupe_records, load_file, parse_csv, parse_json
from wormsign.models import CompromiseRecord


def test_csv_header_aliases_are_case_insensitive():
    raw = '\ufeffPackage Name,Package Version,MSC ID,Hash\nleft-pad,1.3.0,MSC-1,sha512-x\n,1.0.0,,\n'
    records = parse_csv(raw)
    assert records == [CompromiseRecord('left-pad', '1.3.0', 'MSC-1', 'sha512-x')]


def test_csv_unknown_headers_use_first_two_columns():
    records = parse_csv('pkg,ver\nfoo,2.0.0\nbar,\n')
    assert [(r.name, r.version) for r in records] == [('foo', '2.0.0'), ('bar', '')]


def test_csv_blank_lines_are_skipped():
    assert parse_csv('name,version\n\n\nfoo,1.0.0\n') == [CompromiseRecord('foo', '1.0.0')]


def test_json_list_and_packages_object():
    as_list = parse_json(json.dumps([{'name': 'a', 'version': '1.0.0'}, {'version': '2'}, 'junk']))
    assert as_list == [CompromiseRecord('a', '1.0.0')]
    wrapped = parse_json(json.dumps({'packages': [{'name': 'b', 'integrity': 'sha512-b'}]}))
    assert wrapped == [CompromiseRecord('b', None, None, 'sha512-b')]


def test_json_bad_shapes_yield_nothing(caplog):
    assert parse_json('{"foo": 1}') == []
    assert parse_json('not json') == []
    assert 'Failed to parse JSON' in caplog.text


def test_build_index_unions_versions_and_hashes():
    index = build_index([
        {'name': 'a', 'version': '1.0.0'},
        {'name': 'a', 'version': '1.0.1', 'integrity': 'sha512-a'},
        {'name': 'b', 'version': '*'},
        {'name': 'c'},
        {'name': '', 'version': '1.0.0'},
    ])
    assert sorted(index) == ['a', 'b', 'c']
    assert index['a'].exact_versions == {'1.0.0', '1.0.1'}
    assert index['a'].hashes == {'sha512-a'}
    assert not index['a'].wildcard
    assert index['b'].wildcard and index['c'].wildcard


def test_wildcard_dominates_exact_versions():
    index = build_index([{'name': 'a', 'version': '1.0.0'}, {'name': 'a', 'version': 'any'}])
    assert index['a'].wildcard


def test_dedupe_records():
    a = CompromiseRecord('a', '1.0.0')
    assert dedupe_records([a, CompromiseRecord('a', '1.0.0', 'other reason'), CompromiseRecord('a', '1.0.1')]) == [
        a, CompromiseRecord('a', '1.0.1')]


def test_load_file_dispatches_on_extension(tmp_path):
    (tmp_path / 'list.json').write_text('[{"name": "j", "version": "1.0.0"}]')
    (tmp_path / 'list.csv').write_text('name,version\nc,1.0.0\n')
    assert load_file(tmp_path / 'list.json')[0].name == 'j'
    assert load_file(tmp_path / 'list.csv')[0].name == 'c'
