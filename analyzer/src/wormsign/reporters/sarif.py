# analyzer/src/wormsign/reporters/sarif.py
# SARIF 2.1.0 for code-scanning uploads.
import json

SCHEMA = 'https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json'
INFORMATION_URI = 'https://github.com/branislav-lang/banned-packages-scanner'

BANNED_RULE = 'WS001'
SUSPICIOUS_RULE = 'WS002'

RULES = [
    {
        'id': BANNED_RULE,
        'name': 'BannedPackage',
        'shortDescription': {'text': 'Banned package detected'},
        'fullDescription': {'text': 'The project depends on a package version listed as compromised.'},
        'defaultConfiguration': {'level': 'error'},
    },
    {
        'id': SUSPICIOUS_RULE,
        'name': 'SuspiciousScript',
        'shortDescription': {'text': 'Suspicious script or file detected'},
        'fullDescription': {'text': 'A lifecycle script or dropped file looks like malware activity.'},
        'defaultConfiguration': {'level': 'warning'},
    },
]

SEVERITY_LEVELS = {
    'critical': 'error',
    'high': 'error',
    'medium': 'warning',
    'low': 'note',
}


def _location(uri='package.json'):
    return [{
        'physicalLocation': {
            'artifactLocation': {'uri': uri, 'uriBaseId': '%SRCROOT%'},
        },
    }]


def generate_sarif(result) -> dict:
    results = []
    for m in result.matches:
        results.append({
            'ruleId': BANNED_RULE,
            'level': 'error',
            'message': {'text': f"Package '{m.name}@{m.version}' is banned (found in {m.section})."},
            'locations': _location(),
        })
    for warning in result.warnings:
        results.append({
            'ruleId': SUSPICIOUS_RULE,
            'level': 'warning',
            'message': {'text': warning},
            'locations': _location(),
        })
    for f in result.findings:
        results.append({
            'ruleId': SUSPICIOUS_RULE,
            'level': SEVERITY_LEVELS.get(f.severity, 'warning'),
            'message': {'text': f.message},
            'locations': _location(f.file or 'package.json'),
            'properties': {'ruleId': f.rule_id, 'severity': f.severity},
        })

    return {
        '$schema': SCHEMA,
        'version': '2.1.0',
        'runs': [{
            'tool': {
                'driver': {
                    'name': 'worm-sign',
                    'informationUri': INFORMATION_URI,
                    'rules': RULES,
                },
            },
            'results': results,
        }],
    }


def report(result, project_root) -> str:
    return json.dumps(generate_sarif(result), indent=2)
