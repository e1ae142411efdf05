# analyzer/src/wormsign/reporters/json_report.py
import json


def report(result, project_root) -> str:
    data = result.to_dict()
    data['projectRoot'] = str(project_root)
    return json.dumps(data, indent=2)
