from wormsign.reporters import json_report, sarif, text

# --format value -> report(result, project_root) -> str
REPORTERS = {
    'text': text.report,
    'json': json_report.report,
    'sarif': sarif.report,
}

__all__ = ['REPORTERS']
