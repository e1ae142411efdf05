# analyzer/src/wormsign/reporters/text.py
# Plain terminal report: warnings, findings, then the banned-package table.
HEADERS = ('Package', 'Version', 'Location')


def _table(rows) -> str:
    widths = [max(len(str(row[i])) for row in (HEADERS, *rows)) for i in range(len(HEADERS))]
    sep = '+' + '+'.join('-' * (w + 2) for w in widths) + '+'

    def line(row):
        return '|' + '|'.join(f' {str(cell).ljust(w)} ' for cell, w in zip(row, widths)) + '|'

    out = [sep, line(HEADERS), sep]
    out.extend(line(row) for row in rows)
    out.append(sep)
    return '\n'.join(out)


def report(result, project_root) -> str:
    out = []
    if result.warnings:
        out.append('Warnings:')
        out.extend(f'  - {msg}' for msg in result.warnings)
        out.append('')

    if result.findings:
        out.append('Suspicious activity:')
        out.extend(f'  [{f.severity.upper()}] {f.message} ({f.rule_id})' for f in result.findings)
        out.append('')

    if not result.matches:
        out.append(f'No banned packages found in {project_root}.')
        out.append('The spice must flow.')
        return '\n'.join(out) + '\n'

    out.append(f'Banned packages detected in {project_root}!')
    out.append('')
    out.append(_table([(m.name, m.version, m.section) for m in result.matches]))
    return '\n'.join(out) + '\n'
