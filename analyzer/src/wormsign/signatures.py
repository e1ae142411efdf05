# analyzer/src/wormsign/signatures.py
# Known Shai-Hulud indicators and install-script heuristics.
import re

# ---------------------------
# Files dropped at the project root
# ---------------------------
MALWARE_FILENAMES = (
    'setup_bun.js',          # fake Bun installer (Second Coming)
    'bun_environment.js',    # obfuscated payload
    'truffleSecrets.json',
    'actionsSecrets.json',
    'cloud.json',
    'contents.json',
    'environment.json',
)

# SHA-256 of confirmed payload variants
KNOWN_MALWARE_HASHES = frozenset({
    'a3894003ad1d293ba96d77881ccd2071446dc3f65f434669b49b3da92421901a',  # setup_bun.js
    '62ee164b9b306250c1172583f138c9614139264f889fa99614903c12755468d0',  # bun_environment.js
    'cbb9bc5a8496243e02f3cc080efbe3e4a1430ba0671f2e43a202bf45b05479cd',  # bun_environment.js
    'f099c5d9ec417d4445a0328ac0ada9cde79fc37410914103ae9c609cbc0ee068',  # bun_environment.js
})

# ---------------------------
# Substrings seen in malicious lifecycle scripts
# ---------------------------
MALWARE_PATTERNS = (
    'Shai-Hulud',
    'Sha1-Hulud',
    'The Second Coming',
    'node setup_bun.js',
    'bun_environment.js',
    'irm bun.sh/install.ps1|iex',
    'shred -uvz -n 1',
    'del /F /Q /S "%USERPROFILE%',
    'webhook.site/bb8ca5f6-4175-45d2-b042-fc9ebb8170b7',
    'trufflehog filesystem',
)

# (rule id, regex, label, severity); evaluated in order, each independently
SCRIPT_PATTERNS = (
    ('network_request', re.compile(r'\b(curl|wget)\s+'), 'Network request (curl/wget)', 'medium'),
    ('pipe_to_shell', re.compile(r'\|\s*(sudo\s+)?(ba|z)?sh\b'), 'Pipe to shell', 'high'),
    ('base64_blob', re.compile(r'[A-Za-z0-9+/]{60,}={0,2}'), 'Potential Base64 encoded string', 'medium'),
    ('hex_escape', re.compile(r'\\x[0-9a-fA-F]{2}'), 'Hex escape sequence (obfuscation)', 'medium'),
    ('eval_usage', re.compile(r'\beval\s*\('), 'Use of eval()', 'medium'),
    ('destructive_command', re.compile(r'\brm\s+(-rf|-fr)\b'), 'Destructive command (rm -rf)', 'high'),
    ('netcat_reverse_shell', re.compile(r'\b(nc|ncat|netcat)\s+.*-e\s+'), 'Netcat reverse shell', 'critical'),
    ('inline_code_exec', re.compile(r'\b(python3?|perl|ruby|node|sh|bash)\s+-[ce]\s+'), 'Inline code execution', 'medium'),
    ('ip_literal', re.compile(r'\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b'), 'IP address detected', 'low'),
)
