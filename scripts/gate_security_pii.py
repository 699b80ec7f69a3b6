#!/usr/bin/env python3
"""PII gate for source files.

Fails if:
- print( is found in runtime code (src/**)
- a logger call mentions an identifier or message field without going
  through the redaction helpers

Logger calls are checked as a whole (from ``logger.x(`` to the matching
parenthesis), so multi-line calls are covered.

Usage:
    python scripts/gate_security_pii.py
"""

import re
import sys
from pathlib import Path

# Names that carry clear identifiers or message content
SENSITIVE_KEYWORDS = (
    "msisdn",
    "clear_user_id",
    "clear_session_id",
    "channelid",
    "payload",
    "request.body",
    "response.text",
    ".text",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(
    r"logger\.(debug|info|warning|error|critical|exception)\s*\("
)

REDACTION_PATTERNS = (
    "safe_log_context",
    "redact_value",
    "redact_string",
    "redact_body",
    "hash_for_log",
)


def _call_span(content: str, start: int) -> str:
    """Return the source of the call whose opening parenthesis is at ``start``."""
    depth = 0
    for index in range(start, len(content)):
        char = content[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return content[start : index + 1]
    return content[start:]


def check_file(filepath: Path) -> list[str]:
    """Check a single file for violations. Returns list of error messages."""
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []

    errors = []

    for lineno, line in enumerate(content.splitlines(), start=1):
        code_part = line.split("#")[0]
        if PRINT_PATTERN.search(code_part):
            errors.append(f"{filepath}:{lineno}: print() not allowed in runtime code")

    for match in LOGGER_CALL_PATTERN.finditer(content):
        span = _call_span(content, match.end() - 1)
        if any(rp in span for rp in REDACTION_PATTERNS):
            continue
        lowered = span.lower()
        lineno = content.count("\n", 0, match.start()) + 1
        for keyword in SENSITIVE_KEYWORDS:
            if keyword in lowered:
                errors.append(
                    f"{filepath}:{lineno}: logger call with '{keyword}' "
                    "must use redaction (safe_log_context/redact_body)"
                )

    return errors


def main() -> int:
    """Run the gate over the src directory."""
    src_dir = Path("src")
    if not src_dir.exists():
        src_dir = Path(__file__).parent.parent / "src"

    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    all_errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        all_errors.extend(check_file(pyfile))

    if all_errors:
        sys.stderr.write("PII gate FAILED - violations found:\n")
        for err in all_errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII gate PASSED - no violations found\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
