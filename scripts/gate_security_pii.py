#!/usr/bin/env python3
"""Security gate for runtime code under src/.

Fails if any module:
- calls print() (runtime output goes through get_logger)
- passes webhook payloads, comment/issue bodies, signature headers or access
  tokens to a logger call that does not go through redaction
- contains a string literal that looks like a real GitHub token

Works on the token stream, so text inside strings and comments never
counts as a call.

Usage:
    python scripts/gate_security_pii.py [SRC_DIR]
"""

from __future__ import annotations

import io
import re
import sys
import tokenize
from dataclasses import dataclass
from pathlib import Path

LOG_METHODS = frozenset({"debug", "info", "warning", "error", "critical", "exception"})

# Matched against the code of a logger call with string literals removed
SENSITIVE_NAMES = (
    "payload",
    "body_bytes",
    "request.body",
    "request.json",
    "comment.body",
    "issue.body",
    "signature_header",
    "access_token",
)

REDACTION_HELPERS = frozenset({"safe_log_context", "redact_value", "redact_string"})

GITHUB_TOKEN_LITERAL = re.compile(r"gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,}")

_SKIPPED = frozenset(
    {
        tokenize.COMMENT,
        tokenize.NL,
        tokenize.NEWLINE,
        tokenize.INDENT,
        tokenize.DEDENT,
        tokenize.ENCODING,
        tokenize.ENDMARKER,
    }
)


@dataclass(frozen=True)
class Violation:
    path: Path
    line: int
    message: str

    def __str__(self) -> str:
        return f"{self.path}:{self.line}: {self.message}"


def _code_tokens(source: str) -> list[tokenize.TokenInfo]:
    tokens = tokenize.generate_tokens(io.StringIO(source).readline)
    return [tok for tok in tokens if tok.type not in _SKIPPED]


def _call_end(tokens: list[tokenize.TokenInfo], open_index: int) -> int:
    """Index of the ')' closing the '(' at open_index."""
    depth = 0
    for index in range(open_index, len(tokens)):
        if tokens[index].string in ("(", "[", "{"):
            depth += 1
        elif tokens[index].string in (")", "]", "}"):
            depth -= 1
            if depth == 0:
                return index
    return len(tokens) - 1


def _is_log_call(tokens: list[tokenize.TokenInfo], i: int) -> bool:
    return (
        tokens[i].string == "logger"
        and i + 3 < len(tokens)
        and tokens[i + 1].string == "."
        and tokens[i + 2].string in LOG_METHODS
        and tokens[i + 3].string == "("
    )


def _check_log_call(path: Path, call: list[tokenize.TokenInfo]) -> list[Violation]:
    if any(tok.string in REDACTION_HELPERS for tok in call):
        return []
    code = "".join(tok.string for tok in call if tok.type != tokenize.STRING).lower()
    return [
        Violation(
            path,
            call[0].start[0],
            f"logger call with '{name}' must use redaction (safe_log_context/redact_value)",
        )
        for name in SENSITIVE_NAMES
        if name in code
    ]


def check_source(path: Path, source: str) -> list[Violation]:
    try:
        tokens = _code_tokens(source)
    except (tokenize.TokenError, SyntaxError) as e:
        return [Violation(path, 1, f"cannot tokenize: {e}")]

    violations: list[Violation] = []
    for i, tok in enumerate(tokens):
        if tok.type == tokenize.STRING and GITHUB_TOKEN_LITERAL.search(tok.string):
            violations.append(Violation(path, tok.start[0], "hardcoded GitHub token literal"))
        elif (
            tok.type == tokenize.NAME
            and tok.string == "print"
            and i + 1 < len(tokens)
            and tokens[i + 1].string == "("
            and (i == 0 or tokens[i - 1].string != ".")
        ):
            violations.append(Violation(path, tok.start[0], "print() not allowed in runtime code"))
        elif _is_log_call(tokens, i):
            end = _call_end(tokens, i + 3)
            violations.extend(_check_log_call(path, tokens[i : end + 1]))
    return violations


def check_file(filepath: Path) -> list[str]:
    """Check a single file. Returns one message per violation."""
    try:
        source = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []
    return [str(v) for v in check_source(filepath, source)]


def _find_src_dir(argv: list[str]) -> Path | None:
    candidates = [Path(argv[0])] if argv else [Path("src"), Path(__file__).parent.parent / "src"]
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    return None


def main(argv: list[str] | None = None) -> int:
    src_dir = _find_src_dir(argv or [])
    if src_dir is None:
        sys.stderr.write("Error: src directory not found\n")
        return 1

    errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        errors.extend(check_file(pyfile))

    if errors:
        sys.stderr.write(f"security gate FAILED: {len(errors)} violation(s)\n")
        for err in errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("security gate passed\n")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
