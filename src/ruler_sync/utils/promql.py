"""Expression text normalization for rule comparison.

Two expressions compare equal when they produce the same token sequence.
Whitespace, line breaks and ``#`` comments are ignored; string literals are
kept verbatim.
"""

import re


_TOKEN_RE = re.compile(
    r"""
    (?P<comment>\#[^\n]*)
    | (?P<string>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'|`[^`]*`)
    | (?P<word>[A-Za-z0-9_:.]+)
    | (?P<op>==|!=|>=|<=|=~|!~|[-+*/%^<>=(){}\[\],@])
    | (?P<space>\s+)
    | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)


def tokenize_expr(expr: str) -> list[str]:
    """Split an expression into comparable tokens."""
    tokens: list[str] = []
    for match in _TOKEN_RE.finditer(expr):
        kind = match.lastgroup
        if kind in ("comment", "space"):
            continue
        tokens.append(match.group())
    return tokens


def normalize_expr(expr: str) -> str:
    """Canonical single-line form of an expression.

    Example:
        >>> normalize_expr("sum by (job) (\\n  rate(x[5m])\\n) > 0")
        'sum by ( job ) ( rate ( x [ 5m ] ) ) > 0'
    """
    return " ".join(tokenize_expr(expr))
