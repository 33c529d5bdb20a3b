"""JSON formatting helpers.

Schema documents are checked and re-indented token by token rather than
decoded and re-encoded, so escapes (``\\u003c``), number spellings and key
order survive exactly as the server produced them. Only the JSON grammar is
enforced: values a decoder would refuse to materialize, such as ``1e400`` or
a lone ``\\ud800`` escape, are accepted.
"""

import re

_WHITESPACE = re.compile(rb"[ \t\r\n]*")

# A string, a structural character, a number, or a literal
_LEXEME = re.compile(
    rb'"(?:[^"\\\x00-\x1f]|\\["\\/bfnrt]|\\u[0-9a-fA-F]{4})*"'
    rb"|[{}\[\],:]"
    rb"|-?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?"
    rb"|true|false|null"
)

_OPENERS = (b"{", b"[")
_CLOSERS = (b"}", b"]")
_MATCHING = {b"{": b"}", b"[": b"]"}

# Parser states
_VALUE = 0
_ARRAY_START = 1
_OBJECT_START = 2
_KEY = 3
_COLON = 4
_AFTER_VALUE = 5
_DONE = 6


class JSONSyntaxError(ValueError):
    """Raised when a payload is not a single well-formed JSON value.

    Attributes:
        offset: Byte offset of the offending input.
    """

    def __init__(self, message: str, *, offset: int) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.offset: int = offset


def _lex(data: bytes) -> list[tuple[int, bytes]]:
    tokens: list[tuple[int, bytes]] = []
    pos = _WHITESPACE.match(data).end()  # pyright: ignore[reportOptionalMemberAccess]
    while pos < len(data):
        match = _LEXEME.match(data, pos)
        if match is None:
            msg = "Unexpected character"
            raise JSONSyntaxError(msg, offset=pos)
        tokens.append((pos, match.group(0)))
        pos = _WHITESPACE.match(data, match.end()).end()  # pyright: ignore[reportOptionalMemberAccess]
    return tokens


def _tokens(data: bytes) -> list[bytes]:
    """Split ``data`` into tokens, raising if it is not valid JSON."""
    tokens = _lex(data)
    stack: list[bytes] = []
    state = _VALUE

    for offset, token in tokens:
        if state == _DONE:
            msg = "Unexpected data after the top-level value"
            raise JSONSyntaxError(msg, offset=offset)

        if state == _COLON:
            if token != b":":
                msg = "Expected ':'"
                raise JSONSyntaxError(msg, offset=offset)
            state = _VALUE
        elif state in (_OBJECT_START, _KEY):
            if token == b"}" and state == _OBJECT_START:
                _ = stack.pop()
                state = _AFTER_VALUE if stack else _DONE
            elif token.startswith(b'"'):
                state = _COLON
            else:
                msg = "Expected an object key"
                raise JSONSyntaxError(msg, offset=offset)
        elif state == _AFTER_VALUE:
            if token == b",":
                state = _KEY if stack[-1] == b"{" else _VALUE
            elif token == _MATCHING[stack[-1]]:
                _ = stack.pop()
                state = _AFTER_VALUE if stack else _DONE
            else:
                msg = "Expected ',' or a closing bracket"
                raise JSONSyntaxError(msg, offset=offset)
        elif token == b"]" and state == _ARRAY_START:
            _ = stack.pop()
            state = _AFTER_VALUE if stack else _DONE
        elif token in _OPENERS:
            stack.append(token)
            state = _OBJECT_START if token == b"{" else _ARRAY_START
        elif token in _CLOSERS or token in (b",", b":"):
            msg = "Expected a value"
            raise JSONSyntaxError(msg, offset=offset)
        else:
            state = _AFTER_VALUE if stack else _DONE

    if state != _DONE:
        msg = "Unexpected end of input"
        raise JSONSyntaxError(msg, offset=len(data))
    return [token for _, token in tokens]


def validate_json(data: bytes) -> None:
    """Check that ``data`` is a single well-formed JSON value.

    Raises:
        JSONSyntaxError: If the payload is not valid JSON.
    """
    _ = _tokens(data)


def indent_json(data: bytes, indent: str = "\t", prefix: str = "") -> bytes:
    """Pretty-print a JSON payload.

    Each element of an object or array begins on a new line starting with
    ``prefix`` followed by one copy of ``indent`` per nesting level. Empty
    objects and arrays stay on one line. No trailing newline is added.

    Args:
        data: A valid JSON payload.
        indent: Indentation unit (a tab by default).
        prefix: String placed at the start of every new line.

    Returns:
        The indented payload.

    Raises:
        JSONSyntaxError: If the payload is not valid JSON.
    """
    unit = indent.encode()
    newline = b"\n" + prefix.encode()
    out = bytearray()
    depth = 0
    # Set after an opener until we know whether the container is empty
    pending_open = False

    for token in _tokens(data):
        if pending_open and token not in _CLOSERS:
            pending_open = False
            depth += 1
            out += newline + unit * depth

        if token in _OPENERS:
            out += token
            pending_open = True
        elif token in _CLOSERS:
            if pending_open:
                pending_open = False
            else:
                depth -= 1
                out += newline + unit * depth
            out += token
        elif token == b",":
            out += token + newline + unit * depth
        elif token == b":":
            out += b": "
        else:
            out += token

    return bytes(out)


def compact_json(data: bytes) -> bytes:
    """Remove insignificant whitespace from a JSON payload.

    Raises:
        JSONSyntaxError: If the payload is not valid JSON.
    """
    return b"".join(_tokens(data))
