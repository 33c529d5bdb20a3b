"""Shared utilities: logging, JSON formatting, networking and TLS helpers."""

from ._json import JSONSyntaxError, compact_json, indent_json, validate_json
from ._logging import LogFormatType, create_logger, open_logger
from ._net import find_open_port
from ._time import get_timestamp, parse_duration
from ._tls import (
    CertificateAuthority,
    KeyPair,
    generate_private_key,
    private_key_pem,
    public_key_pem,
)

__all__ = [
    "CertificateAuthority",
    "JSONSyntaxError",
    "KeyPair",
    "LogFormatType",
    "compact_json",
    "create_logger",
    "find_open_port",
    "generate_private_key",
    "get_timestamp",
    "indent_json",
    "open_logger",
    "parse_duration",
    "private_key_pem",
    "public_key_pem",
    "validate_json",
]
