"""Annotation grammar: scanning ``{...}`` spans and tokenizing their bodies."""

from mdattrs.grammar.scanner import (
    AnnotationMatch,
    probe_contains,
    probe_line,
    probe_whole,
    scan_block_trailer,
    scan_inline,
    scan_line,
)
from mdattrs.grammar.tokens import (
    AttributeToken,
    ClassToken,
    FlagToken,
    KeyValueToken,
    strip_quotes,
    to_attributes,
    tokenize,
)

__all__ = [
    "AnnotationMatch",
    "AttributeToken",
    "ClassToken",
    "FlagToken",
    "KeyValueToken",
    "probe_contains",
    "probe_line",
    "probe_whole",
    "scan_block_trailer",
    "scan_inline",
    "scan_line",
    "strip_quotes",
    "to_attributes",
    "tokenize",
]
