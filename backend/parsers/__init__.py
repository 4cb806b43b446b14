"""
Table text parsers
"""

from .delimited import (
    DelimitedLineParser, parse_row, parse_header, is_blank, is_comment, iter_rows,
    DEFAULT_DELIMITER, DEFAULT_QUOTE_CHAR, DEFAULT_COMMENT_PREFIX
)

__all__ = [
    'DelimitedLineParser', 'parse_row', 'parse_header', 'is_blank', 'is_comment',
    'iter_rows', 'DEFAULT_DELIMITER', 'DEFAULT_QUOTE_CHAR', 'DEFAULT_COMMENT_PREFIX'
]
