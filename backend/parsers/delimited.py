"""
Delimited Text Parser - Splits delimited table lines into fields

Handles the quoting convention used by exported spreadsheet tables:
- A quoted region treats the delimiter as a literal character
- A doubled quote inside a quoted region is one literal quote
- An unterminated quote absorbs the rest of the line instead of failing,
  so one malformed row never aborts the whole table
"""
from typing import Iterator, List, Tuple

DEFAULT_DELIMITER = ','
DEFAULT_QUOTE_CHAR = '"'
DEFAULT_COMMENT_PREFIX = '#'

# Characters stripped from header cells
HEADER_PADDING = ' "\t'


def parse_row(line: str, delimiter: str = DEFAULT_DELIMITER,
              quote_char: str = DEFAULT_QUOTE_CHAR) -> List[str]:
    """
    Split one line into trimmed fields, honoring quotes.

    Args:
        line: Raw line of text (without the trailing newline)
        delimiter: Field separator character
        quote_char: Quote character

    Returns:
        Ordered list of field strings; empty list for an empty line
    """
    if not line:
        return []

    fields = []
    current = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]

        if char == quote_char:
            if in_quotes and i + 1 < length and line[i + 1] == quote_char:
                current.append(quote_char)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append(''.join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append(''.join(current).strip())
    return fields


def parse_header(line: str, delimiter: str = DEFAULT_DELIMITER,
                 quote_char: str = DEFAULT_QUOTE_CHAR) -> List[str]:
    """
    Parse a header line, guaranteeing every column has a name.

    Blank cells are named ``Column_<index>`` (0-based).
    """
    headers = parse_row(line, delimiter, quote_char)
    for index, header in enumerate(headers):
        header = header.strip(HEADER_PADDING)
        headers[index] = header if header else f"Column_{index}"
    return headers


def is_blank(line: str) -> bool:
    """True for empty or whitespace-only lines."""
    return not line or not line.strip()


def is_comment(line: str, prefix: str = DEFAULT_COMMENT_PREFIX) -> bool:
    """True when the first non-whitespace text is the comment prefix."""
    return bool(prefix) and line.lstrip().startswith(prefix)


def iter_rows(text: str, delimiter: str = DEFAULT_DELIMITER,
              quote_char: str = DEFAULT_QUOTE_CHAR,
              comment_prefix: str = DEFAULT_COMMENT_PREFIX) -> Iterator[Tuple[int, List[str]]]:
    """
    Yield (line_number, fields) for each content line of a table.

    Line numbers are 1-based and count skipped lines, so they point at the
    physical line in the source text. Lines are split unstripped so a
    whitespace delimiter keeps its leading and trailing empty cells.
    """
    for line_number, line in enumerate(text.splitlines(), start=1):
        if is_blank(line) or is_comment(line, comment_prefix):
            continue
        yield line_number, parse_row(line, delimiter, quote_char)


class DelimitedLineParser:
    """
    Parser bound to one delimiter/quote/comment convention.

    Convenience wrapper so a loader can carry its table format around as a
    single object instead of three loose settings.
    """

    def __init__(self, delimiter: str = DEFAULT_DELIMITER,
                 quote_char: str = DEFAULT_QUOTE_CHAR,
                 comment_prefix: str = DEFAULT_COMMENT_PREFIX):
        if len(delimiter) != 1 or len(quote_char) != 1:
            raise ValueError("delimiter and quote_char must be single characters")
        if delimiter == quote_char:
            raise ValueError("delimiter and quote_char must differ")
        self.delimiter = delimiter
        self.quote_char = quote_char
        self.comment_prefix = comment_prefix

    def parse_row(self, line: str) -> List[str]:
        return parse_row(line, self.delimiter, self.quote_char)

    def parse_header(self, line: str) -> List[str]:
        return parse_header(line, self.delimiter, self.quote_char)

    def is_skippable(self, line: str) -> bool:
        """True for blank and comment lines."""
        return is_blank(line) or is_comment(line, self.comment_prefix)

    def iter_rows(self, text: str) -> Iterator[Tuple[int, List[str]]]:
        return iter_rows(text, self.delimiter, self.quote_char, self.comment_prefix)
