# -*- coding: utf-8 -*-

"""
Parser for ``key=value`` import files.

Rules:

* Each line is split at the first ``=``; the key is stripped of
  surrounding whitespace and of an optional leading ``export``.
* An unquoted value ends at the first unescaped ``#``; the rest of the
  line is a comment. ``\\#`` yields a literal ``#``.
* A value wrapped in single or double quotes is taken verbatim up to the
  closing quote (``#`` is not special inside quotes).
* Blank lines and lines starting with ``#`` are skipped.
"""

import logging

from shrine.exceptions import (
    ImportFormatError,
    InvalidSecretPathError,
)
from shrine.utils import validate_secret_path


logger = logging.getLogger(__name__)

COMMENT = '#'
ESCAPE = '\\'
QUOTES = ['"', "'"]
EXPORT = 'export '


def _unquoted_value(text):
    value = []
    chars = iter(text)
    for char in chars:
        if char == ESCAPE:
            following = next(chars, None)
            if following == COMMENT:
                value.append(COMMENT)
                continue
            value.append(char)
            if following is not None:
                value.append(following)
            continue
        if char == COMMENT:
            break
        value.append(char)
    return ''.join(value).strip()


def _quoted_value(text, lineno):
    quote = text[0]
    end = text.find(quote, 1)
    if end < 0:
        raise ImportFormatError(
            msg=f'Unterminated {quote} quoted value', line=lineno)
    return text[1:end]


def parse_line(line, lineno=None):
    """
    Parse a single import line.

    Returns:
      tuple: ``(key, value)``, or ``None`` for blank and comment lines.
    """
    stripped = line.strip()
    if stripped == '' or stripped.startswith(COMMENT):
        return None
    if '=' not in stripped:
        raise ImportFormatError(
            msg=f"Missing '=' in {stripped!r}", line=lineno)
    key, text = stripped.split('=', 1)
    key = key.strip()
    if key.startswith(EXPORT):
        key = key[len(EXPORT):].strip()
    text = text.strip()
    if text[:1] in QUOTES:
        value = _quoted_value(text, lineno)
    else:
        value = _unquoted_value(text)
    return key, value


def parse_lines(lines, prefix=None):
    """
    Parse import lines into ``(secret_path, value)`` pairs.

    Args:
      lines (iterable): Lines of the import file.
      prefix (str): Optional string prepended to every key.

    Returns:
      list: ``(path, value)`` tuples in file order. A key appearing twice
      yields two entries; the later one wins when applied.
    """
    prefix = prefix or ''
    entries = list()
    for lineno, line in enumerate(lines, start=1):
        parsed = parse_line(line, lineno=lineno)
        if parsed is None:
            continue
        key, value = parsed
        path = f'{prefix}{key}'
        try:
            validate_secret_path(path)
        except InvalidSecretPathError as err:
            raise ImportFormatError(msg=str(err), line=lineno)
        entries.append((path, value))
    logger.debug('[*] parsed %d entries from import lines', len(entries))
    return entries


# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
