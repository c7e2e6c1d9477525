#! /usr/bin/env python
"""Character classes and quoting rules used by multipart headers

The productions are those of RFC 2045 and RFC 2046 but, unlike a
parser, the functions here work on *character* strings as boundaries
and header values are built from text supplied by the caller."""


CR = '\r'
LF = '\n'
SP = ' '
DQUOTE = '"'
REVERSE_SOLIDUS = '\\'

#: CRLF as a character string
CRLF = CR + LF

#: CRLF as a binary string, used when framing parts
CRLF_BYTES = b'\r\n'

#: The tspecials of RFC 2045, plus SP.  A parameter value containing
#: any of these must be sent as a quoted string.
TSPECIALS = set('()<>@,;:\\"/[]?= ')


def is_upalpha(c):
    """Returns True if a character matches the production for UPALPHA."""
    return c is not None and 'A' <= c <= 'Z'


def is_loalpha(c):
    """Returns True if a character matches the production for LOALPHA."""
    return c is not None and 'a' <= c <= 'z'


def is_alpha(c):
    """Returns True if a character matches the production for ALPHA."""
    return is_upalpha(c) or is_loalpha(c)


def is_digit(c):
    """Returns True if a character matches the production for DIGIT."""
    return c is not None and '0' <= c <= '9'


def is_tspecial(c):
    """Returns True if a character must be quoted in a parameter value"""
    return c in TSPECIALS


def needs_quoting(value):
    """Returns True if *value* contains a tspecial (or SP)"""
    for c in value:
        if c in TSPECIALS:
            return True
    return False


def escape_quotes(value):
    """Escapes a value for use inside a quoted string

    Each reverse solidus is doubled *before* double quotes are escaped
    so that the escapes added for quotes are not themselves escaped.
    The result does not include the surrounding quotes."""
    return value.replace(REVERSE_SOLIDUS, REVERSE_SOLIDUS * 2).replace(
        DQUOTE, REVERSE_SOLIDUS + DQUOTE)


def quote_string(value, force=True):
    """Places a string in double quotes, returning the quoted string.

    force
        Always quote the string, defaults to True.  If False then values
        without any tspecials are returned as-is.

    Unlike :func:`escape_quotes` this function adds the enclosing
    quotes."""
    if force or needs_quoting(value):
        return DQUOTE + escape_quotes(value) + DQUOTE
    else:
        return value


def canonical_name(field_name):
    """Returns the canonical form of a header field name

    Each hyphen separated word starts with an upper case letter, the
    rest of the word is lower case, e.g., "content-type" becomes
    "Content-Type"."""
    return '-'.join(w[:1].upper() + w[1:].lower()
                    for w in field_name.split('-'))
