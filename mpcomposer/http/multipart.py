#! /usr/bin/env python
"""Boundaries, part headers and errors for multipart messages"""

import binascii
import mimetypes
import os

from . import grammar


#: The maximum length of a boundary (RFC 2046 section 5.1.1)
MAX_BOUNDARY_LENGTH = 70

#: The number of random bytes in a generated boundary
BOUNDARY_BYTES = 30

#: The content type used for files of unrecognized type
DEFAULT_FILE_TYPE = "application/octet-stream"


class MultipartError(Exception):

    """Class for all errors raised when composing multipart messages"""
    pass


class InvalidBoundary(MultipartError, ValueError):

    """A boundary is empty, too long or contains a bad character"""
    pass


class InvalidState(MultipartError):

    """Raised when changing the boundary after parts have been added"""
    pass


class OwnershipDisabled(MultipartError):

    """Raised when a file can't be added as it would never be closed

    A composer only opens files by path while it is responsible for
    closing the sources it holds."""
    pass


class SizeUnavailable(MultipartError):

    """Raised when the total size of a message can't be computed

    At least one of the sources does not report its length."""
    pass


class CloseFailure(MultipartError, IOError):

    """Raised when one or more sources failed to close

    error
        The first exception raised while closing, it is also set as the
        cause of this exception.  Any later failures are only logged."""

    def __init__(self, error):
        super(CloseFailure, self).__init__(
            "failed to close source: %s" % str(error))
        self.error = error
        self.__cause__ = error


_BCHARNOSP_SPECIALS = set("'()+_,-./:=?")


def is_bcharnospace(c):
    """Returns True if a character satisfies production bcharnospace"""
    return grammar.is_digit(c) or grammar.is_alpha(c) or \
        c in _BCHARNOSP_SPECIALS


def is_bchars(c):
    """Returns True if a character satisfies product bchars"""
    return is_bcharnospace(c) or c == grammar.SP


def make_boundary(randbytes=os.urandom):
    """Returns a boundary selected randomly

    randbytes
        A callable that takes a number of bytes and returns a binary
        string of that many random bytes.  Defaults to os.urandom, pass
        a seeded generator's method (e.g., random.Random(1).randbytes)
        to get repeatable boundaries.

    The result is a character string of lower case hex digits."""
    return binascii.hexlify(randbytes(BOUNDARY_BYTES)).decode('ascii')


def is_valid_boundary(boundary):
    """Checks the syntax of boundary

    The input parameter is a character string.  It must be between 1
    and 70 characters long and contain only letters, digits and the
    characters ' ( ) + _ , - . / : = ? and space.  A space must not be
    the last character."""
    if not isinstance(boundary, str):
        return False
    if len(boundary) > MAX_BOUNDARY_LENGTH or len(boundary) < 1:
        return False
    for c in boundary[:-1]:
        if not is_bchars(c):
            return False
    return is_bcharnospace(boundary[-1])


def check_boundary(boundary):
    """Raises InvalidBoundary if *boundary* is not valid

    Returns the boundary on success."""
    if not isinstance(boundary, str):
        raise InvalidBoundary("boundary must be a character string")
    if len(boundary) > MAX_BOUNDARY_LENGTH or len(boundary) < 1:
        raise InvalidBoundary("invalid boundary length: %i" % len(boundary))
    if not is_valid_boundary(boundary):
        raise InvalidBoundary("invalid boundary character in %s" %
                              repr(boundary))
    return boundary


def form_data_content_type(boundary):
    """Returns the value of the Content-Type header for form data

    The boundary is quoted if it contains any of the special characters
    defined by RFC 2045, or space."""
    return "multipart/form-data; boundary=" + \
        grammar.quote_string(boundary, force=False)


def guess_content_type(file_name):
    """Returns the content type implied by a file name's extension

    Uses the mimetypes module, if the type is unknown, or the file name
    has no extension, :data:`DEFAULT_FILE_TYPE` is returned."""
    ctype, encoding = mimetypes.guess_type(file_name, strict=False)
    if ctype is None or encoding is not None:
        # compressed files are sent as they are
        return DEFAULT_FILE_TYPE
    return ctype


class PartHeader(object):

    """The headers of a single message part

    Header names are canonicalised and kept in a dictionary mapping
    the name to a list of values.  The values are character strings
    that are emitted as they are, they must already be formatted
    (including any required quoting)."""

    def __init__(self):
        self.headers = {}

    def __len__(self):
        return len(self.headers)

    def __contains__(self, field_name):
        return grammar.canonical_name(field_name) in self.headers

    def get_headerlist(self):
        """Returns all header names

        The list is alphabetically sorted."""
        return sorted(self.headers.keys())

    def get_header(self, field_name, list_mode=False):
        """Returns the header with *field_name* as a string.

        If there are multiple values they are joined with ", " unless
        *list_mode* is True, in which case a list of values is returned.
        If there is no such header None is returned in both modes."""
        values = self.headers.get(grammar.canonical_name(field_name))
        if values is None:
            return None
        elif list_mode:
            return list(values)
        else:
            return ", ".join(values)

    def set_header(self, field_name, field_value, append_mode=False):
        """Sets the header with *field_name* to *field_value*

        If *field_value* is None then the header is removed (if present).
        With *append_mode* the value is added to any existing values for
        this header rather than replacing them."""
        key = grammar.canonical_name(field_name)
        if field_value is None:
            self.headers.pop(key, None)
        elif append_mode and key in self.headers:
            self.headers[key].append(field_value)
        else:
            self.headers[key] = [field_value]

    def format(self):
        """Returns the header block as a binary string

        Each value is written on its own line, names in sorted order,
        and the block is terminated with an empty line.  The result is
        UTF-8 encoded (RFC 7578 allows non-ASCII file names)."""
        buffer = []
        for key in self.get_headerlist():
            for value in self.headers[key]:
                buffer.append("%s: %s\r\n" % (key, value))
        buffer.append(grammar.CRLF)
        return ''.join(buffer).encode('utf-8')


def format_disposition(params):
    """Formats a form-data Content-Disposition value

    params
        A list of (name, value) tuples, output in the order given.  The
        values are quoted and escaped."""
    buffer = ["form-data"]
    for name, value in params:
        buffer.append('; %s="%s"' % (name, grammar.escape_quotes(value)))
    return ''.join(buffer)


def create_part(disposition):
    """Creates the header for a general form-data part

    disposition
        A dictionary of disposition parameters, e.g., name.  They are
        output in sorted order of parameter name.

    Pass the result to :meth:`Composer.add_part` to add the part."""
    return create_header(
        format_disposition(sorted(disposition.items())))


def create_field_part(name):
    """Creates the header for a form field called *name*"""
    return create_header(format_disposition([('name', name)]))


def create_file_part(field_name, file_name):
    """Creates the header for a file upload

    The content type of the file is guessed from its name using
    :func:`guess_content_type`."""
    return create_header(
        format_disposition([('name', field_name), ('filename', file_name)]),
        guess_content_type(file_name))


def create_header(disposition, content_type=None):
    header = PartHeader()
    header.set_header('Content-Disposition', disposition)
    if content_type is not None:
        header.set_header('Content-Type', content_type)
    return header
