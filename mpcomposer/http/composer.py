#! /usr/bin/env python
"""Composes multipart/form-data message bodies from streams

Instead of writing the parts of a form into a buffer, a
:class:`Composer` keeps the sources of the field values and files and
chains them, together with the boundary lines and part headers, into a
single stream that is read as the request is sent.  File contents are
never held in memory::

    with Composer() as comp:
        comp.add_field("comment", "a comment")
        comp.add_file("file", "test.txt")
        content_type = comp.form_data_content_type()
        body, length = comp.detach_with_size()

The stream returned by detach closes the files added to the composer
when it is closed itself.  Until then, closing the composer (leaving
the with block) closes any files it still holds."""

import logging
import os

from .. import streams
from . import grammar
from . import multipart


class Composer(object):

    """Composes a multipart message from delayed content

    close_owned
        Sets the initial value of :attr:`close_owned`, defaults to True.

    randbytes
        An optional callable used as the source of randomness for
        boundaries, see :func:`multipart.make_boundary`.  Defaults to
        os.urandom.

    A new composer has a random boundary and no parts."""

    def __init__(self, close_owned=True, randbytes=os.urandom):
        #: if False the composer (and any stream detached from it) will
        #: not close the sources it owns
        self.close_owned = close_owned
        self.randbytes = randbytes
        self._boundary = multipart.make_boundary(randbytes)
        # list of (source, owned) tuples in the order they'll be read
        self._sources = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def boundary(self):
        """The boundary used to separate the parts"""
        return self._boundary

    @property
    def empty(self):
        """True if the composer holds no parts"""
        return not self._sources

    def set_boundary(self, boundary):
        """Overrides the boundary with an explicit value

        Must be called before any parts are added, or after the parts
        were detached or cleared, otherwise InvalidState is raised.  The
        boundary must be from 1 to 70 characters long and may only
        contain certain ASCII characters (RFC 2046, section 5.1.1), if
        it doesn't InvalidBoundary is raised.  On error the existing
        boundary is unchanged."""
        if self._sources:
            raise multipart.InvalidState("set_boundary called after add")
        self._boundary = multipart.check_boundary(boundary)

    def reset_boundary(self):
        """Replaces the boundary with a new random one

        The same restrictions apply as for :meth:`set_boundary`."""
        if self._sources:
            raise multipart.InvalidState("reset_boundary called after add")
        self._boundary = multipart.make_boundary(self.randbytes)

    def form_data_content_type(self):
        """Returns the value of the Content-Type header

        The value is multipart/form-data with the composer's boundary
        as a parameter."""
        return multipart.form_data_content_type(self._boundary)

    def add_part(self, header, src):
        """Adds a part with a prepared header

        header
            A :class:`multipart.PartHeader` instance, typically created
            with one of :func:`multipart.create_part`,
            :func:`multipart.create_field_part` or
            :func:`multipart.create_file_part`.

        src
            A file-like object from which the content of the part will
            be read.  If it can be closed, and :attr:`close_owned` is
            True, the composer takes ownership of it."""
        self._append(header.format(), src, self._owns(src))

    def add_field(self, name, value):
        """Adds a part with a field value

        value
            A character string (sent UTF-8 encoded) or a binary string.
            The value is held in memory with the part's header."""
        if isinstance(value, str):
            value = value.encode('utf-8')
        header = multipart.create_field_part(name).format()
        self._append(header + value)

    def add_field_reader(self, name, src):
        """Adds a part with a field value read from *src*

        Ownership of src is as for :meth:`add_part`."""
        self.add_part(multipart.create_field_part(name), src)

    def add_file(self, field_name, path):
        """Adds a part with the content of the file at *path*

        The file name sent is the base name of path and the content type
        is guessed from the file's extension.  The opened file is owned
        by the composer, don't forget to close the composer (or the
        detached stream) when you no longer need it.

        If :attr:`close_owned` is False OwnershipDisabled is raised as
        nobody would close the file.  Errors opening the file are raised
        unchanged."""
        if not self.close_owned:
            raise multipart.OwnershipDisabled(
                "adding a file by path requires close_owned")
        src = streams.open_file(path)
        self._add_file(field_name, src.name, src, True)

    def add_file_object(self, field_name, f):
        """Adds a part with the content of an open file

        The name of the file and its size are taken from f, which must
        be open in binary mode.  The size is only known if f is a
        regular file, see :func:`~mpcomposer.streams.wrap_file`.  The
        file is owned by the composer: don't close it yourself, close
        the composer (or the detached stream) instead.  If
        :attr:`close_owned` is False the file is left open, even once
        the composer has been cleared."""
        src = streams.wrap_file(f)
        self._add_file(field_name, src.name or field_name, src, True)

    def add_file_reader(self, field_name, file_name, src):
        """Adds a part with file content read from *src*

        The content type is guessed from file_name.  Ownership of src is
        as for :meth:`add_part`."""
        self._add_file(field_name, file_name, src, self._owns(src))

    def total_size(self):
        """Returns the total size of the message body

        The size includes the terminating boundary that will be added
        when the stream is detached.  If the size of any source is
        unknown SizeUnavailable is raised, the composer is left as it
        was."""
        size = len(self._closing_delimiter())
        for src, owned in self._sources:
            length = streams.source_length(src)
            if length is None:
                raise multipart.SizeUnavailable(
                    "source without size: %s" % repr(src))
            size += length
        return size

    def detach(self):
        """Finishes the message and returns a stream to read it

        The terminating boundary is added and the sources are moved to
        a new :class:`~mpcomposer.streams.ComposedStream` leaving the
        composer empty, ready to compose a new message.  If
        :attr:`close_owned` is True the stream will close the owned
        sources when it is closed, otherwise closing it does nothing to
        the sources."""
        return self._detach(None)

    def detach_with_size(self):
        """Finishes the message and returns a stream and its length

        Returns a tuple of (stream, length).  As for :meth:`detach` but
        the total size is computed first, if it can't be
        SizeUnavailable is raised and the composer is not changed, you
        can still call :meth:`detach`."""
        size = self.total_size()
        return self._detach(size), size

    def close(self):
        """Closes all owned sources

        Does nothing if :attr:`close_owned` is False.  All sources are
        closed even if some fail, the first error is raised as
        :class:`multipart.CloseFailure`.  The sources remain in the
        composer, use :meth:`clear` to remove them."""
        if not self.close_owned:
            return
        err = streams.close_all(self._owned_sources())
        if err is not None:
            raise multipart.CloseFailure(err)

    def clear(self):
        """Closes owned sources and removes all parts

        The composer is left empty, ready to start a new message (with
        a new boundary if required)."""
        try:
            self.close()
        finally:
            self._sources = []

    def _owns(self, src):
        return self.close_owned and streams.is_closable(src)

    def _owned_sources(self):
        return [src for src, owned in self._sources if owned]

    def _delimiter(self):
        if self._sources:
            return grammar.CRLF_BYTES
        else:
            return b""

    def _closing_delimiter(self):
        return b"%s--%s--\r\n" % (self._delimiter(),
                                  self._boundary.encode('ascii'))

    def _append(self, head, src=None, owned=False):
        data = b"%s--%s\r\n%s" % (self._delimiter(),
                                  self._boundary.encode('ascii'), head)
        self._sources.append((streams.SizedReader.from_bytes(data), False))
        if src is not None:
            self._sources.append((src, owned))
        logging.debug("Composer: added part, source %s, owned=%s", repr(src),
                      owned)

    def _add_file(self, field_name, file_name, src, owned):
        header = multipart.create_file_part(field_name, file_name)
        self._append(header.format(), src, owned)

    def _detach(self, size):
        self._sources.append(
            (streams.SizedReader.from_bytes(self._closing_delimiter()),
             False))
        sources = [src for src, owned in self._sources]
        if self.close_owned:
            owned = self._owned_sources()
        else:
            owned = []
        self._sources = []
        logging.debug("Composer: detached %i sources, %i owned",
                      len(sources), len(owned))
        return streams.ComposedStream(sources, owned, size)
