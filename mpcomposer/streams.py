#! /usr/bin/env python
"""This module adds stream classes for composing message bodies"""

import errno
import io
import logging
import os
import stat

from .http.multipart import CloseFailure


def is_closable(src):
    """Returns True if *src* can be released

    A source is closable if it has a callable close attribute, no other
    interface is assumed."""
    return callable(getattr(src, 'close', None))


def source_length(src):
    """Returns the known length of a source or None

    src
        Any object we can read from.

    The length is taken from the *length* attribute, the convention used
    by all the wrappers in this module.  A missing attribute, or one set
    to None, means that the size of the source is unknown."""
    length = getattr(src, 'length', None)
    if isinstance(length, int) and not isinstance(length, bool):
        return length
    return None


def close_all(sources):
    """Closes all closable sources

    sources
        An iterable of source objects, those that are not closable are
        skipped.

    Every source is closed even if an earlier one fails.  The first
    exception raised is returned (not raised!), any later ones are
    logged and discarded.  If all sources closed cleanly None is
    returned."""
    first_err = None
    for src in sources:
        if not is_closable(src):
            continue
        try:
            src.close()
        except Exception as err:
            if first_err is None:
                first_err = err
            else:
                logging.warning("close_all: ignoring failure to close %s: %s",
                                repr(src), str(err))
    return first_err


class SizedReader(io.RawIOBase):

    """A readable stream of known size

    src
        A file-like object, we only require a read method.

    length
        The number of bytes that will be read from src, an integer, or
        None if the size of src is not known.

    name
        An optional name for the stream, typically the name of the file
        being read.

    owner
        If True (the default) closing the wrapper closes src too.

    Instances behave like non-seekable readable streams passing reads
    straight through to src.  The length is trusted, we don't count bytes
    as they are read.

    Releasing src is always explicit: the wrapper only closes src when
    its own close method is called.  A wrapper that is simply discarded
    (and garbage collected) leaves src open."""

    def __init__(self, src, length, name=None, owner=True):
        io.RawIOBase.__init__(self)
        if length is not None and length < 0:
            raise ValueError("SizedReader: negative length")
        self.src = src
        self.length = length
        self.name = name
        self.owner = owner

    @classmethod
    def from_bytes(cls, data):
        """Returns a SizedReader for a binary string held in memory"""
        return cls(io.BytesIO(data), len(data), owner=False)

    def __repr__(self):
        if self.name:
            return "SizedReader(%s, %s)" % (repr(self.name),
                                             repr(self.length))
        else:
            return super(SizedReader, self).__repr__()

    def __del__(self):
        # io.IOBase would call close, which may close src
        pass

    def readable(self):
        return True

    def writable(self):
        return False

    def seekable(self):
        return False

    def readinto(self, b):
        if self.closed:
            raise IOError(errno.EBADF, os.strerror(errno.EBADF),
                          "stream is closed")
        data = self.src.read(len(b))
        if data is None:
            # non-blocking source is blocked
            return None
        nbytes = len(data)
        b[:nbytes] = data
        return nbytes

    def close(self):
        if not self.closed and self.owner:
            try:
                self.src.close()
            finally:
                super(SizedReader, self).close()
        else:
            super(SizedReader, self).close()


def _file_size(f):
    # the size of a regular file, None for anything else
    st = os.fstat(f.fileno())
    if stat.S_ISREG(st.st_mode):
        return st.st_size
    else:
        return None


def open_file(path):
    """Opens the file at *path* for reading

    Returns a :class:`SizedReader` that owns the open file and reports
    its base name.  The size is reported for regular files only, a
    named pipe (for example) has no known size.  Any error opening the
    file (missing file, insufficient permissions, etc.) is raised
    unchanged."""
    f = open(path, 'rb')
    try:
        length = _file_size(f)
    except Exception:
        f.close()
        raise
    return SizedReader(f, length, os.path.basename(path))


def wrap_file(f):
    """Wraps a file that is already open

    f
        A file object opened in binary mode, TypeError is raised for a
        text file.

    Returns a :class:`SizedReader` that owns f.  For a regular file the
    length is the number of bytes between the current position and the
    end of the file, for anything else (a pipe, for example) the length
    is None.  If f has already been closed ValueError is raised,
    if the file can't be stat-ed then OSError."""
    if isinstance(f, io.TextIOBase):
        raise TypeError("wrap_file requires a binary file: %s" % repr(f))
    length = _file_size(f)
    if length is not None and f.seekable():
        length = max(0, length - f.tell())
    name = getattr(f, 'name', None)
    if isinstance(name, str):
        name = os.path.basename(name)
    else:
        # files opened from descriptors have integer names
        name = None
    return SizedReader(f, length, name)


class ComposedStream(io.RawIOBase):

    """A stream that reads a sequence of sources one after another

    sources
        A list of file-like objects, we only require a read method.
        They are read in order, each one until it signals EOF by
        returning an empty string.

    owned
        An optional list of sources that are closed when this stream is
        closed.  The sources in this list don't have to be read by the
        stream, though they normally are.

    length
        The total number of bytes that the stream will return, if known.
        Defaults to None.

    The stream is read-only and can only be read once, it is not
    seekable.  If a source is in non-blocking mode and it becomes
    blocked (returning None instead of an empty string) then readinto
    also returns None; call it again later to continue.  Owned sources
    are only closed by :meth:`close`, not when the stream is garbage
    collected."""

    def __init__(self, sources, owned=(), length=None):
        io.RawIOBase.__init__(self)
        self.sources = list(sources)
        self.owned = list(owned)
        self.length = length
        # index of the source currently being read
        self.spos = 0

    def __del__(self):
        # owned sources are only closed by an explicit call to close
        pass

    def readable(self):
        return True

    def writable(self):
        return False

    def seekable(self):
        return False

    def write(self, b):
        raise IOError(errno.EPERM, os.strerror(errno.EPERM),
                      "stream not writable")

    def readinto(self, b):
        if self.closed:
            raise IOError(errno.EBADF, os.strerror(errno.EBADF),
                          "stream is closed")
        nbytes = len(b)
        if not nbytes:
            return 0
        while self.spos < len(self.sources):
            data = self.sources[self.spos].read(nbytes)
            if data is None:
                # read blocked
                return None
            elif data:
                nbytes = len(data)
                b[:nbytes] = data
                return nbytes
            else:
                # this source is exhausted, move on
                logging.debug("ComposedStream: finished source %i of %i",
                              self.spos + 1, len(self.sources))
                self.spos += 1
        return 0

    def close(self):
        """Closes the stream and all owned sources

        Every owned source is closed even if closing an earlier one
        fails.  In that case the first error is raised as
        :class:`~mpcomposer.http.multipart.CloseFailure` once the sweep
        is complete.  Closing an already closed stream does nothing."""
        if self.closed:
            return
        owned = self.owned
        self.owned = []
        self.sources = []
        try:
            err = close_all(owned)
        finally:
            super(ComposedStream, self).close()
        if err is not None:
            raise CloseFailure(err)
