#! /usr/bin/env python

import gc
import io
import logging
import os
import unittest

from mpcomposer.http.multipart import CloseFailure
from mpcomposer.streams import (
    ComposedStream,
    SizedReader,
    close_all,
    is_closable,
    open_file,
    source_length,
    wrap_file)


TEST_DATA_DIR = os.path.join(
    os.path.split(os.path.abspath(__file__))[0], 'data_composer')


def suite():
    loader = unittest.defaultTestLoader
    return unittest.TestSuite((
        loader.loadTestsFromTestCase(CapabilityTests),
        loader.loadTestsFromTestCase(SizedReaderTests),
        loader.loadTestsFromTestCase(ComposedStreamTests),
    ))


class MockSource(object):

    """A minimal source: read and close only"""

    def __init__(self, data, fail=False):
        self.src = io.BytesIO(data)
        self.fail = fail
        self.closed = False

    def read(self, nbytes=-1):
        return self.src.read(nbytes)

    def close(self):
        self.closed = True
        if self.fail:
            raise IOError("MockSource failed to close")


class MockBlockingSource(object):

    """A source that blocks before returning each chunk"""

    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.blocked = False

    def read(self, nbytes=-1):
        if not self.chunks:
            return b''
        if not self.blocked:
            self.blocked = True
            return None
        self.blocked = False
        chunk = self.chunks.pop(0)
        if nbytes >= 0 and len(chunk) > nbytes:
            self.chunks.insert(0, chunk[nbytes:])
            chunk = chunk[:nbytes]
        return chunk


class CapabilityTests(unittest.TestCase):

    def test_is_closable(self):
        self.assertTrue(is_closable(io.BytesIO(b"")))
        self.assertTrue(is_closable(MockSource(b"")))
        self.assertFalse(is_closable(MockBlockingSource([])))

        class NotCallable(object):
            close = True

        self.assertFalse(is_closable(NotCallable()))

    def test_source_length(self):
        self.assertTrue(source_length(io.BytesIO(b"abc")) is None)
        self.assertTrue(source_length(SizedReader.from_bytes(b"abc")) == 3)

        class Length(object):
            pass

        src = Length()
        for value, result in ((None, None), (0, 0), (42, 42),
                              (True, None), ("42", None)):
            src.length = value
            self.assertTrue(source_length(src) == result, repr(value))

    def test_close_all(self):
        s1 = MockSource(b"1")
        s2 = MockSource(b"2", fail=True)
        s3 = MockSource(b"3", fail=True)
        s4 = MockSource(b"4")
        err = close_all([s1, s2, MockBlockingSource([]), s3, s4])
        # all closed even though some failed
        for s in (s1, s2, s3, s4):
            self.assertTrue(s.closed)
        self.assertTrue(isinstance(err, IOError))
        self.assertTrue(close_all([MockSource(b"")]) is None)
        self.assertTrue(close_all([]) is None)


class SizedReaderTests(unittest.TestCase):

    def test_from_bytes(self):
        data = b"How long is a piece of string?"
        s = SizedReader.from_bytes(data)
        self.assertTrue(isinstance(s, io.RawIOBase))
        self.assertTrue(s.readable())
        self.assertFalse(s.writable())
        self.assertFalse(s.seekable())
        self.assertTrue(s.length == len(data))
        self.assertTrue(s.read(3) == b"How")
        self.assertTrue(s.read() == data[3:])
        self.assertTrue(s.read(1) == b"")
        # not the owner of the in-memory buffer
        src = s.src
        s.close()
        self.assertFalse(src.closed)
        try:
            s.read(1)
            self.fail("SizedReader.read after close")
        except IOError:
            pass

    def test_owner(self):
        src = MockSource(b"data")
        s = SizedReader(src, 4)
        self.assertTrue(s.owner)
        s.close()
        self.assertTrue(src.closed)
        self.assertTrue(s.closed)
        src = MockSource(b"data")
        s = SizedReader(src, 4, owner=False)
        s.close()
        self.assertFalse(src.closed)
        # failure to close src still closes the wrapper
        src = MockSource(b"data", fail=True)
        s = SizedReader(src, 4)
        self.assertRaises(IOError, s.close)
        self.assertTrue(s.closed)

    def test_length(self):
        self.assertRaises(ValueError, SizedReader, io.BytesIO(), -1)
        # the length may be unknown
        s = SizedReader(io.BytesIO(b"abc"), None, "abc")
        self.assertTrue(s.length is None)
        self.assertTrue(source_length(s) is None)
        self.assertTrue(repr(s) == "SizedReader('abc', None)")
        self.assertTrue(s.read() == b"abc")

    def test_discarded(self):
        src = MockSource(b"data")
        s = SizedReader(src, 4)
        del s
        gc.collect()
        # only an explicit close releases src
        self.assertFalse(src.closed)

    def test_blocking(self):
        s = SizedReader(MockBlockingSource([b"abc"]), 3)
        self.assertTrue(s.read(10) is None)
        self.assertTrue(s.read(10) == b"abc")
        self.assertTrue(s.read(10) == b"")

    def test_open_file(self):
        path = os.path.join(TEST_DATA_DIR, "test.txt")
        s = open_file(path)
        try:
            self.assertTrue(s.name == "test.txt")
            self.assertTrue(s.length == os.path.getsize(path))
            self.assertTrue(s.read() == b"text file content\n")
        finally:
            s.close()
        self.assertTrue(s.src.closed)
        try:
            open_file(os.path.join(TEST_DATA_DIR, "missing.txt"))
            self.fail("open_file: missing file")
        except OSError:
            pass

    def test_wrap_file(self):
        path = os.path.join(TEST_DATA_DIR, "test.bin")
        with open(path, 'rb') as f:
            s = wrap_file(f)
            self.assertTrue(s.name == "test.bin")
            self.assertTrue(s.length == os.path.getsize(path))
            data = s.read()
            self.assertTrue(len(data) == s.length)
            s.close()
            self.assertTrue(f.closed)
        with open(path, 'rb') as f:
            # the length is what remains of the file
            f.read(4)
            s = wrap_file(f)
            self.assertTrue(s.length == os.path.getsize(path) - 4)
            self.assertTrue(len(s.read()) == s.length)
        f = open(path, 'rb')
        f.close()
        try:
            wrap_file(f)
            self.fail("wrap_file: closed file")
        except ValueError:
            pass

    def test_wrap_text_file(self):
        with open(os.path.join(TEST_DATA_DIR, "test.txt"), 'r') as f:
            try:
                wrap_file(f)
                self.fail("wrap_file: text file")
            except TypeError:
                pass
            self.assertFalse(f.closed)

    def test_wrap_pipe(self):
        r, w = os.pipe()
        os.write(w, b"0123456789")
        os.close(w)
        with os.fdopen(r, 'rb') as f:
            s = wrap_file(f)
            self.assertTrue(s.name is None)
            # a pipe has no known size
            self.assertTrue(s.length is None)
            self.assertTrue(source_length(s) is None)
            self.assertTrue(s.read() == b"0123456789")
            s.close()
            self.assertTrue(f.closed)


class ComposedStreamTests(unittest.TestCase):

    def test_constructor(self):
        s = ComposedStream([])
        self.assertTrue(isinstance(s, io.RawIOBase))
        self.assertTrue(s.readable())
        self.assertFalse(s.writable())
        self.assertFalse(s.seekable())
        self.assertTrue(s.length is None)
        self.assertTrue(s.read() == b"")
        s.close()
        s = ComposedStream([], length=0)
        self.assertTrue(s.length == 0)

    def test_read(self):
        s = ComposedStream([io.BytesIO(b"Hello"), io.BytesIO(b""),
                            MockSource(b", "), io.BytesIO(b"World\r\n")])
        # reads never span sources
        self.assertTrue(s.read(10) == b"Hello")
        self.assertTrue(s.read(1) == b",")
        self.assertTrue(s.read(10) == b" ")
        self.assertTrue(s.readline() == b"World\r\n")
        self.assertTrue(s.read(10) == b"")
        s.close()

    def test_readall(self):
        chunks = [("chunk%i\r\n" % i).encode('ascii') for i in range(100)]
        s = ComposedStream([io.BytesIO(c) for c in chunks])
        self.assertTrue(s.read() == b"".join(chunks))
        s = ComposedStream([io.BytesIO(c) for c in chunks])
        self.assertTrue(s.readlines() == chunks)

    def test_nonblocking(self):
        s = ComposedStream([io.BytesIO(b"abc"),
                            MockBlockingSource([b"def", b"ghi"]),
                            io.BytesIO(b"jkl")])
        result = []
        blocks = 0
        while True:
            data = s.read(10)
            if data is None:
                blocks += 1
            elif data:
                result.append(data)
            else:
                break
        self.assertTrue(blocks == 2, blocks)
        self.assertTrue(b"".join(result) == b"abcdefghijkl")

    def test_write(self):
        s = ComposedStream([io.BytesIO(b"Hello")])
        try:
            s.write(b"Hello")
            self.fail("ComposedStream.write")
        except IOError:
            pass
        try:
            s.seek(0)
            self.fail("ComposedStream.seek")
        except IOError:
            pass
        s.close()

    def test_close(self):
        s1 = MockSource(b"1")
        s2 = MockSource(b"2")
        s = ComposedStream([s1, s2], [s2])
        self.assertFalse(s.closed)
        s.close()
        self.assertTrue(s.closed)
        self.assertFalse(s1.closed)
        self.assertTrue(s2.closed)
        try:
            s.read(1)
            self.fail("ComposedStream.read after close")
        except IOError:
            pass
        # a second close is harmless
        s.close()

    def test_close_failure(self):
        s1 = MockSource(b"1", fail=True)
        s2 = MockSource(b"2", fail=True)
        s3 = MockSource(b"3")
        s = ComposedStream([s1, s2, s3], [s1, s2, s3])
        try:
            s.close()
            self.fail("ComposedStream.close didn't fail")
        except CloseFailure as err:
            self.assertTrue(isinstance(err.error, IOError))
        self.assertTrue(s.closed)
        for src in (s1, s2, s3):
            self.assertTrue(src.closed)
        # already closed, nothing more to do
        s.close()

    def test_discarded(self):
        src = MockSource(b"data")
        s = ComposedStream([src], [src])
        self.assertTrue(s.read(2) == b"da")
        del s
        gc.collect()
        self.assertFalse(src.closed)

    def test_context_manager(self):
        src = MockSource(b"data")
        with ComposedStream([src], [src]) as s:
            self.assertTrue(s.read() == b"data")
        self.assertTrue(src.closed)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    unittest.main()
