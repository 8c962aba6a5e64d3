import io
import logging

from bitstring import BitArray, Bits

from .exceptions import ShortReadException


logger = logging.getLogger(__name__)


# Vorbis packs its fields starting from the least significant bit of each
# byte, bitstring reads from the most significant one: translating every
# byte through this table turns one order into the other.
BIT_REVERSE = bytes(int('{:08b}'.format(_)[::-1], 2) for _ in range(256))


class Stream(object):
    '''This is a simple wrapper around bytes/file object to
    uniform its properties: mainly we need reads that fail loudly
    when the data is not there.'''
    def __init__(self, obj):
        '''Here we normalize the object in order to be accessed as a normal file object'''
        self.obj = obj
        self._owned = False

        init_method_name = 'init_%s' % self.obj.__class__.__name__

        init_method = getattr(self, init_method_name, self.init_file)

        init_method()

    def __getattr__(self, name):
        if name == 'obj':
            raise AttributeError(name)
        return getattr(self.obj, name)

    def __del__(self):
        if getattr(self, '_owned', False):
            self.obj.close()

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self.obj)

    def init_str(self):
        '''We think this is a path'''
        logger.debug('opening path \'%s\'' % self.obj)
        self.obj = open(self.obj, 'rb')
        self._owned = True

    def init_PosixPath(self):
        self.obj = str(self.obj)
        self.init_str()

    init_WindowsPath = init_PosixPath

    def init_bytes(self):
        '''We think these are raw bytes'''
        self.obj = io.BytesIO(self.obj)

    init_bytearray = init_bytes
    init_memoryview = init_bytes

    def init_Stream(self):
        # the inner Stream stays alive: it owns the file and closes it
        self._inner = self.obj
        self.obj = self.obj.obj

    def init_file(self):
        '''Anything else must already behave like a seekable binary file'''
        if not (hasattr(self.obj, 'read') and hasattr(self.obj, 'seek')):
            raise ValueError('\'%s\' cannot be used as a stream' % self.obj.__class__.__name__)

    def seek(self, offset):
        if not isinstance(offset, int):
            raise ValueError('\'%s\' is the wrong kind of offset to use' % offset.__class__.__name__)

        self.obj.seek(offset)

        return self

    def size(self):
        current = self.obj.tell()
        end = self.obj.seek(0, io.SEEK_END)
        self.obj.seek(current)

        return end

    def read_exact(self, n, message='file truncated'):
        '''Read exactly n bytes or raise ShortReadException.'''
        offset = self.obj.tell()
        data = self.obj.read(n)

        if len(data) != n:
            raise ShortReadException(message, offset=offset, expected=n, actual=len(data))

        return data

    def write(self, data):
        return self.obj.write(data)


class BitReader(object):
    '''Reads arbitrary-width unsigned fields out of a Stream using the
    Vorbis bit order: the first bit of a byte is its least significant one
    and a field spanning more bytes continues in the following byte.

    The bytes are pulled one at a time from the underlying stream, so after
    reading the stream is positioned right after the last byte touched.'''

    def __init__(self, stream):
        self.stream = stream
        self._pending = BitArray()
        self.bits_consumed = 0

    def __repr__(self):
        return '<%s(consumed=%d)>' % (self.__class__.__name__, self.bits_consumed)

    @property
    def bytes_consumed(self):
        return (self.bits_consumed + 7) // 8

    def read_bits(self, n):
        if not 0 <= n <= 32:
            raise ValueError(f'cannot read {n} bits at once')

        if n == 0:
            return 0

        while len(self._pending) < n:
            self._pending.append(Bits(self.stream.read_exact(1).translate(BIT_REVERSE)))

        field = self._pending[:n]
        del self._pending[:n]
        field.reverse()

        self.bits_consumed += n

        return field.uint
