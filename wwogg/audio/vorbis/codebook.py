'''
Codebooks of the setup packet.

Wwise strips the codebooks from the setup header in two ways:

 - replacing each one with a 10 bit id into a library of codebooks shared
   by all the files of a game (the "packed_codebooks.bin" file)
 - packing it inline in a compact form, with narrower fields than the
   canonical ones

Both are rebuilt here in the canonical form expected by a Vorbis decoder.

The library is a blob of concatenated codebooks (each one in the compact
form) followed by a table of 32 bit little endian offsets; the last 4 bytes
of the blob are the offset of the table itself, so they work also as the
end of the last codebook.
'''
import logging
import struct
from functools import lru_cache

from ...streams import Stream, BitReader
from ...exceptions import (
    InvalidCodebookIdException,
    ReadException,
    SizeMismatchException,
    StructuralException,
)
from . import ilog, CODEBOOK_SYNC


logger = logging.getLogger(__name__)

DEFAULT_CODEBOOKS_NAME = 'packed_codebooks.bin'

# what an id looks like when the setup packet contains full codebooks,
# i.e. the first bits of the canonical sync pattern
FULL_SETUP_ID = 0x342
FULL_SETUP_IDENTIFIER = 0x1590


def quantvals(entries, dimensions):
    '''Number of values of a lookup table of type 1: the greatest integer
    whose "dimensions"-th power doesn't exceed the number of entries.'''
    if entries == 0 or dimensions == 0:
        raise StructuralException('invalid lookup table', entries=entries, dimensions=dimensions)

    bits = ilog(entries)
    vals = entries >> ((bits - 1) * (dimensions - 1) // dimensions)

    while True:
        acc = vals ** dimensions
        acc1 = (vals + 1) ** dimensions

        if acc <= entries < acc1:
            return vals

        if acc > entries:
            vals -= 1
        else:
            vals += 1


def _copy_bits(reader, writer, n):
    value = reader.read_bits(n)
    writer.write_bits(value, n)

    return value


def _copy_lengths_ordered(reader, writer, entries):
    _copy_bits(reader, writer, 5)  # initial length

    current_entry = 0
    while current_entry < entries:
        current_entry += _copy_bits(reader, writer, ilog(entries - current_entry))

    if current_entry > entries:
        raise StructuralException('current_entry out of range', current_entry=current_entry, entries=entries)


def _copy_lookup(reader, writer, lookup_type, entries, dimensions):
    if lookup_type == 0:
        return

    if lookup_type == 1:
        count = quantvals(entries, dimensions)
    elif lookup_type == 2:
        count = entries * dimensions
    else:
        raise StructuralException('invalid lookup type', lookup_type=lookup_type)

    _copy_bits(reader, writer, 32)  # minimum value
    _copy_bits(reader, writer, 32)  # delta value
    value_length = _copy_bits(reader, writer, 4) + 1
    _copy_bits(reader, writer, 1)  # sequence flag

    for _ in range(count):
        _copy_bits(reader, writer, value_length)


def rebuild_inline(reader, writer, size_hint=0):
    '''Expand a codebook in the compact form into the canonical one.

    When size_hint is not zero the codebook comes from the library and must
    take exactly that many bytes; note that when all the bits of the last
    byte are used there is an extra zero byte.'''
    dimensions = reader.read_bits(4)
    entries = reader.read_bits(14)

    writer.write_bits(CODEBOOK_SYNC, 24)
    writer.write_bits(dimensions, 16)
    writer.write_bits(entries, 24)

    ordered = _copy_bits(reader, writer, 1)

    if ordered:
        _copy_lengths_ordered(reader, writer, entries)
    else:
        codeword_length_length = reader.read_bits(3)
        sparse = reader.read_bits(1)

        if codeword_length_length == 0 or codeword_length_length > 5:
            raise StructuralException('nonsense codeword length', codeword_length_length=codeword_length_length)

        writer.write_bits(sparse, 1)

        for _ in range(entries):
            present = _copy_bits(reader, writer, 1) if sparse else 1

            if present:
                writer.write_bits(reader.read_bits(codeword_length_length), 5)

    # the compact form has no room for lookup type 2
    lookup_type = reader.read_bits(1)
    writer.write_bits(lookup_type, 4)

    _copy_lookup(reader, writer, lookup_type, entries, dimensions)

    if size_hint != 0 and reader.bits_consumed // 8 + 1 != size_hint:
        raise SizeMismatchException(
            'expected %d bytes, read %d' % (size_hint, reader.bits_consumed // 8 + 1),
            expected=size_hint, actual=reader.bits_consumed // 8 + 1)


def copy(reader, writer):
    '''Copy a codebook already in canonical form, checking its sync pattern.'''
    sync = reader.read_bits(24)
    dimensions = reader.read_bits(16)
    entries = reader.read_bits(24)

    if sync != CODEBOOK_SYNC:
        raise StructuralException('invalid codebook identifier', sync=sync)

    writer.write_bits(sync, 24)
    writer.write_bits(dimensions, 16)
    writer.write_bits(entries, 24)

    ordered = _copy_bits(reader, writer, 1)

    if ordered:
        _copy_lengths_ordered(reader, writer, entries)
    else:
        sparse = _copy_bits(reader, writer, 1)

        for _ in range(entries):
            present = _copy_bits(reader, writer, 1) if sparse else 1

            if present:
                _copy_bits(reader, writer, 5)

    lookup_type = _copy_bits(reader, writer, 4)

    _copy_lookup(reader, writer, lookup_type, entries, dimensions)


class CodebookLibrary(object):
    '''The external library of codebooks: read-only once loaded.'''

    def __init__(self, data, name=None):
        self.data = bytes(data)
        self.name = name

        if len(self.data) < 4:
            raise StructuralException('codebook library truncated', size=len(self.data))

        table_offset = struct.unpack_from('<I', self.data, len(self.data) - 4)[0]

        if table_offset > len(self.data) - 4:
            raise StructuralException('bad codebook offset table', table_offset=table_offset, size=len(self.data))

        count = (len(self.data) - table_offset) // 4
        self.offsets = list(struct.unpack_from('<%dI' % count, self.data, table_offset))

        logger.debug('loaded %d codebooks from %s' % (len(self), self.name or 'memory'))

    def __repr__(self):
        return '<%s(%s, %d codebooks)>' % (self.__class__.__name__, self.name, len(self))

    def __len__(self):
        return len(self.offsets) - 1

    @classmethod
    def from_path(cls, path):
        try:
            with open(path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise ReadException('cannot open codebook library \'%s\'' % path, path=str(path), reason=e.strerror)

        return cls(data, name=str(path))

    def _check_id(self, codebook_id):
        if not 0 <= codebook_id < len(self):
            raise InvalidCodebookIdException(codebook_id)

    def get_codebook(self, codebook_id):
        self._check_id(codebook_id)

        return self.data[self.offsets[codebook_id]:self.offsets[codebook_id + 1]]

    def get_codebook_size(self, codebook_id):
        self._check_id(codebook_id)

        return self.offsets[codebook_id + 1] - self.offsets[codebook_id]

    def rebuild(self, codebook_id, reader, writer):
        '''Write the canonical form of the codebook with the given id.

        The reader is the one of the setup packet: it's used only to tell
        apart a setup packet that contains full codebooks.'''
        try:
            codebook = self.get_codebook(codebook_id)
        except InvalidCodebookIdException:
            if codebook_id == FULL_SETUP_ID and reader.read_bits(14) == FULL_SETUP_IDENTIFIER:
                raise InvalidCodebookIdException(codebook_id, hint='full_setup')
            raise

        rebuild_inline(BitReader(Stream(codebook)), writer, size_hint=len(codebook))


@lru_cache(maxsize=None)
def open_codebook_library(path):
    '''Load the library from disk, only once for each path.'''
    return CodebookLibrary.from_path(path)
