'''
# Ogg bitstream

Ogg is the container of the Vorbis packets: the logical stream is split in
pages, each one with a 27 bytes header, a lacing table of up to 255 one-byte
values and the payload.

 .------------------------------------------------.
 | 'OggS' | version | flags | granule (64 bit)     |
 | serial | sequence number | CRC | n segments     |
 | lacing values (n segments bytes)               |
 | payload (sum of the lacing values bytes)       |
 '------------------------------------------------'

A lacing value of 255 means the packet continues in the following segment,
anything less terminates it; a packet can continue on the next page, in that
case the next page has the "continued" flag set.

The specification is at <https://xiph.org/ogg/doc/framing.html>.
'''
import logging
from enum import Flag

from bitstring import BitArray, Bits

from ..core import Chunk
from ..enum import Compliant
from ..properties import Dependency, SumDependency
from ..streams import Stream, BIT_REVERSE
from ..common import crc
from .. import fields


logger = logging.getLogger(__name__)

# granule position for pages where no packet is completed
GRANULE_NONE = 0xffffffffffffffff


class OggHeaderType(Flag):
    NONE      = 0
    CONTINUED = 0x01
    BOS       = 0x02
    EOS       = 0x04


class OggPage(Chunk):
    capture_pattern  = fields.StringField(4, default=b'OggS', is_magic=True)
    version          = fields.StructField('B')
    header_type      = fields.StructField('B', enum=OggHeaderType, default=OggHeaderType.NONE)
    granule_position = fields.StructField('Q')
    serial           = fields.StructField('I')
    sequence         = fields.StructField('I')
    checksum         = crc.OggCRCField()
    n_segments       = fields.StructField('B')
    segments         = fields.StringField(Dependency('.n_segments'))
    data             = fields.StringField(SumDependency('.segments'))

    def is_continued(self):
        return bool(self.header_type.value & OggHeaderType.CONTINUED)


class OggStream(object):
    '''Assembles bit fields into Ogg pages.

    The bits are accumulated using the Vorbis order (least significant bit
    first in each byte) until flush_page() closes the page, possibly
    splitting a big packet over more pages.'''
    SEGMENT_SIZE = 255
    MAX_SEGMENTS = 255
    MAX_PAYLOAD = SEGMENT_SIZE * MAX_SEGMENTS

    def __init__(self, out, serial=1):
        self.out = out
        self.serial = serial
        self.granule = 0
        self.sequence = 0
        self._bits = BitArray()
        self._first = True
        self._continued = False

    def __repr__(self):
        return '<%s(sequence=%d, pending=%d bits)>' % (self.__class__.__name__, self.sequence, len(self._bits))

    @property
    def bits_pending(self):
        return len(self._bits)

    def write_bits(self, value, n):
        if n == 0:
            return

        field = BitArray(uint=value, length=n)
        field.reverse()
        self._bits.append(field)

    def write_bytes(self, data):
        if not data:
            return

        self._bits.append(Bits(bytes(data).translate(BIT_REVERSE)))

    def set_granule(self, granule):
        self.granule = granule

    def _encode_granule(self):
        # a 32 bit all-ones granule fills the 64 bit field
        if self.granule == 0xffffffff:
            return GRANULE_NONE

        return self.granule

    def flush_page(self, next_continued=False, last=False):
        if len(self._bits) == 0:
            return

        payload = self._bits.tobytes().translate(BIT_REVERSE)
        self._bits = BitArray()

        while len(payload) >= self.MAX_PAYLOAD:
            head, payload = payload[:self.MAX_PAYLOAD], payload[self.MAX_PAYLOAD:]
            logger.debug('packet spans over page %d' % self.sequence)
            self._write_page(head, [self.SEGMENT_SIZE] * self.MAX_SEGMENTS, GRANULE_NONE, last=False)
            self._continued = True

        full, remainder = divmod(len(payload), self.SEGMENT_SIZE)
        self._write_page(payload, [self.SEGMENT_SIZE] * full + [remainder], self._encode_granule(), last=last)

        self._continued = next_continued

    def _write_page(self, payload, lacing, granule, last):
        flags = OggHeaderType.NONE
        if self._continued:
            flags |= OggHeaderType.CONTINUED
        if self._first:
            flags |= OggHeaderType.BOS
        if last:
            flags |= OggHeaderType.EOS

        page = OggPage()
        page.header_type.value = flags
        page.granule_position.value = granule
        page.serial.value = self.serial
        page.sequence.value = self.sequence
        page.segments.value = bytes(lacing)
        page.data.value = payload
        page.checksum.update()

        self.out.write(page.pack())

        self.sequence += 1
        self._first = False


def iter_pages(source):
    '''Yield the pages contained into an Ogg stream.'''
    stream = Stream(source)
    end = stream.size()

    while stream.tell() < end:
        page = OggPage(compliant=Compliant.MAGIC)
        page.unpack(stream)

        yield page


def iter_packets_from_pages(pages):
    '''Reassemble the packets using the lacing values of the pages.'''
    packet = b''
    for page in pages:
        data = page.data.value
        offset = 0
        for lacing in page.segments.value:
            packet += data[offset:offset + lacing]
            offset += lacing
            if lacing < OggStream.SEGMENT_SIZE:
                yield packet
                packet = b''
