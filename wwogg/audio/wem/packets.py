'''
Packets inside the "data" chunk.

Every Vorbis packet is introduced by a small header whose layout depends on
the version of the encoder:

 - legacy:     32 bit size, 32 bit granule
 - modern:     16 bit size, 32 bit granule
 - no granule: 16 bit size
'''
import logging
from dataclasses import dataclass

from ...core import Chunk
from ...exceptions import TruncatedException
from ... import fields
from .enum import PacketHeaderStyle


logger = logging.getLogger(__name__)


class PacketHeaderLegacy(Chunk):
    payload_size = fields.StructField('I')
    granule      = fields.StructField('I')


class PacketHeader(Chunk):
    payload_size = fields.StructField('H')
    granule      = fields.StructField('I')


class PacketHeaderNoGranule(Chunk):
    payload_size = fields.StructField('H')


style2header = {
    PacketHeaderStyle.LEGACY: PacketHeaderLegacy,
    PacketHeaderStyle.MODERN: PacketHeader,
    PacketHeaderStyle.NO_GRANULE: PacketHeaderNoGranule,
}


@dataclass
class Packet:
    offset: int
    header_size: int
    size: int
    granule: int

    @property
    def payload_offset(self):
        return self.offset + self.header_size

    @property
    def next_offset(self):
        return self.offset + self.header_size + self.size


def read_packet(stream, offset, style, endianess, end=None):
    '''Read the header of the packet at the given offset; when "end" is
    indicated the header must lie before it.'''
    if end is not None and offset + style.header_size > end:
        raise TruncatedException('page header truncated', offset=offset, end=end)

    stream.seek(offset)

    header = style2header[style](endianess=endianess)
    header.unpack(stream)

    return Packet(
        offset=offset,
        header_size=style.header_size,
        size=header.payload_size.value,
        granule=0 if style == PacketHeaderStyle.NO_GRANULE else header.granule.value,
    )


def iter_packets(stream, start, end, style, endianess):
    '''Yield the packets from "start" up to the end of the data.

    The walk can be consumed only once: the stream is shared with the caller
    and each step seeks to the next header.'''
    offset = start

    while offset < end:
        packet = read_packet(stream, offset, style, endianess, end=end)

        if packet.next_offset > end:
            raise TruncatedException('page truncated', offset=offset, size=packet.size, end=end)

        logger.debug('packet at 0x%x size 0x%x granule 0x%x' % (offset, packet.size, packet.granule))

        yield packet

        offset = packet.next_offset
