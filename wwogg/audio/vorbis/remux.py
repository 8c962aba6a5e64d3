'''
Audio packets.

The audio packets are copied one per page; when Wwise has "modified" them
the first byte lacks the packet type bit and, for long windows, the bits
telling the window size of the previous and next packets. These are
rebuilt using the mode table recovered from the setup packet.
'''
import logging

from ...streams import BitReader
from ...exceptions import ReferenceException, StructuralException


logger = logging.getLogger(__name__)

# granule found in some files, the meaning is unknown; it's replaced with 1
# to keep the output compatible with the decoders
GRANULE_UNKNOWN = 0xffffffff


class AudioRemuxer(object):

    def __init__(self, wem, writer, setup=None):
        self.wem = wem
        self.writer = writer
        self.setup = setup
        self.prev_blockflag = False

        if self.wem.mod_packets and self.setup is None:
            raise StructuralException('mode block flags not loaded')

    def read_mode(self, packet):
        '''Return the mode number and the rest of the first byte of the packet.'''
        self.wem.stream.seek(packet.payload_offset)
        reader = BitReader(self.wem.stream)

        mode_bits = self.setup.mode_bits
        mode = reader.read_bits(mode_bits)
        remainder = reader.read_bits(8 - mode_bits)

        if mode >= len(self.setup.modes):
            raise ReferenceException('invalid mode number', mode=mode, offset=packet.offset)

        return mode, remainder

    def write_first_byte(self, packet, next_packet):
        mode_bits = self.setup.mode_bits
        mode, remainder = self.read_mode(packet)
        blockflag = self.setup.modes[mode].block_flag

        # packet type: audio
        self.writer.write_bits(0, 1)
        self.writer.write_bits(mode, mode_bits)

        if blockflag:
            next_blockflag = False
            if next_packet is not None and next_packet.size > 0:
                next_mode, _ = self.read_mode(next_packet)
                next_blockflag = self.setup.modes[next_mode].block_flag

            self.writer.write_bits(int(self.prev_blockflag), 1)
            self.writer.write_bits(int(next_blockflag), 1)

        self.prev_blockflag = blockflag

        self.writer.write_bits(remainder, 8 - mode_bits)

    def write_packet(self, packet, next_packet=None):
        if packet.granule == GRANULE_UNKNOWN:
            self.writer.set_granule(1)
        else:
            self.writer.set_granule(packet.granule)

        if self.wem.mod_packets:
            self.write_first_byte(packet, next_packet)
            self.wem.stream.seek(packet.payload_offset + 1)
            self.writer.write_bytes(self.wem.stream.read_exact(packet.size - 1))
        else:
            self.wem.stream.seek(packet.payload_offset)
            self.writer.write_bytes(self.wem.stream.read_exact(packet.size))

    def remux(self):
        '''Copy all the audio packets, the last page is marked as end of stream.'''
        data = self.wem.data
        start = data.offset + self.wem.params.first_audio_packet_offset

        # the headers are collected first: a truncated "data" is detected
        # before writing any audio page
        packets = list(self.wem.iter_packets(start))
        non_empty = [idx for idx, packet in enumerate(packets) if packet.size > 0]
        last = non_empty[-1] if non_empty else None

        for idx, packet in enumerate(packets):
            if packet.size == 0:
                logger.debug('skipping empty packet at 0x%x' % packet.offset)
                continue

            next_packet = packets[idx + 1] if idx + 1 < len(packets) else None

            self.write_packet(packet, next_packet)
            self.writer.flush_page(last=(idx == last))

        logger.debug('remuxed %d audio packets' % len(non_empty))

        return len(non_empty)
