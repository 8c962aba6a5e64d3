'''
Reconstruction of the three Vorbis header packets.

The identification and comment packets are synthesized from the codec
parameters of the WEM; the setup packet is read from the "data" chunk and
re-emitted in its canonical form: Wwise removes fields whose value is fixed
(floor type, mapping type, window and transform types) and compacts the
codebooks.

Every index read from the setup packet is checked before being written: a
wrong index means a wrong assumption about the layout and every bit after it
would be garbage.
'''
import logging

from ...streams import BitReader
from ...meta import Endianess
from ...exceptions import (
    ReferenceException,
    SizeMismatchException,
    StructuralException,
)
from ... import __version__
from . import (
    ilog,
    VORBIS_MAGIC,
    VorbisIdentificationHeader,
    VorbisPacketType,
    VorbisSetup,
    Floor,
    Residue,
    Mapping,
    Mode,
)
from . import codebook


logger = logging.getLogger(__name__)

VENDOR = 'converted from Audiokinetic Wwise by wwogg %s' % __version__


def write_packet_header(writer, packet_type):
    writer.write_bits(packet_type.value, 8)
    writer.write_bytes(VORBIS_MAGIC)


def _write_string(writer, value):
    data = value.encode('ascii')
    writer.write_bits(len(data), 32)
    writer.write_bytes(data)


class SetupReconstructor(object):
    '''Reads the stripped setup packet and writes the canonical one.

    The methods follow the order of the fields in the packet: each one
    consumes bits from the reader and emits the corresponding bits into the
    writer, returning the record of what it has seen.'''

    def __init__(self, reader, writer, channels, library=None, inline_codebooks=False, full_setup=False):
        self.reader = reader
        self.writer = writer
        self.channels = channels
        self.library = library
        self.inline_codebooks = inline_codebooks or full_setup
        self.full_setup = full_setup

    def copy(self, n):
        value = self.reader.read_bits(n)
        self.writer.write_bits(value, n)

        return value

    def copy_checked(self, n, limit, message):
        '''Copy a reference, only if it indexes one of "limit" entries.'''
        value = self.reader.read_bits(n)
        if value >= limit:
            raise ReferenceException(message, value=value, limit=limit)

        self.writer.write_bits(value, n)

        return value

    def rebuild(self):
        '''Returns the VorbisSetup or None when the packet is copied verbatim
        and so the modes are not known.'''
        setup = VorbisSetup()
        setup.codebook_count = self.copy(8) + 1

        self.rebuild_codebooks(setup.codebook_count)

        # time domain transforms placeholder
        self.writer.write_bits(0, 6)
        self.writer.write_bits(0, 16)

        if self.full_setup:
            return None

        floor_count = self.copy(6) + 1
        for _ in range(floor_count):
            setup.floors.append(self.rebuild_floor(setup))

        residue_count = self.copy(6) + 1
        for _ in range(residue_count):
            setup.residues.append(self.rebuild_residue(setup))

        mapping_count = self.copy(6) + 1
        for _ in range(mapping_count):
            setup.mappings.append(self.rebuild_mapping(setup))

        mode_count = self.copy(6) + 1
        for _ in range(mode_count):
            setup.modes.append(self.rebuild_mode(setup))

        # framing
        self.writer.write_bits(1, 1)

        logger.debug('setup with %d codebooks, %d floors, %d residues, %d mappings, %d modes' % (
            setup.codebook_count, floor_count, residue_count, mapping_count, mode_count))

        return setup

    def rebuild_codebooks(self, count):
        for idx in range(count):
            if self.full_setup:
                codebook.copy(self.reader, self.writer)
            elif self.inline_codebooks:
                codebook.rebuild_inline(self.reader, self.writer)
            else:
                codebook_id = self.reader.read_bits(10)
                logger.debug('codebook %d is 0x%x' % (idx, codebook_id))
                self.library.rebuild(codebook_id, self.reader, self.writer)

    def rebuild_floor(self, setup):
        floor = Floor()

        # always type 1
        self.writer.write_bits(1, 16)

        partitions = self.copy(5)
        floor.partition_classes = [self.copy(4) for _ in range(partitions)]

        maximum_class = max(floor.partition_classes, default=0)

        for _ in range(maximum_class + 1):
            floor.class_dimensions.append(self.copy(3) + 1)

            subclasses = self.copy(2)
            if subclasses != 0:
                self.copy_checked(8, setup.codebook_count, 'invalid floor1 masterbook')

            for _ in range(1 << subclasses):
                # zero means unused, the others are the book plus one
                self.copy_checked(8, setup.codebook_count + 1, 'invalid floor1 subclass book')

        floor.multiplier = self.copy(2) + 1
        floor.rangebits = self.copy(4)

        for partition_class in floor.partition_classes:
            for _ in range(floor.class_dimensions[partition_class]):
                self.copy(floor.rangebits)

        return floor

    def rebuild_residue(self, setup):
        residue = Residue()

        residue.type = self.reader.read_bits(2)
        if residue.type > 2:
            raise ReferenceException('invalid residue type', type=residue.type)
        self.writer.write_bits(residue.type, 16)

        residue.begin = self.copy(24)
        residue.end = self.copy(24)
        residue.partition_size = self.copy(24) + 1
        classifications = self.copy(6) + 1
        residue.classbook = self.copy_checked(8, setup.codebook_count, 'invalid residue classbook')

        for _ in range(classifications):
            high_bits = 0
            low_bits = self.copy(3)
            if self.copy(1):
                high_bits = self.copy(5)

            residue.cascade.append(high_bits * 8 + low_bits)

        for cascade in residue.cascade:
            for bit in range(8):
                if cascade & (1 << bit):
                    residue.books.append(self.copy_checked(8, setup.codebook_count, 'invalid residue book'))

        return residue

    def rebuild_mapping(self, setup):
        mapping = Mapping()

        # always type 0, the only one
        self.writer.write_bits(0, 16)

        if self.copy(1):
            mapping.submaps = self.copy(4) + 1

        if self.copy(1):
            coupling_steps = self.copy(8) + 1
            width = ilog(self.channels - 1)

            for _ in range(coupling_steps):
                magnitude = self.reader.read_bits(width)
                angle = self.reader.read_bits(width)

                if angle == magnitude or magnitude >= self.channels or angle >= self.channels:
                    raise ReferenceException('invalid coupling', magnitude=magnitude, angle=angle,
                                             channels=self.channels)

                self.writer.write_bits(magnitude, width)
                self.writer.write_bits(angle, width)
                mapping.coupling.append((magnitude, angle))

        # a rare reserved field not removed by Wwise
        reserved = self.reader.read_bits(2)
        if reserved != 0:
            raise ReferenceException('mapping reserved field nonzero', reserved=reserved)
        self.writer.write_bits(reserved, 2)

        if mapping.submaps > 1:
            for _ in range(self.channels):
                mapping.mux.append(self.copy_checked(4, mapping.submaps, 'mapping_mux >= submaps'))

        for _ in range(mapping.submaps):
            # unused time domain transform configuration
            self.copy(8)
            mapping.submap_floors.append(self.copy_checked(8, len(setup.floors), 'invalid floor mapping'))
            mapping.submap_residues.append(self.copy_checked(8, len(setup.residues), 'invalid residue mapping'))

        return mapping

    def rebuild_mode(self, setup):
        mode = Mode()
        mode.block_flag = bool(self.copy(1))

        # window type and transform type, only zero is valid
        self.writer.write_bits(0, 16)
        self.writer.write_bits(0, 16)

        mode.mapping = self.copy_checked(8, len(setup.mappings), 'invalid mode mapping')

        return mode


class HeaderWriter(object):
    '''Writes the header packets of the Ogg stream, each one on its own page.'''

    def __init__(self, wem, writer, library=None, inline_codebooks=False, full_setup=False):
        self.wem = wem
        self.writer = writer
        self.library = library
        self.inline_codebooks = inline_codebooks
        self.full_setup = full_setup

    @property
    def first_audio_offset(self):
        return self.wem.data.offset + self.wem.params.first_audio_packet_offset

    def write(self):
        if self.wem.variant.header_triad_present:
            return self.copy_triad()

        self.write_identification()
        self.write_comment()

        return self.write_setup()

    def write_identification(self):
        params = self.wem.params

        header = VorbisIdentificationHeader(endianess=Endianess.LITTLE_ENDIAN)
        header.channels.value = params.channels
        header.sample_rate.value = params.sample_rate
        header.bitrate_nominal.value = params.avg_bytes_per_second * 8
        header.blocksizes.value = params.blocksize_1_pow << 4 | params.blocksize_0_pow

        self.writer.write_bytes(header.pack())
        self.writer.flush_page()

    def comments(self):
        params = self.wem.params
        if not params.has_loop:
            return []

        return [
            'LoopStart=%d' % params.loop_start,
            'LoopEnd=%d' % params.loop_end,
        ]

    def write_comment(self):
        write_packet_header(self.writer, VorbisPacketType.COMMENT)

        _write_string(self.writer, VENDOR)

        comments = self.comments()
        self.writer.write_bits(len(comments), 32)
        for comment in comments:
            _write_string(self.writer, comment)

        self.writer.write_bits(1, 1)  # framing

        self.writer.flush_page()

    def write_setup(self):
        data = self.wem.data
        packet = self.wem.read_packet(data.offset + self.wem.params.setup_packet_offset, end=data.end)

        if packet.next_offset > data.end:
            raise StructuralException('setup packet truncated', offset=packet.offset, size=packet.size)

        if packet.granule != 0:
            raise StructuralException('setup packet granule != 0', granule=packet.granule)

        write_packet_header(self.writer, VorbisPacketType.SETUP)

        self.wem.stream.seek(packet.payload_offset)
        reader = BitReader(self.wem.stream)

        reconstructor = SetupReconstructor(
            reader,
            self.writer,
            self.wem.params.channels,
            library=self.library,
            inline_codebooks=self.inline_codebooks,
            full_setup=self.full_setup,
        )
        setup = reconstructor.rebuild()

        if self.full_setup:
            self._copy_remaining(reader, packet.size)

        self.writer.flush_page()

        if reader.bytes_consumed != packet.size:
            raise SizeMismatchException('didn\'t read exactly setup packet',
                                        expected=packet.size, actual=reader.bytes_consumed)

        if packet.next_offset != self.first_audio_offset:
            raise SizeMismatchException('first audio packet doesn\'t follow setup packet',
                                        expected=self.first_audio_offset, actual=packet.next_offset)

        return setup

    def _copy_remaining(self, reader, size):
        remaining = size * 8 - reader.bits_consumed
        while remaining > 0:
            n = min(remaining, 32)
            self.writer.write_bits(reader.read_bits(n), n)
            remaining -= n

    def _copy_packet(self, offset, packet_type):
        data = self.wem.data
        packet = self.wem.read_packet(offset, end=data.end)
        name = packet_type.name.lower()

        if packet.next_offset > data.end:
            raise StructuralException('%s packet truncated' % name, offset=packet.offset, size=packet.size)

        if packet.granule != 0:
            raise StructuralException('%s packet granule != 0' % name, granule=packet.granule)

        self.wem.stream.seek(packet.payload_offset)

        return packet

    def copy_triad(self):
        '''The oldest files contain the headers almost unmodified: only the
        codebooks of the setup packet need to be checked.'''
        offset = self.wem.data.offset + self.wem.params.setup_packet_offset

        for packet_type in (VorbisPacketType.IDENTIFICATION, VorbisPacketType.COMMENT):
            packet = self._copy_packet(offset, packet_type)
            payload = self.wem.stream.read_exact(packet.size)

            if not payload or payload[0] != packet_type.value:
                raise StructuralException('wrong type for %s packet' % packet_type.name.lower(),
                                          offset=packet.offset)

            self.writer.write_bytes(payload)
            self.writer.flush_page()

            offset = packet.next_offset

        packet = self._copy_packet(offset, VorbisPacketType.SETUP)
        reader = BitReader(self.wem.stream)

        packet_type = reader.read_bits(8)
        if packet_type != VorbisPacketType.SETUP.value:
            raise StructuralException('wrong type for setup packet', offset=packet.offset, type=packet_type)

        self.writer.write_bits(packet_type, 8)
        for _ in VORBIS_MAGIC:
            self.writer.write_bits(reader.read_bits(8), 8)

        codebook_count = reader.read_bits(8) + 1
        self.writer.write_bits(codebook_count - 1, 8)

        for _ in range(codebook_count):
            codebook.copy(reader, self.writer)

        self._copy_remaining(reader, packet.size)

        self.writer.flush_page()

        if packet.next_offset != self.first_audio_offset:
            raise SizeMismatchException('first audio packet doesn\'t follow setup packet',
                                        expected=self.first_audio_offset, actual=packet.next_offset)

        # the modes are inside the copied bits
        return None
