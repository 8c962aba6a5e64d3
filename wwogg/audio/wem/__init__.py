'''
# WEM (Audiokinetic Wwise RIFF/RIFX Vorbis)

A WEM file is a RIFF (little endian) or RIFX (big endian) WAVE container whose
"data" chunk doesn't contain an Ogg stream but the Vorbis packets, each one
preceded by a small header, and where the Vorbis headers are stripped down
to save space.

  .--------------------------------------.
  | 'RIFF' | size | 'WAVE'               |
  | 'fmt ' | size | codec parameters     |
  | 'vorb' | size | vorbis parameters    |  (optional, see below)
  | 'cue ' | 'LIST' | 'smpl'             |  (optional)
  | 'data' | size | setup + audio packets|
  '--------------------------------------'

The layout of the Vorbis parameters depends on the version of the encoder and
is identified by the size of the "vorb" chunk; when the chunk is missing the
parameters are at the end of an extended (0x42 bytes) "fmt" chunk.

The format is reverse engineered, <https://github.com/hcs64/ww2ogg> is the
reference for most of the constants used here.
'''
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ...core import Chunk
from ...enum import Compliant
from ...meta import Endianess
from ...streams import Stream
from ...exceptions import StructuralException, TruncatedException
from ... import fields
from .enum import (
    ChunkKind,
    LayoutVariant,
    ForcePacketFormat,
    UNMODIFIED_SIGNALS,
    CODEC_ID_VENDOR,
)
from . import packets


logger = logging.getLogger(__name__)

RIFF_HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8

# fixed signature at the end of a 0x28 bytes "fmt" chunk
FMT_SIGNATURE = bytes([1, 0, 0, 0, 0, 0, 0x10, 0, 0x80, 0, 0, 0xaa, 0, 0x38, 0x9b, 0x71])

# channel layouts seen in the wild, the others are accepted anyway
CHANNEL_LAYOUTS = {
    0x04: '1 channel, no seek table',
    0x03: '2 channels',
    0x33: '4 channels',
    0x37: '5 channels, seek or not',
    0x3b: '5 channels, no seek table',
    0x3f: '6 channels, no seek table',
}


class RIFFHeader(Chunk):
    magic     = fields.StringField(4)
    data_size = fields.StructField('I')
    wave      = fields.StringField(4, default=b'WAVE', is_magic=True)


class RIFFChunkHeader(Chunk):
    type      = fields.StringField(4)
    data_size = fields.StructField('I')


class WEMFormat(Chunk):
    '''WAVEFORMATEX with the codec id reserved for vendor-specific codecs.'''
    codec_id             = fields.StructField('H')
    channels             = fields.StructField('H')
    sample_rate          = fields.StructField('I')
    avg_bytes_per_second = fields.StructField('I')
    block_align          = fields.StructField('H')
    bits_per_sample      = fields.StructField('H')
    extra_size           = fields.StructField('H')


class WEMFormatExtension(Chunk):
    unknown = fields.StructField('H')
    subtype = fields.StructField('I')  # this is clearly just the channel layout


class WEMFormatSignature(Chunk):
    signature = fields.StringField(16, default=FMT_SIGNATURE, is_magic=True)


class CueChunk(Chunk):
    count = fields.StructField('I')


class SmplChunk(Chunk):
    unknown_00 = fields.StringField(0x1c)
    loop_count = fields.StructField('I')
    unknown_20 = fields.StringField(0x0c)
    loop_start = fields.StructField('I')
    loop_end   = fields.StructField('I')


class VorbNoGranule(Chunk):
    '''Layout of 0x2a bytes, also the one embedded into the extended "fmt".'''
    sample_count              = fields.StructField('I')
    mod_signal                = fields.StructField('I')
    unknown_08                = fields.StringField(0x08)
    setup_packet_offset       = fields.StructField('I')
    first_audio_packet_offset = fields.StructField('I')
    unknown_18                = fields.StringField(0x0c)
    uid                       = fields.StructField('I')
    blocksize_0_pow           = fields.StructField('B')
    blocksize_1_pow           = fields.StructField('B')


class VorbTriad(Chunk):
    '''Layouts of 0x28 and 0x2c bytes: the Vorbis headers are still in the data.'''
    sample_count              = fields.StructField('I')
    unknown_04                = fields.StringField(0x14)
    setup_packet_offset       = fields.StructField('I')
    first_audio_packet_offset = fields.StructField('I')


class VorbStandard(Chunk):
    '''Layouts of 0x32 and 0x34 bytes.'''
    sample_count              = fields.StructField('I')
    unknown_04                = fields.StringField(0x14)
    setup_packet_offset       = fields.StructField('I')
    first_audio_packet_offset = fields.StructField('I')
    unknown_20                = fields.StringField(0x0c)
    uid                       = fields.StructField('I')
    blocksize_0_pow           = fields.StructField('B')
    blocksize_1_pow           = fields.StructField('B')


variant2vorb = {
    LayoutVariant.EMBEDDED: VorbNoGranule,
    LayoutVariant.VORB_2A:  VorbNoGranule,
    LayoutVariant.VORB_28:  VorbTriad,
    LayoutVariant.VORB_2C:  VorbTriad,
    LayoutVariant.VORB_32:  VorbStandard,
    LayoutVariant.VORB_34:  VorbStandard,
}


@dataclass
class RIFFChunk:
    '''Position of the payload of a chunk inside the file.'''
    type: bytes
    offset: int
    size: int

    @property
    def kind(self):
        try:
            return ChunkKind(self.type)
        except ValueError:
            return None

    @property
    def end(self):
        return self.offset + self.size


@dataclass
class ContainerLayout:
    riff_size: int
    endianess: Endianess
    chunks: Dict[ChunkKind, RIFFChunk] = field(default_factory=dict)
    variant: Optional[LayoutVariant] = None
    vorb_offset: int = 0

    def __contains__(self, kind):
        return kind in self.chunks

    def __getitem__(self, kind):
        return self.chunks[kind]


@dataclass
class CodecParameters:
    channels: int = 0
    sample_rate: int = 0
    avg_bytes_per_second: int = 0
    blocksize_0_pow: int = 0
    blocksize_1_pow: int = 0
    sample_count: int = 0
    loop_count: int = 0
    loop_start: int = 0
    loop_end: int = 0
    uid: int = 0
    setup_packet_offset: int = 0
    first_audio_packet_offset: int = 0
    cue_count: int = 0
    subtype: int = 0

    @property
    def has_loop(self):
        return self.loop_count != 0


def iter_riff_chunks(stream, riff_size, endianess):
    '''Walk the chunks after the RIFF header.

    Every step advances at least by the size of a chunk header and the walk
    is bounded by the declared RIFF size, so it always terminates.'''
    offset = RIFF_HEADER_SIZE

    while offset < riff_size:
        if offset + CHUNK_HEADER_SIZE > riff_size:
            raise TruncatedException('chunk header truncated', offset=offset, riff_size=riff_size)

        stream.seek(offset)
        header = RIFFChunkHeader(endianess=endianess)
        header.unpack(stream)

        yield RIFFChunk(type=header.type.value, offset=offset + CHUNK_HEADER_SIZE, size=header.data_size.value)

        offset = offset + CHUNK_HEADER_SIZE + header.data_size.value

    if offset > riff_size:
        raise TruncatedException('chunk truncated', offset=offset, riff_size=riff_size)


class WEMFile(object):
    '''The parsed WEM: the layout of the container and the codec parameters.

    Everything is read at construction time; a structural problem raises
    immediately since a misread value corrupts all the following bits.'''

    def __init__(self, source, force_packet_format=ForcePacketFormat.NONE):
        self.stream = Stream(source)
        self.force_packet_format = force_packet_format
        self.params = CodecParameters()
        self.mod_packets = False

        self.layout = self._read_layout()

        self._read_fmt()
        self._read_cue()
        self._read_smpl()
        self._read_vorb()
        self._check_loop()

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.layout.variant)

    @property
    def endianess(self):
        return self.layout.endianess

    @property
    def variant(self):
        return self.layout.variant

    @property
    def header_style(self):
        return self.layout.variant.header_style

    @property
    def data(self):
        return self.layout[ChunkKind.DATA]

    def _unpack_at(self, cls, offset, limit=None, **kwargs):
        chunk = cls(endianess=self.endianess, **kwargs)

        if limit is not None and offset + chunk.size > limit:
            raise TruncatedException('%s truncated' % cls.__name__, offset=offset, size=chunk.size, end=limit)

        self.stream.seek(offset)
        chunk.unpack(self.stream)

        return chunk

    def _read_layout(self):
        size = self.stream.size()

        self.stream.seek(0)
        magic = self.stream.read_exact(4, 'missing RIFF')
        if magic == b'RIFF':
            endianess = Endianess.LITTLE_ENDIAN
        elif magic == b'RIFX':
            endianess = Endianess.BIG_ENDIAN
        else:
            raise StructuralException('missing RIFF', magic=magic)

        self.stream.seek(0)
        header = RIFFHeader(endianess=endianess, compliant=Compliant.MAGIC)
        header.unpack(self.stream)

        riff_size = header.data_size.value + CHUNK_HEADER_SIZE
        if riff_size > size:
            raise TruncatedException('RIFF truncated', riff_size=riff_size, size=size)

        layout = ContainerLayout(riff_size=riff_size, endianess=endianess)

        for chunk in iter_riff_chunks(self.stream, riff_size, endianess):
            kind = chunk.kind
            if kind is None:
                logger.debug('skipping chunk %r at 0x%x' % (chunk.type, chunk.offset))
                continue

            if kind in layout:
                logger.warning('chunk %r found twice, using the one at 0x%x' % (chunk.type, chunk.offset))

            layout.chunks[kind] = chunk

        if ChunkKind.FMT not in layout or ChunkKind.DATA not in layout:
            raise StructuralException('expected fmt, data chunks', found=[_.value for _ in layout.chunks])

        fmt = layout[ChunkKind.FMT]

        if ChunkKind.VORB not in layout:
            if fmt.size != 0x42:
                raise StructuralException('expected 0x42 fmt if vorb missing', fmt_size=fmt.size)

            layout.variant = LayoutVariant.EMBEDDED
            layout.vorb_offset = fmt.offset + 0x18
        else:
            if fmt.size not in (0x12, 0x18, 0x28):
                raise StructuralException('bad fmt size', fmt_size=fmt.size)

            vorb = layout[ChunkKind.VORB]
            try:
                layout.variant = LayoutVariant(vorb.size)
            except ValueError:
                raise StructuralException('bad vorb size', vorb_size=vorb.size)

            layout.vorb_offset = vorb.offset

        logger.debug('layout %s %s' % (layout.variant, endianess))

        return layout

    def _read_fmt(self):
        fmt_chunk = self.layout[ChunkKind.FMT]
        fmt = self._unpack_at(WEMFormat, fmt_chunk.offset, fmt_chunk.end)

        if fmt.codec_id.value != CODEC_ID_VENDOR:
            raise StructuralException('bad codec id', codec_id=fmt.codec_id.value)
        if fmt.block_align.value != 0:
            raise StructuralException('bad block align', block_align=fmt.block_align.value)
        if fmt.bits_per_sample.value != 0:
            raise StructuralException('expected 0 bps', bits_per_sample=fmt.bits_per_sample.value)
        if fmt.extra_size.value != fmt_chunk.size - 0x12:
            raise StructuralException('bad extra fmt length', extra_size=fmt.extra_size.value)

        self.params.channels = fmt.channels.value
        self.params.sample_rate = fmt.sample_rate.value
        self.params.avg_bytes_per_second = fmt.avg_bytes_per_second.value

        # the 0x12 bytes "fmt" has no extension at all
        if fmt_chunk.size >= 0x18:
            extension = self._unpack_at(WEMFormatExtension, fmt_chunk.offset + 0x12, fmt_chunk.end)
            self.params.subtype = extension.subtype.value

        if fmt_chunk.size == 0x28:
            self._unpack_at(WEMFormatSignature, fmt_chunk.offset + 0x18, fmt_chunk.end, compliant=Compliant.MAGIC)

        if self.params.subtype not in CHANNEL_LAYOUTS:
            logger.debug('unknown channel layout 0x%x' % self.params.subtype)

    def _read_cue(self):
        if ChunkKind.CUE not in self.layout:
            return

        cue = self.layout[ChunkKind.CUE]
        self.params.cue_count = self._unpack_at(CueChunk, cue.offset, cue.end).count.value

    def _read_smpl(self):
        if ChunkKind.SMPL not in self.layout:
            return

        smpl_chunk = self.layout[ChunkKind.SMPL]
        smpl = self._unpack_at(SmplChunk, smpl_chunk.offset, smpl_chunk.end)

        if smpl.loop_count.value != 1:
            raise StructuralException('expected one loop', loop_count=smpl.loop_count.value)

        self.params.loop_count = smpl.loop_count.value
        self.params.loop_start = smpl.loop_start.value
        self.params.loop_end = smpl.loop_end.value

    def _read_vorb(self):
        variant = self.layout.variant
        container = self.layout[ChunkKind.FMT if variant == LayoutVariant.EMBEDDED else ChunkKind.VORB]
        vorb = self._unpack_at(variant2vorb[variant], self.layout.vorb_offset, container.end)

        self.params.sample_count = vorb.sample_count.value
        self.params.setup_packet_offset = vorb.setup_packet_offset.value
        self.params.first_audio_packet_offset = vorb.first_audio_packet_offset.value

        if not variant.header_triad_present:
            self.params.uid = vorb.uid.value
            self.params.blocksize_0_pow = vorb.blocksize_0_pow.value
            self.params.blocksize_1_pow = vorb.blocksize_1_pow.value

        if variant.has_mod_signal:
            self.mod_packets = vorb.mod_signal.value not in UNMODIFIED_SIGNALS

        if self.force_packet_format == ForcePacketFormat.MODIFIED:
            self.mod_packets = True
        elif self.force_packet_format == ForcePacketFormat.UNMODIFIED:
            self.mod_packets = False

    def _check_loop(self):
        '''The end of the loop is stored inclusive, zero meaning the end of the stream.'''
        params = self.params
        if not params.has_loop:
            return

        if params.loop_end == 0:
            params.loop_end = params.sample_count
        else:
            params.loop_end = params.loop_end + 1

        if params.loop_start >= params.sample_count or params.loop_end > params.sample_count \
                or params.loop_start >= params.loop_end:
            raise StructuralException('loops out of range', loop_start=params.loop_start,
                                      loop_end=params.loop_end, sample_count=params.sample_count)

    def read_packet(self, offset, end=None):
        return packets.read_packet(self.stream, offset, self.header_style, self.endianess, end=end)

    def iter_packets(self, start):
        return packets.iter_packets(self.stream, start, self.data.end, self.header_style, self.endianess)

    def describe(self):
        params = self.params
        lines = [
            '%s WAVE %d channel%s %d Hz %d bps' % (
                'RIFF' if self.endianess == Endianess.LITTLE_ENDIAN else 'RIFX',
                params.channels,
                '' if params.channels == 1 else 's',
                params.sample_rate,
                params.avg_bytes_per_second * 8,
            ),
            '%d samples' % params.sample_count,
        ]

        if params.has_loop:
            lines.append('loop from %d to %d' % (params.loop_start, params.loop_end))

        lines.append({
            packets.PacketHeaderStyle.LEGACY: '- 8 byte (old) packet headers',
            packets.PacketHeaderStyle.NO_GRANULE: '- 2 byte packet headers, no granule',
            packets.PacketHeaderStyle.MODERN: '- 6 byte packet headers',
        }[self.header_style])

        if self.variant.header_triad_present:
            lines.append('- Vorbis header triad present')

        return lines
