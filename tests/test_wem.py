import struct

import pytest

from wwogg.audio.wem import WEMFile, iter_riff_chunks, CHUNK_HEADER_SIZE
from wwogg.audio.wem.enum import (
    ChunkKind,
    LayoutVariant,
    PacketHeaderStyle,
    ForcePacketFormat,
)
from wwogg.meta import Endianess
from wwogg.streams import Stream
from wwogg.exceptions import (
    ErrorKind,
    MagicException,
    StructuralException,
    TruncatedException,
)

from conftest import build_wem, riff_chunk


VARIANTS = [None, 0x28, 0x2a, 0x2c, 0x32, 0x34]


@pytest.mark.parametrize('variant', VARIANTS)
def test_variants(variant):
    wem = WEMFile(build_wem(variant=variant, channels=1, sample_rate=22050))

    assert wem.variant == LayoutVariant(variant)
    assert wem.endianess == Endianess.LITTLE_ENDIAN
    assert wem.params.channels == 1
    assert wem.params.sample_rate == 22050
    assert wem.params.avg_bytes_per_second == 16000
    assert wem.params.sample_count == 44100
    assert wem.params.setup_packet_offset == 0
    assert wem.params.subtype == 3
    assert not wem.params.has_loop

    if not wem.variant.header_triad_present:
        assert wem.params.blocksize_0_pow == 8
        assert wem.params.blocksize_1_pow == 11
        assert wem.params.uid == 0xcafe


def test_header_styles():
    assert LayoutVariant(None).header_style == PacketHeaderStyle.NO_GRANULE
    assert LayoutVariant(0x2a).header_style == PacketHeaderStyle.NO_GRANULE
    assert LayoutVariant(0x28).header_style == PacketHeaderStyle.LEGACY
    assert LayoutVariant(0x2c).header_style == PacketHeaderStyle.LEGACY
    assert LayoutVariant(0x32).header_style == PacketHeaderStyle.MODERN
    assert LayoutVariant(0x34).header_style == PacketHeaderStyle.MODERN

    assert PacketHeaderStyle.LEGACY.header_size == 8
    assert PacketHeaderStyle.MODERN.header_size == 6
    assert PacketHeaderStyle.NO_GRANULE.header_size == 2


def test_big_endian():
    wem = WEMFile(build_wem(variant=0x32, endianess='>', sample_rate=48000))

    assert wem.endianess == Endianess.BIG_ENDIAN
    assert wem.params.sample_rate == 48000
    assert wem.params.blocksize_1_pow == 11

    packet = wem.read_packet(wem.data.offset + wem.params.first_audio_packet_offset)

    assert packet.size == 3
    assert packet.granule == 1024


def test_layout():
    wem = WEMFile(build_wem(variant=0x2a, loop=(0, 0)))

    assert ChunkKind.FMT in wem.layout
    assert ChunkKind.SMPL in wem.layout
    assert ChunkKind.CUE not in wem.layout
    assert wem.layout[ChunkKind.FMT].offset == 12 + CHUNK_HEADER_SIZE
    assert wem.layout.vorb_offset == wem.layout[ChunkKind.VORB].offset


def test_embedded_vorb():
    wem = WEMFile(build_wem(variant=None))

    assert ChunkKind.VORB not in wem.layout
    assert wem.layout.vorb_offset == wem.layout[ChunkKind.FMT].offset + 0x18


def test_loop():
    wem = WEMFile(build_wem(loop=(100, 199)))

    assert wem.params.has_loop
    assert wem.params.loop_start == 100
    assert wem.params.loop_end == 200


def test_loop_end_zero():
    wem = WEMFile(build_wem(loop=(100, 0), sample_count=1000))

    assert wem.params.loop_end == 1000


def test_loop_out_of_range():
    with pytest.raises(StructuralException) as e:
        WEMFile(build_wem(loop=(2000, 0), sample_count=1000))

    assert e.value.message == 'loops out of range'
    assert e.value.kind == ErrorKind.STRUCTURAL


def test_mod_signal():
    assert not WEMFile(build_wem(mod_signal=0x4a)).mod_packets
    assert WEMFile(build_wem(mod_signal=0xd9)).mod_packets
    assert WEMFile(build_wem(variant=None, mod_signal=0xcb)).mod_packets
    # the other layouts have no signal
    assert not WEMFile(build_wem(variant=0x32, mod_signal=0xd9)).mod_packets


def test_force_packet_format():
    data = build_wem(mod_signal=0xd9)

    assert not WEMFile(data, force_packet_format=ForcePacketFormat.UNMODIFIED).mod_packets
    assert WEMFile(build_wem(variant=0x32), force_packet_format=ForcePacketFormat.MODIFIED).mod_packets


def test_missing_riff():
    with pytest.raises(StructuralException) as e:
        WEMFile(b'OggS' + b'\x00' * 100)

    assert e.value.message == 'missing RIFF'

    with pytest.raises(TruncatedException):
        WEMFile(b'RI')


def test_bad_wave():
    data = bytearray(build_wem())
    data[8:12] = b'AVI '

    with pytest.raises(MagicException) as e:
        WEMFile(bytes(data))

    assert e.value.chain == ['wave']


def test_riff_truncated():
    data = build_wem()

    with pytest.raises(TruncatedException) as e:
        WEMFile(data[:-1])

    assert e.value.message == 'RIFF truncated'


def test_bad_codec_id():
    data = bytearray(build_wem())
    data[20:22] = struct.pack('<H', 1)

    with pytest.raises(StructuralException) as e:
        WEMFile(bytes(data))

    assert e.value.message == 'bad codec id'
    assert e.value.context == {'codec_id': 1}


def test_bad_vorb_size():
    wem = build_wem(variant=0x32)
    # make the vorb chunk 0x30 bytes long, moving the rest of the file
    fmt_end = 12 + 8 + 0x18
    vorb = wem[fmt_end + 8:fmt_end + 8 + 0x30]
    rest = wem[fmt_end + 8 + 0x32:]
    chunks = wem[12:fmt_end] + riff_chunk(b'vorb', vorb) + rest
    data = b'RIFF' + struct.pack('<I', len(chunks) + 4) + b'WAVE' + chunks

    with pytest.raises(StructuralException) as e:
        WEMFile(data)

    assert e.value.message == 'bad vorb size'


def test_missing_data():
    fmt = struct.pack('<HHIIHHHHI', 0xffff, 2, 44100, 1000, 0, 0, 6, 0, 3)
    chunks = riff_chunk(b'fmt ', fmt)
    data = b'RIFF' + struct.pack('<I', len(chunks) + 4) + b'WAVE' + chunks

    with pytest.raises(StructuralException) as e:
        WEMFile(data)

    assert e.value.message == 'expected fmt, data chunks'


def test_chunk_truncated():
    chunks = riff_chunk(b'fmt ', b'\x00' * 0x18)[:-4]
    data = b'RIFF' + struct.pack('<I', len(chunks) + 4) + b'WAVE' + chunks

    with pytest.raises(TruncatedException) as e:
        list(iter_riff_chunks(Stream(data), len(data), Endianess.LITTLE_ENDIAN))

    assert e.value.message == 'chunk truncated'


def test_unknown_chunks_skipped():
    wem = build_wem()
    chunks = riff_chunk(b'junk', b'\x00' * 6) + wem[12:]
    data = b'RIFF' + struct.pack('<I', len(chunks) + 4) + b'WAVE' + chunks

    wem = WEMFile(data)

    assert wem.variant == LayoutVariant.VORB_2A
    assert wem.layout[ChunkKind.FMT].offset == 12 + 8 + 6 + 8


def test_iter_packets():
    wem = WEMFile(build_wem(variant=0x32, audio=[b'\x01', b'\x02\x03'], granules=[10, 20]))

    packets = list(wem.iter_packets(wem.data.offset + wem.params.first_audio_packet_offset))

    assert [(_.size, _.granule) for _ in packets] == [(1, 10), (2, 20)]
    assert packets[0].next_offset == packets[1].offset
    assert packets[1].next_offset == wem.data.end


def test_iter_packets_truncated():
    wem = WEMFile(build_wem(data_tail=b'\x05'))

    with pytest.raises(TruncatedException) as e:
        list(wem.iter_packets(wem.data.offset + wem.params.first_audio_packet_offset))

    assert e.value.message == 'page header truncated'


def test_describe():
    lines = WEMFile(build_wem(variant=0x32, channels=1, loop=(10, 0))).describe()

    assert lines[0] == 'RIFF WAVE 1 channel 44100 Hz 128000 bps'
    assert lines[1] == '44100 samples'
    assert lines[2] == 'loop from 10 to 44100'
    assert lines[3] == '- 6 byte packet headers'

    lines = WEMFile(build_wem(variant=0x28, endianess='>')).describe()

    assert lines[0].startswith('RIFX WAVE 2 channels')
    assert lines[-1] == '- Vorbis header triad present'


def test_empty_loop():
    # the stored end is inclusive, so 99 becomes 100
    with pytest.raises(StructuralException):
        WEMFile(build_wem(loop=(100, 99)))
