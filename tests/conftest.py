'''
Builders for the synthetic files used by the tests.

The WEM files are built from scratch: a RIFF container with the chunks
needed by the layout variant and a "data" chunk with a stripped setup packet
followed by the audio packets.
'''
import struct

import pytest

from wwogg.audio.vorbis import VorbisIdentificationHeader


class BitPacker(object):
    '''Packs the fields least significant bit first, as Vorbis does.'''

    def __init__(self):
        self.bits = []

    def __len__(self):
        return len(self.bits)

    def write(self, value, n):
        for idx in range(n):
            self.bits.append((value >> idx) & 1)

        return self

    def extend(self, other):
        self.bits.extend(other.bits)

        return self

    def tobytes(self):
        bits = self.bits + [0] * (-len(self.bits) % 8)
        return bytes(
            sum(bit << idx for idx, bit in enumerate(bits[offset:offset + 8]))
            for offset in range(0, len(bits), 8)
        )


# codeword lengths of the codebook used everywhere
CODEWORD_LENGTHS = [1, 2, 3, 3]


def compact_codebook(lookup_type=0):
    '''A codebook with 4 entries in the form used by Wwise.'''
    packer = BitPacker()
    packer.write(1 if lookup_type == 0 else 2, 4)  # dimensions
    packer.write(len(CODEWORD_LENGTHS), 14)        # entries
    packer.write(0, 1)                             # ordered
    packer.write(3, 3)                             # codeword length length
    packer.write(0, 1)                             # sparse
    for length in CODEWORD_LENGTHS:
        packer.write(length - 1, 3)
    packer.write(lookup_type, 1)

    if lookup_type == 1:
        packer.write(0x12345678, 32)  # minimum
        packer.write(0x9abcdef0, 32)  # delta
        packer.write(2, 4)            # value length - 1
        packer.write(1, 1)            # sequence flag
        packer.write(0b101, 3)        # quantvals(4, 2) == 2 values
        packer.write(0b011, 3)

    return packer


def canonical_codebook():
    '''The same codebook after the rebuild.'''
    packer = BitPacker()
    packer.write(0x564342, 24)
    packer.write(1, 16)
    packer.write(len(CODEWORD_LENGTHS), 24)
    packer.write(0, 1)  # ordered
    packer.write(0, 1)  # sparse
    for length in CODEWORD_LENGTHS:
        packer.write(length - 1, 5)
    packer.write(0, 4)

    return packer


# number of bits of a canonical_codebook()
CANONICAL_CODEBOOK_BITS = 90


def build_library(codebooks):
    '''Concatenate the codebooks and append the offset table.'''
    data = b''
    offsets = []
    for codebook in codebooks:
        offsets.append(len(data))
        data += codebook

    offsets.append(len(data))

    return data + struct.pack('<%dI' % len(offsets), *offsets)


def library_codebooks():
    '''The codebooks of the library, in compact form: a scalar one used by
    the floor and the residue classification, a VQ one for the residue.'''
    return [compact_codebook(), compact_codebook(lookup_type=1)]


# the residue partitions are coded with this codebook, decoders want a lookup table
RESIDUE_BOOK = 1


def stripped_setup(codebook_ids=(0, RESIDUE_BOOK), inline=False, mode_flags=(False, True), masterbook=None,
                   channels=2, extra_bytes=0):
    '''The setup packet as found in a WEM, without packet header.

    Inline codebooks are the library ones with the same id. With "masterbook"
    the floor declares a subclass with that masterbook.'''
    packer = BitPacker()
    packer.write(len(codebook_ids) - 1, 8)

    for codebook_id in codebook_ids:
        if inline:
            packer.extend(library_codebooks()[codebook_id])
        else:
            packer.write(codebook_id, 10)

    # floors
    packer.write(0, 6)
    packer.write(1, 5)  # partitions
    packer.write(0, 4)  # partition class
    packer.write(0, 3)  # class dimensions - 1
    if masterbook is None:
        packer.write(0, 2)  # subclasses
        packer.write(0, 8)  # subclass book + 1, unused
    else:
        packer.write(1, 2)
        packer.write(masterbook, 8)
        packer.write(0, 8)
        packer.write(1, 8)
    packer.write(1, 2)  # multiplier - 1
    packer.write(2, 4)  # rangebits
    packer.write(3, 2)  # X

    # residues
    packer.write(0, 6)
    packer.write(2, 2)    # type
    packer.write(0, 24)   # begin
    packer.write(256, 24)  # end
    packer.write(31, 24)  # partition size - 1
    packer.write(0, 6)    # classifications - 1
    packer.write(0, 8)    # classbook
    packer.write(1, 3)    # cascade low bits
    packer.write(0, 1)    # no high bits
    packer.write(RESIDUE_BOOK, 8)  # book for the cascade bit 0

    # mappings
    packer.write(0, 6)
    packer.write(0, 1)  # submaps flag
    if channels > 1:
        packer.write(1, 1)  # square polar
        packer.write(0, 8)  # coupling steps - 1
        packer.write(0, 1)  # magnitude
        packer.write(1, 1)  # angle
    else:
        packer.write(0, 1)
    packer.write(0, 2)  # reserved
    packer.write(0, 8)  # time config
    packer.write(0, 8)  # floor
    packer.write(0, 8)  # residue

    # modes
    packer.write(len(mode_flags) - 1, 6)
    for flag in mode_flags:
        packer.write(int(flag), 1)
        packer.write(0, 8)  # mapping

    return packer.tobytes() + b'\x00' * extra_bytes


def canonical_setup_payload():
    '''What follows the codebooks in a setup packet of a header triad:
    it's copied as is.'''
    return b'\x0f\x1e\x2d\x3c'


def identification_packet(channels=2, sample_rate=44100):
    header = VorbisIdentificationHeader()
    header.channels.value = channels
    header.sample_rate.value = sample_rate
    header.bitrate_nominal.value = 128000
    header.blocksizes.value = 0xb8

    return header.pack()


def comment_packet():
    vendor = b'Xiph.Org libVorbis I 20050304'
    return b'\x03vorbis' + struct.pack('<I', len(vendor)) + vendor + struct.pack('<I', 0) + b'\x01'


def triad_setup_packet():
    packer = BitPacker()
    packer.write(5, 8)
    for c in b'vorbis':
        packer.write(c, 8)
    packer.write(0, 8)  # one codebook
    packer.extend(canonical_codebook())

    return packer.tobytes() + canonical_setup_payload()


HEADER_STYLE = {
    None: 'H',
    0x2a: 'H',
    0x28: 'II',
    0x2c: 'II',
    0x32: 'HI',
    0x34: 'HI',
}


def packet(payload, variant, granule=0, endianess='<'):
    style = HEADER_STYLE[variant]
    values = (len(payload),) if style == 'H' else (len(payload), granule)

    return struct.pack(endianess + style, *values) + payload


def vorb_block(variant, sample_count, setup_offset, audio_offset, mod_signal, blocksizes, endianess):
    e = endianess
    if variant in (None, 0x2a):
        return (
            struct.pack(e + 'II', sample_count, mod_signal) + b'\x00' * 8
            + struct.pack(e + 'II', setup_offset, audio_offset) + b'\x00' * 12
            + struct.pack(e + 'IBB', 0xcafe, *blocksizes)
        )

    block = struct.pack(e + 'I', sample_count) + b'\x00' * 0x14 + struct.pack(e + 'II', setup_offset, audio_offset)

    if variant in (0x32, 0x34):
        block += b'\x00' * 12 + struct.pack(e + 'IBB', 0xcafe, *blocksizes)

    return block + b'\x00' * (variant - len(block))


def riff_chunk(kind, data, endianess='<'):
    return kind + struct.pack(endianess + 'I', len(data)) + data


def build_wem(variant=0x2a, audio=(b'\x01\x02\x03',), setup=None, channels=2, sample_rate=44100,
              avg_bytes_per_second=16000, sample_count=44100, loop=None, mod_signal=0x4a,
              blocksizes=(8, 11), endianess='<', granules=None, data_tail=b'', **setup_options):
    '''Return the bytes of a WEM file.

    "variant" is the size of the vorb chunk, None means the vorb block is
    embedded into the fmt chunk.'''
    e = endianess
    granules = granules if granules is not None else [idx * 1024 for idx in range(1, len(audio) + 1)]

    if variant in (0x28, 0x2c):
        data = (
            packet(identification_packet(channels, sample_rate), variant, endianess=e)
            + packet(comment_packet(), variant, endianess=e)
            + packet(triad_setup_packet(), variant, endianess=e)
        )
    else:
        if setup is None:
            setup = stripped_setup(channels=channels, **setup_options)
        data = packet(setup, variant, endianess=e)

    audio_offset = len(data)

    for payload, granule in zip(audio, granules):
        data += packet(payload, variant, granule=granule, endianess=e)

    data += data_tail

    vorb = vorb_block(variant, sample_count, 0, audio_offset, mod_signal, blocksizes, e)

    fmt = struct.pack(e + 'HHIIHH', 0xffff, channels, sample_rate, avg_bytes_per_second, 0, 0)
    if variant is None:
        fmt += struct.pack(e + 'HHI', 0x30, 0, 3) + vorb
    else:
        fmt += struct.pack(e + 'HHI', 6, 0, 3)

    chunks = riff_chunk(b'fmt ', fmt, e)

    if loop is not None:
        smpl = b'\x00' * 0x1c + struct.pack(e + 'I', 1) + b'\x00' * 0x0c + struct.pack(e + 'II', *loop) + b'\x00' * 8
        chunks += riff_chunk(b'smpl', smpl, e)

    if variant is not None:
        chunks += riff_chunk(b'vorb', vorb, e)

    chunks += riff_chunk(b'data', data, e)

    magic = b'RIFF' if e == '<' else b'RIFX'

    return magic + struct.pack(e + 'I', len(chunks) + 4) + b'WAVE' + chunks


def build_rdar(files):
    '''"files" is a list of (hash, data, compressed).

    Each file takes one sector, the table follows the data.'''
    header_size = 40
    data = b''
    metas = b''
    offsets = b''

    for idx, (file_hash, content, compressed) in enumerate(files):
        offsets += struct.pack('<QII', header_size + len(data), len(content),
                               len(content) * 2 if compressed else len(content))
        metas += struct.pack('<QQIIIII', file_hash, 132000000000000000, 0, idx, idx + 1, 0, 0) + b'\x00' * 20
        data += content

    table = struct.pack('<IIQIII', 1, 0, 0, len(files), len(files), len(files)) + metas + offsets
    table += b''.join(struct.pack('<Q', _[0]) for _ in files)

    table_offset = header_size + len(data)
    header = b'RDAR' + struct.pack('<IQQQQ', 12, table_offset, len(table), 0, table_offset + len(table))

    return header + data + table


@pytest.fixture
def library():
    from wwogg.audio.vorbis.codebook import CodebookLibrary

    return CodebookLibrary(build_library([_.tobytes() for _ in library_codebooks()]), name='test')
