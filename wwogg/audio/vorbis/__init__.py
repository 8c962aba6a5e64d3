'''
# Vorbis

Only the headers are of interest here: a Vorbis stream starts with three
packets (identification, comment and setup), each one introduced by a byte
with its type and the string "vorbis".

The setup packet describes the decoder configuration (codebooks, floors,
residues, mappings and modes) and, being a bit-packed structure, it's
handled with BitReader/OggStream and not with the declarative chunks.

See <https://xiph.org/vorbis/doc/Vorbis_I_spec.html>.
'''
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ...core import Chunk
from ... import fields


VORBIS_MAGIC = b'vorbis'
CODEBOOK_SYNC = 0x564342  # "BCV" read least significant bit first


class VorbisPacketType(Enum):
    IDENTIFICATION = 1
    COMMENT        = 3
    SETUP          = 5


def ilog(value):
    '''Number of bits needed to represent the value, zero for zero.'''
    bits = 0
    while value > 0:
        bits += 1
        value >>= 1

    return bits


class VorbisIdentificationHeader(Chunk):
    '''The identification packet is byte aligned, so it can be described
    declaratively.'''
    packet_type     = fields.StructField('B', enum=VorbisPacketType, default=VorbisPacketType.IDENTIFICATION)
    magic           = fields.StringField(6, default=VORBIS_MAGIC, is_magic=True)
    version         = fields.StructField('I')
    channels        = fields.StructField('B')
    sample_rate     = fields.StructField('I')
    bitrate_maximum = fields.StructField('i')
    bitrate_nominal = fields.StructField('i')
    bitrate_minimum = fields.StructField('i')
    blocksizes      = fields.StructField('B')
    framing         = fields.StructField('B', default=1)

    @property
    def blocksize_0_pow(self):
        return self.blocksizes.value & 0x0f

    @property
    def blocksize_1_pow(self):
        return self.blocksizes.value >> 4


@dataclass
class Floor:
    partition_classes: List[int] = field(default_factory=list)
    class_dimensions: List[int] = field(default_factory=list)
    multiplier: int = 1
    rangebits: int = 0


@dataclass
class Residue:
    type: int = 0
    begin: int = 0
    end: int = 0
    partition_size: int = 1
    classbook: int = 0
    cascade: List[int] = field(default_factory=list)
    books: List[int] = field(default_factory=list)


@dataclass
class Mapping:
    submaps: int = 1
    coupling: List[tuple] = field(default_factory=list)
    mux: List[int] = field(default_factory=list)
    submap_floors: List[int] = field(default_factory=list)
    submap_residues: List[int] = field(default_factory=list)


@dataclass
class Mode:
    block_flag: bool = False
    mapping: int = 0


@dataclass
class VorbisSetup:
    '''What is recovered from the setup packet, the mode table is what is
    needed to rebuild the audio packets.'''
    codebook_count: int = 0
    floors: List[Floor] = field(default_factory=list)
    residues: List[Residue] = field(default_factory=list)
    mappings: List[Mapping] = field(default_factory=list)
    modes: List[Mode] = field(default_factory=list)

    @property
    def mode_bits(self):
        return ilog(len(self.modes) - 1) if self.modes else 0

    @property
    def mode_block_flags(self):
        return [_.block_flag for _ in self.modes]
