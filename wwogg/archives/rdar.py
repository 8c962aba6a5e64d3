'''
# RDAR

Archive used by some games to store their assets, audio included.

  .-------------------------------------------------.
  | 'RDAR' | version | table offset | table size    |
  | unknown | file size                             |
  | ... sectors ...                                 |
  | table: files | sector offsets | hashes          |
  '-------------------------------------------------'

The files are identified by a 64 bit hash of their name; each one spans
a range of sectors, a sector whose physical size differs from the virtual
one is compressed (not supported here).
'''
import logging
from dataclasses import dataclass

from ..core import Chunk
from ..enum import Compliant
from ..properties import Dependency
from ..streams import Stream
from ..exceptions import StructuralException, WwoggException
from .. import fields
from .utils import make_filename, win_filetime_to_unix_ts


logger = logging.getLogger(__name__)

RDAR_VERSION = 12
WEM_MAGIC = b'RIFF'


class RDARHeader(Chunk):
    magic        = fields.StringField(4, default=b'RDAR', is_magic=True)
    version      = fields.StructField('I', default=RDAR_VERSION, is_magic=True)
    table_offset = fields.StructField('Q')
    table_size   = fields.StructField('Q')
    unknown      = fields.StructField('Q')
    file_size    = fields.StructField('Q')


class RDARFileMeta(Chunk):
    hash          = fields.StructField('Q')
    time          = fields.StructField('Q')  # windows FILETIME
    flags         = fields.StructField('I')
    first_sector  = fields.StructField('I')
    last_sector   = fields.StructField('I')
    first_unknown = fields.StructField('I')
    last_unknown  = fields.StructField('I')
    sha1          = fields.StringField(20)


class RDARSectorOffset(Chunk):
    sector_offset = fields.StructField('Q')
    physical_size = fields.StructField('I')
    virtual_size  = fields.StructField('I')

    def is_compressed(self):
        return self.physical_size.value != self.virtual_size.value


class RDARTable(Chunk):
    number      = fields.StructField('I')
    table_size  = fields.StructField('I')
    checksum    = fields.StructField('Q')
    num_files   = fields.StructField('I')
    num_offsets = fields.StructField('I')
    num_hashes  = fields.StructField('I')
    files       = fields.ArrayField(RDARFileMeta, n=Dependency('.num_files'))
    offsets     = fields.ArrayField(RDARSectorOffset, n=Dependency('.num_offsets'))
    hashes      = fields.ArrayField(fields.StructField('Q'), n=Dependency('.num_hashes'))


@dataclass
class FileInfo:
    name: str
    time: int
    size: int
    hash: int


def read_range(stream, offset, size):
    '''Return exactly "size" bytes starting from "offset".'''
    stream.seek(offset)

    return stream.read_exact(size, 'archive entry truncated')


class RDARArchive(object):

    def __init__(self, source, hashes=None, codebooks=None):
        self.stream = Stream(source)
        self.hashes = hashes if hashes is not None else {}
        self.codebooks = codebooks

        self.stream.seek(0)
        self.header = RDARHeader(compliant=Compliant.MAGIC)
        self.header.unpack(self.stream)

        self.stream.seek(self.header.table_offset.value)
        self.table = RDARTable()
        self.table.unpack(self.stream)

        # a hash appearing twice refers to the last entry
        self.entries = {}
        for meta in self.table.files:
            self.entries[meta.hash.value] = meta

        logger.debug('archive with %d files, %d sectors' % (len(self.entries), len(self.table.offsets)))

    def __repr__(self):
        return '<%s(%d files)>' % (self.__class__.__name__, len(self.entries))

    def make_filename(self, file_hash):
        return make_filename(self.hashes, file_hash)

    def sector(self, idx):
        if not 0 <= idx < len(self.table.offsets):
            raise StructuralException('sector out of range', sector=idx, count=len(self.table.offsets))

        return self.table.offsets[idx]

    def sectors(self, meta):
        for idx in range(meta.first_sector.value, meta.last_sector.value):
            yield self.sector(idx)

    def meta_of(self, file_hash):
        try:
            return self.entries[file_hash]
        except KeyError:
            raise StructuralException('unknown file hash', hash=file_hash)

    def size_by_meta(self, meta):
        return sum(sector.physical_size.value for sector in self.sectors(meta))

    def list_files(self):
        return [
            FileInfo(
                name=self.make_filename(meta.hash.value),
                time=win_filetime_to_unix_ts(meta.time.value),
                size=self.size_by_meta(meta),
                hash=meta.hash.value,
            ) for meta in self.entries.values()
        ]

    def is_wem_file(self, meta):
        if meta.first_sector.value >= meta.last_sector.value:
            return False

        sector = self.sector(meta.first_sector.value)
        if sector.is_compressed() or sector.physical_size.value < len(WEM_MAGIC):
            return False

        return read_range(self.stream, sector.sector_offset.value, len(WEM_MAGIC)) == WEM_MAGIC

    def extract_file_by_meta(self, meta):
        data = b''
        for sector in self.sectors(meta):
            if sector.is_compressed():
                raise StructuralException('compression not supported', offset=sector.sector_offset.value)

            data += read_range(self.stream, sector.sector_offset.value, sector.physical_size.value)

        return data

    def extract_file(self, file_hash, out=None):
        data = self.extract_file_by_meta(self.meta_of(file_hash))

        if out is not None:
            out.write(data)

        return data

    def extract_all(self, sink):
        for meta in self.entries.values():
            sink.write(self.make_filename(meta.hash.value), self.extract_file_by_meta(meta))

    def extract_all_convert_wem(self, sink, **options):
        '''Convert each WEM into an Ogg file, the failures are logged and
        returned without stopping the extraction.'''
        from ..converter import Converter

        failed = []
        for meta in self.entries.values():
            if not self.is_wem_file(meta):
                continue

            name = self.make_filename(meta.hash.value)

            try:
                converter = Converter(self.extract_file_by_meta(meta), codebooks=self.codebooks, **options)
                data = converter.convert()
            except WwoggException as e:
                logger.error('could not extract file: %s (%s)' % (name, e))
                failed.append(name)
                continue

            sink.write(name.rsplit('.', 1)[0] + '.ogg', data)

        return failed
