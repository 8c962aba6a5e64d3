'''
Conversion of a WEM into an Ogg Vorbis stream.

    converter = Converter('music.wem', codebooks='packed_codebooks.bin')
    with open('music.ogg', 'wb') as out:
        converter.generate_ogg(out)

The Ogg stream is assembled in memory and written to the output only when
the whole conversion succeeded.
'''
import io
import logging

from .audio.wem import WEMFile
from .audio.wem.enum import ForcePacketFormat
from .audio.vorbis.codebook import CodebookLibrary, open_codebook_library, DEFAULT_CODEBOOKS_NAME
from .audio.vorbis.headers import HeaderWriter
from .audio.vorbis.remux import AudioRemuxer
from .containers.ogg import OggStream


logger = logging.getLogger(__name__)


class Converter(object):

    def __init__(self, source, codebooks=None, inline_codebooks=False, full_setup=False,
                 force_packet_format=ForcePacketFormat.NONE):
        self.wem = WEMFile(source, force_packet_format=force_packet_format)
        self.codebooks = codebooks if codebooks is not None else DEFAULT_CODEBOOKS_NAME
        # full setup implies inline codebooks
        self.inline_codebooks = inline_codebooks or full_setup
        self.full_setup = full_setup

    def __repr__(self):
        return '<%s(%r)>' % (self.__class__.__name__, self.wem)

    @property
    def uses_library(self):
        return not self.inline_codebooks and not self.wem.variant.header_triad_present

    def get_library(self):
        if not self.uses_library:
            return None

        if isinstance(self.codebooks, CodebookLibrary):
            return self.codebooks

        return open_codebook_library(self.codebooks)

    def convert(self):
        '''Return the Ogg stream as bytes.'''
        buffer = io.BytesIO()
        writer = OggStream(buffer)

        headers = HeaderWriter(
            self.wem,
            writer,
            library=self.get_library(),
            inline_codebooks=self.inline_codebooks,
            full_setup=self.full_setup,
        )
        setup = headers.write()

        count = AudioRemuxer(self.wem, writer, setup=setup).remux()

        logger.debug('written %d pages, %d audio packets' % (writer.sequence, count))

        return buffer.getvalue()

    def generate_ogg(self, out):
        data = self.convert()
        out.write(data)

        return len(data)

    def describe(self):
        lines = self.wem.describe()
        triad = self.wem.variant.header_triad_present

        lines.append('- full setup header' if self.full_setup or triad else '- stripped setup header')

        if self.inline_codebooks or triad:
            lines.append('- inline codebooks')
        else:
            name = self.codebooks.name if isinstance(self.codebooks, CodebookLibrary) else self.codebooks
            lines.append('- external codebooks (%s)' % name)

        lines.append('- modified Vorbis packets' if self.wem.mod_packets else '- standard Vorbis packets')

        return '\n'.join(lines)
