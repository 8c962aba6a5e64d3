#!/usr/bin/env python3
'''
List and extract the content of a RDAR archive.

 $ rdar.py list <archive>
 $ rdar.py single <archive> <hash> > file
 $ rdar.py extract <archive> <directory>
 $ rdar.py extract-wem <archive> <directory>
'''
import os
import sys
import time
import logging

from wwogg.archives.rdar import RDARArchive
from wwogg.archives.utils import (
    DEFAULT_HASHES_NAME,
    FileSink,
    read_hashes,
    human_readable_size,
)
from wwogg.audio.vorbis.codebook import DEFAULT_CODEBOOKS_NAME
from wwogg.exceptions import WwoggException


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)
logger = logging.getLogger(__name__)


def usage(progname):
    print(f'''usage: {progname} list|single|extract|extract-wem <archive> [hash|directory]

The names of the files are read from the path in the HASHES_FILE environment
variable (default '{DEFAULT_HASHES_NAME}'), the codebook library used to convert
the WEM files from CODEBOOKS_FILE (default '{DEFAULT_CODEBOOKS_NAME}').''')
    sys.exit(1)


def load_hashes(path):
    try:
        with open(path, 'r') as f:
            return read_hashes(f)
    except OSError:
        logger.error('could not open hashes file \'%s\'' % path)
        sys.exit(1)


def dump_list(archive):
    for info in archive.list_files():
        timestamp = time.strftime('%Y-%m-%d %H:%M', time.localtime(info.time))
        print(f'{timestamp}  {human_readable_size(info.size):<10} {info.hash:<32} {info.name}')


if __name__ == '__main__':
    if len(sys.argv) < 3:
        usage(sys.argv[0])

    command = sys.argv[1]

    if command not in ('list', 'single', 'extract', 'extract-wem'):
        usage(sys.argv[0])

    if command != 'list' and len(sys.argv) < 4:
        usage(sys.argv[0])

    hashes = load_hashes(os.environ.get('HASHES_FILE', DEFAULT_HASHES_NAME))
    codebooks = os.environ.get('CODEBOOKS_FILE', DEFAULT_CODEBOOKS_NAME)

    file_hash = None
    if command == 'single':
        try:
            file_hash = int(sys.argv[3])
        except ValueError:
            logger.error('\'%s\' is not a valid hash' % sys.argv[3])
            sys.exit(1)

    try:
        archive = RDARArchive(sys.argv[2], hashes=hashes, codebooks=codebooks)

        if command == 'list':
            dump_list(archive)
        elif command == 'single':
            archive.extract_file(file_hash, out=sys.stdout.buffer)
        elif command == 'extract':
            archive.extract_all(FileSink(sys.argv[3]))
        elif command == 'extract-wem':
            failed = archive.extract_all_convert_wem(FileSink(sys.argv[3]))
            if failed:
                logger.warning('%d files could not be converted' % len(failed))
    except (WwoggException, OSError) as e:
        logger.error('failed to read archive \'%s\': %s' % (sys.argv[2], e))
        sys.exit(1)
