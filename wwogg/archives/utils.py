import os
import logging


logger = logging.getLogger(__name__)

DEFAULT_HASHES_NAME = 'hashes.csv'

WINDOWS_TICK = 10000000
EPOCH_DIFFERENCE = 11644473600  # seconds between 1601-01-01 and 1970-01-01


def read_hashes(lines):
    '''Parse the lines of a "name,hash" file into a dictionary hash -> name.

    Lines without a comma are ignored.'''
    hashes = {}
    for line in lines:
        line = line.rstrip('\r\n')
        name, sep, value = line.partition(',')
        if not sep:
            continue

        try:
            hashes[int(value)] = name
        except ValueError:
            logger.warning('invalid hash for \'%s\': %r' % (name, value))

    return hashes


def make_filename(hashes, file_hash):
    return hashes.get(file_hash, '%d.bin' % file_hash)


def win_filetime_to_unix_ts(filetime):
    return filetime // WINDOWS_TICK - EPOCH_DIFFERENCE


def human_readable_size(size):
    for unit in ('B', 'K', 'M', 'G'):
        if size < 1024:
            return '%d%s' % (size, unit)
        size //= 1024

    return '%dT' % size


class FileSink(object):
    '''Creates the files extracted from an archive under a base directory.'''

    def __init__(self, base_path):
        if not base_path:
            raise ValueError('base_path cannot be empty')

        self.base_path = str(base_path)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, self.base_path)

    def path_for(self, name):
        # names inside the archives use the windows separator
        return os.path.join(self.base_path, *name.replace('\\', '/').split('/'))

    def new_stream(self, name):
        path = self.path_for(name)
        os.makedirs(os.path.dirname(path), exist_ok=True)

        logger.info('extracting %s' % path)

        return open(path, 'wb')

    def write(self, name, data):
        with self.new_stream(name) as out:
            out.write(data)
