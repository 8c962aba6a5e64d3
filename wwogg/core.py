"""
Declarative description of the binary structures: RIFF chunks, Ogg pages,
the archive tables are all subclasses of Chunk whose fields are declared in
the order they appear in the stream.
"""
from typing import Tuple, List

from .fields import Field
from .enum import Compliant
from .meta import MetaChunk
from .streams import Stream
from .exceptions import (
    ChunkUnpackException,
    UnpackException,
    MagicException,
    TruncatedException,
)


class Chunk(Field, metaclass=MetaChunk):
    """
    Together with Field is the main class that defines a format: its main attributes
    are offset and size that identify a Chunk.

    A Chunk can contain sub-chunks: the fields are unpacked and packed in the order
    they are declared in the class body.
    """

    def __init__(self, filepath=None, **kwargs):
        super().__init__(**kwargs)

        # now we have setup all the fields necessary and we can unpack if
        # some data is passed with the constructor
        if filepath is not None:
            stream = Stream(filepath)
            self.logger.debug('unpacking \'%s\' from %s' % (self.__class__.__name__, stream))
            self.unpack(stream)
        else:
            self.relayout()

    def get_ordered_fields_name(self) -> List[str]:
        return self._meta.fields

    def get_fields(self) -> List[Tuple[str, Field]]:
        '''It returns a list of couples (name, instance) for each field.'''
        return [(_, getattr(self, _)) for _ in self.get_ordered_fields_name()]

    def __repr__(self):
        msg = []
        for field_name, field in self.get_fields():
            msg.append('%s=%s' % (field_name, repr(field)))
        return '<%s(%s)>' % (self.__class__.__name__, ','.join(msg))

    def __str__(self):
        msg = ''
        for field_name, field in self.get_fields():
            msg += '%s: %s\n' % (field_name, repr(field))
        return msg

    def init(self):
        for _, field in self.get_fields():
            field.init()

    def _get_value(self):
        return self

    def _set_value(self, value):
        if value is not self:
            raise ValueError(f'a {self.__class__.__name__} cannot be assigned a value')

    def _get_size(self):
        '''the size parameter MUST not be set but MUST be derived from the subchunks'''
        return sum(field.size for _, field in self.get_fields())

    def _get_raw(self):
        value = b''
        for field_name, field_instance in self.get_fields():
            value += field_instance.raw

        return value

    def relayout(self, offset=0):
        '''This method triggers the chunk's children to reset the offsets.'''
        self.offset = offset

        size = 0
        for field_name, field_instance in self.get_fields():
            size += field_instance.relayout(offset=offset + size)

        return size

    def pack(self, stream=None):
        '''Encode the chunk and return the bytes, writing them to the
        stream if one is passed.'''
        self.relayout()

        value = self.raw

        if stream is not None:
            stream.write(value)

        return value

    def unpack(self, stream):
        '''This is one of the main APIs to take care of: its aim is to take a binary
        data and transform in the representation given by the class this method
        is implemented.

        The fields are read one after the other from the actual position of
        the stream; offsets are recorded while reading.
        '''
        for field_name, field in self.get_fields():
            field.offset = stream.tell()
            self.logger.debug('unpacking %s.%s at offset 0x%x' % (self.__class__.__name__, field_name, field.offset))

            try:
                field.unpack(stream)
            except (MagicException, TruncatedException, ChunkUnpackException) as e:
                e.chain.append(field_name)
                raise
            except UnpackException as e:
                raise ChunkUnpackException(e.message, chain=e.chain + [field_name], **e.context)

        if hasattr(self, 'validate') and not self.validate():
            self.logger.warning(f'validation for \'{self.__class__.__name__}\' failed')
            if self.is_compliant(Compliant.MAGIC):
                raise MagicException('validation failed', chain=[])
