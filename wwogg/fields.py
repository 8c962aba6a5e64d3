"""
A Field is "fundamental" datatype from the format point of view, something directly
packable/unpackable without need for relayouting.
"""
import logging
import struct
from enum import Enum

from .enum import Compliant
from .meta import FieldBase, Endianess
from .properties import Dependency
from .exceptions import UnpackException, MagicException, TruncatedException, ChunkUnpackException


class Field(FieldBase):
    """Base class to subclass from"""

    def __init__(self, *args, name=None, father=None, default=None, offset=None,
                 endianess=None, compliant=Compliant.INHERIT, is_magic=False):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.name = name
        self.father = father
        self.default = default
        self.offset = offset
        self.endianess = endianess
        self.compliant = compliant
        self.is_magic = is_magic

        self.init()

    def init(self):
        self.value = self.value_from_default()

    def value_from_default(self):
        return self.default

    def __str__(self):
        return str(self.value)

    def get_endianess(self):
        '''The endianess is inherited from the fathers when not indicated.'''
        instance = self
        while instance:
            if instance.endianess is not None:
                return instance.endianess
            instance = instance.father

        return Endianess.LITTLE_ENDIAN

    def is_compliant(self, level):
        '''Returns the compliant'''
        instance = self
        while instance:
            if instance.compliant & level:
                return True
            if not instance.compliant & Compliant.INHERIT:
                break

            instance = instance.father

        return False

    def resolve(self, value):
        return value.resolve(self) if isinstance(value, Dependency) else value

    value = property(
        fget=lambda self: self._get_value(),
        fset=lambda self, value: self._set_value(value))

    def _get_value(self):
        return self._value

    def _set_value(self, value):
        self._value = value

    def _get_size(self):
        raise NotImplementedError(f"method {self.__class__.__name__}._get_size() not implemented")

    size = property(
        fget=lambda self: self._get_size(),
    )

    def _get_raw(self) -> bytes:
        raise NotImplementedError(f"method {self.__class__.__name__}._get_raw() not implemented")

    raw = property(
        fget=lambda self: self._get_raw(),
    )

    def relayout(self, offset=0):
        self.offset = offset

        return self.size

    def check_magic(self, value):
        if self.is_magic and value != self.default:
            self.logger.warning('the magic for \'%s\' doesn\'t correspond: %r' % (self.name, value))
            if self.is_compliant(Compliant.MAGIC):
                raise MagicException('bad magic', expected=self.default, actual=value)

    def unpack(self, stream):
        raise NotImplementedError('you need to implement this in the subclass')


class StructField(Field):
    """
    Simplest of the fields: mimic the behaviour of the struct module packing/unpacking
    integers to/from bytes.

    The main advantage is the possibility to indicate via the "enum" argument some subclass
    of enum.Enum so to have directly a representation of the integer value of the field itself.
    """

    def __init__(self, format, default=0, equals_to=None, enum=None, **kw):
        self.format = format
        self.enum = enum
        super().__init__(default=default if equals_to is None else equals_to, **kw)

    def __repr__(self):
        value = self.value
        if isinstance(value, Enum) or isinstance(value, bytes):
            return f'<{self.__class__.__name__}({value!r})>'

        return '<%s(%s)>' % (self.__class__.__name__, hex(value))

    def value_from_default(self):
        if not self.enum or isinstance(self.default, self.enum):
            return self.default

        return self.enum(self.default)

    def get_format(self):
        return '%s%s' % ('<' if self.get_endianess() == Endianess.LITTLE_ENDIAN else '>', self.format)

    def _get_size(self):
        return struct.calcsize(self.get_format())

    def _get_raw(self) -> bytes:
        value = self.value
        return struct.pack(self.get_format(), value.value if isinstance(value, Enum) else value)

    def _unpack_enum(self, value: int):
        try:
            return self.enum(value)
        except ValueError:
            if self.is_compliant(Compliant.ENUM):
                raise UnpackException('unknown enum value', enum=self.enum.__name__, value=value)

            self.logger.warning(f'enum {self.enum!r} doesn\'t have element with value 0x{value:x} in it')

        return value

    def unpack(self, stream):
        raw = stream.read(self.size)

        try:
            value = struct.unpack(self.get_format(), raw)[0]
        except struct.error:
            raise TruncatedException('field truncated', expected=self.size, actual=len(raw))

        if self.enum:
            value = self._unpack_enum(value)

        self.check_magic(value)

        self.value = value


class StringField(Field):
    """Represent a contiguous chunk of bytes.

    The length can be a fixed integer or a Dependency resolved
    with respect to the chunk containing the field."""

    def __init__(self, n=None, **kw):
        if n is None and 'default' not in kw:
            raise ValueError(f"StringField must have 'n' or 'default' indicated!")

        self._length = n if n is not None else len(kw['default'])

        super().__init__(**kw)

    def __repr__(self):
        return '<%s(%s)>' % (self.__class__.__name__, repr(self.value))

    def __len__(self):
        return self.length

    @property
    def length(self):
        if isinstance(self._length, Dependency):
            return len(self._value) if self.father is None else self._length.resolve(self)

        return self._length

    def value_from_default(self):
        if self.default is not None:
            return self.default

        return b'\x00' * (self._length if isinstance(self._length, int) else 0)

    def _set_value(self, value) -> None:
        """The StringField has the size as a parameter and we must follow that indication
        unless it's a Dependency, in that case we are going to write back the value where necessary."""
        if isinstance(self._length, Dependency):
            if self.father is not None:
                self._length.resolve_and_set(self, len(value))
        elif len(value) != self._length:
            raise ValueError(f'you are trying to set a value with the wrong size (that is {self._length} bytes)')

        super()._set_value(value)

    def _get_size(self):
        return len(self.value)

    def _get_raw(self):
        return self.value

    def unpack(self, stream):
        length = self.length
        value = stream.read(length)

        if len(value) != length:
            raise TruncatedException('field truncated', expected=length, actual=len(value))

        self.check_magic(value)

        self._value = value


class ArrayField(Field):
    '''Un/Pack an array of Chunks.

    The number of elements is fixed ("n" as an int) or read from another
    field ("n" as a Dependency).

    The element can be passed as a prototype instance (that is copied) or as a class.
    '''

    def __init__(self, field_cls, n=0, **kw):
        if n and not isinstance(n, (Dependency, int)):
            raise Exception('n is \'%s\' must be of the right type' % n.__class__.__name__)

        self.field_cls = field_cls
        self._n = n

        super().__init__(**kw)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.value!r})>'

    def __getitem__(self, item):
        return self.value[item]

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    def value_from_default(self):
        n = self._n if isinstance(self._n, int) else 0
        return [self.instance_element() for _ in range(n)]

    def _get_raw(self):
        return b''.join(element.raw for element in self.value)

    def _get_size(self):
        return sum(element.size for element in self.value)

    def relayout(self, offset=0):
        self.offset = offset
        size = 0
        for field in self.value:
            size += field.relayout(offset=offset + size)

        return size

    def instance_element(self):
        # pass the father so that we don't lose the hierarchy
        if isinstance(self.field_cls, type):
            return self.field_cls(father=self)

        return self.field_cls.create(father=self)

    def unpack(self, stream):
        n = self.resolve(self._n)
        self.value = []

        for idx in range(n):
            element = self.instance_element()
            element.offset = stream.tell()
            try:
                element.unpack(stream)
            except (UnpackException, MagicException, TruncatedException, ChunkUnpackException) as e:
                e.chain.append('%d' % idx)
                raise

            self.value.append(element)
