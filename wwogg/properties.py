import logging


class Dependency:
    '''This makes the relation between fields possible.

    In practice this class allows to write something like

        class Simple(Chunk):
            length = fields.StructField('I')
            data = fields.StringField(n=Dependency('.length'))

    and have the (internal) length of the string contained in the field named 'data'
    strictly connected to the field named 'length'.

    The expression starts with a dot and names a sibling field, e.g. '.length';
    more components reach inside a sibling chunk, e.g. '.header.length'.

    The relation is defined in the unpacking direction; when the dependent
    field is set, resolve_and_set() writes the new value back to the source.
    '''
    def __init__(self, expression):
        if not expression.startswith('.'):
            raise ValueError(f"'{expression}' must refer to a sibling field, i.e. start with '.'")

        self.expression = expression
        self.logger = logging.getLogger(__name__)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.expression})>'

    def resolve_field(self, instance):
        # '.length'.split(".") -> ['', 'length']
        fields_path = self.expression.split('.')[1:]
        field = instance.father

        if field is None:
            raise AttributeError(f"'{self.expression}' cannot be resolved for a field without father")

        for component_name in fields_path:
            field = getattr(field, component_name)

        self.logger.debug(' resolved \'%s\' as field %s' % (self.expression, field.__class__.__name__))

        return field

    def resolve(self, instance):
        '''With this method we resolve the attribute with respect to the instance
        passed as argument.'''
        field = self.resolve_field(instance)

        return field() if callable(field) else field.value

    def resolve_and_set(self, instance, value):
        self.resolve_field(instance).value = value


class SumDependency(Dependency):
    '''Resolves as the sum of the bytes of the referred field.

    It is the case of lacing tables, where the size of the data is
    spread over a list of one-byte values.'''

    def resolve(self, instance):
        return sum(super().resolve(instance))

    def resolve_and_set(self, instance, value):
        expected = self.resolve(instance)
        if value != expected:
            raise ValueError(f'{self.expression} describes {expected} bytes, not {value}')
