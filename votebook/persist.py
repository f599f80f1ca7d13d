'''Serialization of ledger records, notifications and snapshots.

Objects are turned into JSON-ready dictionaries that carry the scoped name
of their class under the ``class`` key (or ``event`` for notifications) so
that they can be reconstructed by :func:`from_dict`. Only classes from the
Votebook package itself are ever reconstructed.
'''

import sys
import enum
import inspect
import importlib
from typing import Any, List, Dict

PACKAGE_NAME: str = 'votebook'

ATOMIC_TYPES: List[type] = [
    str, int, float, bool, type(None),
]


def simple_serialization(class_: type) -> type:
    '''A decorator to provide a simple to_dict() serialization method.

    The resulting method will serialize all object attributes corresponding
    to the class's constructor parameter names, in the order they are
    declared. A class may instead list the attributes in a
    ``serialize_params`` class attribute.

    :param class_: The class to add the method to.
    '''
    if hasattr(class_, 'serialize_params'):
        param_names = list(class_.serialize_params)
    else:
        param_names = list(inspect.signature(
            class_.__init__
        ).parameters.keys())
        if 'self' in param_names:
            param_names.remove('self')

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {'class': scoped_class_name(self)}
        for attr in param_names:
            out_dict[attr] = serialize_value(getattr(self, attr))
        return out_dict

    class_.serialize_params = param_names
    class_.to_dict = to_dict
    return class_


def serialize_value(value: Any) -> Any:
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    elif isinstance(value, enum.Enum):
        return {'type': scoped_class_name(value), 'value': value.value}
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif hasattr(value, 'items') and hasattr(value, 'keys'):
        if all(isinstance(key, str) for key in value.keys()):
            return {key: serialize_value(val) for key, val in value.items()}
        else:
            return {
                'type': 'dict',
                'keys': [serialize_value(key) for key in value.keys()],
                'values': [serialize_value(val) for val in value.values()],
            }
    elif isinstance(value, (list, tuple)):
        return [serialize_value(val) for val in value]
    else:
        raise ValueError(f'cannot serialize {value!r} to dict format')


def deserialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        if value.get('type') == 'dict':
            return dict(zip(
                [deserialize_value(key) for key in value['keys']],
                [deserialize_value(val) for val in value['values']],
            ))
        elif 'type' in value and is_package_identifier(value['type']):
            return get_object(value['type'])(value['value'])
        elif 'class' in value and is_package_identifier(value['class']):
            return deserialize_class(value)
        else:
            return {key: deserialize_value(val) for key, val in value.items()}
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif isinstance(value, list):
        return [deserialize_value(val) for val in value]
    else:
        raise ValueError(f'cannot deserialize {value!r}, type unknown')


def deserialize_class(clsdef: Dict[str, Any]) -> Any:
    cls = get_object(clsdef['class'])
    params = clsdef.copy()
    del params['class']
    if hasattr(cls, 'from_dict'):
        return cls.from_dict(params)
    else:
        return cls(**{
            key: deserialize_value(inner_val)
            for key, inner_val in params.items()
        })


def get_object(identifier: str) -> Any:
    module, name = identifier.rsplit('.', 1)
    if module not in sys.modules:
        importlib.import_module(module)
    try:
        return getattr(sys.modules[module], name)
    except AttributeError as e:
        raise ValueError(f'unknown votebook object: {identifier}') from e


def from_dict(value: Dict[str, Any]) -> Any:
    """Reconstruct a Votebook object from a JSON-like dictionary.

    :param value: A dictionary created by :func:`to_dict`.
    """
    if not isinstance(value, dict):
        raise ValueError('invalid votebook object def: dict expected, '
                         f'got {value!r}')
    elif 'class' not in value:
        raise ValueError('invalid votebook object def: must have a class key')
    elif not is_package_identifier(value['class']):
        inval_cls = value['class']
        raise ValueError(f'invalid votebook class def: {inval_cls}')
    else:
        return deserialize_value(value)


def to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize a Votebook object to a JSON-ready dictionary.

    :param obj: A ledger, candidate, voter, notification or similar object
        providing a `to_dict()` method.
    """
    return serialize_value(obj)


def is_package_identifier(value: Any) -> bool:
    return (
        isinstance(value, str)
        and value.startswith(PACKAGE_NAME + '.')
        and all(chunk.isidentifier() for chunk in value.split('.'))
    )


def scoped_class_name(value: Any) -> str:
    cls = value.__class__
    return '.'.join((cls.__module__, cls.__name__))
