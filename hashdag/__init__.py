import enum
import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import IO, Any, Callable, Dict, Type, TypeVar, Union

ENCODING_USED = "utf-8"


class BitMask:
    """
    Bits `start .. start+size-1` of one byte

    >>> str(BitMask(7)), str(BitMask(0, 7))
    ('7 mask:10000000 inverse:01111111', '0 mask:01111111 inverse:10000000')
    >>> last = BitMask(7)
    >>> hex(last.set(0x05)), last.extract(0x85), hex(last.clear(0x85))
    ('0x85', 1, '0x5')
    >>> BitMask(3, 2).extract(0b11000)
    3
    """

    def __init__(self, start: int, size: int = 1):
        assert 0 <= start and start + size <= 8
        self.position = start
        self.mask = ((1 << size) - 1) << start
        self.inverse = self.mask ^ 0xFF

    def extract(self, i: int) -> int:
        return (i & self.mask) >> self.position

    def clear(self, i: int) -> int:
        return i & self.inverse

    def set(self, i: int) -> int:
        return i | self.mask

    def __str__(self):
        return f"{self.position} mask:{self.mask:08b} inverse:{self.inverse:08b}"


def exception_message(e=None) -> str:
    return str(sys.exc_info()[1] if e is None else e)


def reraise_with_msg(msg, exception=None):
    """
    Raise `exception` (one being handled if omitted) again with `msg`
    appended to its message. Exceptions that cannot be built out of
    single message become `ValueError`.
    """
    if exception is None:
        exception = sys.exc_info()[1]
    text = f"{exception_message(exception)}\n{msg}"
    try:
        replacement = type(exception)(text)
    except Exception:
        replacement = ValueError(text)
    raise replacement.with_traceback(sys.exc_info()[2])


def utf8_encode(s: str) -> bytes:
    return s.encode(ENCODING_USED)


def utf8_decode(b: bytes) -> str:
    return b.decode(ENCODING_USED)


def ensure_bytes(v: Any) -> bytes:
    """
    >>> ensure_bytes(b'chunk'), ensure_bytes('chunk'), ensure_bytes(42)
    (b'chunk', b'chunk', b'42')
    """
    if isinstance(v, bytes):
        return v
    return utf8_encode(v if isinstance(v, str) else str(v))


EnsureItT = TypeVar("EnsureItT", bound="EnsureIt")


class EnsureIt:
    """
    `ensure_it(o)` passes instances through and builds new one out of
    anything else
    """

    @classmethod
    def __factory__(cls):
        return cls

    @classmethod
    def ensure_it(cls: Type[EnsureItT], o: Any) -> EnsureItT:
        return o if isinstance(o, cls) else cls.__factory__()(o)


class Stringable:
    """
    Object with text form, `cls(str(o)) == o`. Serialized into json
    as that text.
    """

    def __bytes__(self) -> bytes:
        return utf8_encode(str(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"


class Jsonable(EnsureIt):
    """
    Object with json form returned by `__to_json__()`. Its text form
    is that json, so equality and hash follow json.
    """

    def __to_json__(self):
        raise AssertionError("need to be implemented")

    def __str__(self):
        return json_encode(self.__to_json__())

    def __bytes__(self):
        return utf8_encode(str(self))

    def __eq__(self, other):
        return str(self) == str(other)

    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return hash(str(self))


def _to_json_scalar(v: Any) -> Any:
    if hasattr(v, "__to_json__"):
        return v.__to_json__()
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, Stringable):
        return str(v)
    raise NotImplementedError(f"No conversion defined for: {v!r}")


def to_json(v: Any) -> Any:
    """
    Convert `v` into structure that `json` module accepts.
    `__to_json__()` result is taken as is.

    >>> to_json({'sizes': (1, 2), 'at': date(2026, 10, 18), 3: None})
    {'sizes': [1, 2], 'at': '2026-10-18', '3': None}
    """
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, dict):
        return {str(k): to_json(item) for k, item in v.items()}
    if isinstance(v, (list, tuple)) and not hasattr(v, "__to_json__"):
        return [to_json(item) for item in v]
    return _to_json_scalar(v)


def json_encode(v: Any) -> str:
    """
    Keys are sorted, so same structure always gives same text

    >>> json_encode({'b': [date(2026, 1, 2)], 'a': 1})
    '{"a": 1, "b": ["2026-01-02"]}'
    """
    return json.dumps(v, sort_keys=True, default=_to_json_scalar)


def json_decode(text: str):
    """
    >>> json_decode('{"block_size": 4}')
    {'block_size': 4}
    """
    try:
        return json.loads(text)
    except ValueError:
        reraise_with_msg(f"text={text!r}")


def read_jsonable(fp: IO[bytes], cls: Callable[[Any], Any]) -> Any:
    return cls(json_decode(utf8_decode(fp.read())))


def write_jsonable(fp: IO[bytes], v: Any) -> int:
    return fp.write(utf8_encode(json_encode(to_json(v))))


def load_jsonable(path: Union[Path, str], cls: Callable[[Any], Any]) -> Any:
    with Path(path).open("rb") as fp:
        return read_jsonable(fp, cls)


def dump_jsonable(path: Union[Path, str], v: Any) -> int:
    with Path(path).open("wb") as fp:
        return write_jsonable(fp, v)


CodeEnumT = TypeVar("CodeEnumT", bound="CodeEnum")


class CodeEnum(Stringable, enum.Enum):
    """
    Enum where every member has distinct integer `code` and
    optional doc. Members are found by code or by name.

    >>> class Shape(CodeEnum):
    ...     LEAF = 0
    ...     NODE = 1, "has children"
    ...
    >>> int(Shape.LEAF), Shape.NODE.__doc__
    (0, 'has children')
    >>> Shape(1), Shape("NODE"), Shape.find_by_code(0)
    (<Shape.NODE: 1>, <Shape.NODE: 1>, <Shape.LEAF: 0>)
    """

    def __init__(self, code: int, doc: str = "") -> None:
        self.__doc__ = doc
        self.code = code
        members: Dict[str, Any] = type(self)._member_map_  # type: ignore
        for other in members.values():
            if other.code == code:
                raise TypeError(f"duplicate code: {other} = {code}")

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, int):
            return cls.find_by_code(value)
        return cls[value]

    @classmethod
    def find_by_code(cls: Type[CodeEnumT], code: int) -> CodeEnumT:
        for e in cls:
            if e.code == code:
                return e
        raise KeyError(code)

    def __int__(self):
        return self.code

    def __index__(self):
        return self.code

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"<{type(self).__name__}.{self.name}: {self.code}>"


class LogicRegistry:
    """
    Functions registered under `CodeEnum` codes, so logic could be
    picked by member or by plain code

    >>> class Shape(CodeEnum):
    ...     LEAF = 0
    ...     NODE = 1
    ...
    >>> registry = LogicRegistry()
    >>> @registry.add(Shape.LEAF)
    ... def leaf():
    ...     return 'leaf'
    ...
    >>> registry.get(0)()
    'leaf'
    >>> registry.has(Shape.NODE)
    False
    """

    def __init__(self):
        self.logic_by_code: Dict[int, Callable[..., Any]] = {}

    def add(self, e: Any):
        def decorate(fn):
            assert e.code not in self.logic_by_code
            self.logic_by_code[e.code] = fn
            return fn

        return decorate

    def code(self, e: Any) -> int:
        return e if isinstance(e, int) else e.code

    def get(self, e: Any) -> Callable[..., Any]:
        return self.logic_by_code[self.code(e)]

    def has(self, e: Any) -> bool:
        return self.code(e) in self.logic_by_code
