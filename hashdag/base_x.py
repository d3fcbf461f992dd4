from typing import Dict, Union

alphabets = {
    16: "0123456789abcdef",
    32: "0123456789abcdefghijklmnopqrstuv",
    36: "0123456789abcdefghijklmnopqrstuvwxyz",
    58: "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz",
    62: "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz",
}


class BaseX:
    """
    Encode bytes into text using alphabet of `base` characters.
    Leading zero bytes are preserved as leading zero characters.

    >>> b62 = BaseX(alphabets[62])
    >>> b62.encode(b'\\x00\\x01')
    '01'
    >>> b62.decode('01')
    b'\\x00\\x01'
    >>> b62.encode_int(61)
    'z'
    >>> b62.decode_int('10')
    62
    >>> b62.decode('0-')
    Traceback (most recent call last):
    ...
    ValueError: Not in alphabet: '-'
    """

    alphabet: str
    base: int
    index: Dict[str, int]

    def __init__(self, alphabet: str):
        self.alphabet = alphabet
        self.base = len(alphabet)
        self.index = {c: i for i, c in enumerate(alphabet)}

    def encode_int(self, i: int, default_one: bool = True) -> str:
        if not i and default_one:
            return self.alphabet[0]
        chars = []
        while i:
            i, idx = divmod(i, self.base)
            chars.append(self.alphabet[idx])
        return "".join(reversed(chars))

    def decode_int(self, s: Union[str, bytes]) -> int:
        if isinstance(s, bytes):
            s = s.decode("ascii")
        i = 0
        for c in s:
            try:
                i = i * self.base + self.index[c]
            except KeyError:
                raise ValueError(f"Not in alphabet: {c!r}") from None
        return i

    def encode(self, v: bytes) -> str:
        if not isinstance(v, bytes):
            raise TypeError(f"expected bytes not {type(v)}")
        stripped = v.lstrip(b"\0")
        pad = len(v) - len(stripped)
        if not stripped:
            return self.alphabet[0] * pad
        return self.alphabet[0] * pad + self.encode_int(
            int.from_bytes(stripped, "big"), default_one=False
        )

    def decode(self, s: Union[str, bytes]) -> bytes:
        if isinstance(s, bytes):
            s = s.decode("ascii")
        stripped = s.lstrip(self.alphabet[0])
        pad = len(s) - len(stripped)
        i = self.decode_int(stripped)
        body = i.to_bytes((i.bit_length() + 7) // 8, "big") if i else b""
        return b"\0" * pad + body


_cache: Dict[int, BaseX] = {}


def base_x(base: int) -> BaseX:
    if base not in _cache:
        _cache[base] = BaseX(alphabets[base])
    return _cache[base]
