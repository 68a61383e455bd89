"""Response frame decoding."""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import ProtocolIOError
from .commands import PS_HEADER_SIZE, decode_words, words_to_uint32


@dataclass
class PSValue:
    """The value of one PS key as a sequence of 16-bit words."""

    key: int
    words: tuple[int, ...]

    def __post_init__(self) -> None:
        self.words = tuple(self.words)

    @property
    def length(self) -> int:
        return len(self.words)

    @property
    def scalar16(self) -> int:
        if self.length != 1:
            raise ValueError(f"PS key 0x{self.key:04x} is not a 16-bit value")
        return self.words[0]

    @property
    def scalar32(self) -> int:
        if self.length != 2:
            raise ValueError(f"PS key 0x{self.key:04x} is not a 32-bit value")
        return words_to_uint32(*self.words)

    @classmethod
    def from_bytes(cls, key: int, data: bytes) -> PSValue:
        return cls(key=key, words=decode_words(data))

    def to_bytes(self) -> bytes:
        """Return the value's byte image as carried on the wire."""
        return b"".join(word.to_bytes(2, "little") for word in self.words)

    def __repr__(self) -> str:
        words = " ".join(f"{word:04x}" for word in self.words)
        return f"PSValue(key=0x{self.key:04X}, words=[{words}])"


@dataclass
class CryptKeyLength:
    """Parsed CRYPT_KEY_LENGTH response."""

    handle: int
    length: int

    @property
    def bits(self) -> int:
        return self.length * 8


def _require(frame: bytes, size: int) -> None:
    if len(frame) < size:
        raise ProtocolIOError(
            f"Response frame too short: {len(frame)} bytes, need {size}"
        )


def parse_word(frame: bytes, offset: int = 0) -> int:
    """Decode the little-endian word at *offset*."""
    _require(frame, offset + 2)
    return frame[offset] | (frame[offset + 1] << 8)


def parse_ps_size(frame: bytes) -> int:
    """Return the key length in words reported by a PS_SIZE response."""
    return parse_word(frame, 2)


def parse_ps_value(key: int, frame: bytes, length: int) -> PSValue:
    """Decode the payload words of a PS read response."""
    end = PS_HEADER_SIZE + length * 2
    _require(frame, end)
    return PSValue(key=key, words=decode_words(frame[PS_HEADER_SIZE:end]))


def parse_ps_next(frame: bytes) -> int:
    """Return the next key from a PS_NEXT response; 0 ends enumeration."""
    return parse_word(frame, 4)


def parse_memory_type(frame: bytes) -> int:
    return parse_word(frame, 2)


def parse_next_builddef(frame: bytes) -> int:
    return parse_word(frame, 2)


def parse_crypt_key_length(frame: bytes) -> CryptKeyLength:
    return CryptKeyLength(handle=parse_word(frame, 0), length=parse_word(frame, 2))


def parse_clock(frame: bytes) -> int:
    """Decode the 32-bit Bluetooth clock (high word first, like PS values)."""
    return words_to_uint32(parse_word(frame, 0), parse_word(frame, 2))


def parse_build_name(frame: bytes) -> str:
    """Decode the build name: one ASCII character per word from byte 4."""
    name = bytes(frame[4::2][:64])
    return name.split(b"\x00")[0].decode("ascii", errors="replace")
