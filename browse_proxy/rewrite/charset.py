import codecs
from typing import Optional

DEFAULT_ENCODING = "utf-8"


def normalize_encoding(name: Optional[str]) -> str:
    """Python codec name for a declared charset, UTF-8 when unknown."""
    if not name:
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(name.strip().strip("\"'")).name
    except LookupError:
        return DEFAULT_ENCODING


# surrogateescape keeps bytes that do not decode intact through a round trip
def decode_body(body: bytes, encoding: str = DEFAULT_ENCODING) -> str:
    return body.decode(normalize_encoding(encoding), errors="surrogateescape")


def encode_body(text: str, encoding: str = DEFAULT_ENCODING) -> bytes:
    return text.encode(normalize_encoding(encoding), errors="surrogateescape")
