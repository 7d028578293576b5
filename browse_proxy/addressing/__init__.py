from .codec import DecodeError, decode, encode
from .resolver import Target, resolve

__all__ = ["DecodeError", "decode", "encode", "Target", "resolve"]
