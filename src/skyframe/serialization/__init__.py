"""Byte serialization of images."""

from skyframe.serialization.codec import FORMAT_VERSION, deserialize, serialize

__all__ = ["FORMAT_VERSION", "deserialize", "serialize"]
