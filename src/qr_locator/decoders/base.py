from __future__ import annotations

from abc import ABC, abstractmethod

from ..contracts import DecodeNotFound, DecodeSuccess, InversionMode


class Decoder(ABC):
    """
    Capability interface for the external QR decode primitive.

    Decoders must:
    - Accept raw RGBA8 bytes plus width/height
    - Return corners in the coordinate space of the input buffer
    - Return DecodeNotFound when no symbol is present; anything else may raise
    - Keep no state between calls

    `reentrant = False` makes the adapter serialize calls.
    """

    reentrant: bool = True

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def backend_version(self) -> str | None:
        return None

    @abstractmethod
    def decode(
        self,
        *,
        pixels: bytes,
        width: int,
        height: int,
        mode: InversionMode,
    ) -> DecodeSuccess | DecodeNotFound:
        raise NotImplementedError
