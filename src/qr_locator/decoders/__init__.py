from .base import Decoder
from .zxingcpp_decoder import ZxingCppDecoder

__all__ = ["Decoder", "ZxingCppDecoder"]
