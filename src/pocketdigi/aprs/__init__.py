"""APRS protocol stack: KISS, AX.25, TNC2, digipeating, APRS-IS and beacons."""

from pocketdigi.aprs.aprsis_client import (
    APRSISClient,
    APRSISClientError,
    APRSISConfig,
    RetryBackoff,
    aprs_passcode,
    build_range_filter,
)
from pocketdigi.aprs.ax25 import (
    AddressDecodeFailure,
    APRSPacket,
    AX25Address,
    AX25DecodeError,
    AX25EncodeError,
    FrameTooShort,
    NotAUIFrame,
    decode_packet,
    encode_packet,
)
from pocketdigi.aprs.digipeater import DigipeaterEngine
from pocketdigi.aprs.kiss import KissFramer, KISSFrame, encode_kiss_frame, kiss_escape, kiss_unescape
from pocketdigi.aprs.kiss_client import KISSClient, KISSClientConfig, KISSClientError
from pocketdigi.aprs.maidenhead import GridSyntaxError, grid_to_latlon, parse_grid
from pocketdigi.aprs.tnc2 import MalformedTnc2Line, format_tnc2, parse_tnc2

__all__ = [
    "APRSISClient",
    "APRSISClientError",
    "APRSISConfig",
    "RetryBackoff",
    "aprs_passcode",
    "build_range_filter",
    "AddressDecodeFailure",
    "APRSPacket",
    "AX25Address",
    "AX25DecodeError",
    "AX25EncodeError",
    "FrameTooShort",
    "NotAUIFrame",
    "decode_packet",
    "encode_packet",
    "DigipeaterEngine",
    "KissFramer",
    "KISSFrame",
    "encode_kiss_frame",
    "kiss_escape",
    "kiss_unescape",
    "KISSClient",
    "KISSClientConfig",
    "KISSClientError",
    "GridSyntaxError",
    "grid_to_latlon",
    "parse_grid",
    "MalformedTnc2Line",
    "format_tnc2",
    "parse_tnc2",
]
