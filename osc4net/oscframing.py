#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/oscframing.py
# <pep8 compliant>
"""Length-prefix framing of OSC packets for stream based communications.

On a stream (TCP) each OSC packet is preceded by a 4 bytes unsigned
integer giving the packet length. The byte order of this header is
fixed for a connection, little endian by default as used by Bespoke OSC
peers. Big endian (network order) is also supported.

Two functions, :func:`frame_packet` and :func:`unframe_packet` allow to
build a framed packet and to extract packets from data accumulated while
reading a stream. Datagram based communications (UDP) don't use them,
datagram boundaries are packet boundaries.
"""

import struct

# Size of the length field before each packet.
HEADER_SIZE = 4

# Maximum packet size allowed in a header, DOS prevention.
MAX_PACKET_SIZE_WITH_HEADER = 1024 * 1024

BYTEORDER_BIG = "big"
BYTEORDER_LITTLE = "little"
BYTEORDER_DEFAULT = BYTEORDER_LITTLE

_header_formats = {
    BYTEORDER_BIG: ">I",
    BYTEORDER_LITTLE: "<I",
    }


def header_format(byteorder):
    """Return the struct format of the length header for a byte order.

    :param byteorder: "big" or "little"
    :type byteorder: str
    :rtype: str
    """
    try:
        return _header_formats[byteorder]
    except KeyError:
        raise ValueError("OSC framing unknown byte order "\
                         "{!r}".format(byteorder))


def frame_packet(rawoscdata, byteorder=BYTEORDER_DEFAULT):
    """Build a framed packet from raw OSC data.

    .. note:: the packet length must fit in 32 bits, else struct.error
              is raised.

    :param rawoscdata: encoded OSC packet.
    :type rawoscdata: bytes or bytearray
    :param byteorder: byte order of the length header.
    :type byteorder: str
    :return: length header followed by the packet data
    :rtype: bytes
    """
    return struct.pack(header_format(byteorder), len(rawoscdata)) + \
                                                        bytes(rawoscdata)


def unframe_packet(rawdata, byteorder=BYTEORDER_DEFAULT,
                   maxsize=MAX_PACKET_SIZE_WITH_HEADER):
    """Split a buffer into one framed packet and remaining data.

    If the buffer don't contain a complete packet (header and announced
    count of bytes), the packet part returned is None and remaining data
    stay like data.

    Call it in a loop until it returns None to extract all packets
    available in the buffer.

    :param rawdata: buffer where you accumulate read bytes
    :type rawdata: bytearray
    :param byteorder: byte order of the length header.
    :type byteorder: str
    :param maxsize: maximum packet size allowed in a header, 0 to disable
        the check.
    :type maxsize: int
    :return: packet data (or None) and remaining bytes after packet.
    :rtype: (bytes or None, bytearray)
    """
    sformat = header_format(byteorder)
    if len(rawdata) < HEADER_SIZE:
        return None, rawdata

    packetsize = struct.unpack(sformat, bytes(rawdata[:HEADER_SIZE]))[0]
    if maxsize and packetsize > maxsize:
        # Header incorrectly aligned, or someone send too much data.
        raise ValueError("OSC framing packet size indicated in header ({}) "\
                         "is greater than max allowed ({})".format(
                         packetsize, maxsize))

    if HEADER_SIZE + packetsize > len(rawdata):
        return None, rawdata

    packet = bytes(rawdata[HEADER_SIZE:HEADER_SIZE + packetsize])
    remain = rawdata[HEADER_SIZE + packetsize:]
    return packet, remain
