#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# File: osc4net/oscbuildparse.py
# <pep8 compliant>
"""Building (encoding) and parsing (decoding) of OSC packets.

See http://opensoundcontrol.org/ for complete OSC documentation.

Users deal with standard Python values and a few named tuples:
:class:`OSCMessage` and :class:`OSCBundle` are the two kinds of packets,
:func:`encode_packet` and :func:`decode_packet` translate them from/to
raw bytes.

Supported atomic data types
---------------------------

Required OSC1.1 ``ifsbTFNIt`` type tag chars, plus optional OSC1.0
``hdScrm[]``.

===================  ====================================
        What            Type tag and corresponding data
===================  ====================================
value None           ``N`` without data
value True           ``T`` without data
value False          ``F`` without data
type int             ``i`` with int32
type float           ``f`` with float32
type str             ``s`` with string
type bytes           ``b`` with raw binary
type bytearray       ``b`` with raw binary
type OSCrgba         ``r`` with four byte values
type OSCmidi         ``m`` with four byte values
type OSCbang         ``I`` without data
type OSCtimetag      ``t`` with two uint32
list or tuple        ``[...]`` array of values
===================  ====================================
"""

from collections import namedtuple
import struct
import time

__all__ = [
    # Main functions for users.
    "encode_packet",
    "decode_packet",
    # Top-level structures for OSC encoding/decoding.
    "OSCBundle",
    "OSCMessage",
    # Second level structures for OSC messages arguments.
    "OSCtimetag",
    "OSCmidi",
    "OSCrgba",
    "OSCbang",
    # Exceptions classes.
    "OSCError",
    "OSCMalformedPacketError",
    "OSCInvalidDataError",
    "OSCUnknownTypetagError",
    # Top level useful constants.
    "OSC_IMMEDIATELY",
    "OSC_IMPULSE",
    "OSC_BANG",
    "MAX_BUNDLE_DEPTH",
    # Timetag conversion functions.
    "float2timetag",
    "timetag2float",
    "timetag2unixtime",
    "unixtime2timetag",
    ]

# Internal constants for type tags.
OSCTYPE_STRING = ord('s')
OSCTYPE_STRINGALT = ord('S')
OSCTYPE_INT32 = ord('i')
OSCTYPE_FLOAT32 = ord('f')
OSCTYPE_BLOB = ord('b')
OSCTYPE_INT64 = ord('h')
OSCTYPE_TIMETAG = ord('t')
OSCTYPE_FLOAT64 = ord('d')
OSCTYPE_CHAR = ord('c')
OSCTYPE_RGBA = ord('r')
OSCTYPE_MIDI = ord('m')
OSCTYPE_TRUE = ord('T')
OSCTYPE_FALSE = ord('F')
OSCTYPE_NIL = ord('N')
OSCTYPE_IMPULSE = ord('I')
OSCTYPE_ARRAYBEGIN = ord('[')
OSCTYPE_ARRAYEND = ord(']')

BEGIN_ADDRPATTERN = b'/'
BEGIN_TYPETAG = b','
BEGIN_BUNDLE = b'#bundle\000'

# Bundles nested deeper are refused when decoding.
MAX_BUNDLE_DEPTH = 64


class OSCMessage(namedtuple('OSCMessage', 'addrpattern typetags arguments')):
    """
    :code:`OSCMessage(addrpattern, typetags, arguments)` → named tuple

    :ivar string addrpattern: a string beginning by ``/``, used to select
        the messages a client is interested in.
    :ivar string typetags: a string beginning by ``,`` describing how to
        encode values, or None to guess them from Python types.
    :ivar list|tuple arguments: a list or tuple of values to encode.
    """


class OSCBundle(namedtuple('OSCBundle', 'timetag elements')):
    """
    :code:`OSCBundle(timetag, elements)` → named tuple

    :ivar timetag: a time representation using two int values, sec:frac
    :ivar list|tuple elements: a list or tuple of mixed OSCMessage /
        OSCBundle values
    """


OSCrgba = namedtuple('OSCrgba', 'red green blue alpha')
OSCmidi = namedtuple('OSCmidi', 'portid status data1 data2')
OSCbang = namedtuple('OSCbang', '')
OSC_BANG = OSCbang()
OSC_IMPULSE = OSCbang()


class OSCtimetag(namedtuple('OSCtimetag', 'sec frac')):
    """
    OSCtimetag(sec, frac) → named tuple

    64 bit fixed point number of seconds relative to 1/1/1900, same as
    Internet NTP timestamps.

    :attribute int sec: seconds since midnight on January 1, 1900.
    :attribute int frac: fractional parts of a second.
    """
    def __add__(self, other):
        return float2timetag(timetag2float(self) + other)

    def __sub__(self, other):
        return float2timetag(timetag2float(self) - other)

# Seconds between 1/1/1900 (NTP base time) and 1/1/1970 (Unix epoch).
OSCTIME_1_JAN1970 = 2208988800

# 63 zero bits followed by a one: "immediately".
OSC_IMMEDIATELY = OSCtimetag(0x0, 0x01)

padding = {}
for i in range(0, 5):
    padding[i] = b'\000' * i


#==================== HIERARCHY OF OSC ERRORS =============================
class OSCError(Exception):
    """Parent class for OSC errors.
    """
    pass


class OSCMalformedPacketError(OSCError):
    """Raw data does not decode as a valid OSC packet.
    """
    pass


class OSCUnknownTypetagError(OSCError):
    """Found an invalid (unknown) type tag when encoding.
    """
    pass


class OSCInvalidDataError(OSCError):
    """Problem detected in OSC data encoding.
    """
    pass


#============ FUNCTIONS FOR (NOT ENOUGH BASIC) BASE TYPES =================
def _decode_str(rawoscdata):
    """
    :param rawoscdata: raw OSC data to decode
    :type rawoscdata: memoryview
    :return: count of decoded bytes, decoded content
    :rtype: int, str
    """
    # Search the terminator 4 bytes at a time, the string end is always
    # in its last aligned chunk.
    size = len(rawoscdata)
    zeroindex = -1
    for pos in range(0, size, 4):
        chunkindex = bytes(rawoscdata[pos:pos + 4]).find(b'\000')
        if chunkindex >= 0:
            zeroindex = pos + chunkindex
            break
    if zeroindex < 0:
        raise OSCMalformedPacketError("OSC non terminated string in raw "\
                            "data for {}".format(_dumpmv(rawoscdata)))
    # Zero end-of-string plus 0 to 3 padding bytes.
    byteslength = (zeroindex // 4) * 4 + 4
    if byteslength > len(rawoscdata):
        raise OSCMalformedPacketError("OSC invalid align/length for string "\
                            "in raw data for {}".format(_dumpmv(rawoscdata)))
    val = bytes(rawoscdata[:zeroindex]).decode('ascii', 'replace')
    return byteslength, val


def _encode_str(val, tobuffer):
    """
    :param tobuffer: bytes collection to collect built result.
    :type tobuffer: bytearray
    :return: count of bytes produced.
    :rtype: int
    """
    if isinstance(val, (bytes, bytearray)):
        val = bytes(val)
        if val.endswith(b'\000'):
            val = val[:-1]
    else:
        val = str(val).encode('ascii', 'replace')
    if b'\000' in val:
        raise OSCInvalidDataError("OSC string cannot contain zero byte")

    # Always at least one zero terminator.
    padbytes = padding[4 - len(val) % 4]
    tobuffer.extend(val)
    tobuffer.extend(padbytes)
    return len(val) + len(padbytes)


def _decode_blob(rawoscdata):
    count, length = _decode_osc_type(rawoscdata, OSCTYPE_INT32)
    if length < 0:
        raise OSCMalformedPacketError("OSC negative length for blob in "\
                        "raw data for {}".format(_dumpmv(rawoscdata)))
    totalsize = 4 + length + (4 - length % 4) % 4
    if totalsize > len(rawoscdata):
        raise OSCMalformedPacketError("OSC invalid length for blob in "\
                        "raw data for {}".format(_dumpmv(rawoscdata)))
    # Detach from the reception buffer.
    val = bytes(rawoscdata[4:4 + length])
    return totalsize, val


def _encode_blob(val, tobuffer):
    length = len(val)
    padbytes = (4 - length % 4) % 4
    tobuffer.extend(struct.pack(">i", length))
    tobuffer.extend(val)
    tobuffer.extend(padding[padbytes])
    return 4 + length + padbytes


def _decode_char(rawoscdata):
    if len(rawoscdata) < 4:
        raise OSCMalformedPacketError("OSC truncated char in raw data")
    val = bytes(rawoscdata[3:4]).decode('ascii', 'replace')
    return 4, val


def _encode_char(val, tobuffer):
    if isinstance(val, (bytes, bytearray)):
        if len(val) != 1:
            raise OSCInvalidDataError("OSC char must use only one byte")
        code = val[0]
    elif isinstance(val, int):
        code = val
    else:
        encoded = str(val).encode('ascii', 'replace')
        if len(encoded) != 1:
            raise OSCInvalidDataError("OSC ascii char must use only one byte")
        code = encoded[0]
    if not (0 <= code <= 255):
        raise OSCInvalidDataError("OSC value of char must fill in one byte")
    # char is sent as 32 bits, value in the low byte.
    tobuffer.extend(padding[3])
    tobuffer.append(code)
    return 4


#======================= FUNCTIONS FOR BASE TYPES ==========================

# References for encoding/decoding data of one type tag.
OSCTypeRef = namedtuple('OSCTypeRef', 'typetag typename pytype byteslen '\
                                     'defvalue decode encode')

NODEFAULT = "nodefault"     # To be able to have None as real default value.
osctypes_refs = {
    OSCTYPE_INT32:
        OSCTypeRef('i', "int32", int, 4, NODEFAULT, ">i", ">i"),
    OSCTYPE_TIMETAG:
        OSCTypeRef('t', "timetag", OSCtimetag, 8, NODEFAULT, '>II', '>II'),
    OSCTYPE_FLOAT32:
        OSCTypeRef('f', "float32", float, 4, NODEFAULT, ">f", ">f"),
    OSCTYPE_STRING:
        OSCTypeRef('s', "string", str, None, NODEFAULT, _decode_str,
                                                        _encode_str),
    OSCTYPE_STRINGALT:
        OSCTypeRef('S', "symbol", str, None, NODEFAULT, _decode_str,
                                                        _encode_str),
    OSCTYPE_BLOB:
        OSCTypeRef('b', "blob", bytes, None, NODEFAULT, _decode_blob,
                                                        _encode_blob),
    OSCTYPE_INT64:
        OSCTypeRef('h', "int64", int, 8, NODEFAULT, ">q", ">q"),
    OSCTYPE_FLOAT64:
        OSCTypeRef('d', "float64", float, 8, NODEFAULT, ">d", ">d"),
    OSCTYPE_CHAR:
        OSCTypeRef('c', "char", str, None, NODEFAULT, _decode_char,
                                                      _encode_char),
    OSCTYPE_RGBA:
        OSCTypeRef('r', "rgba", OSCrgba, 4, NODEFAULT, "BBBB", "BBBB"),
    OSCTYPE_MIDI:
        OSCTypeRef('m', "midi", OSCmidi, 4, NODEFAULT, "BBBB", "BBBB"),
    OSCTYPE_TRUE:
        OSCTypeRef('T', "booltrue", bool, 0, True, None, None),
    OSCTYPE_FALSE:
        OSCTypeRef('F', "boolfalse", bool, 0, False, None, None),
    OSCTYPE_NIL:
        OSCTypeRef('N', "nil", None, 0, None, None, None),
    OSCTYPE_IMPULSE:
        OSCTypeRef('I', "impulse", OSCbang, 0, OSC_IMPULSE, None, None),
    # Array ('[' and ']') is not processed via this table.
    }

# Struct decoded values building a named tuple from all fields.
_MULTIFIELDS_TYPES = (OSCrgba, OSCmidi, OSCtimetag)


def _decode_osc_type(rawoscdata, typetag):
    """Decode an OSC stream into a single base value from its type tag.

    .. Note:: the count of consumed bytes may be zero for values directly
              encoded in the type tag.

    :param rawoscdata: sequences of bytes containing OSC data,
    :type rawoscdata: memoryview
    :param typetag: value of the tag to identify data type.
    :type typetag: int (ord(char) if you have a char)
    :return: count of consumed bytes, decoded value
    """
    try:
        typerefs = osctypes_refs[typetag]
    except KeyError:
        raise OSCMalformedPacketError("OSC unknown type tag {!r} when "\
                                "decoding".format(chr(typetag)))

    if callable(typerefs.decode):
        return typerefs.decode(rawoscdata)

    if isinstance(typerefs.decode, str):
        if len(rawoscdata) < typerefs.byteslen:
            raise OSCMalformedPacketError("OSC truncated {} value in raw "\
                    "data for {}".format(typerefs.typename,
                                         _dumpmv(rawoscdata)))
        val = struct.unpack(typerefs.decode, rawoscdata[:typerefs.byteslen])
        if typerefs.pytype in _MULTIFIELDS_TYPES:
            val = typerefs.pytype(*val)
        else:
            val = typerefs.pytype(val[0])
    else:
        # Values directly inside type tags (true/false, nil, impulse).
        val = typerefs.defvalue
    return typerefs.byteslen, val


def _encode_osc_type(val, typetag, tobuffer):
    """Encode a single base value as OSC data at the end of a buffer.

    :param val: value to encode.
    :param typetag: value of the tag to identify data type.
    :type typetag: int (ord(char) if you have a char)
    :param tobuffer: bytes collection to collect built result.
    :type tobuffer: bytearray
    :return: count of bytes produced.
    :rtype: int
    """
    try:
        typerefs = osctypes_refs[typetag]
    except KeyError:
        raise OSCUnknownTypetagError("OSC unknown type tag {!r} when "\
                                "encoding".format(chr(typetag)))

    if callable(typerefs.encode):
        return typerefs.encode(val, tobuffer)

    if isinstance(typerefs.encode, str):
        try:
            if typerefs.pytype in _MULTIFIELDS_TYPES:
                rawoscdata = struct.pack(typerefs.encode, *val)
            else:
                rawoscdata = struct.pack(typerefs.encode,
                                         typerefs.pytype(val))
        except (struct.error, TypeError, ValueError) as e:
            raise OSCInvalidDataError("OSC cannot encode {!r} as "\
                        "{}: {}".format(val, typerefs.typename, e))
    else:
        rawoscdata = b''
    tobuffer.extend(rawoscdata)
    return len(rawoscdata)


#==================== FUNCTIONS FOR CONSTRUCTED TYPES =======================

def _decode_bundle(rawoscdata, depth):
    """Decode an OSC bundle raw data into an OSCBundle object.

    :param rawoscdata: sequences of bytes containing OSC data,
    :type rawoscdata: memoryview
    :param depth: nesting level of this bundle, 1 for top-level.
    :type depth: int
    :return: count of consumed bytes, decoded value
    :rtype: int, OSCBundle
    """
    if depth > MAX_BUNDLE_DEPTH:
        raise OSCMalformedPacketError("OSC bundles nested deeper than "\
                                      "{}".format(MAX_BUNDLE_DEPTH))
    totalcount = 0
    count, bundlehead = _decode_osc_type(rawoscdata, OSCTYPE_STRING)
    if bundlehead != "#bundle":
        raise OSCMalformedPacketError("OSC invalid bundle header in "\
                        "message: {}".format(_dumpmv(rawoscdata)))
    totalcount += count
    rawoscdata = rawoscdata[count:]

    count, timetag = _decode_osc_type(rawoscdata, OSCTYPE_TIMETAG)
    totalcount += count
    rawoscdata = rawoscdata[count:]

    # Each element is an int32 size followed by a message or a bundle.
    elements = []
    while len(rawoscdata):
        count, size = _decode_osc_type(rawoscdata, OSCTYPE_INT32)
        if size <= 0 or size % 4 != 0 or size + count > len(rawoscdata):
            raise OSCMalformedPacketError("OSC invalid bundle element {} "\
                    "size {} for remaining {} bytes: {}".format(
                    len(elements) + 1, size, len(rawoscdata) - count,
                    _dumpmv(rawoscdata)))
        totalcount += count
        rawoscdata = rawoscdata[count:]

        count, elem = _decode_element(rawoscdata[:size], depth)
        elements.append(elem)
        totalcount += size
        rawoscdata = rawoscdata[size:]

    return totalcount, OSCBundle(timetag, tuple(elements))


def _encode_bundle(bundle, tobuffer):
    """Encode a bundle and its elements (recursively) at end of tobuffer.

    :return: count of bytes produced.
    :rtype: int
    """
    totalcount = _encode_osc_type(BEGIN_BUNDLE, OSCTYPE_STRING, tobuffer)
    totalcount += _encode_osc_type(bundle.timetag, OSCTYPE_TIMETAG, tobuffer)
    for elem in bundle.elements:
        # Preserve room for element size.
        elemsizeindex = len(tobuffer)
        totalcount += _encode_osc_type(0, OSCTYPE_INT32, tobuffer)
        if isinstance(elem, OSCBundle):
            elemsize = _encode_bundle(elem, tobuffer)
        elif isinstance(elem, OSCMessage):
            elemsize = _encode_message(elem, tobuffer)
        else:
            raise OSCInvalidDataError("OSC element {!r} is not OSCBundle or "\
                    "OSCMessage.".format(elem.__class__.__name__))
        tobuffer[elemsizeindex:elemsizeindex + 4] = struct.pack(">i",
                                                                elemsize)
        totalcount += elemsize
    return totalcount


def _decode_message(rawoscdata):
    """Decode a raw OSC message into an OSCMessage named tuple.

    :param rawoscdata: raw OSC data to decode
    :type rawoscdata: memoryview
    :return: count of decoded bytes, decoded content
    :rtype: int, OSCMessage
    """
    totalcount = 0
    count, addrpattern = _decode_osc_type(rawoscdata, OSCTYPE_STRING)
    if len(addrpattern) < 1 or not addrpattern.startswith('/'):
        raise OSCMalformedPacketError("OSC invalid address pattern "\
                                      "{!r}".format(addrpattern))
    totalcount += count
    rawoscdata = rawoscdata[count:]

    if not len(rawoscdata):
        # Older implementations may omit the type tags string.
        typetags = ","
    elif bytes(rawoscdata[:1]) != BEGIN_TYPETAG:
        raise OSCMalformedPacketError("OSC invalid type tags, don't "\
                "start by ,: {}".format(_dumpmv(rawoscdata)))
    else:
        count, typetags = _decode_osc_type(rawoscdata, OSCTYPE_STRING)
        totalcount += count
        rawoscdata = rawoscdata[count:]

    typetagsiter = iter(typetags)
    next(typetagsiter)     # pass the heading ','.
    count, arguments = _decode_arguments(typetagsiter, rawoscdata, False)
    totalcount += count

    return totalcount, OSCMessage(addrpattern, typetags, arguments)


def _encode_message(message, tobuffer):
    """Build OSC representation of a message at end of tobuffer.

    If message typetags is None, it is guessed from arguments Python types.

    :param message: message object to encode.
    :type message: OSCMessage
    :return: count of bytes produced.
    :rtype: int
    """
    addrpattern, typetags, arguments = message
    if not typetags:
        typetags = ',' + _osctypetags4(arguments)

    if not isinstance(addrpattern, str) or not addrpattern.startswith('/'):
        raise OSCInvalidDataError("OSC invalid addrpattern beginning: "\
                                    "missing /")
    if not typetags.startswith(','):
        raise OSCInvalidDataError("OSC invalid typetags beginning: "\
                                    "missing ,")

    totalcount = _encode_osc_type(addrpattern, OSCTYPE_STRING, tobuffer)
    totalcount += _encode_osc_type(typetags, OSCTYPE_STRING, tobuffer)
    typetagsiter = iter(typetags)
    next(typetagsiter)     # pass the heading ','.
    totalcount += _encode_arguments(typetagsiter, arguments, tobuffer)
    return totalcount


# Automatic type tags for Python types (values True/False/None apart).
osctypes_encoderefs = {
    int: OSCTYPE_INT32,
    float: OSCTYPE_FLOAT32,
    str: OSCTYPE_STRING,
    bytes: OSCTYPE_BLOB,
    bytearray: OSCTYPE_BLOB,
    OSCrgba: OSCTYPE_RGBA,
    OSCmidi: OSCTYPE_MIDI,
    OSCtimetag: OSCTYPE_TIMETAG,
    OSCbang: OSCTYPE_IMPULSE,
    }


def _osctypetags4(arguments):
    """Build OSC type tags string for list/tuple of Python values.

    :return: type tags for the arguments, without heading ',' char.
    :rtype: str
    """
    typetags = []
    for x in arguments:
        if type(x) is bool:
            # Checked before the mapping as True == 1.
            typetags.append(chr(OSCTYPE_TRUE if x else OSCTYPE_FALSE))
        elif x is None:
            typetags.append(chr(OSCTYPE_NIL))
        elif type(x) in osctypes_encoderefs:
            typetags.append(chr(osctypes_encoderefs[type(x)]))
        elif isinstance(x, (tuple, list)):
            typetags.append('[')
            typetags.append(_osctypetags4(x))
            typetags.append(']')
        else:
            raise OSCInvalidDataError("OSC cannot detect type from Python "\
                            "value {!r}".format(x))
    return ''.join(typetags)


def _encode_arguments(typetagsiter, arguments, tobuffer):
    """Encode a list/tuple of Python values following type tags.

    The heading ',' char of typetags must be already passed by the iterator.
    The iterator is shared with recursive calls for arrays.
    """
    index = 0
    totalcount = 0
    for tag in typetagsiter:
        if tag == ']':
            break
        if index >= len(arguments):
            raise OSCInvalidDataError("OSC typetags don't correspond to "\
                                        "total count of arguments")
        if tag == '[':
            totalcount += _encode_arguments(typetagsiter, arguments[index],
                                            tobuffer)
        else:
            totalcount += _encode_osc_type(arguments[index], ord(tag),
                                           tobuffer)
        index += 1
    if len(arguments) != index:
        raise OSCInvalidDataError("OSC typetags don't correspond to "\
                                    "total count of arguments")
    return totalcount


def _decode_arguments(typetagsiter, rawoscdata, inarray):
    """Decode a list/tuple of Python values following type tags.

    :param inarray: flag set for recursive calls decoding an array
    :type inarray: bool
    :return: count of consumed bytes, tuple of values
    """
    totalcount = 0
    arguments = []
    for tag in typetagsiter:
        tagnum = ord(tag)
        if tagnum in osctypes_refs:
            count, arg = _decode_osc_type(rawoscdata, tagnum)
        elif tagnum == OSCTYPE_ARRAYBEGIN:
            count, arg = _decode_arguments(typetagsiter, rawoscdata, True)
        elif tagnum == OSCTYPE_ARRAYEND and inarray:
            return totalcount, tuple(arguments)
        else:
            raise OSCMalformedPacketError("OSC unknown type tag "\
                                         "{!r}".format(tag))
        totalcount += count
        rawoscdata = rawoscdata[count:]
        arguments.append(arg)

    if inarray:
        raise OSCMalformedPacketError("OSC unterminated array in type tags")
    return totalcount, tuple(arguments)


def _decode_element(rawoscdata, depth):
    """Decode bundle element / packet content.

    :param rawoscdata: raw OSC data to decode
    :type rawoscdata: memoryview
    :param depth: nesting level of the bundle containing the element,
        0 for a top-level packet.
    :type depth: int
    :return: count of consumed bytes, OSCBundle or OSCMessage
    """
    if bytes(rawoscdata[:1]) == BEGIN_ADDRPATTERN:
        count, res = _decode_message(rawoscdata)
    elif bytes(rawoscdata[:len(BEGIN_BUNDLE)]) == BEGIN_BUNDLE:
        count, res = _decode_bundle(rawoscdata, depth + 1)
    else:
        raise OSCMalformedPacketError("OSC unknown raw data structure: "\
                            "{}".format(_dumpmv(rawoscdata)))
    if len(rawoscdata) > count:
        raise OSCMalformedPacketError("OSC remaining data after raw "\
                            "structures: {}".format(_dumpmv(rawoscdata)))
    return count, res


def decode_packet(rawoscdata):
    """Build an OSCMessage or OSCBundle from raw OSC packet data.

    Only :class:`OSCMalformedPacketError` is raised for invalid data,
    whatever the detected problem.

    :param rawoscdata: content of packet data to decode.
    :type rawoscdata: bytes or bytearray or memoryview
    :return: decoded packet
    :rtype: OSCMessage or OSCBundle
    """
    rawoscdata = memoryview(rawoscdata).cast('B')

    size = len(rawoscdata)
    if size == 0 or size % 4 != 0:
        raise OSCMalformedPacketError("OSC packet must be a multiple of 4 "\
                        "bytes length: {}".format(_dumpmv(rawoscdata)))
    try:
        count, packet = _decode_element(rawoscdata, 0)
    except (struct.error, ValueError, IndexError, RecursionError) as e:
        raise OSCMalformedPacketError("OSC invalid raw packet: "\
                            "{}".format(e)) from e
    return packet


def encode_packet(content):
    """Build OSC raw packet from an OSCBundle or an OSCMessage.

    :param content: data of packet to encode
    :type content: OSCMessage or OSCBundle
    :return: raw representation of the packet
    :rtype: bytes
    """
    tobuffer = bytearray()
    if isinstance(content, OSCBundle):
        _encode_bundle(content, tobuffer)
    elif isinstance(content, OSCMessage):
        _encode_message(content, tobuffer)
    else:
        raise OSCInvalidDataError("OSC content {!r} is not OSCBundle or "\
                "OSCMessage.".format(content.__class__.__name__))
    return bytes(tobuffer)


#============================== EXTRA TOOLS =================================
def _dumpmv(data, length=20):
    """Return printable version of the beginning of raw data.

    Attached to exceptions raised when decoding.
    """
    data = bytes(data[:length])
    linetext = ["({} first bytes) ".format(len(data))]
    linetext.extend("{:02x} ".format(v) for v in data)
    linetext.append('   ')
    linetext.extend(chr(v) if 32 <= v <= 126 else '.' for v in data)
    return "".join(linetext)


def timetag2float(timetag):
    """Convert a timetag tuple into a float value in seconds from 1/1/1900.
    """
    sec, frac = timetag
    return float(sec) + frac / 2 ** 32


def timetag2unixtime(timetag):
    """Convert a timetag tuple into a float value of seconds from 1/1/1970.
    """
    return timetag2float(timetag) - OSCTIME_1_JAN1970


def float2timetag(ftime):
    """Convert a float value of seconds from 1/1/1900 into a timetag tuple.
    """
    sec = int(ftime)
    frac = int((ftime - sec) * 2 ** 32 + 0.5)
    if frac >= 2 ** 32:
        sec, frac = sec + 1, 0
    return OSCtimetag(sec, frac)


def unixtime2timetag(ftime=None):
    """Convert a float value of seconds from 1/1/1970 into a timetag tuple.

    :param ftime: number of seconds to convert, default to current time.
    :type ftime: float
    """
    if ftime is None:
        ftime = time.time()
    return float2timetag(ftime + OSCTIME_1_JAN1970)
