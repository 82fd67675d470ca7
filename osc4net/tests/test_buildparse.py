#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# File: osc4net/tests/test_buildparse.py
# <pep8 compliant>

import struct

import pytest

from osc4net.oscbuildparse import *
from osc4net.oscbuildparse import OSCTIME_1_JAN1970, _decode_str

# Examples from OSC documentation at http://opensoundcontrol.org/
RAW_FREQUENCY = bytes([
    0x2f, 0x6f, 0x73, 0x63,    # 2f (/)  6f (o)  73 (s)  63 (c)
    0x69, 0x6c, 0x6c, 0x61,    # 69 (i)  6c (l)  6c (l)  61 (a)
    0x74, 0x6f, 0x72, 0x2f,    # 74 (t)  6f (o)  72 (r)  2f (/)
    0x34, 0x2f, 0x66, 0x72,    # 34 (4)  2f (/)  66 (f)  72 (r)
    0x65, 0x71, 0x75, 0x65,    # 65 (e)  71 (q)  75 (u)  65 (e)
    0x6e, 0x63, 0x79, 0x00,    # 6e (n)  63 (c)  79 (y)  0 ()
    0x2c, 0x66, 0x00, 0x00,    # 2c (,)  66 (f)  0 ()    0 ()
    0x43, 0xdc, 0x00, 0x00,    # 43 (C)  dc (Ü)  0 ()    0 ()
    ])

RAW_FOO = bytes([
    0x2f, 0x66, 0x6f, 0x6f,    # 2f (/)  66 (f)  6f (o)  6f (o)
    0x00, 0x00, 0x00, 0x00,    # 0 ()    0 ()    0 ()    0 ()
    0x2c, 0x69, 0x69, 0x73,    # 2c (,)  69 (i)  69 (i)  73 (s)
    0x66, 0x66, 0x00, 0x00,    # 66 (f)  66 (f)  0 ()    0 ()
    0x00, 0x00, 0x03, 0xe8,    # 0 ()    0 ()    3 ()    e8 (è)
    0xff, 0xff, 0xff, 0xff,    # ff (ÿ)  ff (ÿ)  ff (ÿ)  ff (ÿ)
    0x68, 0x65, 0x6c, 0x6c,    # 68 (h)  65 (e)  6c (l)  6c (l)
    0x6f, 0x00, 0x00, 0x00,    # 6f (o)  0 ()    0 ()    0 ()
    0x3f, 0x9d, 0xf3, 0xb6,    # 3f (?)  9d ()   f3 (ó)  b6 (¶)
    0x40, 0xb5, 0xb2, 0x2d,    # 40 (@)  b5 (µ)  b2 (”)  2d (-)
    ])


def nested_bundles(depth):
    packet = OSCMessage("/deep", ",i", (depth,))
    for _ in range(depth):
        packet = OSCBundle(OSC_IMMEDIATELY, (packet,))
    return packet


def test_decode_documentation_frequency():
    msg = decode_packet(RAW_FREQUENCY)
    assert msg == OSCMessage("/oscillator/4/frequency", ",f", (440.0,))
    assert encode_packet(OSCMessage("/oscillator/4/frequency", ",f",
                                    (440.0,))) == RAW_FREQUENCY


def test_decode_documentation_several_arguments():
    msg = decode_packet(RAW_FOO)
    assert msg.addrpattern == "/foo"
    assert msg.typetags == ",iisff"
    assert msg.arguments[:3] == (1000, -1, "hello")
    assert msg.arguments[3] == pytest.approx(1.234, rel=1e-6)
    assert msg.arguments[4] == pytest.approx(5.678, rel=1e-6)
    assert encode_packet(msg) == RAW_FOO


def test_synth_frequency_round_trip():
    raw = encode_packet(OSCMessage("/synth/freq", None, [440.0]))
    msg = decode_packet(raw)
    assert msg.addrpattern == "/synth/freq"
    assert msg.typetags == ",f"
    assert msg.arguments == (440.0,)


def test_automatic_typetags():
    args = [1, 2.5, "text", b"\x01\x02", True, False, None, OSC_IMPULSE,
            OSCrgba(1, 2, 3, 4), OSCmidi(0, 0x90, 60, 127), [3, "x"]]
    msg = decode_packet(encode_packet(OSCMessage("/all", None, args)))
    assert msg.typetags == ",ifsbTFNIrm[is]"
    assert msg.arguments == (1, 2.5, "text", b"\x01\x02", True, False, None,
                             OSC_IMPULSE, OSCrgba(1, 2, 3, 4),
                             OSCmidi(0, 0x90, 60, 127), (3, "x"))


def test_explicit_typetags():
    args = [2 ** 40, 0.1, "sym", "c", OSCtimetag(3, 4)]
    msg = decode_packet(encode_packet(OSCMessage("/explicit", ",hdSct",
                                                 args)))
    assert msg.arguments == (2 ** 40, 0.1, "sym", "c", OSCtimetag(3, 4))


def test_char_uses_low_byte():
    raw = encode_packet(OSCMessage("/c", ",c", ["A"]))
    assert raw[-4:] == b"\x00\x00\x00A"


@pytest.mark.parametrize("size", [0, 1, 3, 4, 5, 8])
def test_blob_padding(size):
    blob = bytes(range(size))
    raw = encode_packet(OSCMessage("/b", ",b", [blob]))
    padded = (size + 3) // 4 * 4
    # "/b" and ",b" strings, blob length field, padded blob.
    assert len(raw) == 4 + 4 + 4 + padded
    assert struct.unpack(">i", raw[8:12])[0] == size
    assert decode_packet(raw).arguments == (blob,)


def test_message_without_typetags():
    msg = decode_packet(b"/old\x00\x00\x00\x00")
    assert msg == OSCMessage("/old", ",", ())


def test_nested_bundle_round_trip():
    when = unixtime2timetag(1000000.0)
    bundle = OSCBundle(when, (
                OSCMessage("/a", ",i", (1,)),
                OSCBundle(OSC_IMMEDIATELY, (
                    OSCMessage("/b", ",s", ("two",)),
                    )),
                OSCMessage("/c", ",", ()),
                ))
    assert decode_packet(encode_packet(bundle)) == bundle


def test_bundle_depth_limit():
    deepest = nested_bundles(MAX_BUNDLE_DEPTH)
    packet = decode_packet(encode_packet(deepest))
    assert packet == nested_bundles(MAX_BUNDLE_DEPTH)
    with pytest.raises(OSCMalformedPacketError):
        decode_packet(encode_packet(nested_bundles(MAX_BUNDLE_DEPTH + 1)))


@pytest.mark.parametrize("raw", [
    b"",
    b"abc",
    b"/abc",                                    # No string terminator.
    b"xxxx",                                    # Neither message nor bundle.
    b"/a\x00\x00,z\x00\x00",                    # Unknown type tag.
    b"/a\x00\x00,i\x00\x00",                    # Missing int data.
    b"/a\x00\x00i\x00\x00\x00",                 # Typetags without ','.
    b"/a\x00\x00,[i\x00\x00\x00\x00\x01",       # Unterminated array.
    b"/a\x00\x00,b\x00\x00\x00\x00\x00\x10",    # Blob longer than data.
    b"#bundle\x00\x00\x00\x00\x00\x00\x00\x00\x01"
        b"\x00\x00\x00\x10/a\x00\x00",          # Element size too big.
    b"#bundle\x00\x00\x00\x00\x00\x00\x00\x00\x01"
        b"\x00\x00\x00\x04xxxx",                # Invalid element.
    b"#bundlX\x00\x00\x00\x00\x00\x00\x00\x00\x01",
    ])
def test_malformed_packets(raw):
    with pytest.raises(OSCMalformedPacketError):
        decode_packet(raw)


def test_many_strings_round_trip():
    words = tuple("word{}".format(i) * (i % 5 + 1) for i in range(200))
    msg = OSCMessage("/words", None, words)
    decoded = decode_packet(encode_packet(msg))
    assert decoded.arguments == words
    assert decoded.typetags == "," + "s" * 200


def test_decode_str_bounds():
    assert _decode_str(memoryview(b"abc\x00rest")) == (4, "abc")
    assert _decode_str(memoryview(b"abcd\x00\x00\x00\x00")) == (8, "abcd")
    # Terminator found in a truncated last chunk.
    with pytest.raises(OSCMalformedPacketError):
        _decode_str(memoryview(b"abcdef\x00"))
    with pytest.raises(OSCMalformedPacketError):
        _decode_str(memoryview(b"abcdefgh"))


def test_encode_invalid_addrpattern():
    with pytest.raises(OSCInvalidDataError):
        encode_packet(OSCMessage("noslash", None, []))


def test_encode_invalid_values():
    with pytest.raises(OSCUnknownTypetagError):
        encode_packet(OSCMessage("/a", ",z", [1]))
    with pytest.raises(OSCInvalidDataError):
        encode_packet(OSCMessage("/a", None, [object()]))
    with pytest.raises(OSCInvalidDataError):
        encode_packet(OSCMessage("/a", ",i", ["notint"]))
    with pytest.raises(OSCInvalidDataError):
        encode_packet(OSCMessage("/a", ",ii", [1]))
    with pytest.raises(OSCInvalidDataError):
        encode_packet("/a")


def test_timetag_conversions():
    assert unixtime2timetag(0) == OSCtimetag(OSCTIME_1_JAN1970, 0)
    assert timetag2unixtime(OSCtimetag(OSCTIME_1_JAN1970 + 1, 2 ** 31)) \
                                                                    == 1.5
    assert float2timetag(timetag2float(OSCtimetag(10, 2 ** 30))) == \
                                                    OSCtimetag(10, 2 ** 30)
    assert OSCtimetag(10, 0) + 0.5 == OSCtimetag(10, 2 ** 31)
