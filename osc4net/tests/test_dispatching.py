#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# File: osc4net/tests/test_dispatching.py
# <pep8 compliant>

import pytest

from osc4net.oscbuildparse import *
from osc4net.oscdispatching import PacketDispatcher
from osc4net.oscpacketoptions import PacketOptions

from testslogger import logger


class Recorder(object):
    """Subscribe to all dispatcher events and keep them in order."""
    def __init__(self, disp):
        self.events = []
        disp.packet_received.add(self.on_packet)
        disp.bundle_received.add(self.on_bundle)
        disp.message_received.add(self.on_message)
        disp.receive_errored.add(self.on_error)

    def on_packet(self, packet, packopt):
        self.events.append(("packet", packet))

    def on_bundle(self, bundle, packopt):
        self.events.append(("bundle", bundle))

    def on_message(self, msg, packopt):
        self.events.append(("message", msg.addrpattern))

    def on_error(self, exc, packopt):
        self.events.append(("error", exc))

    def kinds(self, kind):
        return [e[1] for e in self.events if e[0] == kind]


def dispatcher(**options):
    options.setdefault("logger", logger)
    disp = PacketDispatcher("test", options)
    return disp, Recorder(disp)


def packopt():
    return PacketOptions("test", ("127.0.0.1", 9000))


def test_default_flags():
    disp = PacketDispatcher("defaults", {})
    assert disp.filter_registered_methods is True
    assert disp.consume_parsing_exceptions is True
    assert disp.max_bundle_depth == MAX_BUNDLE_DEPTH


def test_registered_message_after_round_trip():
    disp, rec = dispatcher(filter_registered_methods=True)
    disp.register_method("/synth/freq")
    raw = encode_packet(OSCMessage("/synth/freq", None, [440.0]))
    packet = disp.dispatch_rawpacket(raw, packopt())
    assert packet.arguments == (440.0,)
    assert rec.kinds("message") == ["/synth/freq"]
    assert len(rec.kinds("packet")) == 1


def test_unregistered_message_filtered():
    disp, rec = dispatcher()
    disp.register_method("/other")
    disp.dispatch_packet(OSCMessage("/synth/freq", ",f", (440.0,)),
                         packopt())
    assert rec.kinds("message") == []
    # Packet notification is unconditional.
    assert len(rec.kinds("packet")) == 1


def test_nested_bundle_order():
    inner = OSCBundle(OSC_IMMEDIATELY, (OSCMessage("/b", ",", ()),))
    outer = OSCBundle(OSC_IMMEDIATELY, (OSCMessage("/a", ",", ()), inner))
    disp, rec = dispatcher(filter_registered_methods=False)
    disp.dispatch_rawpacket(encode_packet(outer), packopt())
    assert rec.events == [
        ("packet", outer),
        ("bundle", outer),
        ("message", "/a"),
        ("bundle", inner),
        ("message", "/b"),
        ]


def deep_bundle():
    """Bundle with 7 messages, some nested 3 levels deep."""
    msg = lambda n: OSCMessage("/m/{}".format(n), ",i", (n,))
    level3 = OSCBundle(OSC_IMMEDIATELY, (msg(4), msg(5)))
    level2 = OSCBundle(OSC_IMMEDIATELY, (msg(3), level3, msg(6)))
    empty = OSCBundle(OSC_IMMEDIATELY, ())
    return OSCBundle(OSC_IMMEDIATELY, (msg(1), msg(2), level2, empty, msg(7)))


def test_all_nested_messages_without_filter():
    disp, rec = dispatcher(filter_registered_methods=False)
    count = disp.dispatch_packet(deep_bundle(), packopt())
    assert count == 7
    assert rec.kinds("message") == ["/m/{}".format(n) for n in range(1, 8)]
    assert len(rec.kinds("bundle")) == 4


def test_registered_nested_messages_with_filter():
    disp, rec = dispatcher(filter_registered_methods=True)
    for n in (7, 2, 5):
        disp.register_method("/m/{}".format(n))
    count = disp.dispatch_packet(deep_bundle(), packopt())
    assert count == 3
    # Bundle order, not registration order.
    assert rec.kinds("message") == ["/m/2", "/m/5", "/m/7"]


def test_flags_changed_at_runtime():
    disp, rec = dispatcher()
    msg = OSCMessage("/x", ",", ())
    disp.dispatch_packet(msg, packopt())
    disp.filter_registered_methods = False
    disp.dispatch_packet(msg, packopt())
    assert rec.kinds("message") == ["/x"]


def test_malformed_reported():
    disp, rec = dispatcher(consume_parsing_exceptions=False)
    assert disp.dispatch_rawpacket(b"garbage!", packopt()) is None
    errors = rec.kinds("error")
    assert len(errors) == 1
    assert isinstance(errors[0], OSCMalformedPacketError)
    assert rec.kinds("packet") == []


def test_malformed_consumed():
    disp, rec = dispatcher(consume_parsing_exceptions=True)
    assert disp.dispatch_rawpacket(b"garbage!", packopt()) is None
    assert rec.events == []


def test_too_deep_bundles_not_walked():
    disp, rec = dispatcher(filter_registered_methods=False,
                           max_bundle_depth=2)
    packet = OSCMessage("/deep", ",", ())
    for _ in range(4):
        packet = OSCBundle(OSC_IMMEDIATELY, (packet,))
    packet = OSCBundle(OSC_IMMEDIATELY, (OSCMessage("/top", ",", ()),
                                         packet))
    disp.dispatch_packet(packet, packopt())
    # Top bundle at depth 0 then bundles at depths 1 and 2.
    assert len(rec.kinds("bundle")) == 3
    assert rec.kinds("message") == ["/top"]


def test_failing_handler_does_not_stop_others():
    disp, rec = dispatcher(filter_registered_methods=False)
    calls = []

    def failing(msg, packopt):
        calls.append("failing")
        raise RuntimeError("handler failure")

    disp.message_received.add(failing)
    disp.message_received.add(lambda msg, packopt: calls.append("next"))
    disp.dispatch_packet(OSCMessage("/a", ",", ()), packopt())
    assert calls == ["failing", "next"]
    assert rec.kinds("message") == ["/a"]


def test_register_twice_keeps_one():
    disp, _ = dispatcher()
    disp.register_method("/a")
    disp.register_method("/b")
    disp.register_method("/a")
    assert disp.registered_methods() == ["/a", "/b"]


def test_unregister_unknown_is_noop():
    disp, _ = dispatcher()
    disp.register_method("/a")
    disp.unregister_method("/unknown")
    assert disp.registered_methods() == ["/a"]
    disp.unregister_method("/a")
    assert disp.registered_methods() == []


def test_clear_methods():
    disp, _ = dispatcher()
    disp.register_method("/a")
    disp.register_method("/b")
    methods = disp.registered_methods()
    disp.clear_methods()
    assert disp.registered_methods() == []
    # Returned list is a copy.
    assert methods == ["/a", "/b"]


@pytest.mark.parametrize("pattern", ["", "nolead", None, 12])
def test_register_invalid_pattern(pattern):
    disp, _ = dispatcher()
    with pytest.raises(ValueError):
        disp.register_method(pattern)


def test_dispatch_unknown_packet():
    disp, rec = dispatcher()
    with pytest.raises(ValueError):
        disp.dispatch_packet("/not/a/packet", packopt())
    assert rec.events == []
