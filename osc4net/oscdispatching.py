#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/oscdispatching.py
# <pep8 compliant>
"""Dispatching of received OSC packets to subscribed handlers.

A :class:`PacketDispatcher` decodes raw packets coming from a channel and
signals what it found through four event sources:

- packet_received(packet, packopt), for each decoded packet.
- bundle_received(bundle, packopt), for each bundle, nested ones included.
- message_received(message, packopt), for each message which address
  pattern is registered (or for all messages when filtering is disabled).
- receive_errored(exception, packopt), for packets which cannot be decoded
  (when parsing exceptions are not consumed) and for transport failures.

Bundles are walked depth-first, a bundle is signaled before its elements,
and elements are processed in their bundle order.
"""

from . import oscbuildparse
from .oscevents import EventHandlers


class PacketDispatcher(object):
    """Decode raw packets and signal their content.

    :ivar dispname: key to identify the dispatcher in logs.
    :type dispname: str
    :ivar logger: Python logger to trace activity.
        Default to None
    :type logger: logging.Logger
    :ivar filter_registered_methods: only signal messages which address
        pattern has been registered.
        Default to True.
    :type filter_registered_methods: bool
    :ivar consume_parsing_exceptions: silently drop packets which cannot be
        decoded, else signal them via receive_errored.
        Default to True.
    :type consume_parsing_exceptions: bool
    :ivar max_bundle_depth: nested bundles beyond this depth are not walked.
        Default to oscbuildparse.MAX_BUNDLE_DEPTH.
    :type max_bundle_depth: int
    :ivar methods: registered address patterns, in registration order.
    :type methods: [ str ]
    """
    def __init__(self, dispname, options):
        self.dispname = dispname
        self.logger = options.get("logger", None)
        self.filter_registered_methods = options.get(
                                        "filter_registered_methods", True)
        self.consume_parsing_exceptions = options.get(
                                        "consume_parsing_exceptions", True)
        self.max_bundle_depth = options.get("max_bundle_depth",
                                            oscbuildparse.MAX_BUNDLE_DEPTH)
        self.methods = []

        self.packet_received = EventHandlers("packet_received", self.logger)
        self.bundle_received = EventHandlers("bundle_received", self.logger)
        self.message_received = EventHandlers("message_received", self.logger)
        self.receive_errored = EventHandlers("receive_errored", self.logger)

    def __repr__(self):
        return "PacketDispatcher({!r})".format(self.dispname)

    # ----- Registry of address patterns -------------------------------------
    def register_method(self, addrpattern):
        """Register an address pattern for messages filtering.

        Registering an already registered pattern does nothing.

        :param addrpattern: exact address of messages to signal.
        :type addrpattern: str
        """
        if not isinstance(addrpattern, str) or \
                not addrpattern.startswith('/'):
            raise ValueError("OSC address pattern {!r} must be a string "\
                             "beginning with '/'".format(addrpattern))
        # Copy-on-write, the reception thread may be iterating.
        if addrpattern not in self.methods:
            self.methods = self.methods + [addrpattern]

    def unregister_method(self, addrpattern):
        """Unregister an address pattern, no-op if unknown.
        """
        if addrpattern in self.methods:
            self.methods = [m for m in self.methods if m != addrpattern]

    def clear_methods(self):
        self.methods = []

    def registered_methods(self):
        """
        :return: registered address patterns, in registration order.
        :rtype: [ str ]
        """
        return list(self.methods)

    # ----- Dispatching ------------------------------------------------------
    def dispatch_rawpacket(self, rawoscdata, packopt):
        """Decode a raw packet and dispatch it.

        Decoding errors never go out of this method.

        :param rawoscdata: OSC packet as received.
        :type rawoscdata: bytes
        :param packopt: reception informations for the packet.
        :type packopt: PacketOptions
        :return: decoded packet, or None if it cannot be decoded.
        :rtype: OSCMessage or OSCBundle
        """
        try:
            packet = oscbuildparse.decode_packet(rawoscdata)
        except oscbuildparse.OSCMalformedPacketError as e:
            if self.consume_parsing_exceptions:
                if self.logger is not None:
                    self.logger.debug("OSC dispatcher %s drop malformed "\
                            "packet from %r: %s", self.dispname,
                            packopt.srcident, e)
            else:
                if self.logger is not None:
                    self.logger.info("OSC dispatcher %s malformed packet "\
                            "from %r: %s", self.dispname, packopt.srcident, e)
                self.receive_errored.notify(e, packopt)
            return None

        self.dispatch_packet(packet, packopt)
        return packet

    def dispatch_packet(self, packet, packopt):
        """Signal a decoded packet, its bundles and its messages.

        :param packet: OSC packet
        :type packet: OSCMessage or OSCBundle
        :param packopt: reception informations for the packet.
        :type packopt: PacketOptions
        :return: count of messages signaled via message_received.
        :rtype: int
        """
        if not isinstance(packet, (oscbuildparse.OSCMessage,
                                   oscbuildparse.OSCBundle)):
            raise ValueError("OSC unknown packet kind {!r}".format(packet))

        if self.logger is not None:
            self.logger.debug("OSC dispatcher %s dispatch %r", self.dispname,
                              packet)
        self.packet_received.notify(packet, packopt)

        count = 0
        # Explicit stack of (element, depth), top of stack is next to
        # process, so bundle elements are pushed in reverse order.
        worklist = [(packet, 0)]
        while worklist:
            elem, depth = worklist.pop()
            if isinstance(elem, oscbuildparse.OSCMessage):
                count += self.dispatch_message(elem, packopt)
            elif isinstance(elem, oscbuildparse.OSCBundle):
                if depth > self.max_bundle_depth:
                    if self.logger is not None:
                        self.logger.warning("OSC dispatcher %s skip bundle "\
                                "nested at depth %d (max %d)", self.dispname,
                                depth, self.max_bundle_depth)
                    continue
                self.bundle_received.notify(elem, packopt)
                for sub in reversed(elem.elements):
                    worklist.append((sub, depth + 1))
            else:
                if self.logger is not None:
                    self.logger.warning("OSC dispatcher %s ignore unknown "\
                            "bundle element %r", self.dispname, elem)
        return count

    def dispatch_message(self, msg, packopt):
        """Signal a message if it pass the registered methods filter.

        :return: 1 if the message has been signaled, else 0.
        :rtype: int
        """
        if self.filter_registered_methods and \
                msg.addrpattern not in self.methods:
            if self.logger is not None:
                self.logger.debug("OSC dispatcher %s filter out message %s",
                                  self.dispname, msg.addrpattern)
            return 0
        self.message_received.notify(msg, packopt)
        return 1
