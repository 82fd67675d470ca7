#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/oscclient.py
# <pep8 compliant>
"""OSC client connected to one remote OSC system.

An :class:`OSCClient` owns one channel (TCP by default, or UDP) to a
remote peer. It sends packets to the peer and dispatches packets received
from it via its :class:`PacketDispatcher` event sources.

import logging
from osc4net import oscbuildparse
from osc4net.oscclient import OSCClient

client = OSCClient("127.0.0.1", 5000, {"logger": logging.getLogger("osc")})
client.register_method("/synth/freq")
client.message_received.add(lambda msg, packopt: print(msg.arguments))
client.connect()
client.send(oscbuildparse.OSCMessage("/synth/freq", None, [440.0]))
...
client.close()

The client is either Disconnected (no channel) or Connected.
Calling :meth:`OSCClient.connect` again while connected to the same
endpoint reuses the current channel, connecting to another endpoint
requires to close the client before.
"""

import itertools
import threading

from . import oscbuildparse
from . import oscchannel
from .oscdispatching import PacketDispatcher
from .oscframing import frame_packet
from .osctcp import TcpChannel
from .oscudp import UdpChannel

TRANSPORT_TCP = "tcp"
TRANSPORT_UDP = "udp"

# For default names of clients in logs.
_clientsid = itertools.count(1)


class OSCClient(object):
    """Send and receive OSC packets with one remote peer.

    Options are given to the dispatcher and to the channels created by
    the client.

    :ivar cliname: key to identify the client in logs.
        Option key client_name.
        Default to "oscclientN".
    :type cliname: str
    :ivar logger: Python logger to trace activity.
        Default to None
    :type logger: logging.Logger
    :ivar transport: "tcp" or "udp", kind of channel to create.
        Default to "tcp".
    :type transport: str
    :ivar remote_address: host of the remote peer.
    :type remote_address: str
    :ivar remote_port: port of the remote peer.
    :type remote_port: int
    :ivar channel: current channel with the peer, or None.
    :type channel: TransportChannel
    :ivar dispatcher: decode received packets and signal them.
    :type dispatcher: PacketDispatcher
    :ivar handling_messages: set while received packets must be
        dispatched.
    :type handling_messages: threading.Event
    """
    def __init__(self, address=None, port=None, options=None, channel=None):
        """Setup an OSCClient.

        :param address: host of the remote peer, DNS name or IP address.
        :type address: str
        :param port: port of the remote peer.
        :type port: int
        :param options: map of key/value options for the client, its
            dispatcher and its channels.
        :type options: dict
        :param channel: an already setup channel to use in place of
            creating one at connection time, the client then owns it.
        :type channel: TransportChannel
        """
        if options is None:
            options = {}
        self.options = dict(options)
        self.cliname = options.get("client_name",
                                   "oscclient{}".format(next(_clientsid)))
        self.logger = options.get("logger", None)
        self.transport = options.get("transport", TRANSPORT_TCP)
        if self.transport not in (TRANSPORT_TCP, TRANSPORT_UDP):
            raise ValueError("OSC client {} unknown transport "\
                    "{!r}".format(self.cliname, self.transport))

        self.remote_address = address
        self.remote_port = port
        self.channel = channel
        self.subscribed_channel = None
        if channel is not None and channel.remote_address is not None \
                and address is None:
            self.remote_address, self.remote_port = channel.remote_address

        self.dispatcher = PacketDispatcher(self.cliname, options)
        self.handling_messages = threading.Event()
        self.lock = threading.Lock()

    def __repr__(self):
        return "OSCClient({!r}, {!r}, {!r})".format(self.cliname,
                                        self.remote_address, self.remote_port)

    # ----- Events and dispatcher settings -----------------------------------
    @property
    def packet_received(self):
        return self.dispatcher.packet_received

    @property
    def bundle_received(self):
        return self.dispatcher.bundle_received

    @property
    def message_received(self):
        return self.dispatcher.message_received

    @property
    def receive_errored(self):
        return self.dispatcher.receive_errored

    @property
    def filter_registered_methods(self):
        return self.dispatcher.filter_registered_methods

    @filter_registered_methods.setter
    def filter_registered_methods(self, value):
        self.dispatcher.filter_registered_methods = bool(value)

    @property
    def consume_parsing_exceptions(self):
        return self.dispatcher.consume_parsing_exceptions

    @consume_parsing_exceptions.setter
    def consume_parsing_exceptions(self, value):
        self.dispatcher.consume_parsing_exceptions = bool(value)

    def register_method(self, addrpattern):
        self.dispatcher.register_method(addrpattern)

    def unregister_method(self, addrpattern):
        self.dispatcher.unregister_method(addrpattern)

    def clear_methods(self):
        self.dispatcher.clear_methods()

    def registered_methods(self):
        return self.dispatcher.registered_methods()

    @property
    def is_connected(self):
        channel = self.channel
        return channel is not None and channel.is_connected

    # ----- Connection management --------------------------------------------
    def connect(self, address=None, port=None):
        """Connect to the remote peer and start receiving its packets.

        Without parameters, connect to the endpoint given at construction.
        When already connected to the same endpoint, the current channel
        is kept.

        :param address: host of the remote peer.
        :type address: str
        :param port: port of the remote peer.
        :type port: int
        """
        deadchannel = None
        with self.lock:
            if address is None:
                address = self.remote_address
            if port is None:
                port = self.remote_port

            channel = self.channel
            if channel is not None and (channel.is_disposed or
                                        channel.peer_closed or
                                        channel.read_failed):
                # Connection lost, a new one is built.
                deadchannel, channel = channel, None
                self.channel = None
                self.unsubscribe(deadchannel)

            if channel is not None and channel.is_open:
                if (address, port) != (self.remote_address,
                                       self.remote_port):
                    raise oscchannel.OSCAlreadyConnectedError("OSC client "\
                        "{} already connected to {}:{}, close it before "\
                        "connecting to {}:{}".format(self.cliname,
                        self.remote_address, self.remote_port, address, port))
                if self.logger is not None:
                    self.logger.debug("OSC client %s reuse connection to "\
                            "%s:%s", self.cliname, address, port)
            else:
                if channel is None:
                    if address is None or port is None:
                        raise ValueError("OSC client {} missing remote "\
                                    "endpoint".format(self.cliname))
                    channel = self.create_channel(address, port)
                    self.channel = channel
                elif self.remote_address is not None and \
                        (address, port) != (self.remote_address,
                                            self.remote_port):
                    raise oscchannel.OSCAlreadyConnectedError("OSC client "\
                        "{} channel is setup for {}:{}".format(self.cliname,
                        self.remote_address, self.remote_port))
                try:
                    channel.open()
                except (oscchannel.OSCTransportError, ValueError):
                    self.channel = None
                    channel.dispose()
                    raise
                if address is None and channel.remote_address is not None:
                    address, port = channel.remote_address
                self.remote_address = address
                self.remote_port = port

            if self.subscribed_channel is not channel:
                channel.data_received.add(self.data_received)
                channel.transport_errored.add(self.transport_errored)
                self.subscribed_channel = channel
            channel.start_reading()
            self.handling_messages.set()

        if deadchannel is not None:
            deadchannel.dispose()
        if self.logger is not None:
            self.logger.info("OSC client %s connected to %s:%s.",
                             self.cliname, self.remote_address,
                             self.remote_port)

    def create_channel(self, address, port):
        """Build the channel for the client transport.

        :rtype: TransportChannel
        """
        options = dict(self.options)
        options[self.transport + "_host"] = address
        options[self.transport + "_port"] = port
        name = "{}-{}".format(self.cliname, self.transport)
        if self.transport == TRANSPORT_UDP:
            return UdpChannel(name, options)
        return TcpChannel(name, options)

    def unsubscribe(self, channel):
        if self.subscribed_channel is channel:
            channel.data_received.remove(self.data_received)
            channel.transport_errored.remove(self.transport_errored)
            self.subscribed_channel = None

    def close(self):
        """Stop handling received packets and release the channel.

        Closing a closed client does nothing.
        """
        with self.lock:
            self.handling_messages.clear()
            channel, self.channel = self.channel, None
            if channel is not None:
                self.unsubscribe(channel)
        # Out of the lock, dispose waits for the reading thread which may
        # be calling our handlers.
        if channel is not None:
            channel.dispose()
            if self.logger is not None:
                self.logger.info("OSC client %s closed.", self.cliname)

    def send(self, packet):
        """Encode a packet and write it to the peer.

        :param packet: the message or bundle to send.
        :type packet: OSCMessage or OSCBundle
        """
        channel = self.channel
        if channel is None or not channel.is_connected:
            raise oscchannel.OSCNotConnectedError("OSC client {} not "\
                                    "connected".format(self.cliname))
        rawoscdata = oscbuildparse.encode_packet(packet)
        if channel.is_stream:
            rawoscdata = frame_packet(rawoscdata, channel.byteorder)
        if self.logger is not None:
            self.logger.debug("OSC client %s send %r", self.cliname, packet)
        channel.write_raw(rawoscdata)

    # ----- Channel events handlers ------------------------------------------
    def data_received(self, rawoscdata, packopt):
        if not self.handling_messages.is_set():
            if self.logger is not None:
                self.logger.debug("OSC client %s not handling messages, "\
                        "drop packet from %r", self.cliname, packopt.srcident)
            return
        self.dispatcher.dispatch_rawpacket(rawoscdata, packopt)

    def transport_errored(self, exc, packopt):
        if self.logger is not None:
            self.logger.error("OSC client %s transport failure: %s",
                              self.cliname, exc)
        self.dispatcher.receive_errored.notify(exc, packopt)
