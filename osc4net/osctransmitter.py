#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/osctransmitter.py
# <pep8 compliant>
"""Periodic sending of one OSC packet over UDP.

A :class:`PeriodicTransmitter` sends the same packet to a destination at
a fixed period, from a background thread, until it is stopped.

transmitter = PeriodicTransmitter("127.0.0.1", 5000)
transmitter.transmission_progress.add(lambda count: print(count))
transmitter.start(oscbuildparse.OSCMessage("/ping", None, []))
...
transmitter.stop()

Once :meth:`PeriodicTransmitter.stop` has returned, the background thread
is terminated and no more packet is sent.
A send failure terminates the background thread, it is signaled to
subscribers of :attr:`PeriodicTransmitter.transmission_errored` event.
"""

import threading

from . import oscbuildparse
from . import oscchannel
from .oscevents import EventHandlers
from .oscudp import UdpChannel

# Local port where packets are sent from.
TRANSMIT_SOURCEPORT = 10024
# Delay in seconds between two sendings.
TRANSMIT_PERIOD = 1.0


class PeriodicTransmitter(object):
    """Send a packet periodically to a destination.

    :ivar host: destination host, DNS name or IP address.
    :type host: str
    :ivar port: destination port.
    :type port: int
    :ivar logger: Python logger to trace activity.
        Default to None
    :type logger: logging.Logger
    :ivar transmit_sourceport: local port to bind the sending socket,
        0 to let the system select one.
        Default to TRANSMIT_SOURCEPORT (10024).
    :type transmit_sourceport: int
    :ivar transmit_period: delay in seconds between two sendings.
        Default to TRANSMIT_PERIOD (1 s).
    :type transmit_period: float
    :ivar transmission_count: count of packets sent since last start.
    :type transmission_count: int
    :ivar transmission_progress: handlers called with the count after each
        sending.
    :type transmission_progress: EventHandlers
    :ivar transmission_errored: handlers called with the exception when a
        sending fails.
    :type transmission_errored: EventHandlers
    """
    def __init__(self, host="127.0.0.1", port=None, options=None):
        if port is None:
            raise ValueError("OSC transmitter needs a destination port")
        if options is None:
            options = {}
        self.host = host
        self.port = port
        self.options = dict(options)
        self.logger = options.get("logger", None)
        self.transmit_sourceport = options.get("transmit_sourceport",
                                               TRANSMIT_SOURCEPORT)
        self.transmit_period = options.get("transmit_period", TRANSMIT_PERIOD)

        self.transmission_count = 0
        self.channel = None
        self.rawoscdata = None
        self.thread = None
        self.stop_event = threading.Event()

        self.transmission_progress = EventHandlers("transmission_progress",
                                                   self.logger)
        self.transmission_errored = EventHandlers("transmission_errored",
                                                  self.logger)

    def __repr__(self):
        return "PeriodicTransmitter({!r}, {!r})".format(self.host, self.port)

    @property
    def is_running(self):
        thread = self.thread
        return thread is not None and thread.is_alive()

    def start(self, packet):
        """Start sending the packet periodically.

        :param packet: the message or bundle to send.
        :type packet: OSCMessage or OSCBundle
        """
        if packet is None:
            raise ValueError("OSC transmitter needs a packet to send")
        if self.thread is not None:
            raise RuntimeError("OSC transmitter already started, stop it "\
                               "before")

        self.rawoscdata = oscbuildparse.encode_packet(packet)
        options = dict(self.options)
        options["udp_host"] = self.host
        options["udp_port"] = self.port
        options["udp_localport"] = self.transmit_sourceport
        self.channel = UdpChannel("transmitter", options)
        try:
            self.channel.open()
        except (oscchannel.OSCTransportError, ValueError):
            self.channel.dispose()
            self.channel = None
            raise

        self.transmission_count = 0
        self.stop_event.clear()
        self.thread = threading.Thread(target=self.transmit_loop,
                                       name="osc-transmitter")
        self.thread.daemon = True
        self.thread.start()
        if self.logger is not None:
            self.logger.info("OSC transmitter started to %s:%s every %s s.",
                             self.host, self.port, self.transmit_period)

    def transmit_loop(self):
        """Thread entry point, send until stopped or failed.
        """
        while not self.stop_event.is_set():
            try:
                self.channel.write_raw(self.rawoscdata)
            except oscchannel.OSCTransportError as e:
                if self.logger is not None:
                    self.logger.exception("OSC transmitter failure, "\
                                          "transmission terminated.")
                self.transmission_errored.notify(e)
                break
            self.transmission_count += 1
            self.transmission_progress.notify(self.transmission_count)
            # Sleep interrupted by stop().
            self.stop_event.wait(self.transmit_period)
        if self.logger is not None:
            self.logger.info("OSC transmitter thread terminated after %d "\
                             "transmissions.", self.transmission_count)

    def stop(self):
        """Stop sending and wait for the background thread termination.

        Stopping a transmitter which is not started does nothing. Called
        from a transmission_progress handler, the thread is not waited
        and ends after the handler returns.
        """
        thread = self.thread
        if thread is None:
            return
        self.stop_event.set()
        if thread is not threading.current_thread():
            thread.join()
        self.thread = None
        if self.channel is not None:
            self.channel.dispose()
            self.channel = None
        if self.logger is not None:
            self.logger.info("OSC transmitter stopped.")
