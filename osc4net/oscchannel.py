#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/oscchannel.py
# <pep8 compliant>
"""Base class for OSC data transmission.

TransportChannel subclasses are used for communication with a peer OSC
system. They wrap one socket: opening it (with the connection handshake
for connected transports), reading it in a background thread, writing
raw packets to it and releasing it.

Received packets are signaled to subscribers of the channel
:attr:`TransportChannel.data_received` event as complete raw OSC
packets: stream based channels rebuild packets from the stream before
signaling them.
A reading failure terminates the reading thread and is signaled to
subscribers of :attr:`TransportChannel.transport_errored` event.
"""

import select
import threading

from . import oscbuildparse
from .oscevents import EventHandlers
from .oscpacketoptions import PacketOptions

# Maximum time in seconds the reading thread stays blocked before checking
# its termination flag.
READ_PERIOD = 0.1


#==================== HIERARCHY OF TRANSPORT ERRORS =========================
class OSCTransportError(oscbuildparse.OSCError):
    """Failure of the underlying socket.
    """
    pass


class OSCNotConnectedError(OSCTransportError):
    """Operation requires an open connection.
    """
    pass


class OSCAlreadyConnectedError(OSCTransportError):
    """A connection to another peer is already open.
    """
    pass


#======================= COMMUNICATIONS ABSTRACTION =========================
class TransportChannel(object):
    """A communication way with an OSC peer for read and write.

    Options common to all channels:

    :ivar chaname: key to identify the channel in logs.
    :type chaname: str
    :ivar logger: Python logger to trace activity.
        Default to None
    :type logger: logging.Logger
    :ivar read_buffersize: maximum bytes size in one read call.
    :type read_buffersize: int
    :ivar read_period: maximum time in seconds the reading thread waits
        for data before checking for its termination.
        Default to READ_PERIOD (0.1 s).
    :type read_period: float

    State attributes:

    :ivar is_open: flag set when the socket has been opened (and connected
        for connected transports).
    :type is_open: bool
    :ivar is_disposed: flag set once the channel resources are released,
        the channel cannot be reopened.
    :type is_disposed: bool
    :ivar peer_closed: flag set when the peer ended a connected
        communication, the channel can only be disposed.
    :type peer_closed: bool
    :ivar read_failed: flag set when the reading thread terminated on a
        failure, the channel can only be disposed.
    :type read_failed: bool
    :ivar remote_address: (host, port) of the peer, set when opened.
    :type remote_address: tuple
    :ivar data_received: handlers called with (rawoscdata, packopt) for
        each received packet.
    :type data_received: EventHandlers
    :ivar transport_errored: handlers called with (exception, packopt) when
        the reading thread terminates on a failure.
    :type transport_errored: EventHandlers
    """
    # Stream channels need packets framing.
    is_stream = False
    # Default read size, overriden in subclasses.
    default_buffersize = 8192

    def __init__(self, name, options):
        """Setup a TransportChannel.

        :param name: identifier for the channel
        :type name: str
        :param options: map of key/value options for the channel control.
            See description of options with members of TransportChannel
            and subclasses (option keys use same names as attributes).
        :type options: dict
        """
        self.chaname = name
        self.options = options
        self.logger = options.get("logger", None)
        self.read_buffersize = options.get("read_buffersize",
                                           self.default_buffersize)
        self.read_period = options.get("read_period", READ_PERIOD)
        self.sock = None
        self.remote_address = None
        self.is_open = False
        self.is_disposed = False
        self.peer_closed = False
        self.read_failed = False
        self.read_thread = None
        self.read_terminate = threading.Event()
        self.dispose_lock = threading.Lock()
        self.write_lock = threading.Lock()
        self.data_received = EventHandlers("data_received", self.logger)
        self.transport_errored = EventHandlers("transport_errored",
                                               self.logger)

    def __repr__(self):
        return "{}({!r}, remote={!r})".format(self.__class__.__name__,
                                            self.chaname, self.remote_address)

    @property
    def is_connected(self):
        return self.is_open and not (self.is_disposed or self.peer_closed or
                                     self.read_failed)

    @property
    def local_address(self):
        """(host, port) where the socket is bound, or None."""
        if self.sock is None:
            return None
        return self.sock.getsockname()[:2]

    def open(self):
        """Open the socket, blocking until connected for connected transports.
        """
        if self.is_disposed:
            raise OSCTransportError("OSC channel {!r} already "\
                                    "disposed".format(self.chaname))
        if self.is_open:
            if self.logger is not None:
                self.logger.debug("OSC channel %r already open.",
                                  self.chaname)
            return
        if self.logger is not None:
            self.logger.debug("OSC opening channel %r.", self.chaname)
        try:
            self.open_socket()
        except OSError as e:
            self.close_socket()
            if self.logger is not None:
                self.logger.error("OSC channel %r cannot open: %s",
                                  self.chaname, e)
            raise OSCTransportError("OSC channel {!r} cannot open: "\
                                    "{}".format(self.chaname, e)) from e
        self.is_open = True
        if self.logger is not None:
            self.logger.info("OSC channel %r open to %r.", self.chaname,
                             self.remote_address)

    def start_reading(self):
        """Start the background thread reading incoming packets.

        Calling it again while the thread runs does nothing.
        """
        if not self.is_connected:
            raise OSCNotConnectedError("OSC channel {!r} not "\
                                       "open".format(self.chaname))
        if self.read_thread is not None:
            return
        self.read_terminate.clear()
        self.read_thread = threading.Thread(target=self.reading_loop,
                                        name="osc-read-" + self.chaname)
        self.read_thread.daemon = True
        self.read_thread.start()

    def reading_loop(self):
        """Thread entry point, read and signal packets until terminated.
        """
        if self.logger is not None:
            self.logger.info("OSC channel %r reading thread started.",
                             self.chaname)
        try:
            while not self.read_terminate.is_set():
                if not self.wait_readable():
                    continue
                if not self.process_read_raw():
                    break
        except (OSError, ValueError) as e:
            if self.read_terminate.is_set():
                # Socket closed under our feet by dispose().
                if self.logger is not None:
                    self.logger.debug("OSC channel %r read interrupted "\
                                      "by close: %s", self.chaname, e)
            else:
                self.read_failed = True
                if self.logger is not None:
                    self.logger.exception("OSC channel %r failure in "\
                                          "reading thread.", self.chaname)
                err = OSCTransportError("OSC channel {!r} read failure: "\
                                        "{}".format(self.chaname, e))
                err.__cause__ = e
                self.transport_errored.notify(err, PacketOptions(
                                        self.chaname, self.remote_address))
        if self.logger is not None:
            self.logger.info("OSC channel %r reading thread terminated.",
                             self.chaname)

    def wait_readable(self):
        """Wait up to read_period for data available on the socket.

        :return: True if a read will not block.
        :rtype: bool
        """
        sock = self.sock
        if sock is None:
            raise OSError("socket released")
        readable, _, _ = select.select([sock], [], [], self.read_period)
        return bool(readable)

    def received_packet(self, sourceidentifier, rawoscdata):
        """Called by subclasses when a complete OSC packet has been received.

        :param sourceidentifier: identification of the data source
        :type sourceidentifier: hashable value
        :param rawoscdata: OSC raw packet received from the peer
        :type rawoscdata: bytes
        """
        if self.logger is not None:
            self.logger.debug("OSC channel %r receive packet from %s: %r",
                self.chaname, repr(sourceidentifier), rawoscdata[:40])
        packopt = PacketOptions(self.chaname, sourceidentifier)
        self.data_received.notify(rawoscdata, packopt)

    def write_raw(self, rawdata):
        """Write raw data (already framed if necessary) to the peer.

        :param rawdata: data to send
        :type rawdata: bytes
        """
        if not self.is_connected:
            raise OSCNotConnectedError("OSC channel {!r} not "\
                                       "open".format(self.chaname))
        if self.logger is not None:
            self.logger.debug("OSC channel %r write %d bytes.",
                              self.chaname, len(rawdata))
        try:
            with self.write_lock:
                self.send_raw(rawdata)
        except OSError as e:
            if self.logger is not None:
                self.logger.error("OSC channel %r write failure: %s",
                                  self.chaname, e)
            raise OSCTransportError("OSC channel {!r} write failure: "\
                                    "{}".format(self.chaname, e)) from e

    def dispose(self):
        """Release the channel resources, only once.

        Stop and wait for the reading thread (except when called from the
        reading thread itself), then close the socket.

        :return: True if resources were released by this call, False if
            the channel was already disposed.
        :rtype: bool
        """
        with self.dispose_lock:
            if self.is_disposed:
                return False
            self.is_disposed = True

        self.read_terminate.set()
        if self.sock is not None:
            self.shutdown_socket()
        thread = self.read_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self.read_thread = None
        self.close_socket()
        self.is_open = False
        if self.logger is not None:
            self.logger.info("OSC channel %r disposed.", self.chaname)
        return True

    def close_socket(self):
        sock, self.sock = self.sock, None
        if sock is not None:
            sock.close()

    # ----- Subclasses overriden --------------------------------------------
    def open_socket(self):
        """Create self.sock and connect it if the transport needs it.
        """
        raise NotImplementedError("open_socket must be overriden")

    def shutdown_socket(self):
        """Stop pending transmissions before the socket is closed.
        """
        pass

    def process_read_raw(self):
        """Read available data and signal complete packets.

        :return: False when the peer ended the communication.
        :rtype: bool
        """
        raise NotImplementedError("process_read_raw must be overriden")

    def send_raw(self, rawdata):
        raise NotImplementedError("send_raw must be overriden")
