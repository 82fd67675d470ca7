#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/osctcp.py
# <pep8 compliant>
"""TCP (id. stream over IP) communications support.

Packets on the stream are delimited by a length header, see
:mod:`osc4net.oscframing`.
"""

import socket

from . import oscchannel
from .oscframing import (unframe_packet, header_format, BYTEORDER_DEFAULT,
                         MAX_PACKET_SIZE_WITH_HEADER)
from .oscnettools import network_getaddrinfo, select_sockspec

# Maximum data read in one call.
TCPREAD_BUFSIZE = 8192


class TcpChannel(oscchannel.TransportChannel):
    """Client side of a TCP connection.

    For network address management, see network_getaddrinfo() function
    in oscnettools module, using prefix tcp.

    :ivar tcp_host: address of host to connect to. Can be a DNS name or an
        IPV4 or IPV6 address.
    :type tcp_host: str
    :ivar tcp_port: number of port to connect to.
    :type tcp_port: int
    :ivar tcp_forceipv4: flag to use IPV4 in case of multiple addresses.
        Default to False.
    :type tcp_forceipv4: bool
    :ivar tcp_forceipv6: flag to use IPV6 in case of multiple addresses.
        Default to False.
    :type tcp_forceipv6: bool
    :ivar tcp_consocket: an already connected socket to use, host and port
        are then ignored.
        Default to None.
    :type tcp_consocket: socket.socket
    :ivar byteorder: byte order of packets length headers, "big" or "little".
        Option key tcp_byteorder.
        Default to "little".
    :type byteorder: str
    :ivar tcp_maxpacketsize: maximum packet size accepted from a header,
        0 to disable the check.
        Default to MAX_PACKET_SIZE_WITH_HEADER (1 MiB).
    :type tcp_maxpacketsize: int
    :ivar read_buffer: received data not yet identified as a packet.
    :type read_buffer: bytearray
    """
    is_stream = True
    default_buffersize = TCPREAD_BUFSIZE

    def __init__(self, name, options):
        # Override and call parent method.
        self.byteorder = options.get("tcp_byteorder", BYTEORDER_DEFAULT)
        header_format(self.byteorder)   # Early check of the option.
        self.tcp_maxpacketsize = options.get("tcp_maxpacketsize",
                                             MAX_PACKET_SIZE_WITH_HEADER)
        self.tcp_consocket = options.get("tcp_consocket", None)
        self.read_buffer = bytearray()
        super().__init__(name, options)
        if self.tcp_consocket is not None:
            self.remote_address = self.tcp_consocket.getpeername()[:2]

    def open_socket(self):
        # Override parent method.
        if self.tcp_consocket is not None:
            # Connection already established elsewhere.
            self.sock = self.tcp_consocket
            return

        sockspec = select_sockspec(network_getaddrinfo(self.options, "tcp",
                        addrtype=socket.SOCK_STREAM,
                        proto=socket.IPPROTO_TCP), self.logger)
        self.sock = socket.socket(sockspec.family, socket.SOCK_STREAM)
        # No timeout, wait for the handshake to finish or fail.
        self.sock.connect(sockspec.sockaddr)
        self.sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self.remote_address = sockspec.sockaddr[:2]

    def shutdown_socket(self):
        # Override parent method.
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass    # Not connected anymore.

    def process_read_raw(self):
        # Override parent method.
        newread = self.sock.recv(self.read_buffersize)
        if not newread:
            if self.read_terminate.is_set():
                # Our own shutdown by dispose().
                return False
            if self.logger is not None:
                self.logger.info("TCP channel %r closed by peer.",
                                 self.chaname)
            self.peer_closed = True
            return False
        self.received_data(newread)
        return True

    def received_data(self, data):
        """Accumulate a part of the stream and signal complete packets.

        Several packets may be completed by one read, they are signaled in
        stream order.

        :param data: new data received.
        :type data: bytes
        """
        self.read_buffer.extend(data)
        while True:
            rawoscdata, self.read_buffer = unframe_packet(self.read_buffer,
                                    self.byteorder, self.tcp_maxpacketsize)
            if rawoscdata is None:
                break
            # Empty packets go up too, decoding rejects them.
            self.received_packet(self.remote_address, rawoscdata)

    def send_raw(self, rawdata):
        # Override parent method.
        self.sock.sendall(rawdata)
