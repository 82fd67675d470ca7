#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/oscudp.py
# <pep8 compliant>
"""UDP (id. datagram over IP) communications support.

One datagram transport exactly one OSC packet, without length header.
"""

import socket

from . import oscchannel
from .oscnettools import network_getaddrinfo, select_sockspec

# Maximum datagram read in one call.
UDPREAD_BUFSIZE = 65536


class UdpChannel(oscchannel.TransportChannel):
    """Datagram channel with one remote OSC peer.

    For network address management, see network_getaddrinfo() function
    in oscnettools module, using prefix udp.

    The socket is bound locally so that the peer can answer to a known
    port. Datagrams are received from any source, their source address is
    given as packet source identification.

    :ivar udp_host: address of host to write to. Can be a DNS name or an
        IPV4 or IPV6 address.
    :type udp_host: str
    :ivar udp_port: number of port to write to.
    :type udp_port: int
    :ivar udp_localport: number of port to bind the socket locally.
        Default to 0 (auto-select).
    :type udp_localport: int
    :ivar udp_reuseaddr: flag to enable reuse of a recently bound local port.
        Default to False.
    :type udp_reuseaddr: bool
    :ivar udp_forceipv4: flag to use IPV4 in case of multiple addresses.
        Default to False.
    :type udp_forceipv4: bool
    :ivar udp_forceipv6: flag to use IPV6 in case of multiple addresses.
        Default to False.
    :type udp_forceipv6: bool
    """
    is_stream = False
    default_buffersize = UDPREAD_BUFSIZE

    def __init__(self, name, options):
        # Override and call parent method.
        self.udp_localport = options.get("udp_localport", 0)
        self.udp_reuseaddr = options.get("udp_reuseaddr", False)
        self.sockspec = None
        super().__init__(name, options)

    def open_socket(self):
        # Override parent method.
        self.sockspec = select_sockspec(network_getaddrinfo(self.options,
                        "udp", addrtype=socket.SOCK_DGRAM,
                        proto=socket.IPPROTO_UDP), self.logger)
        self.remote_address = self.sockspec.sockaddr[:2]
        self.sock = socket.socket(self.sockspec.family, socket.SOCK_DGRAM)
        if self.udp_reuseaddr:
            self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Bind to network corresponding to family, this ensure we stay on
        # the same port for each write.
        if self.sockspec.family == socket.AF_INET6:
            addr = ("::", self.udp_localport)
        else:
            addr = ("0.0.0.0", self.udp_localport)
        self.sock.bind(addr)
        if self.logger is not None:
            self.logger.info("UDP channel %r bound on %r target %r.",
                        self.chaname, self.sock.getsockname(),
                        self.sockspec.sockaddr)

    def process_read_raw(self):
        # Override parent method.
        try:
            newread, srcaddress = self.sock.recvfrom(self.read_buffersize)
        except BlockingIOError:
            return True
        if newread:
            # For IPV6 the srcaddress may have more than host,port fields.
            self.received_packet(srcaddress[:2], newread)
        return True

    def send_raw(self, rawdata):
        # Override parent method.
        self.sock.sendto(rawdata, self.sockspec.sockaddr)
