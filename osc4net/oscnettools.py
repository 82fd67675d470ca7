#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/oscnettools.py
# <pep8 compliant>
"""Utility functions for network communications.

A function :func:`network_getaddrinfo` wrap call to getaddrinfo(), dealing
with the osc4net system of dictionnary of options (it extract address,
port, eventually some preferences from keys in the dictionnary).
"""

import socket
import collections


AddrInfo = collections.namedtuple("AddrInfo",
            "family, socktype, proto, canonname, sockaddr")


def network_getaddrinfo(options, prefix, family=0, addrtype=0, proto=0):
    """Return socket.getaddrinfo() for the address given in options.

    IP address and port number are set with two separated keys:
        `prefix_host`
        `prefix_port`

    Other options can be used to specify some parts:
        `prefix_forceipv4` as boolean True
        `prefix_forceipv6` as boolean True

    In place of a list of simple tuples, we return a list of named tuple
    AddrInfo which usage is more readable with fields identification.

    :param options: dictionnary of options containing prefixed keys.
    :type options: dict
    :param prefix: prefix of keys to use in options.
    :type prefix: str
    :param family: protocol family to restrict list of replies (AF_INET or
        AF_INET6), overriden by forceipv4/forceipv6 options.
        Default to 0 (all protocol families).
    :type family: int
    :param addrtype: type of socket to restrict list of replies (SOCK_STREAM
        or SOCK_DGRAM).
        Default to 0 (all socket types).
    :type addrtype: int
    :param proto: protocol specified to restrict list of replies.
        Default to 0 (all protocols).
    :type proto: int
    :return: list of address informations to use by socket().
    :rtype: [ AddrInfo ]
    """
    flags = socket.AI_CANONNAME

    forceipv4 = options.get(prefix + '_forceipv4', False)
    forceipv6 = options.get(prefix + '_forceipv6', False)
    if forceipv4 and forceipv6:
        raise ValueError("OSC {} force IPV4 and IPV6 simultaneously in "\
                                "options.".format(prefix))

    host = options.get(prefix + '_host', None)
    port = options.get(prefix + '_port', None)

    if host is None:
        raise ValueError("OSC {} missing host information.".format(prefix))

    if host == "*":     # Our match for all interfaces.
        host = None     # for getaddrinfo()
        flags |= socket.AI_PASSIVE
    else:
        host = str(host).strip()
        # Remove possible [] around IPV6 address.
        if host.startswith('[') and host.endswith(']'):
            host = host[1:-1]

    if isinstance(port, str):
        port = port.strip()
        if port.lower() == "none":
            port = 0
        else:
            port = int(port)

    if forceipv4:
        family = socket.AF_INET
    elif forceipv6:
        family = socket.AF_INET6

    res = socket.getaddrinfo(host, port, family, addrtype, proto,
                                flags=flags)
    if not res:
        raise ValueError("OSC {} get no addrinfo for host/port with "\
                            "specified protocol/family".format(prefix))

    return [AddrInfo(*r) for r in res]


def select_sockspec(sockspeclist, logger=None):
    """Select one address specification among getaddrinfo() results.

    If we have IPV6 and IPV4, we prefer IPV4 (use forceipv6 options to
    get IPV6).

    :param sockspeclist: results of network_getaddrinfo()
    :type sockspeclist: [ AddrInfo ]
    :param logger: Python logger to trace activity.
    :type logger: logging.Logger
    :rtype: AddrInfo
    """
    if len(sockspeclist) > 1 and logger is not None:
        logger.debug("OSC retrieve multiple specs for host/port: %r",
                     sockspeclist)
    for spec in sockspeclist:
        if spec.family == socket.AF_INET:
            return spec
    return sockspeclist[0]
