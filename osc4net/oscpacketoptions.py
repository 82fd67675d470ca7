#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/oscpacketoptions.py
# <pep8 compliant>
"""Container class to transmit packet reception informations.
"""

import time


class PacketOptions(object):
    """Reception informations passed along with a received packet.

    :ivar readername: name of the transport channel which receive the packet.
        Default to "undefined".
    :type readername: str
    :ivar srcident: identification information of the packet source
        (typically tuple with IP address and port).
        Default to None.
    :type srcident: hashable
    :ivar readtime: time() when the packet has been read.
    :type readtime: float
    """
    def __init__(self, readername="undefined", srcident=None, readtime=None):
        self.readername = readername
        self.srcident = srcident
        if readtime is None:
            readtime = time.time()
        self.readtime = readtime

    def __str__(self):
        """Representation of object attributes for debugging purpose."""
        return "PacketOptions(readername={}, srcident={}, "\
               "readtime={})".format(self.readername, self.srcident,
                                     self.readtime)

    __repr__ = __str__
