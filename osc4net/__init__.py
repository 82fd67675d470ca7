#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/__init__.py
"""OSC client transport with Python3.

Encoding/decoding of OSC packets, sending and receiving them with a remote
peer over UDP or length framed TCP, dispatching of received packets to
subscribed handlers, and periodic UDP transmission.
"""

__version__ = "1.0.0"

__all__ = []
