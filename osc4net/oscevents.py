#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/oscevents.py
# <pep8 compliant>
"""Notification of events to a list of subscribed handlers.

Each kind of event (packet received, message received, transport error...)
has its own :class:`EventHandlers` object. Handlers are called in their
subscription order, in the thread which signal the event.

def handler(message, packopt):
    print("Received", message, "from", packopt.srcident)

client.message_received.add(handler)
"""

import logging
import threading

# Used when no logger is given, failures in handlers must not vanish.
fallback_logger = logging.getLogger("osc4net")


class EventHandlers(object):
    """Ordered list of callables notified of one kind of event.

    :ivar evtname: name of the event, for logs.
    :type evtname: str
    :ivar handlers: subscribed callables.
    :type handlers: [ callable ]
    :ivar logger: Python logger to trace activity.
        Default to None
    :type logger: logging.Logger
    """
    def __init__(self, evtname, logger=None):
        self.evtname = evtname
        self.handlers = []
        self.logger = logger
        self.lock = threading.Lock()

    def __repr__(self):
        return "EventHandlers({!r}, {} handlers)".format(self.evtname,
                                                        len(self.handlers))

    def __len__(self):
        return len(self.handlers)

    def __contains__(self, handler):
        return handler in self.handlers

    def add(self, handler):
        """Subscribe a handler to the event.

        The same handler can be subscribed several times, it is then called
        several times.

        :param handler: function to call with event parameters.
        :type handler: callable
        """
        if not callable(handler):
            raise TypeError("OSC event {} handler {!r} is not "\
                            "callable".format(self.evtname, handler))
        with self.lock:
            self.handlers = self.handlers + [handler]

    def remove(self, handler):
        """Unsubscribe a handler (one subscription), no-op if unknown.
        """
        with self.lock:
            if handler in self.handlers:
                handlers = self.handlers[:]
                handlers.remove(handler)
                self.handlers = handlers

    def clear(self):
        with self.lock:
            self.handlers = []

    def notify(self, *args):
        """Call all handlers with the event parameters.

        A failure in one handler is logged and don't prevent calling others.

        :return: count of handlers called.
        :rtype: int
        """
        # Handlers list is replaced (never modified) on updates, so
        # iterating on the current reference needs no lock.
        handlers = self.handlers
        for handler in handlers:
            self.protected_call(handler, args)
        return len(handlers)

    def protected_call(self, handler, args):
        """Wrap the handler call with exception management.
        """
        try:
            handler(*args)
        except Exception:
            logger = self.logger if self.logger is not None \
                                 else fallback_logger
            logger.exception("OSC failure in %s handler %r.", self.evtname,
                             handler)
