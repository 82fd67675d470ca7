#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# File: osc4net/tests/test_transmitter.py
# <pep8 compliant>

import socket
import time

import pytest

from osc4net.oscbuildparse import *
from osc4net.oscchannel import OSCTransportError
from osc4net.osctransmitter import PeriodicTransmitter, TRANSMIT_SOURCEPORT
from osc4net.oscudp import UdpChannel

from testslogger import logger
from testsnet import wait_until, free_port

PING = OSCMessage("/ping", ",i", (1,))


def transmitter(port, **options):
    options.setdefault("logger", logger)
    options.setdefault("transmit_sourceport", 0)
    options.setdefault("transmit_period", 0.05)
    return PeriodicTransmitter("127.0.0.1", port, options)


def test_defaults():
    trans = PeriodicTransmitter(port=5000)
    assert trans.host == "127.0.0.1"
    assert trans.transmit_sourceport == TRANSMIT_SOURCEPORT == 10024
    assert trans.transmit_period == 1.0
    assert not trans.is_running
    with pytest.raises(ValueError):
        PeriodicTransmitter()


def test_start_without_packet():
    trans = transmitter(5000)
    with pytest.raises(ValueError):
        trans.start(None)
    assert not trans.is_running


def test_stop_without_start():
    trans = transmitter(5000)
    trans.stop()
    assert not trans.is_running


def test_sends_packet_periodically(udppeer):
    trans = transmitter(udppeer.port)
    progress = []
    trans.transmission_progress.add(progress.append)
    trans.start(PING)
    for _ in range(3):
        data, _ = udppeer.sock.recvfrom(65536)
        assert decode_packet(data) == PING
    trans.stop()
    assert trans.transmission_count >= 3
    assert progress == list(range(1, trans.transmission_count + 1))


def test_stop_freezes_count(udppeer):
    trans = transmitter(udppeer.port)
    trans.start(PING)
    trans.stop()
    assert not trans.is_running
    count = trans.transmission_count
    time.sleep(0.2)
    assert trans.transmission_count == count
    # Nothing sent after stop returned.
    received = 0
    udppeer.sock.settimeout(0.1)
    try:
        while True:
            udppeer.sock.recvfrom(65536)
            received += 1
    except socket.timeout:
        pass
    assert received == count


def test_stop_interrupts_period_wait(udppeer):
    trans = transmitter(udppeer.port, transmit_period=10.0)
    trans.start(PING)
    assert wait_until(lambda: trans.transmission_count == 1)
    begin = time.time()
    trans.stop()
    assert time.time() - begin < 5.0
    assert trans.transmission_count == 1


def test_stop_from_progress_handler(udppeer):
    trans = transmitter(udppeer.port)
    channel = []

    def stop_at_two(count):
        if count == 2:
            channel.append(trans.channel)
            trans.stop()
    trans.transmission_progress.add(stop_at_two)
    trans.start(PING)
    thread = trans.thread
    assert wait_until(lambda: not thread.is_alive())
    assert not trans.is_running
    assert trans.thread is None
    assert trans.channel is None
    assert channel[0].is_disposed
    time.sleep(0.2)
    assert trans.transmission_count == 2


def test_start_twice(udppeer):
    trans = transmitter(udppeer.port)
    trans.start(PING)
    try:
        with pytest.raises(RuntimeError):
            trans.start(PING)
    finally:
        trans.stop()
    # Restart resets the counter.
    trans.start(PING)
    trans.stop()
    assert trans.transmission_count <= 2


def test_fixed_source_port(udppeer):
    sourceport = free_port(socket.SOCK_DGRAM)
    trans = transmitter(udppeer.port, transmit_sourceport=sourceport)
    trans.start(PING)
    try:
        _, srcaddress = udppeer.sock.recvfrom(65536)
    finally:
        trans.stop()
    assert srcaddress[1] == sourceport


def test_send_failure_ends_transmission(udppeer, monkeypatch):
    def failing_write(self, rawdata):
        raise OSCTransportError("network unreachable")

    monkeypatch.setattr(UdpChannel, "write_raw", failing_write)
    trans = transmitter(udppeer.port)
    errors = []
    trans.transmission_errored.add(errors.append)
    trans.start(PING)
    assert wait_until(lambda: not trans.is_running)
    assert len(errors) == 1
    assert isinstance(errors[0], OSCTransportError)
    assert trans.transmission_count == 0
    # Still safe to stop.
    trans.stop()
    trans.stop()
