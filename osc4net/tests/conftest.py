#!/usr/bin/env python3
# -*- encoding: utf-8 -*-
# File: osc4net/tests/conftest.py
# <pep8 compliant>

import sys
from os.path import abspath, dirname
# Make osc4net available.
PACKAGE_PATH = dirname(dirname(dirname(abspath(__file__))))
if PACKAGE_PATH not in sys.path:
    sys.path.insert(0, PACKAGE_PATH)

import pytest

from testsnet import TcpPeer, UdpPeer


@pytest.fixture
def tcppeer():
    peer = TcpPeer()
    yield peer
    peer.close()


@pytest.fixture
def udppeer():
    peer = UdpPeer()
    yield peer
    peer.close()
