import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
sys.path.insert(0, os.path.dirname(__file__))

from fakes import FakeGatewayFactory


@pytest.fixture
def fake_gateway():
    return FakeGatewayFactory()
