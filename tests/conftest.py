"""pytest 共享夹具"""

import pytest

from fakes import FakeSoundProvider


@pytest.fixture()
def fake_provider():
    """记录调用顺序的音频提供者替身"""
    return FakeSoundProvider()
