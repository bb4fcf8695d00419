from io import BytesIO
from typing import cast

import pytest
from _pytest.fixtures import SubRequest

from respwire import ProtocolVersion, RESPWriter


@pytest.fixture(
    params=[
        pytest.param(ProtocolVersion.V1, id="resp1"),
        pytest.param(ProtocolVersion.V2, id="resp2"),
        pytest.param(ProtocolVersion.V3, id="resp3"),
    ]
)
def version(request: SubRequest) -> ProtocolVersion:
    return cast(ProtocolVersion, request.param)


@pytest.fixture(
    params=[
        pytest.param(ProtocolVersion.V1, id="resp1"),
        pytest.param(ProtocolVersion.V2, id="resp2"),
    ]
)
def resp2_version(request: SubRequest) -> ProtocolVersion:
    return cast(ProtocolVersion, request.param)


@pytest.fixture
def sink() -> BytesIO:
    return BytesIO()


@pytest.fixture
def writer(sink: BytesIO) -> RESPWriter:
    return RESPWriter(sink, ProtocolVersion.V3)
