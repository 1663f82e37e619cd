import os
import pytest


@pytest.fixture(scope="session")
def gateway_url():
    return os.getenv("FLINK_GATEWAY_URL")


@pytest.fixture(scope="session")
def api_version():
    return os.getenv("FLINK_GATEWAY_API_VERSION", "v3")


@pytest.fixture(scope="session")
def connection_details(gateway_url, api_version):
    return {
        "gateway_url": gateway_url,
        "api_version": api_version,
    }
