import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def taichi_runtime():
    ti.init(arch=ti.cpu, default_fp=ti.f64)
    yield
