import numpy as np
import pytest
from PIL import Image

from WrapController import WrapController
from WrapSettings import WrapSettings


class FakeAfter:
    """Deterministic after()/cancel() backend: jobs run only when asked."""

    def __init__(self):
        self.jobs = []
        self.cancelled = []
        self._next = 0

    def __call__(self, delay_ms, fn):
        self._next += 1
        self.jobs.append((self._next, delay_ms, fn))
        return self._next

    def cancel(self, handle):
        self.cancelled.append(handle)
        self.jobs = [j for j in self.jobs if j[0] != handle]

    def run_pending(self):
        jobs, self.jobs = self.jobs, []
        for _, _, fn in jobs:
            fn()
        return len(jobs)


def make_design(size=(200, 160), seed=0) -> Image.Image:
    rng = np.random.default_rng(seed)
    w, h = size
    arr = rng.integers(0, 256, size=(h, w, 4), dtype=np.uint8)
    arr[..., 3] = 255
    return Image.fromarray(arr)


@pytest.fixture
def fake_after():
    return FakeAfter()


@pytest.fixture
def settings():
    # Small DPIs keep rasters tiny
    return WrapSettings(preview_dpi=18, export_dpi=72)


@pytest.fixture
def design():
    return make_design()


@pytest.fixture
def ctl(settings, fake_after, design):
    c = WrapController(settings=settings, after=fake_after, cancel=fake_after.cancel)
    c.upload_image(design)
    yield c
    c.close()
