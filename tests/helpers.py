"""Test helpers: tiny images, job specs and a fake generation gateway."""

import asyncio
import struct
import time
import zlib

from beautify_web.models.generation import GenerationSuccess
from beautify_web.models.job import JobKind, JobSpec, TaskSpec, TaskStatus


def make_png(width: int = 4, height: int = 3, color: tuple = (200, 30, 30)) -> bytes:
    """Build a tiny valid RGB PNG."""

    def chunk(tag: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(tag + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", crc)

    raw = b"".join(b"\x00" + bytes(color) * width for _ in range(height))
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(raw))
        + chunk(b"IEND", b"")
    )


def make_spec(inputs, kind=JobKind.BATCH, prompt="enhance", **kwargs) -> JobSpec:
    """Job spec with one task per input, ordinals starting at 1."""
    return JobSpec(
        kind=kind,
        prompt=prompt,
        tasks=[
            TaskSpec(ordinal=i, image=image, mime_type="image/png", label=f"img{i}.png")
            for i, image in enumerate(inputs, start=1)
        ],
        **kwargs,
    )


class FakeGateway:
    """
    Stand-in for the generation gateway.

    ``outcomes`` maps an input image to a result or an exception to raise;
    unmapped inputs succeed with ``b"out-" + input``. Setting ``gate`` to an
    ``asyncio.Event`` holds every call until it is set.
    """

    def __init__(self, outcomes=None):
        self.outcomes = dict(outcomes or {})
        self.calls = []
        self.call_times = []
        self.prompts = []
        self.aspect_ratios = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate = None
        self.started = asyncio.Event()

    async def generate(self, image, mime_type, prompt, aspect_ratio=None):
        self.calls.append(image)
        self.call_times.append(time.monotonic())
        self.prompts.append(prompt)
        self.aspect_ratios.append(aspect_ratio)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(0)
            outcome = self.outcomes.get(image)
            if outcome is None:
                return GenerationSuccess(image=b"out-" + image, mime_type="image/png")
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1


async def assert_invariants(store, job_id: int) -> None:
    """Counter bounds on the job and outcome/status agreement on every task."""
    job = await store.get_job(job_id)
    assert 0 <= job.failed_count <= job.completed_count <= job.total_count
    for task in await store.get_tasks(job_id):
        assert (task.output_image is not None) == (task.status == TaskStatus.COMPLETED)
        assert (task.error is not None) == (task.status == TaskStatus.FAILED)
