"""Independent propagation of many spacecraft.

Each job owns its spacecraft and its sink; only the read-only propagator may
be shared. Jobs run on a thread pool and a failing job does not affect the
others: its error is reported in its :class:`PropagationOutcome` and its
spacecraft keeps the state it had before the run.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from odjax.errors import InvalidConfiguration, OdjaxError
from odjax.propagation._types import PropagationJob, PropagationOutcome

logger = logging.getLogger(__name__)


def _run_job(job: PropagationJob):
    return job.propagator.propagate(
        job.spacecraft, job.stop_conditions, sink=job.sink, output_step=job.output_step
    )


def propagate_independent(
    jobs: Sequence[PropagationJob],
    max_workers: int | None = None,
) -> list[PropagationOutcome]:
    """Propagate independent jobs concurrently.

    Args:
        jobs: Propagation requests. No spacecraft or sink may appear in more
            than one job.
        max_workers: Thread pool size. Defaults to the executor's default.

    Returns:
        list[PropagationOutcome]: One outcome per job, in submission order.

    Raises:
        InvalidConfiguration: If a spacecraft or sink is shared between jobs.

    Examples:
        ```python
        from odjax.propagation import PropagationJob, propagate_independent
        from odjax.events import Event
        jobs = [PropagationJob(prop, sc, [Event.elapsed_time(600.0)]) for sc in fleet]
        outcomes = propagate_independent(jobs, max_workers=4)
        [o.ok for o in outcomes]
        ```
    """
    jobs = list(jobs)
    _check_exclusive(jobs)
    if not jobs:
        return []

    logger.info("propagating %d independent jobs", len(jobs))
    outcomes: list[PropagationOutcome | None] = [None] * len(jobs)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(_run_job, job): index for index, job in enumerate(jobs)}

        for future in as_completed(futures):
            index = futures[future]
            job = jobs[index]
            try:
                result = future.result()
            except OdjaxError as e:
                logger.warning("job %d (%s) failed: %s", index, job.spacecraft.name, e)
                outcomes[index] = PropagationOutcome(index, job.spacecraft, None, e)
                continue
            outcomes[index] = PropagationOutcome(index, job.spacecraft, result, None)

    failed = sum(1 for o in outcomes if not o.ok)
    logger.info("independent propagation done: %d ok, %d failed", len(jobs) - failed, failed)
    return outcomes


def _check_exclusive(jobs):
    seen_spacecraft = set()
    seen_sinks = set()
    for index, job in enumerate(jobs):
        if id(job.spacecraft) in seen_spacecraft:
            raise InvalidConfiguration(f"job {index} reuses a spacecraft owned by another job")
        seen_spacecraft.add(id(job.spacecraft))
        if job.sink is not None:
            if id(job.sink) in seen_sinks:
                raise InvalidConfiguration(f"job {index} reuses a sink owned by another job")
            seen_sinks.add(id(job.sink))
