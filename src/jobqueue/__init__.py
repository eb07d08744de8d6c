"""jobqueue — run deferred jobs with bounded concurrency.

Example::

    from jobqueue import Runner

    results = await Runner(concurrency=3).run([job_a, job_b, job_c])
    results = await Runner.run_all([job_a, job_b], concurrency=2)
"""

from jobqueue.outcome import Job, JobFailure
from jobqueue.runner import Runner
from jobqueue.settings import RunnerSettings, get_settings

__version__ = "0.1.0"

__all__ = [
    "Job",
    "JobFailure",
    "Runner",
    "RunnerSettings",
    "__version__",
    "get_settings",
]
