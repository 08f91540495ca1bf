"""Helpers to run a uBASIC program in a short-lived worker process.

This module provides `run_code_in_subprocess`, which launches
`backend.ubasic._subprocess_worker` (a JSON-over-stdin/stdout helper) and
waits for it under a wall-clock timeout. A uBASIC program can loop forever
(`10 GOTO 10`) and the interpreter has no way to interrupt a statement, so
killing a child process is the only hard stop available.

Behavior and guarantees:
  - On POSIX, optional RLIMIT_CPU and RLIMIT_AS limits are applied using a
    preexec function. On Windows these limits are no-ops.
  - The worker runs with closed file descriptors and a minimal environment.
  - The function returns (returncode, stdout, stderr). A returncode of -1
    indicates the process was terminated due to timeout.
"""

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

WORKER_MODULE = "backend.ubasic._subprocess_worker"

# directory holding the top-level `backend` package
PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _make_posix_preexec(cpu_seconds: Optional[int], mem_limit_mb: Optional[int]):
    """Return a preexec_fn that applies resource limits on POSIX systems.

    If the `resource` module is unavailable the function is a no-op.
    """
    def preexec():
        try:
            import resource
        except ImportError:
            return

        if cpu_seconds is not None:
            resource.setrlimit(resource.RLIMIT_CPU, (int(cpu_seconds), int(cpu_seconds)))

        if mem_limit_mb is not None:
            mem_bytes = int(mem_limit_mb) * 1024 * 1024
            resource.setrlimit(resource.RLIMIT_AS, (mem_bytes, mem_bytes))

        # Start a new session to isolate signals
        try:
            os.setsid()
        except OSError:
            pass

    return preexec


def run_code_in_subprocess(
    code: str,
    timeout_s: float = 2,
    *,
    cpu_seconds: Optional[int] = 2,
    mem_limit_mb: Optional[int] = 200,
    memory: Optional[Dict[int, int]] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> Tuple[int, str, str]:
    """Run `code` in the worker and return its raw outputs.

    Parameters:
      - code: uBASIC source sent to the worker.
      - timeout_s: wall-clock timeout for the whole operation (seconds).
      - cpu_seconds: optional RLIMIT_CPU (seconds) applied on POSIX.
      - mem_limit_mb: optional RLIMIT_AS (MB) applied on POSIX.
      - memory: initial PEEK/POKE memory for the run.
      - settings: run-service settings forwarded to the worker.

    Returns (returncode, stdout, stderr); stdout holds the worker's JSON
    result. On timeout the process is killed and (-1, "", "TIMEOUT") is
    returned.
    """
    # Keep the child's environment minimal; PATH is still needed so the
    # interpreter can locate shared libraries.
    env = {"PATH": os.environ.get("PATH", "")}

    popen_kwargs: Dict[str, Any] = dict(
        args=[sys.executable, "-m", WORKER_MODULE],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=env,
        cwd=str(PROJECT_ROOT),
        close_fds=True,
    )

    if os.name != "nt":
        popen_kwargs["preexec_fn"] = _make_posix_preexec(cpu_seconds, mem_limit_mb)

    proc = subprocess.Popen(**popen_kwargs)

    payload = json.dumps({
        "code": code,
        "memory": {str(k): v for k, v in (memory or {}).items()},
        "settings": settings or {},
    })
    try:
        out, err = proc.communicate(payload, timeout=timeout_s)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.communicate()
        return -1, "", "TIMEOUT"

    return proc.returncode, out or "", err or ""
