"""Capped program execution returning a structured result.

`ProgramRunner.run` is the entry point used by the HTTP API and the
subprocess worker. Unlike the batch driver in `interpreter.run`, it never
raises for program errors: it always returns a dict of the form

    {"output": str, "errors": None | dict, "memory": dict, "steps": int}

and enforces per-run safety caps (statements executed, wall-clock time,
output size) so an endless `10 GOTO 10` cannot hold the caller forever.
Error dicts carry a `code` (SYNTAX_ERROR, RUNTIME_ERROR, STEP_LIMIT,
TIMEOUT, OUTPUT_LIMIT, SUBPROCESS_ERROR, SUBPROCESS_FAILED), a `message`, and
for program errors the `line`/`column` of the offending source text.
"""

import io
import json
import logging
import os
import time
from typing import Any, Dict, Optional

from . import subprocess_runner
from .errors import EvalError, ParseError
from .interpreter import Interpreter
from .machine import MemoryMachine
from .parser import parse_program

logger = logging.getLogger(__name__)


class ProgramRunner:
    """Runs uBASIC source under configurable limits.

    Tunable attributes (defaults are set in __init__):
    - max_steps: statements executed before STEP_LIMIT
    - max_time_s: wall-clock seconds before TIMEOUT
    - max_output_chars: PRINT output size before OUTPUT_LIMIT
    - subprocess_timeout_s: hard timeout when `use_subprocess` is requested;
      the UBASIC_SUBPROCESS_TIMEOUT_S environment variable overrides it

    Each call to `run` may lower or raise these through its `settings` dict;
    the HTTP layer clamps client settings before they get here.
    """

    def __init__(self):
        self.max_steps = 100000
        self.max_time_s = 1.5
        self.max_output_chars = 5000
        self.subprocess_timeout_s = float(os.environ.get("UBASIC_SUBPROCESS_TIMEOUT_S", "2"))

    def run(
        self,
        code: str,
        memory: Optional[Dict[int, int]] = None,
        settings: Optional[Dict[str, Any]] = None,
        name: str = "<program>",
    ) -> Dict[str, Any]:
        settings_local: Dict[str, Any] = settings or {}
        memory_local: Dict[int, int] = memory or {}

        # Subprocess fast-path: hand the whole run to an isolated child that
        # can be killed when it overruns its timeout.
        if settings_local.get("use_subprocess"):
            return self._run_in_subprocess(code, memory_local, settings_local)
        return self._execute_core(code, memory_local, settings_local, name)

    def _result(self, out: io.StringIO, machine: MemoryMachine, steps: int, errors: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "output": out.getvalue(),
            "errors": errors,
            "memory": dict(machine.values),
            "steps": steps,
        }

    def _execute_core(
        self,
        code: str,
        memory: Dict[int, int],
        settings: Dict[str, Any],
        name: str,
    ) -> Dict[str, Any]:
        max_steps = int(settings.get("max_steps", self.max_steps))
        max_time_s = float(settings.get("max_time_s", self.max_time_s))
        max_output_chars = int(settings.get("max_output_chars", self.max_output_chars))

        out = io.StringIO()
        machine = MemoryMachine(out, memory)
        interp = Interpreter(machine)
        try:
            interp.load(parse_program(code, name))
        except ParseError as e:
            return self._result(out, machine, 0, e.to_dict("SYNTAX_ERROR"))

        interp.reset()
        steps = 0
        start_wall = time.time()
        while not interp.halt:
            # enforce wall-clock timeout per-run
            if time.time() - start_wall > max_time_s:
                logger.warning("%s: time limit of %.2fs exceeded", name, max_time_s)
                return self._result(out, machine, steps, {"code": "TIMEOUT", "message": "Time limit exceeded"})
            if steps >= max_steps:
                logger.warning("%s: step limit of %d exceeded", name, max_steps)
                return self._result(out, machine, steps, {"code": "STEP_LIMIT", "message": "Step limit exceeded"})
            try:
                interp.step()
            except EvalError as e:
                return self._result(out, machine, steps, e.to_dict("RUNTIME_ERROR"))
            steps += 1
            if machine.written > max_output_chars:
                logger.warning("%s: output limit of %d chars reached", name, max_output_chars)
                res = self._result(out, machine, steps, {"code": "OUTPUT_LIMIT", "message": "Output length limit reached"})
                res["output"] = res["output"][:max_output_chars]
                return res
        return self._result(out, machine, steps, None)

    def _run_in_subprocess(self, code: str, memory: Dict[int, int], settings: Dict[str, Any]) -> Dict[str, Any]:
        child_settings = {k: v for k, v in settings.items() if k not in ("use_subprocess", "timeout_s")}
        timeout_s = float(settings.get("timeout_s", self.subprocess_timeout_s))
        failed: Dict[str, Any] = {"output": "", "errors": None, "memory": dict(memory), "steps": 0}
        try:
            rc, out, err = subprocess_runner.run_code_in_subprocess(
                code, timeout_s=timeout_s, memory=memory, settings=child_settings
            )
        except OSError as e:
            failed["errors"] = {"code": "SUBPROCESS_ERROR", "message": str(e)}
            return failed
        if rc == -1:
            failed["errors"] = {"code": "TIMEOUT", "message": "Subprocess time limit exceeded"}
            return failed
        if rc != 0:
            failed["output"] = out
            failed["errors"] = {"code": "SUBPROCESS_FAILED", "message": err}
            return failed
        try:
            payload = json.loads(out)
        except ValueError as e:
            failed["output"] = out
            failed["errors"] = {"code": "SUBPROCESS_FAILED", "message": f"bad worker output: {e}"}
            return failed
        # JSON object keys are strings; memory addresses are ints
        payload["memory"] = {int(k): v for k, v in (payload.get("memory") or {}).items()}
        return payload
