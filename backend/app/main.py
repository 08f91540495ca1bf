"""FastAPI application entrypoints for uBASIC.

This module exposes HTTP endpoints for running and checking uBASIC programs.
Handlers are intentionally small: each `/run` request constructs a fresh
`ProgramRunner` (and so a fresh interpreter and memory) to avoid cross-request
state sharing. The module-level `runner` holds the server-side limits;
clients may only lower them.
"""

import logging
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI
from pydantic import BaseModel

from ..ubasic.errors import ParseError
from ..ubasic.parser import parse_program
from ..ubasic.runner import ProgramRunner

logger = logging.getLogger(__name__)

app = FastAPI(title="uBASIC API", version="0.1")

# server-side ceilings; tests and deployments may tighten these
runner = ProgramRunner()


def _cap_settings(settings: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Enforce server-side safe caps for runtime tunables.

    Clients may include a `settings` object with per-run tunables. The server
    must not trust these: every cap is clamped to the module-level `runner`'s
    value. `use_subprocess` passes through as a boolean.

    Returns a dict suitable for passing directly into `ProgramRunner.run`.
    """
    safe = {
        "max_steps": runner.max_steps,
        "max_time_s": runner.max_time_s,
        "max_output_chars": runner.max_output_chars,
    }
    if not settings:
        return safe
    caps: Dict[str, Any] = {}
    caps["max_steps"] = min(int(settings.get("max_steps", safe["max_steps"])), safe["max_steps"])
    caps["max_time_s"] = min(float(settings.get("max_time_s", safe["max_time_s"])), safe["max_time_s"])
    caps["max_output_chars"] = min(int(settings.get("max_output_chars", safe["max_output_chars"])), safe["max_output_chars"])
    if settings.get("use_subprocess"):
        caps["use_subprocess"] = True
        caps["timeout_s"] = min(
            float(settings.get("timeout_s", runner.subprocess_timeout_s)), runner.subprocess_timeout_s
        )
    return caps


class RunRequest(BaseModel):
    """Pydantic model for the `/run` request body.

    Fields:
        code: uBASIC source text, one labelled statement per line.
        memory: optional initial PEEK/POKE memory (address -> value).
        settings: optional runtime tunables; will be capped server-side.
    """
    code: str
    memory: Optional[Dict[int, int]] = None
    settings: Optional[Dict[str, Any]] = None


class ParseRequest(BaseModel):
    code: str


@app.post("/run")
async def run_code(req: RunRequest):
    """Handle a program execution request.

    Builds a fresh `ProgramRunner` per request, applies the capped settings
    and returns the run result with a `duration_ms` field. Any unexpected
    exception becomes a SERVER_ERROR payload so callers always receive the
    same JSON shape.
    """
    start = time.time()
    try:
        capped = _cap_settings(req.settings or {})
        it = ProgramRunner()
        it.subprocess_timeout_s = runner.subprocess_timeout_s
        result = it.run(req.code, memory=req.memory or {}, settings=capped)
    except Exception as e:
        logger.exception("run request failed")
        return {
            "output": "",
            "errors": {"code": "SERVER_ERROR", "message": str(e)},
            "memory": {},
            "steps": 0,
            "duration_ms": int((time.time() - start) * 1000),
        }
    result["duration_ms"] = int((time.time() - start) * 1000)
    return result


@app.post("/parse")
async def parse_code(req: ParseRequest):
    """Parse a program without running it and return it in listing form."""
    try:
        lines = parse_program(req.code, "<program>")
    except ParseError as e:
        return {"lines": [], "errors": e.to_dict("SYNTAX_ERROR")}
    return {"lines": [str(s) for s in lines], "errors": None}
